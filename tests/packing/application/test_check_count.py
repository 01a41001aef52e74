"""Application tests for CheckCount verification sessions."""

import pytest

from packing import engine
from packing.checkcount.session import CheckCountStatus
from packing.errors import NotFound, SessionAlreadyActive, SessionNotActive


def _rows(*lines):
    return [
        {"barcode": barcode, "product_name": f"Product {barcode}", "quantity": qty, "customer_name": customer}
        for customer, barcode, qty in lines
    ]


def _job(*lines):
    job_id = engine.import_job("Wave", _rows(*lines))
    engine.change_job_status(job_id, "activate")
    return job_id


def _scan(job_id, barcode, times, box_number=None):
    for _ in range(times):
        engine.record_scan(job_id, barcode, "worker-1", preferred_box_number=box_number)


def _box(job_id, box_number):
    return next(s for s in engine.list_boxes(job_id) if s.box_number == box_number)


def _row(job_id, box_number, barcode):
    return next(r for r in engine.box_requirements(job_id, box_number=box_number) if r.barcode == barcode)


def _box_five_job():
    """Box 5 requires three of barcode A and is fully scanned."""
    lines = [(f"Customer {n}", "X", 1) for n in range(1, 5)]
    lines.append(("Customer 5", "A", 3))
    job_id = _job(*lines)
    _scan(job_id, "A", 3)
    return job_id


class TestCheckCountScenario:
    def test_recount_overwrites_live_quantity(self):
        job_id = _box_five_job()
        assert _row(job_id, 5, "A").scanned_qty == 3
        assert _box(job_id, 5).is_complete is True

        session = engine.start_check_count(job_id, 5, "checker")
        assert session.progress_for("A").original_scanned_qty == 3

        engine.record_check_scan(str(session.id), "A")
        row = engine.record_check_scan(str(session.id), "A")
        assert row["check_scanned_qty"] == 2
        assert row["has_discrepancy"] is True

        completed = engine.complete_check_count(str(session.id), apply_corrections=True)

        assert completed.status == CheckCountStatus.COMPLETED.value
        assert completed.discrepancies_found == 1
        assert _row(job_id, 5, "A").scanned_qty == 2
        assert _box(job_id, 5).is_complete is False

    def test_correction_is_in_ledger(self):
        job_id = _box_five_job()
        session = engine.start_check_count(job_id, 5, "checker")
        engine.record_check_scan(str(session.id), "A")
        engine.record_check_scan(str(session.id), "A")
        engine.complete_check_count(str(session.id), apply_corrections=True)

        corrections = [e for e in engine.ledger(job_id, box_number=5) if e.source == "checkcount"]
        assert len(corrections) == 1
        assert corrections[0].quantity_delta == -1
        assert corrections[0].reference == f"{session.id}:A"
        assert corrections[0].worker_id == "checker"


class TestSessionExclusivity:
    def test_second_session_on_box_conflicts(self):
        job_id = _box_five_job()
        engine.start_check_count(job_id, 5, "checker")
        with pytest.raises(SessionAlreadyActive):
            engine.start_check_count(job_id, 5, "other-checker")

    def test_completing_allows_new_session(self):
        job_id = _box_five_job()
        first = engine.start_check_count(job_id, 5, "checker")
        engine.complete_check_count(str(first.id))
        second = engine.start_check_count(job_id, 5, "checker")
        assert second.id != first.id
        assert str(_box(job_id, 5).active_check_session_id) == str(second.id)

    def test_sessions_on_different_boxes_coexist(self):
        job_id = _box_five_job()
        engine.start_check_count(job_id, 5, "checker")
        engine.start_check_count(job_id, 1, "checker")
        assert len(engine.check_sessions(job_id, 5)) == 1
        assert len(engine.check_sessions(job_id, 1)) == 1


class TestIsolation:
    def test_check_scans_never_touch_live_counts(self):
        job_id = _box_five_job()
        session = engine.start_check_count(job_id, 5, "checker")
        engine.record_check_scan(str(session.id), "A")
        assert _row(job_id, 5, "A").scanned_qty == 3
        assert all(e.source == "scan" for e in engine.ledger(job_id, box_number=5))

    def test_complete_without_corrections_leaves_live_data(self):
        job_id = _box_five_job()
        session = engine.start_check_count(job_id, 5, "checker")
        engine.record_check_scan(str(session.id), "A")

        completed = engine.complete_check_count(str(session.id), apply_corrections=False)

        assert completed.discrepancies_found == 1
        assert completed.corrections_applied is False
        assert _row(job_id, 5, "A").scanned_qty == 3
        assert _box(job_id, 5).is_complete is True
        assert _box(job_id, 5).active_check_session_id is None

    def test_live_scans_continue_during_check(self):
        job_id = _job(("Ada", "A", 3))
        _scan(job_id, "A", 1)
        session = engine.start_check_count(job_id, 1, "checker")
        _scan(job_id, "A", 1)
        engine.record_check_scan(str(session.id), "A")
        engine.record_check_scan(str(session.id), "A")
        engine.record_check_scan(str(session.id), "A")

        engine.complete_check_count(str(session.id), apply_corrections=True)

        # Check found 3 against a snapshot of 1; live had moved on to 2.
        assert _row(job_id, 1, "A").scanned_qty == 3
        assert _box(job_id, 1).is_complete is True


class TestCorrectionRules:
    def test_extras_are_capped_at_required(self):
        job_id = _job(("Ada", "A", 1))
        session = engine.start_check_count(job_id, 1, "checker")
        for _ in range(3):
            row = engine.record_check_scan(str(session.id), "A")
        assert row["extra_items"] == 2

        engine.complete_check_count(str(session.id), apply_corrections=True)

        assert _row(job_id, 1, "A").scanned_qty == 1

    def test_unknown_barcodes_are_not_written_back(self):
        job_id = _job(("Ada", "A", 1))
        _scan(job_id, "A", 1)
        session = engine.start_check_count(job_id, 1, "checker")
        engine.record_check_scan(str(session.id), "A")
        row = engine.record_check_scan(str(session.id), "STRAY")
        assert row["expected_qty"] == 0
        assert row["extra_items"] == 1

        completed = engine.complete_check_count(str(session.id), apply_corrections=True)

        assert completed.discrepancies_found == 1
        assert [r.barcode for r in engine.box_requirements(job_id, box_number=1)] == ["A"]
        assert not [e for e in engine.ledger(job_id) if e.source == "checkcount"]

    def test_corrections_per_barcode(self):
        job_id = _job(("Ada", "A", 2), ("Ada", "B", 2))
        _scan(job_id, "A", 2)
        session = engine.start_check_count(job_id, 1, "checker")
        engine.record_check_scan(str(session.id), "A")
        engine.record_check_scan(str(session.id), "B")

        engine.complete_check_count(str(session.id), apply_corrections=True)

        assert _row(job_id, 1, "A").scanned_qty == 1
        assert _row(job_id, 1, "B").scanned_qty == 1

    def test_unscanned_rows_compare_zero_against_original(self):
        job_id = _job(("Ada", "A", 2))
        _scan(job_id, "A", 2)
        session = engine.start_check_count(job_id, 1, "checker")

        completed = engine.complete_check_count(str(session.id), apply_corrections=True)

        assert completed.discrepancies_found == 1
        assert _row(job_id, 1, "A").scanned_qty == 0


class TestSessionLifecycle:
    def test_expected_total_comes_from_catalog(self):
        job_id = _box_five_job()
        session = engine.start_check_count(job_id, 5, "checker", total_items_expected=99)
        assert session.total_items_expected == 3

    def test_scan_after_complete_fails(self):
        job_id = _box_five_job()
        session = engine.start_check_count(job_id, 5, "checker")
        engine.complete_check_count(str(session.id))
        with pytest.raises(SessionNotActive):
            engine.record_check_scan(str(session.id), "A")

    def test_complete_is_retry_safe(self):
        job_id = _box_five_job()
        session = engine.start_check_count(job_id, 5, "checker")
        engine.record_check_scan(str(session.id), "A")
        first = engine.complete_check_count(str(session.id), apply_corrections=True)
        again = engine.complete_check_count(str(session.id), apply_corrections=True)

        assert again.completed_at == first.completed_at
        assert _row(job_id, 5, "A").scanned_qty == 1

    def test_summary_read_model(self):
        job_id = _box_five_job()
        session = engine.start_check_count(job_id, 5, "checker")
        engine.record_check_scan(str(session.id), "A")
        engine.complete_check_count(str(session.id), apply_corrections=True)

        [summary] = engine.check_sessions(job_id, 5)
        assert str(summary.session_id) == str(session.id)
        assert summary.status == CheckCountStatus.COMPLETED.value
        assert summary.total_items_scanned == 1
        assert summary.discrepancies_found == 1
        assert summary.corrections_applied is True

    def test_unknown_session(self):
        with pytest.raises(NotFound):
            engine.record_check_scan("no-such-session", "A")

    def test_unknown_box(self):
        job_id = _box_five_job()
        with pytest.raises(NotFound):
            engine.start_check_count(job_id, 42, "checker")
