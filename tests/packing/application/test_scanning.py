"""Application tests for live scanning through the engine."""

import pytest
from packing import engine
from packing.box.box import Box
from packing.errors import NotFound, ScanningPaused
from packing.put_aside.item import PutAsideReason
from protean import current_domain


def _rows(*lines):
    return [
        {"barcode": barcode, "product_name": f"Product {barcode}", "quantity": qty, "customer_name": customer}
        for customer, barcode, qty in lines
    ]


def _active_job(*lines):
    job_id = engine.import_job("Wave", _rows(*lines), created_by="sup")
    engine.change_job_status(job_id, "activate", changed_by="sup")
    return job_id


def _live_qty(job_id, box_number, barcode):
    status = engine.list_boxes(job_id)[box_number - 1]
    box = current_domain.repository_for(Box).get(status.box_id)
    return box.requirement_for(barcode).scanned_qty


class TestRecordScan:
    def test_scan_goes_to_lowest_box_needing_barcode(self):
        job_id = _active_job(("Ada", "A", 1), ("Grace", "A", 2))
        result = engine.record_scan(job_id, "A", "worker-1")
        assert result.box_number == 1
        assert result.scanned_qty == 1
        assert result.required_qty == 1
        assert result.put_aside is False
        assert result.customer_name == "Ada"
        assert result.product_name == "Product A"

    def test_full_box_is_skipped(self):
        job_id = _active_job(("Ada", "A", 1), ("Grace", "A", 2))
        engine.record_scan(job_id, "A", "worker-1")
        result = engine.record_scan(job_id, "A", "worker-1")
        assert result.box_number == 2

    def test_last_unit_completes_box(self):
        job_id = _active_job(("Ada", "A", 1), ("Ada", "B", 1))
        first = engine.record_scan(job_id, "A", "worker-1")
        second = engine.record_scan(job_id, "B", "worker-1")
        assert first.is_complete is False
        assert first.box_completed is False
        assert second.is_complete is True
        assert second.box_completed is True

    def test_preferred_box_wins(self):
        job_id = _active_job(("Ada", "A", 1), ("Grace", "A", 1), ("Linus", "A", 1))
        result = engine.record_scan(job_id, "A", "worker-1", preferred_box_number=2)
        assert result.box_number == 2

    def test_allocation_pattern_breaks_ties(self):
        job_id = _active_job(("Ada", "A", 1), ("Grace", "A", 1), ("Linus", "A", 1))
        result = engine.record_scan(job_id, "A", "worker-1", allocation_pattern="descending")
        assert result.box_number == 3

    def test_pending_job_accepts_scans(self):
        job_id = engine.import_job("Wave", _rows(("Ada", "A", 1)))
        assert engine.record_scan(job_id, "A", "worker-1").box_number == 1

    def test_scan_updates_read_models(self):
        job_id = _active_job(("Ada", "A", 2))
        engine.record_scan(job_id, "A", "worker-1")
        [row] = engine.box_requirements(job_id)
        assert row.scanned_qty == 1
        [status] = engine.list_boxes(job_id)
        assert status.total_scanned == 1
        [entry] = engine.ledger(job_id)
        assert entry.quantity_delta == 1
        assert entry.source == "scan"
        assert entry.worker_id == "worker-1"


class TestPutAsideRouting:
    def test_surplus_unit_is_put_aside(self):
        job_id = _active_job(("Ada", "A", 1))
        engine.record_scan(job_id, "A", "worker-1")
        result = engine.record_scan(job_id, "A", "worker-1")
        assert result.put_aside is True
        assert result.box_number is None
        item = engine.list_put_aside(job_id)[0]
        assert str(item.id) == result.put_aside_item_id
        assert item.reason == PutAsideReason.BOX_FULL.value
        assert item.quantity == 1
        assert item.product_name == "Product A"

    def test_unknown_barcode_is_put_aside(self):
        job_id = _active_job(("Ada", "A", 1))
        result = engine.record_scan(job_id, "ZZZ", "worker-1")
        assert result.put_aside is True
        assert engine.list_put_aside(job_id)[0].reason == PutAsideReason.UNKNOWN_BARCODE.value

    def test_put_aside_leaves_boxes_untouched(self):
        job_id = _active_job(("Ada", "A", 1))
        engine.record_scan(job_id, "A", "worker-1")
        engine.record_scan(job_id, "A", "worker-1")
        assert _live_qty(job_id, 1, "A") == 1


class TestScanRejections:
    def test_paused_job_rejects_scans(self):
        job_id = _active_job(("Ada", "A", 1))
        engine.change_job_status(job_id, "pause")
        with pytest.raises(ScanningPaused) as exc:
            engine.record_scan(job_id, "A", "worker-1")
        assert exc.value.context["job_id"] == job_id
        assert engine.ledger(job_id) == []
        assert engine.list_put_aside(job_id) == []

    def test_completed_job_rejects_scans(self):
        job_id = _active_job(("Ada", "A", 1))
        engine.change_job_status(job_id, "complete")
        with pytest.raises(ScanningPaused):
            engine.record_scan(job_id, "A", "worker-1")

    def test_resumed_job_accepts_scans(self):
        job_id = _active_job(("Ada", "A", 1))
        engine.change_job_status(job_id, "pause")
        engine.change_job_status(job_id, "resume")
        assert engine.record_scan(job_id, "A", "worker-1").box_number == 1

    def test_unknown_job(self):
        with pytest.raises(NotFound):
            engine.record_scan("no-such-job", "A", "worker-1")


class TestUndoScans:
    def test_undo_reverses_latest_scan_of_worker(self):
        job_id = _active_job(("Ada", "A", 3))
        engine.record_scan(job_id, "A", "worker-1")
        last = engine.record_scan(job_id, "A", "worker-1")

        undone = engine.undo_scans(job_id, "worker-1")

        assert undone == [last.entry_id]
        assert _live_qty(job_id, 1, "A") == 1
        reversal = engine.ledger(job_id)[-1]
        assert reversal.quantity_delta == -1
        assert reversal.source == "correction"
        assert reversal.reference == f"undo:{last.entry_id}"

    def test_undo_does_not_repeat(self):
        job_id = _active_job(("Ada", "A", 3))
        first = engine.record_scan(job_id, "A", "worker-1")
        second = engine.record_scan(job_id, "A", "worker-1")
        assert engine.undo_scans(job_id, "worker-1") == [second.entry_id]
        assert engine.undo_scans(job_id, "worker-1") == [first.entry_id]
        assert engine.undo_scans(job_id, "worker-1") == []
        assert _live_qty(job_id, 1, "A") == 0

    def test_undo_only_touches_own_scans(self):
        job_id = _active_job(("Ada", "A", 3))
        engine.record_scan(job_id, "A", "worker-1")
        engine.record_scan(job_id, "A", "worker-2")
        engine.undo_scans(job_id, "worker-1")
        remaining = [e for e in engine.ledger(job_id) if e.quantity_delta > 0]
        assert _live_qty(job_id, 1, "A") == 1
        assert {e.worker_id for e in remaining} == {"worker-1", "worker-2"}

    def test_undo_several(self):
        job_id = _active_job(("Ada", "A", 3), ("Grace", "B", 1))
        engine.record_scan(job_id, "A", "worker-1")
        engine.record_scan(job_id, "B", "worker-1")
        assert len(engine.undo_scans(job_id, "worker-1", count=5)) == 2
        assert engine.job_progress(job_id).total_scanned == 0

    def test_undo_skips_emptied_rows(self):
        job_id = _active_job(("Ada", "A", 3))
        engine.record_scan(job_id, "A", "worker-1")
        engine.empty_box(job_id, 1, performed_by="sup")
        assert engine.undo_scans(job_id, "worker-1") == []
        assert _live_qty(job_id, 1, "A") == 0

    def test_undo_never_reaches_past_an_empty(self):
        job_id = _active_job(("Ada", "A", 2))
        engine.record_scan(job_id, "A", "worker-1")
        engine.empty_box(job_id, 1, performed_by="sup")
        engine.record_scan(job_id, "A", "worker-2")

        assert engine.undo_scans(job_id, "worker-1") == []
        assert _live_qty(job_id, 1, "A") == 1

    def test_undo_after_empty_reverses_fresh_scans(self):
        job_id = _active_job(("Ada", "A", 2))
        engine.record_scan(job_id, "A", "worker-1")
        engine.empty_box(job_id, 1, performed_by="sup")
        fresh = engine.record_scan(job_id, "A", "worker-1")

        assert engine.undo_scans(job_id, "worker-1", count=2) == [fresh.entry_id]
        assert _live_qty(job_id, 1, "A") == 0
