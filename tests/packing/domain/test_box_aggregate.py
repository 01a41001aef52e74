"""Tests for the Box aggregate: scans, corrections, emptying and transfer."""

import pytest
from packing.box.box import Box, ScanSource
from packing.box.events import (
    BoxCompleted,
    BoxCreated,
    BoxEmptied,
    BoxTransferred,
    CheckCountClosed,
    CheckCountOpened,
    ScanRecorded,
)
from packing.errors import (
    EmptyBox,
    InvalidState,
    NoMatchingRequirement,
    QuantityExceedsRequirement,
    RequirementFulfilled,
    SessionAlreadyActive,
    ValidationFailure,
)


def _make_box(requirements=None, **overrides):
    defaults = {
        "job_id": "job-001",
        "box_number": 5,
        "customer_name": "Ada",
        "group_name": "Shelf A",
        "requirements_data": requirements
        if requirements is not None
        else [
            {"barcode": "A", "product_name": "Tote", "required_qty": 3},
            {"barcode": "B", "product_name": "Pin", "required_qty": 1},
        ],
    }
    defaults.update(overrides)
    box = Box.create(**defaults)
    box._events.clear()
    return box


def _scan_events(box):
    return [e for e in box._events if isinstance(e, ScanRecorded)]


class TestBoxCreation:
    def test_create_raises_box_created(self):
        box = Box.create(
            job_id="job-001",
            box_number=1,
            customer_name="Ada",
            requirements_data=[{"barcode": "A", "required_qty": 2}],
        )
        assert len(box._events) == 1
        assert isinstance(box._events[0], BoxCreated)

    def test_create_sets_requirement_rows(self):
        box = _make_box()
        assert len(box.requirements) == 2
        assert box.requirement_for("A").required_qty == 3
        assert box.requirement_for("A").scanned_qty == 0

    def test_create_sets_identity_and_group(self):
        box = _make_box()
        assert box.id is not None
        assert box.box_number == 5
        assert box.group_name == "Shelf A"

    def test_new_box_is_not_complete(self):
        assert _make_box().is_complete is False

    def test_box_requiring_nothing_starts_complete(self):
        box = _make_box(requirements=[{"barcode": "A", "required_qty": 0}])
        assert box.is_complete is True

    def test_box_without_rows_is_never_complete(self):
        box = _make_box(requirements=[])
        assert box.is_complete is False

    def test_totals(self):
        box = _make_box()
        assert box.total_required == 4
        assert box.total_scanned == 0


class TestRecordScan:
    def test_scan_increments_row(self):
        box = _make_box()
        box.record_scan("A", "worker-1")
        assert box.requirement_for("A").scanned_qty == 1

    def test_scan_raises_scan_recorded(self):
        box = _make_box()
        entry_id = box.record_scan("A", "worker-1")
        events = _scan_events(box)
        assert len(events) == 1
        assert str(events[0].entry_id) == entry_id
        assert events[0].quantity_delta == 1
        assert events[0].source == ScanSource.SCAN.value
        assert events[0].worker_id == "worker-1"

    def test_scan_of_unknown_barcode_fails(self):
        box = _make_box()
        with pytest.raises(NoMatchingRequirement) as exc:
            box.record_scan("Z", "worker-1")
        assert exc.value.context["box_number"] == 5
        assert exc.value.context["barcode"] == "Z"

    def test_scan_of_fulfilled_row_fails(self):
        box = _make_box()
        box.record_scan("B", "worker-1")
        with pytest.raises(RequirementFulfilled):
            box.record_scan("B", "worker-2")
        assert box.requirement_for("B").scanned_qty == 1

    def test_last_unit_completes_box(self):
        box = _make_box()
        for _ in range(3):
            box.record_scan("A", "worker-1")
        assert box.is_complete is False
        box.record_scan("B", "worker-1")
        assert box.is_complete is True
        assert box.completed_at is not None

    def test_completion_edge_raises_box_completed_once(self):
        box = _make_box(requirements=[{"barcode": "A", "required_qty": 1}])
        box.record_scan("A", "worker-1")
        completed = [e for e in box._events if isinstance(e, BoxCompleted)]
        assert len(completed) == 1
        assert completed[0].completed_by == "worker-1"


class TestApplyCorrection:
    def test_positive_correction(self):
        box = _make_box()
        applied = box.apply_correction("A", 2, performed_by="sup", reference="ref-1")
        assert applied is True
        assert box.requirement_for("A").scanned_qty == 2
        event = _scan_events(box)[0]
        assert event.source == ScanSource.CORRECTION.value
        assert event.reference == "ref-1"

    def test_same_reference_is_applied_once(self):
        box = _make_box()
        box.apply_correction("A", 2, performed_by="sup", reference="ref-1")
        again = box.apply_correction("A", 2, performed_by="sup", reference="ref-1")
        assert again is False
        assert box.requirement_for("A").scanned_qty == 2
        assert len(_scan_events(box)) == 1

    def test_correction_over_outstanding_fails(self):
        box = _make_box()
        with pytest.raises(QuantityExceedsRequirement):
            box.apply_correction("A", 4, performed_by="sup", reference="ref-1")
        assert box.requirement_for("A").scanned_qty == 0

    def test_correction_below_zero_fails(self):
        box = _make_box()
        with pytest.raises(ValidationFailure):
            box.apply_correction("A", -1, performed_by="sup", reference="ref-1")

    def test_correction_for_unknown_barcode_fails(self):
        box = _make_box()
        with pytest.raises(NoMatchingRequirement):
            box.apply_correction("Z", 1, performed_by="sup", reference="ref-1")

    def test_zero_delta_records_nothing(self):
        box = _make_box()
        assert box.apply_correction("A", 0, performed_by="sup", reference="ref-1") is False
        assert _scan_events(box) == []

    def test_checkcount_source_is_recorded(self):
        box = _make_box()
        box.apply_correction("A", 1, performed_by="sup", reference="s-1:A", source=ScanSource.CHECKCOUNT)
        assert _scan_events(box)[0].source == "checkcount"

    def test_negative_correction_reopens_complete_box(self):
        box = _make_box(requirements=[{"barcode": "A", "required_qty": 2}])
        box.record_scan("A", "w")
        box.record_scan("A", "w")
        assert box.is_complete is True
        box.apply_correction("A", -1, performed_by="sup", reference="ref-1")
        assert box.is_complete is False
        assert box.completed_at is None


class TestEmptyBox:
    def test_empty_resets_every_row(self):
        box = _make_box()
        box.record_scan("A", "w")
        box.record_scan("A", "w")
        box.record_scan("B", "w")
        box._events.clear()

        box.empty(performed_by="sup", reason="wrong customer")

        assert box.total_scanned == 0
        assert box.is_complete is False
        deltas = sorted(e.quantity_delta for e in _scan_events(box))
        assert deltas == [-2, -1]

    def test_empty_raises_box_emptied_with_prior_total(self):
        box = _make_box()
        box.record_scan("A", "w")
        box._events.clear()
        entry_id = box.empty(performed_by="sup")
        emptied = [e for e in box._events if isinstance(e, BoxEmptied)]
        assert len(emptied) == 1
        assert emptied[0].items_processed == 1
        assert str(emptied[0].entry_id) == entry_id

    def test_empty_box_without_scans_still_audited(self):
        box = _make_box()
        box.empty(performed_by="sup")
        assert _scan_events(box) == []
        assert any(isinstance(e, BoxEmptied) for e in box._events)

    def test_emptied_box_accepts_scans_again(self):
        box = _make_box(requirements=[{"barcode": "A", "required_qty": 1}])
        box.record_scan("A", "w")
        box.empty(performed_by="sup")
        box.record_scan("A", "w")
        assert box.is_complete is True

    def test_empty_starts_a_new_fill_cycle(self):
        box = _make_box()
        box.record_scan("A", "w")
        assert _scan_events(box)[0].fill_cycle == 0

        box.empty(performed_by="sup")
        box._events.clear()
        box.record_scan("A", "w")

        assert box.fill_cycle == 1
        assert _scan_events(box)[0].fill_cycle == 1


class TestTransferBox:
    def test_transfer_changes_group_only(self):
        box = _make_box()
        box.record_scan("A", "w")
        box.transfer("Shelf B", performed_by="sup")
        assert box.group_name == "Shelf B"
        assert box.requirement_for("A").scanned_qty == 1

    def test_transfer_event_carries_both_groups(self):
        box = _make_box()
        box.transfer("  Shelf B ", performed_by="sup", reason="overflow")
        event = next(e for e in box._events if isinstance(e, BoxTransferred))
        assert event.previous_group == "Shelf A"
        assert event.target_group == "Shelf B"
        assert event.reason == "overflow"

    def test_blank_target_group_fails(self):
        box = _make_box()
        with pytest.raises(ValidationFailure):
            box.transfer("   ", performed_by="sup")

    def test_transfer_of_box_without_rows_fails(self):
        box = _make_box(requirements=[])
        with pytest.raises(EmptyBox):
            box.transfer("Shelf B", performed_by="sup")


class TestCheckSessionReservation:
    def test_open_marks_box(self):
        box = _make_box()
        box.open_check_session("sess-1")
        assert str(box.active_check_session_id) == "sess-1"
        assert isinstance(box._events[-1], CheckCountOpened)

    def test_second_open_fails(self):
        box = _make_box()
        box.open_check_session("sess-1")
        with pytest.raises(SessionAlreadyActive):
            box.open_check_session("sess-2")

    def test_close_releases_box(self):
        box = _make_box()
        box.open_check_session("sess-1")
        box.close_check_session("sess-1")
        assert box.active_check_session_id is None
        assert isinstance(box._events[-1], CheckCountClosed)
        box.open_check_session("sess-2")

    def test_close_by_other_session_fails(self):
        box = _make_box()
        box.open_check_session("sess-1")
        with pytest.raises(InvalidState):
            box.close_check_session("sess-2")
