"""Domain events for the CheckCountSession aggregate."""

from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text

from packing.domain import packing


@packing.event(part_of="CheckCountSession")
class CheckCountStarted:
    """A verification pass began with a snapshot of the box's live counts."""

    __version__ = 1

    session_id = Identifier(required=True)
    job_id = Identifier(required=True)
    box_id = Identifier(required=True)
    box_number = Integer(required=True)
    user_id = String(required=True)
    progress = Text(required=True)  # JSON list of progress rows
    total_items_expected = Integer(required=True)
    started_at = DateTime(required=True)


@packing.event(part_of="CheckCountSession")
class CheckItemScanned:
    __version__ = 1

    session_id = Identifier(required=True)
    job_id = Identifier(required=True)
    box_number = Integer(required=True)
    progress_id = Identifier(required=True)
    barcode = String(required=True)
    product_name = String()
    expected_qty = Integer(required=True)
    original_scanned_qty = Integer(required=True)
    check_scanned_qty = Integer(required=True)
    extra_items = Integer(required=True)
    has_discrepancy = Boolean(required=True)
    scanned_at = DateTime(required=True)


@packing.event(part_of="CheckCountSession")
class CheckCountCompleted:
    __version__ = 1

    session_id = Identifier(required=True)
    job_id = Identifier(required=True)
    box_id = Identifier(required=True)
    box_number = Integer(required=True)
    user_id = String()
    progress = Text(required=True)  # JSON list of finalised progress rows
    total_items_expected = Integer(required=True)
    total_items_scanned = Integer(required=True)
    discrepancies_found = Integer(required=True)
    corrections_applied = Boolean(required=True)
    completed_at = DateTime(required=True)
