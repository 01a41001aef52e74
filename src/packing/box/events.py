"""Domain events for the Box aggregate.

ScanRecorded is the single write path for live quantities: scans, put-aside
reallocations, box emptying, undo and CheckCount corrections all land here,
so the Scan Ledger is simply the stream of these events.
"""

from protean.fields import Boolean, DateTime, Identifier, Integer, String, Text

from packing.domain import packing


@packing.event(part_of="Box")
class BoxCreated:
    """A customer box was created from the imported catalog."""

    __version__ = 1

    box_id = Identifier(required=True)
    job_id = Identifier(required=True)
    box_number = Integer(required=True)
    customer_name = String(required=True)
    group_name = String()
    requirements = Text(required=True)  # JSON list of requirement dicts
    total_required = Integer(required=True)
    is_complete = Boolean(default=False)
    created_at = DateTime(required=True)


@packing.event(part_of="Box")
class ScanRecorded:
    """A quantity delta was accepted for one (box, barcode) row."""

    __version__ = 1

    box_id = Identifier(required=True)
    job_id = Identifier(required=True)
    box_number = Integer(required=True)
    entry_id = Identifier(required=True)
    requirement_id = Identifier(required=True)
    barcode = String(required=True)
    product_name = String()
    customer_name = String()
    group_name = String()
    worker_id = String()
    quantity_delta = Integer(required=True)
    new_scanned_qty = Integer(required=True)
    required_qty = Integer(required=True)
    source = String(required=True)
    reference = String()
    was_complete = Boolean(default=False)
    is_complete = Boolean(default=False)
    fill_cycle = Integer(default=0)
    occurred_at = DateTime(required=True)


@packing.event(part_of="Box")
class BoxCompleted:
    """Every requirement row of the box reached its required quantity."""

    __version__ = 1

    box_id = Identifier(required=True)
    job_id = Identifier(required=True)
    box_number = Integer(required=True)
    customer_name = String()
    completed_by = String()
    completed_at = DateTime(required=True)


@packing.event(part_of="Box")
class BoxEmptied:
    __version__ = 1

    box_id = Identifier(required=True)
    job_id = Identifier(required=True)
    box_number = Integer(required=True)
    entry_id = Identifier(required=True)
    performed_by = String(required=True)
    reason = String()
    items_processed = Integer(required=True)
    fill_cycle = Integer(default=0)
    occurred_at = DateTime(required=True)


@packing.event(part_of="Box")
class BoxTransferred:
    __version__ = 1

    box_id = Identifier(required=True)
    job_id = Identifier(required=True)
    box_number = Integer(required=True)
    entry_id = Identifier(required=True)
    previous_group = String()
    target_group = String(required=True)
    performed_by = String(required=True)
    reason = String()
    items_processed = Integer(required=True)
    occurred_at = DateTime(required=True)


@packing.event(part_of="Box")
class CheckCountOpened:
    """The box was reserved for a verification session."""

    __version__ = 1

    box_id = Identifier(required=True)
    job_id = Identifier(required=True)
    box_number = Integer(required=True)
    session_id = Identifier(required=True)
    opened_at = DateTime(required=True)


@packing.event(part_of="Box")
class CheckCountClosed:
    __version__ = 1

    box_id = Identifier(required=True)
    job_id = Identifier(required=True)
    box_number = Integer(required=True)
    session_id = Identifier(required=True)
    closed_at = DateTime(required=True)
