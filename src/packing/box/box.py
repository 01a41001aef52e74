"""Box aggregate (Event Sourced) — one customer box within a job.

A box owns its requirement rows (barcode, required quantity, live scanned
quantity). Every change to a live quantity is a ScanRecorded event on the box
stream, so the box is always reconstructible from its own ledger and the
per-row quantity equals the sum of accepted deltas.

Invariants enforced here:
    0 <= scanned_qty <= required_qty for every row
    is_complete  <=> at least one row and every row is fulfilled
    at most one active CheckCount session per box
    a correction reference is applied at most once
"""

import json
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean import apply
from protean.fields import (
    Boolean,
    DateTime,
    HasMany,
    Identifier,
    Integer,
    List,
    String,
)

from packing.box.events import (
    BoxCompleted,
    BoxCreated,
    BoxEmptied,
    BoxTransferred,
    CheckCountClosed,
    CheckCountOpened,
    ScanRecorded,
)
from packing.domain import packing
from packing.errors import (
    EmptyBox,
    InvalidState,
    NoMatchingRequirement,
    QuantityExceedsRequirement,
    RequirementFulfilled,
    SessionAlreadyActive,
    ValidationFailure,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class ScanSource(Enum):
    SCAN = "scan"
    CORRECTION = "correction"
    CHECKCOUNT = "checkcount"
    PUT_ASIDE = "put_aside"  # unit parked outside any box


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@packing.entity(part_of="Box")
class BoxRequirement:
    """How many units of one barcode the box must contain."""

    barcode = String(required=True, max_length=255)
    product_name = String(max_length=500)
    required_qty = Integer(required=True, min_value=0)
    scanned_qty = Integer(default=0, min_value=0)

    @property
    def outstanding(self):
        return self.required_qty - self.scanned_qty

    @property
    def is_fulfilled(self):
        return self.scanned_qty >= self.required_qty


# ---------------------------------------------------------------------------
# Aggregate Root (Event Sourced)
# ---------------------------------------------------------------------------
@packing.aggregate(is_event_sourced=True)
class Box:
    job_id = Identifier(required=True)
    box_number = Integer(required=True, min_value=1)
    customer_name = String(required=True, max_length=255)
    group_name = String(max_length=255)
    requirements = HasMany(BoxRequirement)
    is_complete = Boolean(default=False)
    active_check_session_id = Identifier()
    applied_references = List(content_type=String)
    created_at = DateTime()
    updated_at = DateTime()
    completed_at = DateTime()
    fill_cycle = Integer(default=0)  # bumped by every empty

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, job_id, box_number, customer_name, requirements_data, group_name=None):
        """Create a box for one customer.

        Args:
            requirements_data: List of dicts with barcode, product_name and
                               required_qty. Row IDs are generated here so
                               replay is deterministic.
        """
        rows = [
            {
                "id": str(uuid4()),
                "barcode": row["barcode"],
                "product_name": row.get("product_name"),
                "required_qty": int(row["required_qty"]),
                "scanned_qty": 0,
            }
            for row in requirements_data
        ]

        box = cls._create_new()
        box.raise_(
            BoxCreated(
                box_id=str(box.id),
                job_id=str(job_id),
                box_number=box_number,
                customer_name=customer_name,
                group_name=group_name,
                requirements=json.dumps(rows),
                total_required=sum(row["required_qty"] for row in rows),
                # Rows that require nothing are fulfilled from the start
                is_complete=bool(rows) and all(row["required_qty"] == 0 for row in rows),
                created_at=datetime.now(UTC),
            )
        )
        return box

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def requirement_for(self, barcode):
        return next((r for r in (self.requirements or []) if r.barcode == barcode), None)

    @property
    def total_required(self):
        return sum(r.required_qty for r in (self.requirements or []))

    @property
    def total_scanned(self):
        return sum(r.scanned_qty for r in (self.requirements or []))

    def has_applied(self, reference):
        return reference in (self.applied_references or [])

    def _would_be_complete(self, requirement, new_scanned_qty):
        rows = self.requirements or []
        if not rows:
            return False
        return all(
            (new_scanned_qty if r.id == requirement.id else r.scanned_qty) >= r.required_qty for r in rows
        )

    # -------------------------------------------------------------------
    # Live quantity changes
    # -------------------------------------------------------------------
    def _record(self, requirement, delta, source, worker_id=None, reference=None):
        new_scanned_qty = requirement.scanned_qty + delta
        was_complete = bool(self.is_complete)
        is_complete = self._would_be_complete(requirement, new_scanned_qty)
        entry_id = str(uuid4())
        now = datetime.now(UTC)

        self.raise_(
            ScanRecorded(
                box_id=str(self.id),
                job_id=str(self.job_id),
                box_number=self.box_number,
                entry_id=entry_id,
                requirement_id=str(requirement.id),
                barcode=requirement.barcode,
                product_name=requirement.product_name,
                customer_name=self.customer_name,
                group_name=self.group_name,
                worker_id=worker_id,
                quantity_delta=delta,
                new_scanned_qty=new_scanned_qty,
                required_qty=requirement.required_qty,
                source=source.value,
                reference=reference,
                was_complete=was_complete,
                is_complete=is_complete,
                fill_cycle=self.fill_cycle or 0,
                occurred_at=now,
            )
        )

        if is_complete and not was_complete:
            self.raise_(
                BoxCompleted(
                    box_id=str(self.id),
                    job_id=str(self.job_id),
                    box_number=self.box_number,
                    customer_name=self.customer_name,
                    completed_by=worker_id,
                    completed_at=now,
                )
            )
        return entry_id

    def record_scan(self, barcode, worker_id):
        """Accept one scanned unit. Refuses once the row is already full."""
        requirement = self.requirement_for(barcode)
        if requirement is None:
            raise NoMatchingRequirement(
                f"Box {self.box_number} has no requirement for barcode {barcode}",
                job_id=str(self.job_id),
                box_number=self.box_number,
                barcode=barcode,
            )
        if requirement.is_fulfilled:
            raise RequirementFulfilled(
                f"Barcode {barcode} is already fulfilled in box {self.box_number}",
                job_id=str(self.job_id),
                box_number=self.box_number,
                barcode=barcode,
            )
        return self._record(requirement, 1, ScanSource.SCAN, worker_id=worker_id)

    def apply_correction(self, barcode, delta, performed_by, reference, source=ScanSource.CORRECTION):
        """Apply an audited quantity delta keyed by ``reference``.

        Returns False without raising anything when the reference was already
        applied, so replays of the same correction are harmless.
        """
        if self.has_applied(reference):
            return False

        requirement = self.requirement_for(barcode)
        if requirement is None:
            raise NoMatchingRequirement(
                f"Box {self.box_number} has no requirement for barcode {barcode}",
                job_id=str(self.job_id),
                box_number=self.box_number,
                barcode=barcode,
            )
        if delta > requirement.outstanding:
            raise QuantityExceedsRequirement(
                f"Box {self.box_number} needs {requirement.outstanding} more of {barcode}, got {delta}",
                job_id=str(self.job_id),
                box_number=self.box_number,
                barcode=barcode,
            )
        if requirement.scanned_qty + delta < 0:
            raise ValidationFailure(
                f"Correction would drive {barcode} below zero in box {self.box_number}",
                job_id=str(self.job_id),
                box_number=self.box_number,
                barcode=barcode,
            )
        if delta == 0:
            return False

        self._record(requirement, delta, source, worker_id=performed_by, reference=reference)
        return True

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def empty(self, performed_by, reason=None):
        """Reset every row to zero. Returns the history entry id."""
        items_processed = self.total_scanned
        for requirement in list(self.requirements or []):
            if requirement.scanned_qty > 0:
                self._record(
                    requirement,
                    -requirement.scanned_qty,
                    ScanSource.CORRECTION,
                    worker_id=performed_by,
                )

        entry_id = str(uuid4())
        self.raise_(
            BoxEmptied(
                box_id=str(self.id),
                job_id=str(self.job_id),
                box_number=self.box_number,
                entry_id=entry_id,
                performed_by=performed_by,
                reason=reason,
                items_processed=items_processed,
                fill_cycle=(self.fill_cycle or 0) + 1,
                occurred_at=datetime.now(UTC),
            )
        )
        return entry_id

    def transfer(self, target_group, performed_by, reason=None):
        """Move the box to another group. Quantities are unchanged."""
        if not target_group or not target_group.strip():
            raise ValidationFailure(
                "Target group is required",
                job_id=str(self.job_id),
                box_number=self.box_number,
            )
        if not self.requirements:
            raise EmptyBox(
                f"Box {self.box_number} has no items to transfer",
                job_id=str(self.job_id),
                box_number=self.box_number,
            )

        entry_id = str(uuid4())
        self.raise_(
            BoxTransferred(
                box_id=str(self.id),
                job_id=str(self.job_id),
                box_number=self.box_number,
                entry_id=entry_id,
                previous_group=self.group_name,
                target_group=target_group.strip(),
                performed_by=performed_by,
                reason=reason,
                items_processed=self.total_scanned,
                occurred_at=datetime.now(UTC),
            )
        )
        return entry_id

    # -------------------------------------------------------------------
    # CheckCount reservation
    # -------------------------------------------------------------------
    def open_check_session(self, session_id):
        if self.active_check_session_id:
            raise SessionAlreadyActive(
                f"Box {self.box_number} already has an active check count",
                job_id=str(self.job_id),
                box_number=self.box_number,
                session_id=str(self.active_check_session_id),
            )
        self.raise_(
            CheckCountOpened(
                box_id=str(self.id),
                job_id=str(self.job_id),
                box_number=self.box_number,
                session_id=str(session_id),
                opened_at=datetime.now(UTC),
            )
        )

    def close_check_session(self, session_id):
        if str(self.active_check_session_id or "") != str(session_id):
            raise InvalidState(
                f"Session {session_id} does not hold box {self.box_number}",
                job_id=str(self.job_id),
                box_number=self.box_number,
                session_id=str(session_id),
            )
        self.raise_(
            CheckCountClosed(
                box_id=str(self.id),
                job_id=str(self.job_id),
                box_number=self.box_number,
                session_id=str(session_id),
                closed_at=datetime.now(UTC),
            )
        )

    # -------------------------------------------------------------------
    # @apply methods: rebuild state during event replay
    # -------------------------------------------------------------------
    @apply
    def _on_box_created(self, event: BoxCreated):
        self.id = event.box_id
        self.job_id = event.job_id
        self.box_number = event.box_number
        self.customer_name = event.customer_name
        self.group_name = event.group_name
        self.applied_references = []
        self.fill_cycle = 0
        self.created_at = event.created_at
        self.updated_at = event.created_at

        rows = json.loads(event.requirements) if isinstance(event.requirements, str) else []
        self.requirements = [BoxRequirement(**row) for row in rows]
        self.is_complete = event.is_complete

    @apply
    def _on_scan_recorded(self, event: ScanRecorded):
        requirement = next((r for r in self.requirements if str(r.id) == str(event.requirement_id)), None)
        if requirement:
            requirement.scanned_qty = event.new_scanned_qty
        self.is_complete = event.is_complete
        if not event.is_complete:
            self.completed_at = None
        if event.reference:
            self.applied_references = [*(self.applied_references or []), event.reference]
        self.updated_at = event.occurred_at

    @apply
    def _on_box_completed(self, event: BoxCompleted):
        self.completed_at = event.completed_at

    @apply
    def _on_box_emptied(self, event: BoxEmptied):
        self.fill_cycle = event.fill_cycle or 0
        self.updated_at = event.occurred_at

    @apply
    def _on_box_transferred(self, event: BoxTransferred):
        self.group_name = event.target_group
        self.updated_at = event.occurred_at

    @apply
    def _on_check_count_opened(self, event: CheckCountOpened):
        self.active_check_session_id = event.session_id

    @apply
    def _on_check_count_closed(self, event: CheckCountClosed):
        self.active_check_session_id = None
