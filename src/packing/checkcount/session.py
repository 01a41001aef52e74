"""CheckCountSession aggregate (Event Sourced) — an independent recount of one box.

The session keeps its own progress rows and never touches live box counts
while it is Active. Live data only changes on completion, and only when the
supervisor asks for corrections to be applied.

State Machine:
    ACTIVE → COMPLETED (terminal, immutable)

Discrepancy rule, evaluated after every scan and again on completion:
    has_discrepancy = check_scanned_qty != original_scanned_qty or extra_items > 0
"""

import json
from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean import apply
from protean.fields import Boolean, DateTime, HasMany, Identifier, Integer, String

from packing.checkcount.events import CheckCountCompleted, CheckCountStarted, CheckItemScanned
from packing.domain import packing
from packing.errors import SessionNotActive


class CheckCountStatus(Enum):
    ACTIVE = "Active"
    COMPLETED = "Completed"


def _is_discrepant(check_scanned_qty, original_scanned_qty, extra_items):
    return check_scanned_qty != original_scanned_qty or extra_items > 0


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@packing.entity(part_of="CheckCountSession")
class CheckProgress:
    """Per-barcode counts of one session.

    Barcodes the box does not require are tracked with expected_qty 0, so
    every unit of them shows up as an extra.
    """

    barcode = String(required=True, max_length=255)
    product_name = String(max_length=500)
    expected_qty = Integer(default=0, min_value=0)
    original_scanned_qty = Integer(default=0, min_value=0)
    check_scanned_qty = Integer(default=0, min_value=0)
    extra_items = Integer(default=0, min_value=0)
    has_discrepancy = Boolean(default=False)

    def to_dict(self):
        return {
            "id": str(self.id),
            "barcode": self.barcode,
            "product_name": self.product_name,
            "expected_qty": self.expected_qty,
            "original_scanned_qty": self.original_scanned_qty,
            "check_scanned_qty": self.check_scanned_qty,
            "extra_items": self.extra_items,
            "has_discrepancy": self.has_discrepancy,
        }


# ---------------------------------------------------------------------------
# Aggregate Root (Event Sourced)
# ---------------------------------------------------------------------------
@packing.aggregate(is_event_sourced=True)
class CheckCountSession:
    job_id = Identifier(required=True)
    box_id = Identifier(required=True)
    box_number = Integer(required=True)
    user_id = String(required=True, max_length=255)
    status = String(choices=CheckCountStatus, default=CheckCountStatus.ACTIVE.value)
    progress = HasMany(CheckProgress)
    total_items_expected = Integer(default=0)
    total_items_scanned = Integer(default=0)
    discrepancies_found = Integer(default=0)
    corrections_applied = Boolean(default=False)
    started_at = DateTime()
    completed_at = DateTime()

    @classmethod
    def start(cls, job_id, box_id, box_number, user_id, snapshot):
        """Open a session over a snapshot of the box.

        Args:
            snapshot: List of dicts with barcode, product_name, expected_qty
                      and original_scanned_qty, one per requirement row.
        """
        rows = [
            {
                "id": str(uuid4()),
                "barcode": row["barcode"],
                "product_name": row.get("product_name"),
                "expected_qty": row["expected_qty"],
                "original_scanned_qty": row["original_scanned_qty"],
                "check_scanned_qty": 0,
                "extra_items": 0,
                # Nothing counted yet: any row with live units already differs
                "has_discrepancy": _is_discrepant(0, row["original_scanned_qty"], 0),
            }
            for row in snapshot
        ]

        session = cls._create_new()
        session.raise_(
            CheckCountStarted(
                session_id=str(session.id),
                job_id=str(job_id),
                box_id=str(box_id),
                box_number=box_number,
                user_id=user_id,
                progress=json.dumps(rows),
                total_items_expected=sum(row["expected_qty"] for row in rows),
                started_at=datetime.now(UTC),
            )
        )
        return session

    @property
    def is_complete(self):
        return self.status == CheckCountStatus.COMPLETED.value

    def progress_for(self, barcode):
        return next((p for p in (self.progress or []) if p.barcode == barcode), None)

    def _assert_active(self):
        if self.is_complete:
            raise SessionNotActive(
                f"Check count session {self.id} is already completed",
                job_id=str(self.job_id),
                box_number=self.box_number,
                session_id=str(self.id),
            )

    def record_scan(self, barcode, product_name=None):
        """Count one unit in the session only. Returns the updated row."""
        self._assert_active()

        row = self.progress_for(barcode)
        if row is None:
            progress_id = str(uuid4())
            expected_qty = 0
            original_scanned_qty = 0
            check_scanned_qty = 1
        else:
            progress_id = str(row.id)
            product_name = row.product_name
            expected_qty = row.expected_qty
            original_scanned_qty = row.original_scanned_qty
            check_scanned_qty = row.check_scanned_qty + 1

        extra_items = max(0, check_scanned_qty - expected_qty)
        self.raise_(
            CheckItemScanned(
                session_id=str(self.id),
                job_id=str(self.job_id),
                box_number=self.box_number,
                progress_id=progress_id,
                barcode=barcode,
                product_name=product_name,
                expected_qty=expected_qty,
                original_scanned_qty=original_scanned_qty,
                check_scanned_qty=check_scanned_qty,
                extra_items=extra_items,
                has_discrepancy=_is_discrepant(check_scanned_qty, original_scanned_qty, extra_items),
                scanned_at=datetime.now(UTC),
            )
        )
        return self.progress_for(barcode)

    def complete(self, apply_corrections):
        """Finalise every row and close the session.

        Returns the discrepant rows so the caller can decide what to write
        back to the live box.
        """
        self._assert_active()

        rows = []
        for row in self.progress or []:
            data = row.to_dict()
            data["extra_items"] = max(0, row.check_scanned_qty - row.expected_qty)
            data["has_discrepancy"] = _is_discrepant(
                row.check_scanned_qty, row.original_scanned_qty, data["extra_items"]
            )
            rows.append(data)

        self.raise_(
            CheckCountCompleted(
                session_id=str(self.id),
                job_id=str(self.job_id),
                box_id=str(self.box_id),
                box_number=self.box_number,
                user_id=self.user_id,
                progress=json.dumps(rows),
                total_items_expected=self.total_items_expected,
                total_items_scanned=sum(row["check_scanned_qty"] for row in rows),
                discrepancies_found=sum(1 for row in rows if row["has_discrepancy"]),
                corrections_applied=bool(apply_corrections),
                completed_at=datetime.now(UTC),
            )
        )
        return [p for p in self.progress if p.has_discrepancy]

    # -------------------------------------------------------------------
    # @apply methods: rebuild state during event replay
    # -------------------------------------------------------------------
    @apply
    def _on_check_count_started(self, event: CheckCountStarted):
        self.id = event.session_id
        self.job_id = event.job_id
        self.box_id = event.box_id
        self.box_number = event.box_number
        self.user_id = event.user_id
        self.status = CheckCountStatus.ACTIVE.value
        self.total_items_expected = event.total_items_expected
        self.total_items_scanned = 0
        self.discrepancies_found = 0
        self.corrections_applied = False
        self.started_at = event.started_at

        rows = json.loads(event.progress) if isinstance(event.progress, str) else []
        self.progress = [CheckProgress(**row) for row in rows]

    @apply
    def _on_check_item_scanned(self, event: CheckItemScanned):
        row = next((p for p in (self.progress or []) if str(p.id) == str(event.progress_id)), None)
        if row is None:
            self.add_progress(
                CheckProgress(
                    id=event.progress_id,
                    barcode=event.barcode,
                    product_name=event.product_name,
                    expected_qty=event.expected_qty,
                    original_scanned_qty=event.original_scanned_qty,
                    check_scanned_qty=event.check_scanned_qty,
                    extra_items=event.extra_items,
                    has_discrepancy=event.has_discrepancy,
                )
            )
        else:
            row.check_scanned_qty = event.check_scanned_qty
            row.extra_items = event.extra_items
            row.has_discrepancy = event.has_discrepancy
        self.total_items_scanned = sum(p.check_scanned_qty for p in self.progress)

    @apply
    def _on_check_count_completed(self, event: CheckCountCompleted):
        finals = {row["id"]: row for row in json.loads(event.progress)} if isinstance(event.progress, str) else {}
        for row in self.progress or []:
            final = finals.get(str(row.id))
            if final:
                row.extra_items = final["extra_items"]
                row.has_discrepancy = final["has_discrepancy"]
        self.status = CheckCountStatus.COMPLETED.value
        self.total_items_scanned = event.total_items_scanned
        self.discrepancies_found = event.discrepancies_found
        self.corrections_applied = event.corrections_applied
        self.completed_at = event.completed_at
