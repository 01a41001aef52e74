"""Check count summary — per-session header for a box's verification history."""

from protean.core.projector import on
from protean.fields import Boolean, DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from packing.checkcount.events import CheckCountCompleted, CheckCountStarted, CheckItemScanned
from packing.checkcount.session import CheckCountSession, CheckCountStatus
from packing.domain import packing


@packing.projection
class CheckCountSummary:
    session_id = Identifier(identifier=True, required=True)
    job_id = Identifier(required=True)
    box_id = Identifier(required=True)
    box_number = Integer(required=True)
    user_id = String()
    status = String(required=True)
    total_items_expected = Integer(default=0)
    total_items_scanned = Integer(default=0)
    discrepancies_found = Integer(default=0)
    corrections_applied = Boolean(default=False)
    started_at = DateTime()
    completed_at = DateTime()


@packing.projector(projector_for=CheckCountSummary, aggregates=[CheckCountSession])
class CheckCountSummaryProjector:
    @on(CheckCountStarted)
    def on_check_count_started(self, event):
        current_domain.repository_for(CheckCountSummary).add(
            CheckCountSummary(
                session_id=event.session_id,
                job_id=event.job_id,
                box_id=event.box_id,
                box_number=event.box_number,
                user_id=event.user_id,
                status=CheckCountStatus.ACTIVE.value,
                total_items_expected=event.total_items_expected,
                total_items_scanned=0,
                started_at=event.started_at,
            )
        )

    @on(CheckItemScanned)
    def on_check_item_scanned(self, event):
        repo = current_domain.repository_for(CheckCountSummary)
        summary = repo.get(event.session_id)
        summary.total_items_scanned = (summary.total_items_scanned or 0) + 1
        repo.add(summary)

    @on(CheckCountCompleted)
    def on_check_count_completed(self, event):
        repo = current_domain.repository_for(CheckCountSummary)
        summary = repo.get(event.session_id)
        summary.status = CheckCountStatus.COMPLETED.value
        summary.total_items_scanned = event.total_items_scanned
        summary.discrepancies_found = event.discrepancies_found
        summary.corrections_applied = event.corrections_applied
        summary.completed_at = event.completed_at
        repo.add(summary)
