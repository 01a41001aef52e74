"""Box status — per-box totals and completion for the supervisor grid."""

import json

from protean.core.projector import on
from protean.fields import Boolean, DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from packing.box.box import Box
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


@packing.projection
class BoxStatus:
    box_id = Identifier(identifier=True, required=True)
    job_id = Identifier(required=True)
    box_number = Integer(required=True)
    customer_name = String()
    group_name = String()
    requirement_count = Integer(default=0)
    total_required = Integer(default=0)
    total_scanned = Integer(default=0)
    is_complete = Boolean(default=False)
    active_check_session_id = Identifier()
    completed_at = DateTime()
    last_emptied_at = DateTime()
    updated_at = DateTime()


@packing.projector(projector_for=BoxStatus, aggregates=[Box])
class BoxStatusProjector:
    @on(BoxCreated)
    def on_box_created(self, event):
        rows = json.loads(event.requirements)
        current_domain.repository_for(BoxStatus).add(
            BoxStatus(
                box_id=event.box_id,
                job_id=event.job_id,
                box_number=event.box_number,
                customer_name=event.customer_name,
                group_name=event.group_name,
                requirement_count=len(rows),
                total_required=event.total_required,
                total_scanned=0,
                is_complete=event.is_complete,
                updated_at=event.created_at,
            )
        )

    @on(ScanRecorded)
    def on_scan_recorded(self, event):
        repo = current_domain.repository_for(BoxStatus)
        status = repo.get(event.box_id)
        status.total_scanned = (status.total_scanned or 0) + event.quantity_delta
        status.is_complete = event.is_complete
        if not event.is_complete:
            status.completed_at = None
        status.updated_at = event.occurred_at
        repo.add(status)

    @on(BoxCompleted)
    def on_box_completed(self, event):
        repo = current_domain.repository_for(BoxStatus)
        status = repo.get(event.box_id)
        status.completed_at = event.completed_at
        repo.add(status)

    @on(BoxEmptied)
    def on_box_emptied(self, event):
        repo = current_domain.repository_for(BoxStatus)
        status = repo.get(event.box_id)
        status.last_emptied_at = event.occurred_at
        status.updated_at = event.occurred_at
        repo.add(status)

    @on(BoxTransferred)
    def on_box_transferred(self, event):
        repo = current_domain.repository_for(BoxStatus)
        status = repo.get(event.box_id)
        status.group_name = event.target_group
        status.updated_at = event.occurred_at
        repo.add(status)

    @on(CheckCountOpened)
    def on_check_count_opened(self, event):
        repo = current_domain.repository_for(BoxStatus)
        status = repo.get(event.box_id)
        status.active_check_session_id = event.session_id
        repo.add(status)

    @on(CheckCountClosed)
    def on_check_count_closed(self, event):
        repo = current_domain.repository_for(BoxStatus)
        status = repo.get(event.box_id)
        status.active_check_session_id = None
        repo.add(status)
