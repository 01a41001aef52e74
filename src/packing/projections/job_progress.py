"""Job progress — the job header the dashboard totals are built on.

Only Job events write this record. Scan totals, completed boxes and pending
put-aside items are summed from the per-box and per-item records when the
progress is read, since those are written concurrently by different boxes.
"""

from protean.core.projector import on
from protean.fields import Boolean, DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from packing.domain import packing
from packing.job.events import JobImported, JobStatusChanged
from packing.job.job import Job


@packing.projection
class JobProgress:
    job_id = Identifier(identifier=True, required=True)
    name = String(required=True)
    status = String(required=True)
    is_active = Boolean(default=True)
    box_count = Integer(default=0)
    total_required = Integer(default=0)
    created_at = DateTime()
    updated_at = DateTime()


@packing.projector(projector_for=JobProgress, aggregates=[Job])
class JobProgressProjector:
    @on(JobImported)
    def on_job_imported(self, event):
        current_domain.repository_for(JobProgress).add(
            JobProgress(
                job_id=event.job_id,
                name=event.name,
                status=event.status,
                is_active=True,
                box_count=event.box_count,
                total_required=event.total_required,
                created_at=event.created_at,
                updated_at=event.created_at,
            )
        )

    @on(JobStatusChanged)
    def on_job_status_changed(self, event):
        repo = current_domain.repository_for(JobProgress)
        progress = repo.get(event.job_id)
        progress.status = event.new_status
        progress.is_active = event.is_active
        progress.updated_at = event.changed_at
        repo.add(progress)
