"""Job aggregate (CQRS) — a multi-customer fulfillment job.

A job is created once by the catalog import and afterwards only moves through
its lifecycle. Scanning is gated on the active flag: pausing a job makes every
scan fail as "not applied" without touching any box.

Lifecycle:
    PENDING → ACTIVE → COMPLETED → ARCHIVED
    PENDING/ACTIVE ⇄ paused (is_active=False)
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Integer, String, Text

from packing.domain import packing
from packing.job.events import JobImported, JobStatusChanged


class JobStatus(Enum):
    PENDING = "Pending"
    ACTIVE = "Active"
    COMPLETED = "Completed"
    ARCHIVED = "Archived"


_VALID_TRANSITIONS = {
    JobStatus.PENDING: {JobStatus.ACTIVE, JobStatus.COMPLETED},
    JobStatus.ACTIVE: {JobStatus.COMPLETED},
    JobStatus.COMPLETED: {JobStatus.ARCHIVED},
    JobStatus.ARCHIVED: set(),  # Terminal
}

_SCANNABLE_STATES = {JobStatus.PENDING, JobStatus.ACTIVE}


@packing.aggregate
class Job:
    name = String(required=True, max_length=255)
    description = Text()
    status = String(choices=JobStatus, default=JobStatus.PENDING.value)
    is_active = Boolean(default=True)
    total_products = Integer(default=0)
    total_customers = Integer(default=0)
    box_count = Integer(default=0)
    created_by = String(max_length=255)
    created_at = DateTime()
    updated_at = DateTime()
    completed_at = DateTime()

    @classmethod
    def create(cls, name, total_products, total_customers, box_count, total_required, description=None, created_by=None):
        now = datetime.now(UTC)
        job = cls(
            name=name,
            description=description,
            total_products=total_products,
            total_customers=total_customers,
            box_count=box_count,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        job.raise_(
            JobImported(
                job_id=str(job.id),
                name=name,
                status=job.status,
                total_products=total_products,
                total_customers=total_customers,
                box_count=box_count,
                total_required=total_required,
                created_by=created_by,
                created_at=now,
            )
        )
        return job

    @property
    def accepts_scans(self):
        return bool(self.is_active) and JobStatus(self.status) in _SCANNABLE_STATES

    def _change_status(self, new_status, is_active, changed_by=None):
        previous = self.status
        self.status = new_status.value
        self.is_active = is_active
        self.updated_at = datetime.now(UTC)
        self.raise_(
            JobStatusChanged(
                job_id=str(self.id),
                previous_status=previous,
                new_status=self.status,
                is_active=self.is_active,
                changed_by=changed_by,
                changed_at=self.updated_at,
            )
        )

    def _assert_can_transition(self, target_status):
        current = JobStatus(self.status)
        if target_status not in _VALID_TRANSITIONS[current]:
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def activate(self, changed_by=None):
        """Start the job. Resumes scanning if it was paused."""
        self._assert_can_transition(JobStatus.ACTIVE)
        self._change_status(JobStatus.ACTIVE, True, changed_by)

    def pause(self, changed_by=None):
        if JobStatus(self.status) not in _SCANNABLE_STATES:
            raise ValidationError({"status": [f"Cannot pause a {self.status} job"]})
        if not self.is_active:
            raise ValidationError({"is_active": ["Job is already paused"]})
        self._change_status(JobStatus(self.status), False, changed_by)

    def resume(self, changed_by=None):
        if JobStatus(self.status) not in _SCANNABLE_STATES:
            raise ValidationError({"status": [f"Cannot resume a {self.status} job"]})
        if self.is_active:
            raise ValidationError({"is_active": ["Job is not paused"]})
        self._change_status(JobStatus(self.status), True, changed_by)

    def complete(self, changed_by=None):
        self._assert_can_transition(JobStatus.COMPLETED)
        self.completed_at = datetime.now(UTC)
        self._change_status(JobStatus.COMPLETED, False, changed_by)

    def archive(self, changed_by=None):
        self._assert_can_transition(JobStatus.ARCHIVED)
        self._change_status(JobStatus.ARCHIVED, False, changed_by)
