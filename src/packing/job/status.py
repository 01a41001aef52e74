"""Job lifecycle — commands and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from packing.domain import logger, packing
from packing.job.job import Job


@packing.command(part_of="Job")
class ActivateJob:
    job_id: Identifier(required=True)
    changed_by: String(max_length=255)


@packing.command(part_of="Job")
class PauseJob:
    job_id: Identifier(required=True)
    changed_by: String(max_length=255)


@packing.command(part_of="Job")
class ResumeJob:
    job_id: Identifier(required=True)
    changed_by: String(max_length=255)


@packing.command(part_of="Job")
class CompleteJob:
    job_id: Identifier(required=True)
    changed_by: String(max_length=255)


@packing.command(part_of="Job")
class ArchiveJob:
    job_id: Identifier(required=True)
    changed_by: String(max_length=255)


@packing.command_handler(part_of=Job)
class JobStatusHandler:
    def _transition(self, command, action):
        repo = current_domain.repository_for(Job)
        job = repo.get(command.job_id)
        getattr(job, action)(changed_by=command.changed_by)
        repo.add(job)
        logger.info("job_status_changed", job_id=str(job.id), status=job.status, is_active=job.is_active)
        return job.status

    @handle(ActivateJob)
    def activate(self, command):
        return self._transition(command, "activate")

    @handle(PauseJob)
    def pause(self, command):
        return self._transition(command, "pause")

    @handle(ResumeJob)
    def resume(self, command):
        return self._transition(command, "resume")

    @handle(CompleteJob)
    def complete(self, command):
        return self._transition(command, "complete")

    @handle(ArchiveJob)
    def archive(self, command):
        return self._transition(command, "archive")
