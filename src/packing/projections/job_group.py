"""Job groups — the group names known within a job."""

from protean.core.projector import on
from protean.exceptions import ObjectNotFoundError
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from packing.box.box import Box
from packing.box.events import BoxCreated, BoxTransferred
from packing.domain import packing


@packing.projection
class JobGroup:
    group_key = String(identifier=True, required=True, max_length=600)  # "<job_id>:<name>"
    job_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    created_at = DateTime()


def _register(job_id, name, occurred_at):
    if not name:
        return
    repo = current_domain.repository_for(JobGroup)
    key = f"{job_id}:{name}"
    try:
        repo.get(key)
    except ObjectNotFoundError:
        repo.add(JobGroup(group_key=key, job_id=job_id, name=name, created_at=occurred_at))


@packing.projector(projector_for=JobGroup, aggregates=[Box])
class JobGroupProjector:
    @on(BoxCreated)
    def on_box_created(self, event):
        _register(event.job_id, event.group_name, event.created_at)

    @on(BoxTransferred)
    def on_box_transferred(self, event):
        _register(event.job_id, event.target_group, event.occurred_at)
