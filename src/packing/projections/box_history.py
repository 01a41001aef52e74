"""Box history — audit rows for emptied and transferred boxes."""

from enum import Enum

from protean.core.projector import on
from protean.fields import DateTime, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from packing.box.box import Box
from packing.box.events import BoxEmptied, BoxTransferred
from packing.domain import packing


class BoxAction(Enum):
    EMPTIED = "emptied"
    TRANSFERRED = "transferred"


@packing.projection
class BoxHistoryEntry:
    entry_id = Identifier(identifier=True, required=True)
    job_id = Identifier(required=True)
    box_id = Identifier(required=True)
    box_number = Integer(required=True)
    action = String(choices=BoxAction, required=True)
    performed_by = String(required=True)
    previous_group = String()
    target_group = String()
    reason = Text()
    items_processed = Integer(default=0)
    occurred_at = DateTime(required=True)


@packing.projector(projector_for=BoxHistoryEntry, aggregates=[Box])
class BoxHistoryProjector:
    @on(BoxEmptied)
    def on_box_emptied(self, event):
        current_domain.repository_for(BoxHistoryEntry).add(
            BoxHistoryEntry(
                entry_id=event.entry_id,
                job_id=event.job_id,
                box_id=event.box_id,
                box_number=event.box_number,
                action=BoxAction.EMPTIED.value,
                performed_by=event.performed_by,
                reason=event.reason,
                items_processed=event.items_processed,
                occurred_at=event.occurred_at,
            )
        )

    @on(BoxTransferred)
    def on_box_transferred(self, event):
        current_domain.repository_for(BoxHistoryEntry).add(
            BoxHistoryEntry(
                entry_id=event.entry_id,
                job_id=event.job_id,
                box_id=event.box_id,
                box_number=event.box_number,
                action=BoxAction.TRANSFERRED.value,
                performed_by=event.performed_by,
                previous_group=event.previous_group,
                target_group=event.target_group,
                reason=event.reason,
                items_processed=event.items_processed,
                occurred_at=event.occurred_at,
            )
        )
