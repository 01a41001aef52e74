"""Box lifecycle — empty and transfer commands and handler.

Both operations are audited: the projector for BoxHistoryEntry turns the
BoxEmptied / BoxTransferred events into exactly one history row each.
"""

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from packing.box.box import Box
from packing.domain import logger, packing


@packing.command(part_of="Box")
class EmptyBox:
    box_id = Identifier(required=True)
    performed_by = String(required=True, max_length=255)
    reason = Text()


@packing.command(part_of="Box")
class TransferBox:
    box_id = Identifier(required=True)
    target_group = String(max_length=255)
    performed_by = String(required=True, max_length=255)
    reason = Text()


@packing.command_handler(part_of=Box)
class BoxLifecycleHandler:
    @handle(EmptyBox)
    def empty_box(self, command):
        repo = current_domain.repository_for(Box)
        box = repo.get(command.box_id)
        entry_id = box.empty(performed_by=command.performed_by, reason=command.reason)
        repo.add(box)

        logger.info(
            "box_emptied",
            job_id=str(box.job_id),
            box_number=box.box_number,
            performed_by=command.performed_by,
        )
        return entry_id

    @handle(TransferBox)
    def transfer_box(self, command):
        repo = current_domain.repository_for(Box)
        box = repo.get(command.box_id)
        entry_id = box.transfer(
            target_group=command.target_group,
            performed_by=command.performed_by,
            reason=command.reason,
        )
        repo.add(box)

        logger.info(
            "box_transferred",
            job_id=str(box.job_id),
            box_number=box.box_number,
            target_group=box.group_name,
        )
        return entry_id
