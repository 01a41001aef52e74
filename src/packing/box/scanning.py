"""Live scanning — commands and handler."""

from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from packing.box.box import Box, ScanSource
from packing.domain import logger, packing


@packing.command(part_of="Box")
class RecordScan:
    """Count one scanned unit of a barcode into a box."""

    box_id = Identifier(required=True)
    barcode = String(required=True, max_length=255)
    worker_id = String(required=True, max_length=255)


@packing.command(part_of="Box")
class UndoScan:
    """Reverse one earlier live scan, identified by its ledger entry."""

    box_id = Identifier(required=True)
    entry_id = Identifier(required=True)
    barcode = String(required=True, max_length=255)
    worker_id = String(required=True, max_length=255)
    fill_cycle = Integer(default=0)


def _row_state(box, barcode):
    requirement = box.requirement_for(barcode)
    return {
        "box_id": str(box.id),
        "box_number": box.box_number,
        "barcode": barcode,
        "product_name": requirement.product_name,
        "customer_name": box.customer_name,
        "scanned_qty": requirement.scanned_qty,
        "required_qty": requirement.required_qty,
        "is_complete": bool(box.is_complete),
    }


@packing.command_handler(part_of=Box)
class ScanningHandler:
    @handle(RecordScan)
    def record_scan(self, command):
        repo = current_domain.repository_for(Box)
        box = repo.get(command.box_id)

        was_complete = bool(box.is_complete)
        entry_id = box.record_scan(command.barcode, command.worker_id)
        repo.add(box)

        result = _row_state(box, command.barcode)
        result["entry_id"] = entry_id
        result["box_completed"] = bool(box.is_complete) and not was_complete
        if result["box_completed"]:
            logger.info(
                "box_completed",
                job_id=str(box.job_id),
                box_number=box.box_number,
                worker_id=command.worker_id,
            )
        return result

    @handle(UndoScan)
    def undo_scan(self, command):
        repo = current_domain.repository_for(Box)
        box = repo.get(command.box_id)

        requirement = box.requirement_for(command.barcode)
        reference = f"undo:{command.entry_id}"
        emptied_since = (command.fill_cycle or 0) != (box.fill_cycle or 0)
        if requirement is None or requirement.scanned_qty == 0 or emptied_since:
            # The unit left the box with an empty or a correction
            logger.warning(
                "undo_skipped",
                job_id=str(box.job_id),
                box_number=box.box_number,
                barcode=command.barcode,
                entry_id=str(command.entry_id),
            )
            return False

        applied = box.apply_correction(
            command.barcode,
            -1,
            performed_by=command.worker_id,
            reference=reference,
            source=ScanSource.CORRECTION,
        )
        repo.add(box)
        return applied
