"""Put-aside management — park items and reallocate them into boxes."""

from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from packing.box.box import Box, ScanSource
from packing.domain import logger, packing
from packing.job.job import Job
from packing.put_aside.item import PutAsideItem


@packing.command(part_of="PutAsideItem")
class PutAside:
    job_id = Identifier(required=True)
    barcode = String(required=True, max_length=255)
    worker_id = String(required=True, max_length=255)
    quantity = Integer(default=1)
    reason = String(max_length=255)
    product_name = String(max_length=500)
    customer_name = String(max_length=255)
    original_box_number = Integer()


@packing.command(part_of="PutAsideItem")
class ReallocatePutAside:
    item_id = Identifier(required=True)
    target_box_id = Identifier(required=True)
    performed_by = String(required=True, max_length=255)
    request_id = String(max_length=255)


@packing.command_handler(part_of=PutAsideItem)
class PutAsideHandler:
    @handle(PutAside)
    def put_aside(self, command):
        # Raises ObjectNotFoundError for unknown jobs
        current_domain.repository_for(Job).get(command.job_id)

        item = PutAsideItem.create(
            job_id=command.job_id,
            barcode=command.barcode,
            put_aside_by=command.worker_id,
            quantity=command.quantity,
            reason=command.reason,
            product_name=command.product_name,
            customer_name=command.customer_name,
            original_box_number=command.original_box_number,
        )
        current_domain.repository_for(PutAsideItem).add(item)

        logger.info(
            "item_put_aside",
            job_id=str(command.job_id),
            barcode=command.barcode,
            reason=item.reason,
            worker_id=command.worker_id,
        )
        return str(item.id)

    @handle(ReallocatePutAside)
    def reallocate(self, command):
        item_repo = current_domain.repository_for(PutAsideItem)
        item = item_repo.get(command.item_id)
        if item.is_retry_of(command.request_id):
            return str(item.id)
        item.assert_pending()

        box_repo = current_domain.repository_for(Box)
        box = box_repo.get(command.target_box_id)

        # The box skips the item reference if an earlier attempt already
        # placed the units, so the item can still be closed out here.
        box.apply_correction(
            item.barcode,
            item.quantity,
            performed_by=command.performed_by,
            reference=str(item.id),
            source=ScanSource.CORRECTION,
        )
        item.reallocate(
            target_box_id=box.id,
            target_box_number=box.box_number,
            performed_by=command.performed_by,
            request_id=command.request_id,
        )
        box_repo.add(box)
        item_repo.add(item)

        logger.info(
            "put_aside_reallocated",
            job_id=str(item.job_id),
            item_id=str(item.id),
            box_number=box.box_number,
            quantity=item.quantity,
        )
        return str(item.id)
