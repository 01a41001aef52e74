"""PutAsideItem aggregate (CQRS) — a unit that could not be boxed yet.

Items are parked when a scanned barcode has no box with outstanding need
(every box already full, or the barcode is not in the job at all) or when a
worker sets one aside by hand. A Pending item is reallocated into a box
exactly once; afterwards only its terminal fields are ever written.
"""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, String

from packing.domain import packing
from packing.errors import AlreadyReallocated
from packing.put_aside.events import ItemPutAside, PutAsideReallocated


class PutAsideStatus(Enum):
    PENDING = "Pending"
    REALLOCATED = "Reallocated"


class PutAsideReason(Enum):
    BOX_FULL = "box_full"
    UNKNOWN_BARCODE = "unknown_barcode"
    MANUAL = "manual"


@packing.aggregate
class PutAsideItem:
    job_id = Identifier(required=True)
    barcode = String(required=True, max_length=255)
    product_name = String(max_length=500)
    customer_name = String(max_length=255)
    original_box_number = Integer()
    quantity = Integer(required=True, min_value=1)
    reason = String(required=True, max_length=255)
    status = String(choices=PutAsideStatus, default=PutAsideStatus.PENDING.value)
    put_aside_by = String(required=True, max_length=255)
    put_aside_at = DateTime()
    reallocated_by = String(max_length=255)
    reallocated_at = DateTime()
    reallocated_to_box_number = Integer()
    reallocation_request_id = String(max_length=255)
    source_event_id = Identifier()

    @classmethod
    def create(
        cls,
        job_id,
        barcode,
        put_aside_by,
        quantity=1,
        reason=None,
        product_name=None,
        customer_name=None,
        original_box_number=None,
    ):
        if quantity is None or quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        now = datetime.now(UTC)
        item = cls(
            job_id=job_id,
            barcode=barcode,
            product_name=product_name,
            customer_name=customer_name,
            original_box_number=original_box_number,
            quantity=quantity,
            reason=reason or PutAsideReason.MANUAL.value,
            put_aside_by=put_aside_by,
            put_aside_at=now,
            source_event_id=str(uuid4()),
        )
        item.raise_(
            ItemPutAside(
                item_id=str(item.id),
                job_id=str(job_id),
                barcode=barcode,
                product_name=product_name,
                customer_name=customer_name,
                original_box_number=original_box_number,
                quantity=quantity,
                reason=item.reason,
                put_aside_by=put_aside_by,
                source_event_id=item.source_event_id,
                put_aside_at=now,
            )
        )
        return item

    @property
    def is_reallocated(self):
        return self.status == PutAsideStatus.REALLOCATED.value

    def is_retry_of(self, request_id):
        """True when ``request_id`` is the request that already reallocated this item."""
        return bool(request_id) and self.is_reallocated and self.reallocation_request_id == request_id

    def assert_pending(self):
        if self.is_reallocated:
            raise AlreadyReallocated(
                f"Item {self.id} was already reallocated to box {self.reallocated_to_box_number}",
                job_id=str(self.job_id),
                item_id=str(self.id),
                box_number=self.reallocated_to_box_number,
            )

    def reallocate(self, target_box_id, target_box_number, performed_by, request_id=None):
        self.assert_pending()

        now = datetime.now(UTC)
        self.status = PutAsideStatus.REALLOCATED.value
        self.reallocated_by = performed_by
        self.reallocated_at = now
        self.reallocated_to_box_number = target_box_number
        self.reallocation_request_id = request_id

        self.raise_(
            PutAsideReallocated(
                item_id=str(self.id),
                job_id=str(self.job_id),
                barcode=self.barcode,
                quantity=self.quantity,
                target_box_id=str(target_box_id),
                target_box_number=target_box_number,
                reallocated_by=performed_by,
                request_id=request_id,
                reallocated_at=now,
            )
        )
