"""Domain events for the PutAsideItem aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from packing.domain import packing


@packing.event(part_of="PutAsideItem")
class ItemPutAside:
    __version__ = 1

    item_id = Identifier(required=True)
    job_id = Identifier(required=True)
    barcode = String(required=True)
    product_name = String()
    customer_name = String()
    original_box_number = Integer()
    quantity = Integer(required=True)
    reason = String(required=True)
    put_aside_by = String(required=True)
    source_event_id = Identifier(required=True)
    put_aside_at = DateTime(required=True)


@packing.event(part_of="PutAsideItem")
class PutAsideReallocated:
    """A put-aside item was placed into a box. Terminal."""

    __version__ = 1

    item_id = Identifier(required=True)
    job_id = Identifier(required=True)
    barcode = String(required=True)
    quantity = Integer(required=True)
    target_box_id = Identifier(required=True)
    target_box_number = Integer(required=True)
    reallocated_by = String(required=True)
    request_id = String()
    reallocated_at = DateTime(required=True)
