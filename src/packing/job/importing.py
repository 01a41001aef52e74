"""Catalog import — turn requirement rows into a Job and its customer boxes.

Rows arrive already parsed (CSV handling lives outside the engine), one per
(customer, barcode) line with the columns BarCode, Product Name, Qty,
CustomName and Group. Customers get box numbers by first appearance in the
source order; duplicate (customer, barcode) lines are summed into one row.
"""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import String, Text
from protean.utils.globals import current_domain

from packing.box.box import Box
from packing.domain import logger, packing
from packing.job.job import Job


@packing.command(part_of="Job")
class ImportJob:
    name = String(required=True, max_length=255)
    description = Text()
    rows = Text(required=True)  # JSON list of row dicts
    created_by = String(max_length=255)


def _clean(value):
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def plan_boxes(rows):
    """Group import rows into boxes, numbered by first customer appearance.

    Returns a list of dicts with box_number, customer_name, group_name and
    requirements (barcode, product_name, required_qty).
    """
    if not rows:
        raise ValidationError({"rows": ["At least one requirement row is required"]})

    boxes = {}
    errors = []
    for index, row in enumerate(rows, start=1):
        barcode = _clean(row.get("barcode"))
        customer = _clean(row.get("customer_name"))
        if barcode is None:
            errors.append(f"Row {index}: barcode is required")
        if customer is None:
            errors.append(f"Row {index}: customer name is required")
        try:
            quantity = int(row.get("quantity", 0))
        except (TypeError, ValueError):
            errors.append(f"Row {index}: quantity must be a whole number")
            continue
        if quantity < 0:
            errors.append(f"Row {index}: quantity cannot be negative")
        if barcode is None or customer is None or quantity < 0:
            continue

        box = boxes.get(customer)
        if box is None:
            box = boxes[customer] = {
                "box_number": len(boxes) + 1,
                "customer_name": customer,
                "group_name": None,
                "requirements": {},
            }
        if box["group_name"] is None:
            box["group_name"] = _clean(row.get("group"))

        requirement = box["requirements"].get(barcode)
        if requirement is None:
            box["requirements"][barcode] = {
                "barcode": barcode,
                "product_name": _clean(row.get("product_name")) or barcode,
                "required_qty": quantity,
            }
        else:
            requirement["required_qty"] += quantity

    if errors:
        raise ValidationError({"rows": errors})

    return [{**box, "requirements": list(box["requirements"].values())} for box in boxes.values()]


@packing.command_handler(part_of=Job)
class ImportJobHandler:
    @handle(ImportJob)
    def import_job(self, command):
        rows = json.loads(command.rows) if isinstance(command.rows, str) else []
        planned = plan_boxes(rows)

        barcodes = {req["barcode"] for box in planned for req in box["requirements"]}
        total_required = sum(req["required_qty"] for box in planned for req in box["requirements"])

        job = Job.create(
            name=command.name,
            description=command.description,
            total_products=len(barcodes),
            total_customers=len(planned),
            box_count=len(planned),
            total_required=total_required,
            created_by=command.created_by,
        )
        current_domain.repository_for(Job).add(job)

        box_repo = current_domain.repository_for(Box)
        for box_plan in planned:
            box = Box.create(
                job_id=job.id,
                box_number=box_plan["box_number"],
                customer_name=box_plan["customer_name"],
                group_name=box_plan["group_name"],
                requirements_data=box_plan["requirements"],
            )
            box_repo.add(box)

        logger.info(
            "job_imported",
            job_id=str(job.id),
            box_count=len(planned),
            total_required=total_required,
        )
        return str(job.id)
