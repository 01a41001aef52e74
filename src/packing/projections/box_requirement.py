"""Box requirement view — one row per (job, box, barcode) with live counts.

The scan router reads this view to find candidate boxes with outstanding
need for a barcode; supervisors poll it for per-item progress.
"""

import json

from protean.core.projector import on
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from packing.box.box import Box
from packing.box.events import BoxCreated, BoxTransferred, ScanRecorded
from packing.domain import packing
from packing.utils.query import fetch_all


@packing.projection
class BoxRequirementView:
    requirement_id = Identifier(identifier=True, required=True)
    job_id = Identifier(required=True)
    box_id = Identifier(required=True)
    box_number = Integer(required=True)
    customer_name = String()
    group_name = String()
    barcode = String(required=True)
    product_name = String()
    required_qty = Integer(default=0)
    scanned_qty = Integer(default=0)
    updated_at = DateTime()


@packing.projector(projector_for=BoxRequirementView, aggregates=[Box])
class BoxRequirementViewProjector:
    @on(BoxCreated)
    def on_box_created(self, event):
        repo = current_domain.repository_for(BoxRequirementView)
        for row in json.loads(event.requirements):
            repo.add(
                BoxRequirementView(
                    requirement_id=row["id"],
                    job_id=event.job_id,
                    box_id=event.box_id,
                    box_number=event.box_number,
                    customer_name=event.customer_name,
                    group_name=event.group_name,
                    barcode=row["barcode"],
                    product_name=row.get("product_name"),
                    required_qty=row["required_qty"],
                    scanned_qty=row.get("scanned_qty", 0),
                    updated_at=event.created_at,
                )
            )

    @on(ScanRecorded)
    def on_scan_recorded(self, event):
        repo = current_domain.repository_for(BoxRequirementView)
        view = repo.get(event.requirement_id)
        view.scanned_qty = event.new_scanned_qty
        view.updated_at = event.occurred_at
        repo.add(view)

    @on(BoxTransferred)
    def on_box_transferred(self, event):
        repo = current_domain.repository_for(BoxRequirementView)
        for view in fetch_all(BoxRequirementView, box_id=event.box_id):
            view.group_name = event.target_group
            view.updated_at = event.occurred_at
            repo.add(view)
