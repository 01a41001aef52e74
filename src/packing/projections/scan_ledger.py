"""Scan ledger — append-only record of every accepted quantity change.

Entries with source scan, correction or checkcount are the live ledger: per
(job, box, barcode) and per (job, barcode) their quantity deltas sum to the
live scanned quantity. Put-aside units are recorded with source put_aside and
no box; reallocating one appends a correction entry against the target box.
"""

from protean.core.projector import on
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from packing.box.box import Box, ScanSource
from packing.box.events import BoxTransferred, ScanRecorded
from packing.domain import packing
from packing.put_aside.events import ItemPutAside
from packing.put_aside.item import PutAsideItem
from packing.utils.query import fetch_all


@packing.projection
class ScanLedgerEntry:
    entry_id = Identifier(identifier=True, required=True)
    job_id = Identifier(required=True)
    box_id = Identifier()
    box_number = Integer()  # None while the unit sits in put-aside
    barcode = String(required=True)
    product_name = String()
    worker_id = String()
    quantity_delta = Integer(required=True)
    source = String(required=True)
    reference = String()
    group_name = String()
    fill_cycle = Integer(default=0)
    occurred_at = DateTime(required=True)


@packing.projector(projector_for=ScanLedgerEntry, aggregates=[Box, PutAsideItem])
class ScanLedgerProjector:
    @on(ScanRecorded)
    def on_scan_recorded(self, event):
        current_domain.repository_for(ScanLedgerEntry).add(
            ScanLedgerEntry(
                entry_id=event.entry_id,
                job_id=event.job_id,
                box_id=event.box_id,
                box_number=event.box_number,
                barcode=event.barcode,
                product_name=event.product_name,
                worker_id=event.worker_id,
                quantity_delta=event.quantity_delta,
                source=event.source,
                reference=event.reference,
                group_name=event.group_name,
                fill_cycle=event.fill_cycle or 0,
                occurred_at=event.occurred_at,
            )
        )

    @on(ItemPutAside)
    def on_item_put_aside(self, event):
        current_domain.repository_for(ScanLedgerEntry).add(
            ScanLedgerEntry(
                entry_id=event.source_event_id,
                job_id=event.job_id,
                barcode=event.barcode,
                product_name=event.product_name,
                worker_id=event.put_aside_by,
                quantity_delta=event.quantity,
                source=ScanSource.PUT_ASIDE.value,
                reference=event.item_id,
                occurred_at=event.put_aside_at,
            )
        )

    @on(BoxTransferred)
    def on_box_transferred(self, event):
        repo = current_domain.repository_for(ScanLedgerEntry)
        for entry in fetch_all(ScanLedgerEntry, box_id=event.box_id):
            entry.group_name = event.target_group
            repo.add(entry)
