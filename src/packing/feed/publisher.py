"""Change feed publishers — turn domain events into per-job notifications.

One event handler per aggregate stream. Handlers only read the event
payload; they never touch repositories, so publishing cannot affect the
command that produced the event.
"""

import structlog
from protean.utils.mixins import handle

from packing.box.box import Box
from packing.box.events import BoxCompleted, BoxEmptied, BoxTransferred, ScanRecorded
from packing.checkcount.events import CheckCountCompleted, CheckCountStarted
from packing.checkcount.session import CheckCountSession
from packing.domain import packing
from packing.feed import get_feed
from packing.feed.port import ChangeNotification
from packing.job.events import JobStatusChanged
from packing.job.job import Job
from packing.put_aside.events import ItemPutAside, PutAsideReallocated
from packing.put_aside.item import PutAsideItem

logger = structlog.get_logger(__name__)


def _plain(value):
    if value is None or isinstance(value, (bool, int)):
        return value
    return str(value)


def _publish(kind, job_id, box_number=None, **payload):
    delivered = get_feed().publish(
        ChangeNotification(
            job_id=str(job_id),
            kind=kind,
            box_number=box_number,
            payload={key: _plain(value) for key, value in payload.items()},
        )
    )
    logger.debug("feed_published", kind=kind, job_id=str(job_id), subscribers=delivered)


@packing.event_handler(part_of=Box)
class BoxFeedPublisher:
    @handle(ScanRecorded)
    def on_scan_recorded(self, event: ScanRecorded) -> None:
        _publish(
            "scan_recorded",
            event.job_id,
            event.box_number,
            barcode=event.barcode,
            quantity_delta=event.quantity_delta,
            scanned_qty=event.new_scanned_qty,
            required_qty=event.required_qty,
            source=event.source,
            is_complete=event.is_complete,
            worker_id=event.worker_id,
        )

    @handle(BoxCompleted)
    def on_box_completed(self, event: BoxCompleted) -> None:
        _publish(
            "box_completed",
            event.job_id,
            event.box_number,
            customer_name=event.customer_name,
            completed_by=event.completed_by,
        )

    @handle(BoxEmptied)
    def on_box_emptied(self, event: BoxEmptied) -> None:
        _publish(
            "box_emptied",
            event.job_id,
            event.box_number,
            performed_by=event.performed_by,
            items_processed=event.items_processed,
        )

    @handle(BoxTransferred)
    def on_box_transferred(self, event: BoxTransferred) -> None:
        _publish(
            "box_transferred",
            event.job_id,
            event.box_number,
            target_group=event.target_group,
            performed_by=event.performed_by,
        )


@packing.event_handler(part_of=PutAsideItem)
class PutAsideFeedPublisher:
    @handle(ItemPutAside)
    def on_item_put_aside(self, event: ItemPutAside) -> None:
        _publish(
            "item_put_aside",
            event.job_id,
            event.original_box_number,
            item_id=event.item_id,
            barcode=event.barcode,
            quantity=event.quantity,
            reason=event.reason,
        )

    @handle(PutAsideReallocated)
    def on_put_aside_reallocated(self, event: PutAsideReallocated) -> None:
        _publish(
            "put_aside_reallocated",
            event.job_id,
            event.target_box_number,
            item_id=event.item_id,
            barcode=event.barcode,
            quantity=event.quantity,
        )


@packing.event_handler(part_of=CheckCountSession)
class CheckCountFeedPublisher:
    @handle(CheckCountStarted)
    def on_check_count_started(self, event: CheckCountStarted) -> None:
        _publish(
            "check_count_started",
            event.job_id,
            event.box_number,
            session_id=event.session_id,
            user_id=event.user_id,
        )

    @handle(CheckCountCompleted)
    def on_check_count_completed(self, event: CheckCountCompleted) -> None:
        _publish(
            "check_count_completed",
            event.job_id,
            event.box_number,
            session_id=event.session_id,
            discrepancies_found=event.discrepancies_found,
            corrections_applied=event.corrections_applied,
        )


@packing.event_handler(part_of=Job)
class JobFeedPublisher:
    @handle(JobStatusChanged)
    def on_job_status_changed(self, event: JobStatusChanged) -> None:
        _publish(
            "job_status_changed",
            event.job_id,
            status=event.new_status,
            is_active=event.is_active,
        )
