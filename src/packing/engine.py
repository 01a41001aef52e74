"""Concurrency-safe entry points of the packing engine.

Every write goes through here. Each operation resolves the records it needs
from the read models, takes the in-process locks of the records it writes,
and processes one command synchronously while the locks are held, so the
unit of work is committed before another writer can look at the same box.

Optimistic version conflicts from the event store (several processes
writing one stream) are retried a bounded number of times and then surface
as ``WriteConflict``.
"""

import json
import os
from dataclasses import asdict, dataclass

import structlog
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError
from protean.utils.globals import current_domain

from packing import catalog
from packing.box.allocation import choose_box
from packing.box.lifecycle import EmptyBox, TransferBox
from packing.box.scanning import RecordScan, UndoScan
from packing.checkcount.verification import CompleteCheckCount, RecordCheckScan, StartCheckCount
from packing.errors import (
    NotFound,
    RequirementFulfilled,
    ScanningPaused,
    ValidationFailure,
    WriteConflict,
)
from packing.job.importing import ImportJob
from packing.job.status import ActivateJob, ArchiveJob, CompleteJob, PauseJob, ResumeJob
from packing.locking import box_key, get_locks, item_key, session_key
from packing.put_aside.item import PutAsideReason
from packing.put_aside.management import PutAside, ReallocatePutAside

logger = structlog.get_logger(__name__)

DEFAULT_MAX_WRITE_ATTEMPTS = 3
DEFAULT_MAX_ROUTING_ATTEMPTS = 5

_JOB_COMMANDS = {
    "activate": ActivateJob,
    "pause": PauseJob,
    "resume": ResumeJob,
    "complete": CompleteJob,
    "archive": ArchiveJob,
}


@dataclass(frozen=True)
class ScanResult:
    barcode: str
    box_number: int | None = None
    scanned_qty: int = 0
    required_qty: int = 0
    is_complete: bool = False
    box_completed: bool = False
    put_aside: bool = False
    put_aside_item_id: str | None = None
    product_name: str | None = None
    customer_name: str | None = None
    entry_id: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------
def _custom_setting(name, default):
    env_value = os.environ.get(f"PACKING_{name.upper()}")
    if env_value:
        return int(env_value)
    custom = current_domain.config.get("custom", {}) or {}
    return int(custom.get(name, default))


def max_write_attempts():
    return max(1, _custom_setting("max_write_attempts", DEFAULT_MAX_WRITE_ATTEMPTS))


def max_routing_attempts():
    return max(1, _custom_setting("max_routing_attempts", DEFAULT_MAX_ROUTING_ATTEMPTS))


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------
def _dispatch(command, **context):
    """Process ``command`` synchronously, retrying lost optimistic writes."""
    attempts = max_write_attempts()
    for attempt in range(1, attempts + 1):
        try:
            return current_domain.process(command, asynchronous=False)
        except ExpectedVersionError:
            logger.warning(
                "write_conflict_retry",
                command=command.__class__.__name__,
                attempt=attempt,
                **context,
            )
        except ObjectNotFoundError as exc:
            raise NotFound(f"{command.__class__.__name__}: target not found", **context) from exc

    raise WriteConflict(
        f"{command.__class__.__name__} lost {attempts} concurrent write attempts",
        **context,
    )


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------
def import_job(name, rows, description=None, created_by=None):
    """Create a job and one box per customer. Returns the job id."""
    return _dispatch(
        ImportJob(
            name=name,
            description=description,
            rows=json.dumps(list(rows)),
            created_by=created_by,
        )
    )


def change_job_status(job_id, action, changed_by=None):
    command_cls = _JOB_COMMANDS.get(action)
    if command_cls is None:
        raise ValidationFailure(f"Unknown job action: {action}", job_id=str(job_id))
    catalog.get_job(job_id)
    _dispatch(command_cls(job_id=job_id, changed_by=changed_by), job_id=str(job_id))
    return catalog.get_job(job_id)


# ---------------------------------------------------------------------------
# Scanning
# ---------------------------------------------------------------------------
def record_scan(job_id, barcode, worker_id, preferred_box_number=None, allocation_pattern=None) -> ScanResult:
    """Count one scanned unit into the box that needs it.

    Falls back to put-aside when no box has outstanding need for the barcode.
    A box that fills up between reading the candidates and taking its lock
    refuses the unit, and routing starts over with fresh candidates.
    """
    job = catalog.get_job(job_id)
    if not job.accepts_scans:
        raise ScanningPaused(
            f"Job {job_id} is not accepting scans ({job.status}, active={job.is_active})",
            job_id=str(job_id),
            barcode=barcode,
        )

    for attempt in range(1, max_routing_attempts() + 1):
        candidates = catalog.candidate_rows(job_id, barcode)
        box_number = choose_box(
            [row.box_number for row in candidates],
            preferred_box_number=preferred_box_number,
            allocation_pattern=allocation_pattern,
        )
        if box_number is None:
            break

        row = next(r for r in candidates if r.box_number == box_number)
        try:
            with get_locks().hold(box_key(row.box_id)):
                outcome = _dispatch(
                    RecordScan(box_id=row.box_id, barcode=barcode, worker_id=worker_id),
                    job_id=str(job_id),
                    box_number=box_number,
                    barcode=barcode,
                )
        except RequirementFulfilled:
            logger.info(
                "scan_rerouted",
                job_id=str(job_id),
                box_number=box_number,
                barcode=barcode,
                attempt=attempt,
            )
            continue

        return ScanResult(
            barcode=barcode,
            box_number=outcome["box_number"],
            scanned_qty=outcome["scanned_qty"],
            required_qty=outcome["required_qty"],
            is_complete=outcome["is_complete"],
            box_completed=outcome["box_completed"],
            product_name=outcome["product_name"],
            customer_name=outcome["customer_name"],
            entry_id=outcome["entry_id"],
        )

    known = bool(catalog.requirement_rows(job_id, barcode=barcode))
    reason = PutAsideReason.BOX_FULL if known else PutAsideReason.UNKNOWN_BARCODE
    item = put_aside(
        job_id,
        barcode,
        worker_id,
        box_hint=preferred_box_number,
        reason=reason.value,
    )
    logger.info(
        "scan_put_aside",
        job_id=str(job_id),
        barcode=barcode,
        worker_id=worker_id,
        reason=reason.value,
    )
    return ScanResult(
        barcode=barcode,
        put_aside=True,
        put_aside_item_id=str(item.id),
        product_name=item.product_name,
    )


def undo_scans(job_id, worker_id, count=1):
    """Reverse the worker's most recent live scans that were not undone yet.

    Returns the ledger entry ids that were reversed, newest first.
    """
    if count is None or count < 1:
        raise ValidationFailure("Undo count must be positive", job_id=str(job_id))
    catalog.get_job(job_id)

    entries = catalog.ledger(job_id)
    undone = {e.reference.removeprefix("undo:") for e in entries if e.reference and e.reference.startswith("undo:")}
    scans = [
        e
        for e in reversed(entries)
        if e.worker_id == worker_id and e.source == "scan" and e.box_id and str(e.entry_id) not in undone
    ]

    reversed_ids = []
    for entry in scans:
        if len(reversed_ids) >= count:
            break
        with get_locks().hold(box_key(entry.box_id)):
            applied = _dispatch(
                UndoScan(
                    box_id=entry.box_id,
                    entry_id=entry.entry_id,
                    barcode=entry.barcode,
                    worker_id=worker_id,
                    fill_cycle=entry.fill_cycle or 0,
                ),
                job_id=str(job_id),
                box_number=entry.box_number,
                barcode=entry.barcode,
            )
        if applied:
            reversed_ids.append(str(entry.entry_id))

    logger.info("scans_undone", job_id=str(job_id), worker_id=worker_id, count=len(reversed_ids))
    return reversed_ids


# ---------------------------------------------------------------------------
# Put-aside
# ---------------------------------------------------------------------------
def put_aside(job_id, barcode, worker_id, box_hint=None, reason=None, quantity=1):
    if quantity is None or quantity < 1:
        raise ValidationFailure("Quantity must be positive", job_id=str(job_id), barcode=barcode)
    catalog.get_job(job_id)

    item_id = _dispatch(
        PutAside(
            job_id=job_id,
            barcode=barcode,
            worker_id=worker_id,
            quantity=quantity,
            reason=reason,
            product_name=catalog.product_name_for(job_id, barcode),
            original_box_number=box_hint,
        ),
        job_id=str(job_id),
        barcode=barcode,
    )
    return catalog.get_put_aside_item(item_id)


def reallocate(item_id, target_box_number, performed_by, request_id=None):
    """Place a put-aside item into a box, exactly once.

    Repeating a call with the same ``request_id`` returns the item unchanged.
    """
    item = catalog.get_put_aside_item(item_id)
    if item.is_retry_of(request_id):
        return item
    item.assert_pending()

    status = catalog.box_status(item.job_id, target_box_number)
    with get_locks().hold(item_key(item_id), box_key(status.box_id)):
        _dispatch(
            ReallocatePutAside(
                item_id=item_id,
                target_box_id=status.box_id,
                performed_by=performed_by,
                request_id=request_id,
            ),
            job_id=str(item.job_id),
            box_number=target_box_number,
            item_id=str(item_id),
        )
    return catalog.get_put_aside_item(item_id)


def list_put_aside(job_id, status=None):
    return catalog.list_put_aside(job_id, status=status)


# ---------------------------------------------------------------------------
# Box lifecycle
# ---------------------------------------------------------------------------
def empty_box(job_id, box_number, performed_by, reason=None):
    status = catalog.box_status(job_id, box_number)
    with get_locks().hold(box_key(status.box_id)):
        entry_id = _dispatch(
            EmptyBox(box_id=status.box_id, performed_by=performed_by, reason=reason),
            job_id=str(job_id),
            box_number=box_number,
        )
    return catalog.history_entry(entry_id)


def transfer_box(job_id, box_number, target_group, performed_by, reason=None):
    if not target_group or not str(target_group).strip():
        raise ValidationFailure("Target group is required", job_id=str(job_id), box_number=box_number)

    status = catalog.box_status(job_id, box_number)
    with get_locks().hold(box_key(status.box_id)):
        entry_id = _dispatch(
            TransferBox(
                box_id=status.box_id,
                target_group=target_group,
                performed_by=performed_by,
                reason=reason,
            ),
            job_id=str(job_id),
            box_number=box_number,
        )
    return catalog.history_entry(entry_id)


def box_history(job_id, box_number):
    catalog.box_status(job_id, box_number)
    return catalog.box_history(job_id, box_number)


# ---------------------------------------------------------------------------
# CheckCount
# ---------------------------------------------------------------------------
def start_check_count(job_id, box_number, user_id, total_items_expected=None):
    status = catalog.box_status(job_id, box_number)
    with get_locks().hold(box_key(status.box_id)):
        session_id = _dispatch(
            StartCheckCount(
                box_id=status.box_id,
                user_id=user_id,
                total_items_expected=total_items_expected,
            ),
            job_id=str(job_id),
            box_number=box_number,
        )
    return catalog.get_check_session(session_id)


def record_check_scan(session_id, barcode):
    """Count one unit in the session. Returns the session's row for the barcode."""
    session = catalog.get_check_session(session_id)
    product_name = None
    if session.progress_for(barcode) is None:
        product_name = catalog.product_name_for(session.job_id, barcode)

    with get_locks().hold(session_key(session_id)):
        return _dispatch(
            RecordCheckScan(session_id=session_id, barcode=barcode, product_name=product_name),
            job_id=str(session.job_id),
            box_number=session.box_number,
            session_id=str(session_id),
            barcode=barcode,
        )


def complete_check_count(session_id, apply_corrections=False):
    session = catalog.get_check_session(session_id)
    with get_locks().hold(session_key(session_id), box_key(session.box_id)):
        _dispatch(
            CompleteCheckCount(session_id=session_id, apply_corrections=bool(apply_corrections)),
            job_id=str(session.job_id),
            box_number=session.box_number,
            session_id=str(session_id),
        )
    return catalog.get_check_session(session_id)


def get_check_session(session_id):
    return catalog.get_check_session(session_id)


def check_sessions(job_id, box_number):
    catalog.box_status(job_id, box_number)
    return catalog.check_sessions(job_id, box_number)


# ---------------------------------------------------------------------------
# Read models
# ---------------------------------------------------------------------------
def list_boxes(job_id):
    catalog.get_job(job_id)
    return catalog.list_boxes(job_id)


def box_requirements(job_id, box_number=None):
    return catalog.requirement_rows(job_id, box_number=box_number)


def job_progress(job_id):
    return catalog.job_progress(job_id)


def ledger(job_id, box_number=None, barcode=None):
    return catalog.ledger(job_id, box_number=box_number, barcode=barcode)


def groups(job_id):
    return catalog.groups(job_id)


def worker_performance(job_id, worker_id):
    catalog.get_job(job_id)
    return catalog.worker_performance(job_id, worker_id)
