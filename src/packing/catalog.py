"""Read access to jobs, boxes and their read models.

Lookups that must exist raise ``NotFound`` with the identifiers the caller
asked for; listings return plain lists sorted for display.
"""

from dataclasses import dataclass
from datetime import datetime

from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from packing.checkcount.session import CheckCountSession
from packing.errors import NotFound
from packing.job.job import Job
from packing.projections.box_history import BoxHistoryEntry
from packing.projections.box_requirement import BoxRequirementView
from packing.projections.box_status import BoxStatus
from packing.projections.check_count_summary import CheckCountSummary
from packing.projections.job_group import JobGroup
from packing.projections.job_progress import JobProgress
from packing.projections.scan_ledger import ScanLedgerEntry
from packing.put_aside.item import PutAsideItem, PutAsideStatus
from packing.utils.query import fetch_all, fetch_one


@dataclass(frozen=True)
class JobProgressReport:
    job_id: str
    name: str
    status: str
    is_active: bool
    box_count: int
    completed_boxes: int
    total_required: int
    total_scanned: int
    put_aside_pending: int
    percent_complete: float


@dataclass(frozen=True)
class WorkerPerformance:
    job_id: str
    worker_id: str
    total_scans: int
    undone_scans: int
    put_aside_units: int
    first_activity_at: datetime | None
    last_activity_at: datetime | None
    scans_per_hour: int
    accuracy: int
    score: float


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------
def get_job(job_id):
    try:
        return current_domain.repository_for(Job).get(job_id)
    except ObjectNotFoundError as exc:
        raise NotFound(f"Job {job_id} not found", job_id=str(job_id)) from exc


def get_put_aside_item(item_id):
    try:
        return current_domain.repository_for(PutAsideItem).get(item_id)
    except ObjectNotFoundError as exc:
        raise NotFound(f"Put-aside item {item_id} not found", item_id=str(item_id)) from exc


def get_check_session(session_id):
    try:
        return current_domain.repository_for(CheckCountSession).get(session_id)
    except ObjectNotFoundError as exc:
        raise NotFound(f"Check count session {session_id} not found", session_id=str(session_id)) from exc


# ---------------------------------------------------------------------------
# Boxes and requirements
# ---------------------------------------------------------------------------
def box_status(job_id, box_number):
    status = fetch_one(BoxStatus, job_id=str(job_id), box_number=int(box_number))
    if status is None:
        raise NotFound(
            f"Box {box_number} not found in job {job_id}",
            job_id=str(job_id),
            box_number=box_number,
        )
    return status


def list_boxes(job_id):
    return sorted(fetch_all(BoxStatus, job_id=str(job_id)), key=lambda s: s.box_number)


def requirement_rows(job_id, barcode=None, box_number=None):
    filters = {"job_id": str(job_id)}
    if barcode is not None:
        filters["barcode"] = barcode
    if box_number is not None:
        filters["box_number"] = int(box_number)
    return sorted(fetch_all(BoxRequirementView, **filters), key=lambda r: (r.box_number, r.barcode))


def candidate_rows(job_id, barcode):
    """Rows of ``barcode`` that still need units, lowest box number first."""
    return [row for row in requirement_rows(job_id, barcode=barcode) if row.scanned_qty < row.required_qty]


def product_name_for(job_id, barcode):
    row = fetch_one(BoxRequirementView, job_id=str(job_id), barcode=barcode)
    return row.product_name if row else None


# ---------------------------------------------------------------------------
# Other read models
# ---------------------------------------------------------------------------
def job_progress(job_id):
    try:
        header = current_domain.repository_for(JobProgress).get(str(job_id))
    except ObjectNotFoundError as exc:
        raise NotFound(f"Job {job_id} not found", job_id=str(job_id)) from exc

    boxes = fetch_all(BoxStatus, job_id=str(job_id))
    pending = fetch_all(PutAsideItem, job_id=str(job_id), status=PutAsideStatus.PENDING.value)
    total_scanned = sum(box.total_scanned or 0 for box in boxes)
    if header.total_required:
        percent = round(100.0 * total_scanned / header.total_required, 2)
    else:
        percent = 100.0 if header.box_count else 0.0

    return JobProgressReport(
        job_id=str(header.job_id),
        name=header.name,
        status=header.status,
        is_active=bool(header.is_active),
        box_count=header.box_count,
        completed_boxes=sum(1 for box in boxes if box.is_complete),
        total_required=header.total_required,
        total_scanned=total_scanned,
        put_aside_pending=len(pending),
        percent_complete=percent,
    )


def ledger(job_id, box_number=None, barcode=None):
    filters = {"job_id": str(job_id)}
    if box_number is not None:
        filters["box_number"] = int(box_number)
    if barcode is not None:
        filters["barcode"] = barcode
    return sorted(fetch_all(ScanLedgerEntry, **filters), key=lambda e: e.occurred_at)


def box_history(job_id, box_number):
    entries = fetch_all(BoxHistoryEntry, job_id=str(job_id), box_number=int(box_number))
    return sorted(entries, key=lambda e: e.occurred_at)


def history_entry(entry_id):
    return current_domain.repository_for(BoxHistoryEntry).get(entry_id)


def check_sessions(job_id, box_number):
    summaries = fetch_all(CheckCountSummary, job_id=str(job_id), box_number=int(box_number))
    return sorted(summaries, key=lambda s: s.started_at)


def list_put_aside(job_id, status=None):
    filters = {"job_id": str(job_id)}
    if status:
        filters["status"] = status
    return sorted(fetch_all(PutAsideItem, **filters), key=lambda i: i.put_aside_at)


def groups(job_id):
    return sorted(group.name for group in fetch_all(JobGroup, job_id=str(job_id)))


# ---------------------------------------------------------------------------
# Worker performance
# ---------------------------------------------------------------------------
# (scans per hour floor, score at floor, width of the band above it)
_SCORE_BANDS = [(180, 8, 180), (71, 6, 109), (36, 4, 35), (18, 2, 18)]


def performance_score(scans_per_hour, put_aside_units=0, undone_scans=0):
    """Score a worker from 1 to 10 on throughput, less small penalties.

    360 scans per hour and above scores 10. Each put-aside unit costs 0.1
    and each undo 0.05.
    """
    if scans_per_hour >= 360:
        score = 10.0
    else:
        score = 1.0
        for floor, base, width in _SCORE_BANDS:
            if scans_per_hour >= floor:
                score = base + (scans_per_hour - floor) / width * 2
                break

    score = max(1.0, score - put_aside_units * 0.1 - undone_scans * 0.05)
    return min(10.0, round(score, 1))


def worker_performance(job_id, worker_id):
    entries = [e for e in ledger(job_id) if e.worker_id == worker_id]
    scans = [e for e in entries if e.source == "scan" and e.box_id]
    parked = [e for e in entries if e.source == "put_aside"]
    undone = [e for e in entries if e.reference and e.reference.startswith("undo:")]

    handled = scans + parked
    first = min((e.occurred_at for e in handled), default=None)
    last = max((e.occurred_at for e in handled), default=None)
    hours = (last - first).total_seconds() / 3600 if handled else 0
    scans_per_hour = round(len(handled) / hours) if hours > 0 else 0

    put_aside_units = sum(e.quantity_delta for e in parked)
    if handled:
        accuracy = round(100 * (len(scans) - len(undone)) / (len(scans) + put_aside_units))
    else:
        accuracy = 100

    return WorkerPerformance(
        job_id=str(job_id),
        worker_id=worker_id,
        total_scans=len(scans),
        undone_scans=len(undone),
        put_aside_units=put_aside_units,
        first_activity_at=first,
        last_activity_at=last,
        scans_per_hour=scans_per_hour,
        accuracy=max(0, accuracy),
        score=performance_score(scans_per_hour, put_aside_units, len(undone)),
    )
