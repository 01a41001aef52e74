"""FastAPI endpoints for the Packing domain.

Every write goes through ``packing.engine`` so that locking and retries are
applied the same way for HTTP clients, load tests and scripts.
"""

from dataclasses import asdict

from fastapi import APIRouter

from packing import engine
from packing.api.schemas import (
    BoxHistoryListResponse,
    BoxHistoryResponse,
    BoxListResponse,
    BoxResponse,
    CheckCountSessionResponse,
    CheckCountSummaryListResponse,
    CheckCountSummaryResponse,
    CheckProgressResponse,
    CheckScanRequest,
    CompleteCheckCountRequest,
    EmptyBoxRequest,
    GroupsResponse,
    ImportJobRequest,
    ImportJobResponse,
    JobProgressResponse,
    JobResponse,
    JobStatusRequest,
    LedgerEntryResponse,
    LedgerResponse,
    PutAsideItemResponse,
    PutAsideListResponse,
    PutAsideRequest,
    ReallocateRequest,
    RequirementResponse,
    ScanRequest,
    ScanResponse,
    StartCheckCountRequest,
    TransferBoxRequest,
    UndoScanRequest,
    UndoScanResponse,
    WorkerPerformanceResponse,
)

job_router = APIRouter(prefix="/jobs", tags=["jobs"])
scan_router = APIRouter(prefix="/scan", tags=["scanning"])
put_aside_router = APIRouter(prefix="/put-aside", tags=["put-aside"])
check_count_router = APIRouter(prefix="/check-sessions", tags=["check-count"])


def _iso(value):
    return value.isoformat() if value else None


# ---------------------------------------------------------------------------
# Response builders
# ---------------------------------------------------------------------------
def _job_response(job) -> JobResponse:
    return JobResponse(
        job_id=str(job.id),
        name=job.name,
        status=job.status,
        is_active=bool(job.is_active),
        box_count=job.box_count,
        total_products=job.total_products,
        total_customers=job.total_customers,
    )


def _history_response(entry) -> BoxHistoryResponse:
    return BoxHistoryResponse(
        entry_id=str(entry.entry_id),
        box_number=entry.box_number,
        action=entry.action,
        performed_by=entry.performed_by,
        previous_group=entry.previous_group,
        target_group=entry.target_group,
        reason=entry.reason,
        items_processed=entry.items_processed,
        occurred_at=_iso(entry.occurred_at),
    )


def _put_aside_response(item) -> PutAsideItemResponse:
    return PutAsideItemResponse(
        item_id=str(item.id),
        job_id=str(item.job_id),
        barcode=item.barcode,
        product_name=item.product_name,
        original_box_number=item.original_box_number,
        quantity=item.quantity,
        reason=item.reason,
        status=item.status,
        put_aside_by=item.put_aside_by,
        reallocated_by=item.reallocated_by,
        reallocated_to_box_number=item.reallocated_to_box_number,
    )


def _session_response(session) -> CheckCountSessionResponse:
    return CheckCountSessionResponse(
        session_id=str(session.id),
        job_id=str(session.job_id),
        box_number=session.box_number,
        user_id=session.user_id,
        status=session.status,
        is_complete=session.is_complete,
        total_items_expected=session.total_items_expected or 0,
        total_items_scanned=session.total_items_scanned or 0,
        discrepancies_found=session.discrepancies_found or 0,
        corrections_applied=bool(session.corrections_applied),
        progress=[CheckProgressResponse(**row.to_dict()) for row in session.progress],
    )


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------
@job_router.post("", status_code=201, response_model=ImportJobResponse)
async def import_job(body: ImportJobRequest) -> ImportJobResponse:
    job_id = engine.import_job(
        name=body.name,
        description=body.description,
        created_by=body.created_by,
        rows=[row.model_dump() for row in body.rows],
    )
    progress = engine.job_progress(job_id)
    return ImportJobResponse(job_id=job_id, box_count=progress.box_count)


@job_router.put("/{job_id}/{action}", response_model=JobResponse)
async def change_job_status(job_id: str, action: str, body: JobStatusRequest | None = None) -> JobResponse:
    """Activate, pause, resume, complete or archive a job."""
    job = engine.change_job_status(job_id, action, changed_by=body.changed_by if body else None)
    return _job_response(job)


@job_router.get("/{job_id}/progress", response_model=JobProgressResponse)
async def get_job_progress(job_id: str) -> JobProgressResponse:
    progress = engine.job_progress(job_id)
    return JobProgressResponse(
        job_id=str(progress.job_id),
        name=progress.name,
        status=progress.status,
        is_active=bool(progress.is_active),
        box_count=progress.box_count,
        completed_boxes=progress.completed_boxes,
        total_required=progress.total_required,
        total_scanned=progress.total_scanned,
        put_aside_pending=progress.put_aside_pending,
        percent_complete=progress.percent_complete,
    )


@job_router.get("/{job_id}/boxes", response_model=BoxListResponse)
async def list_boxes(job_id: str) -> BoxListResponse:
    rows_by_box = {}
    for row in engine.box_requirements(job_id):
        rows_by_box.setdefault(row.box_number, []).append(
            RequirementResponse(
                barcode=row.barcode,
                product_name=row.product_name,
                required_qty=row.required_qty,
                scanned_qty=row.scanned_qty,
            )
        )
    return BoxListResponse(
        boxes=[
            BoxResponse(
                box_number=status.box_number,
                customer_name=status.customer_name,
                group_name=status.group_name,
                total_required=status.total_required,
                total_scanned=status.total_scanned,
                is_complete=bool(status.is_complete),
                active_check_session_id=str(status.active_check_session_id)
                if status.active_check_session_id
                else None,
                requirements=rows_by_box.get(status.box_number, []),
            )
            for status in engine.list_boxes(job_id)
        ]
    )


@job_router.post("/{job_id}/boxes/{box_number}/empty", response_model=BoxHistoryResponse)
async def empty_box(job_id: str, box_number: int, body: EmptyBoxRequest) -> BoxHistoryResponse:
    entry = engine.empty_box(job_id, box_number, performed_by=body.performed_by, reason=body.reason)
    return _history_response(entry)


@job_router.post("/{job_id}/boxes/{box_number}/transfer", response_model=BoxHistoryResponse)
async def transfer_box(job_id: str, box_number: int, body: TransferBoxRequest) -> BoxHistoryResponse:
    entry = engine.transfer_box(
        job_id,
        box_number,
        target_group=body.target_group,
        performed_by=body.performed_by,
        reason=body.reason,
    )
    return _history_response(entry)


@job_router.get("/{job_id}/boxes/{box_number}/history", response_model=BoxHistoryListResponse)
async def get_box_history(job_id: str, box_number: int) -> BoxHistoryListResponse:
    return BoxHistoryListResponse(entries=[_history_response(e) for e in engine.box_history(job_id, box_number)])


@job_router.get("/{job_id}/boxes/{box_number}/check-sessions", response_model=CheckCountSummaryListResponse)
async def get_box_check_sessions(job_id: str, box_number: int) -> CheckCountSummaryListResponse:
    return CheckCountSummaryListResponse(
        sessions=[
            CheckCountSummaryResponse(
                session_id=str(s.session_id),
                user_id=s.user_id,
                status=s.status,
                total_items_expected=s.total_items_expected,
                total_items_scanned=s.total_items_scanned,
                discrepancies_found=s.discrepancies_found,
                corrections_applied=bool(s.corrections_applied),
                started_at=_iso(s.started_at),
                completed_at=_iso(s.completed_at),
            )
            for s in engine.check_sessions(job_id, box_number)
        ]
    )


@job_router.get("/{job_id}/put-aside", response_model=PutAsideListResponse)
async def list_put_aside(job_id: str, status: str | None = None) -> PutAsideListResponse:
    return PutAsideListResponse(items=[_put_aside_response(i) for i in engine.list_put_aside(job_id, status=status)])


@job_router.get("/{job_id}/ledger", response_model=LedgerResponse)
async def get_ledger(job_id: str, box_number: int | None = None, barcode: str | None = None) -> LedgerResponse:
    return LedgerResponse(
        entries=[
            LedgerEntryResponse(
                entry_id=str(e.entry_id),
                box_number=e.box_number,
                barcode=e.barcode,
                product_name=e.product_name,
                worker_id=e.worker_id,
                quantity_delta=e.quantity_delta,
                source=e.source,
                reference=e.reference,
                group_name=e.group_name,
                occurred_at=_iso(e.occurred_at),
            )
            for e in engine.ledger(job_id, box_number=box_number, barcode=barcode)
        ]
    )


@job_router.get("/{job_id}/groups", response_model=GroupsResponse)
async def get_groups(job_id: str) -> GroupsResponse:
    return GroupsResponse(job_id=job_id, groups=engine.groups(job_id))


@job_router.get("/{job_id}/workers/{worker_id}/performance", response_model=WorkerPerformanceResponse)
async def get_worker_performance(job_id: str, worker_id: str) -> WorkerPerformanceResponse:
    """Throughput, accuracy and score of one worker on a job."""
    performance = engine.worker_performance(job_id, worker_id)
    return WorkerPerformanceResponse(
        **{
            **asdict(performance),
            "first_activity_at": _iso(performance.first_activity_at),
            "last_activity_at": _iso(performance.last_activity_at),
        }
    )


# ---------------------------------------------------------------------------
# Scanning
# ---------------------------------------------------------------------------
@scan_router.post("", response_model=ScanResponse)
async def scan(body: ScanRequest) -> ScanResponse:
    result = engine.record_scan(
        body.job_id,
        body.barcode,
        body.worker_id,
        preferred_box_number=body.preferred_box_number,
        allocation_pattern=body.allocation_pattern,
    )
    return ScanResponse(**{k: v for k, v in result.to_dict().items() if k != "entry_id"})


@scan_router.post("/undo", response_model=UndoScanResponse)
async def undo(body: UndoScanRequest) -> UndoScanResponse:
    undone = engine.undo_scans(body.job_id, body.worker_id, count=body.count)
    return UndoScanResponse(undone_entry_ids=undone)


# ---------------------------------------------------------------------------
# Put-aside
# ---------------------------------------------------------------------------
@put_aside_router.post("", status_code=201, response_model=PutAsideItemResponse)
async def put_aside(body: PutAsideRequest) -> PutAsideItemResponse:
    item = engine.put_aside(
        body.job_id,
        body.barcode,
        body.worker_id,
        box_hint=body.box_hint,
        reason=body.reason,
        quantity=body.quantity,
    )
    return _put_aside_response(item)


@put_aside_router.post("/{item_id}/reallocate", response_model=PutAsideItemResponse)
async def reallocate(item_id: str, body: ReallocateRequest) -> PutAsideItemResponse:
    item = engine.reallocate(
        item_id,
        body.target_box_number,
        performed_by=body.performed_by,
        request_id=body.request_id,
    )
    return _put_aside_response(item)


# ---------------------------------------------------------------------------
# CheckCount
# ---------------------------------------------------------------------------
@check_count_router.post("", status_code=201, response_model=CheckCountSessionResponse)
async def start_check_count(body: StartCheckCountRequest) -> CheckCountSessionResponse:
    session = engine.start_check_count(
        body.job_id,
        body.box_number,
        body.user_id,
        total_items_expected=body.total_items_expected,
    )
    return _session_response(session)


@check_count_router.post("/{session_id}/scan", response_model=CheckProgressResponse)
async def check_scan(session_id: str, body: CheckScanRequest) -> CheckProgressResponse:
    row = engine.record_check_scan(session_id, body.barcode)
    return CheckProgressResponse(**row)


@check_count_router.post("/{session_id}/complete", response_model=CheckCountSessionResponse)
async def complete_check_count(session_id: str, body: CompleteCheckCountRequest) -> CheckCountSessionResponse:
    session = engine.complete_check_count(session_id, apply_corrections=body.apply_corrections)
    return _session_response(session)


@check_count_router.get("/{session_id}", response_model=CheckCountSessionResponse)
async def get_check_count(session_id: str) -> CheckCountSessionResponse:
    return _session_response(engine.get_check_session(session_id))
