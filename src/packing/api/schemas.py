"""Pydantic request/response schemas for the Packing API."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, Field

# --- Job Schemas ---


class JobRowRequest(BaseModel):
    """One catalog line. Accepts the spreadsheet column names as aliases."""

    model_config = {"populate_by_name": True}

    barcode: str = Field(..., validation_alias=AliasChoices("barcode", "BarCode"))
    product_name: str | None = Field(None, validation_alias=AliasChoices("product_name", "Product Name"))
    quantity: int = Field(..., ge=0, validation_alias=AliasChoices("quantity", "Qty"))
    customer_name: str = Field(..., validation_alias=AliasChoices("customer_name", "CustomName"))
    group: str | None = Field(None, validation_alias=AliasChoices("group", "Group"))


class ImportJobRequest(BaseModel):
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "name": "Spring drop wave 1",
                    "created_by": "supervisor-01",
                    "rows": [
                        {"barcode": "8901234", "product_name": "Canvas Tote", "quantity": 2, "customer_name": "Ada"},
                        {"barcode": "8905678", "product_name": "Enamel Pin", "quantity": 1, "customer_name": "Grace"},
                    ],
                }
            ]
        }
    }

    name: str = Field(..., max_length=255)
    description: str | None = None
    created_by: str | None = Field(None, max_length=255)
    rows: list[JobRowRequest]


class ImportJobResponse(BaseModel):
    job_id: str
    box_count: int


class JobStatusRequest(BaseModel):
    changed_by: str | None = Field(None, max_length=255)


class JobResponse(BaseModel):
    job_id: str
    name: str
    status: str
    is_active: bool
    box_count: int
    total_products: int
    total_customers: int


class JobProgressResponse(BaseModel):
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


class GroupsResponse(BaseModel):
    job_id: str
    groups: list[str]


class WorkerPerformanceResponse(BaseModel):
    job_id: str
    worker_id: str
    total_scans: int
    undone_scans: int
    put_aside_units: int
    first_activity_at: str | None = None
    last_activity_at: str | None = None
    scans_per_hour: int
    accuracy: int
    score: float


# --- Scan Schemas ---


class ScanRequest(BaseModel):
    job_id: str
    barcode: str = Field(..., min_length=1, max_length=255)
    worker_id: str = Field(..., max_length=255)
    preferred_box_number: int | None = None
    allocation_pattern: str | None = None


class ScanResponse(BaseModel):
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


class UndoScanRequest(BaseModel):
    job_id: str
    worker_id: str = Field(..., max_length=255)
    count: int = Field(1, ge=1)


class UndoScanResponse(BaseModel):
    undone_entry_ids: list[str]


class LedgerEntryResponse(BaseModel):
    entry_id: str
    box_number: int | None = None
    barcode: str
    product_name: str | None = None
    worker_id: str | None = None
    quantity_delta: int
    source: str
    reference: str | None = None
    group_name: str | None = None
    occurred_at: str


class LedgerResponse(BaseModel):
    entries: list[LedgerEntryResponse]


# --- Box Schemas ---


class RequirementResponse(BaseModel):
    barcode: str
    product_name: str | None = None
    required_qty: int
    scanned_qty: int


class BoxResponse(BaseModel):
    box_number: int
    customer_name: str | None = None
    group_name: str | None = None
    total_required: int
    total_scanned: int
    is_complete: bool
    active_check_session_id: str | None = None
    requirements: list[RequirementResponse] = []


class BoxListResponse(BaseModel):
    boxes: list[BoxResponse]


class EmptyBoxRequest(BaseModel):
    performed_by: str = Field(..., max_length=255)
    reason: str | None = None


class TransferBoxRequest(BaseModel):
    target_group: str = Field(..., max_length=255)
    performed_by: str = Field(..., max_length=255)
    reason: str | None = None


class BoxHistoryResponse(BaseModel):
    entry_id: str
    box_number: int
    action: str
    performed_by: str
    previous_group: str | None = None
    target_group: str | None = None
    reason: str | None = None
    items_processed: int
    occurred_at: str


class BoxHistoryListResponse(BaseModel):
    entries: list[BoxHistoryResponse]


# --- Put-Aside Schemas ---


class PutAsideRequest(BaseModel):
    job_id: str
    barcode: str = Field(..., min_length=1, max_length=255)
    worker_id: str = Field(..., max_length=255)
    box_hint: int | None = None
    reason: str | None = Field(None, max_length=255)
    quantity: int = 1


class ReallocateRequest(BaseModel):
    target_box_number: int
    performed_by: str = Field(..., max_length=255)
    request_id: str | None = Field(None, max_length=255)


class PutAsideItemResponse(BaseModel):
    item_id: str
    job_id: str
    barcode: str
    product_name: str | None = None
    original_box_number: int | None = None
    quantity: int
    reason: str
    status: str
    put_aside_by: str
    reallocated_by: str | None = None
    reallocated_to_box_number: int | None = None


class PutAsideListResponse(BaseModel):
    items: list[PutAsideItemResponse]


# --- CheckCount Schemas ---


class StartCheckCountRequest(BaseModel):
    job_id: str
    box_number: int
    user_id: str = Field(..., max_length=255)
    total_items_expected: int | None = None


class CheckScanRequest(BaseModel):
    barcode: str = Field(..., min_length=1, max_length=255)


class CompleteCheckCountRequest(BaseModel):
    apply_corrections: bool = False


class CheckProgressResponse(BaseModel):
    barcode: str
    product_name: str | None = None
    expected_qty: int
    original_scanned_qty: int
    check_scanned_qty: int
    extra_items: int
    has_discrepancy: bool


class CheckCountSessionResponse(BaseModel):
    session_id: str
    job_id: str
    box_number: int
    user_id: str
    status: str
    is_complete: bool
    total_items_expected: int
    total_items_scanned: int
    discrepancies_found: int
    corrections_applied: bool
    progress: list[CheckProgressResponse]


class CheckCountSummaryResponse(BaseModel):
    session_id: str
    user_id: str | None = None
    status: str
    total_items_expected: int
    total_items_scanned: int
    discrepancies_found: int
    corrections_applied: bool
    started_at: str | None = None
    completed_at: str | None = None


class CheckCountSummaryListResponse(BaseModel):
    sessions: list[CheckCountSummaryResponse]
