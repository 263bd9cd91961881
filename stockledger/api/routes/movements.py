"""Stock movement ledger endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query, status

from stockledger.api.dependencies import (
    get_approve_movement_use_case,
    get_ledger,
    get_record_movement_use_case,
    get_reports,
    get_submit_batch_use_case,
)
from stockledger.application.dto.requests import (
    ApproveMovementRequest,
    RecordMovementRequest,
    SubmitBatchRequest,
)
from stockledger.application.dto.responses import (
    ErrorResponse,
    MovementListResponse,
    MovementSummaryResponse,
    MovementTotalsResponse,
    MovementTypeResponse,
    MovementTypeSummaryResponse,
    PaginationMeta,
    RecordMovementResponse,
    StockMovementResponse,
    SubmitBatchResponse,
)
from stockledger.application.use_cases.approve_movement import ApproveMovementUseCase
from stockledger.application.use_cases.record_movement import RecordMovementUseCase
from stockledger.application.use_cases.submit_batch import SubmitBatchUseCase
from stockledger.core.entities.inventory import (
    ApprovalState,
    MovementFilters,
    MovementType,
    ReferenceType,
    to_naive_utc,
)
from stockledger.core.exceptions import ValidationError
from stockledger.core.services import MOVEMENT_TYPES, StockLedgerService, StockReportService

router = APIRouter(prefix="/api/movements", tags=["movements"])

_REJECTION_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


@router.post(
    "",
    response_model=RecordMovementResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_REJECTION_RESPONSES,
)
async def record_movement(
    request: RecordMovementRequest,
    use_case: RecordMovementUseCase = Depends(get_record_movement_use_case),
) -> RecordMovementResponse:
    """Record one movement and apply it to the item's balance."""
    result = await use_case.execute(request)
    return use_case.to_response(result)


@router.get("", response_model=MovementListResponse)
async def list_movements(
    inventory_id: int | None = None,
    movement_type: MovementType | None = None,
    reference_type: ReferenceType | None = None,
    reference_id: str | None = None,
    approval_state: ApprovalState | None = None,
    moved_by: str | None = None,
    approved_by: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    page: int = Query(default=1, ge=1),
    page_size: int | None = Query(default=None, ge=1),
    ledger: StockLedgerService = Depends(get_ledger),
) -> MovementListResponse:
    """List movements, newest first."""
    start_date = to_naive_utc(start_date) if start_date else None
    end_date = to_naive_utc(end_date) if end_date else None
    if start_date and end_date and start_date > end_date:
        raise ValidationError("start_date", "must not be after end_date", start_date)

    result = await ledger.list_movements(
        MovementFilters(
            inventory_id=inventory_id,
            movement_type=movement_type,
            reference_type=reference_type,
            reference_id=reference_id,
            approval_state=approval_state,
            moved_by=moved_by,
            approved_by=approved_by,
            start_date=start_date,
            end_date=end_date,
        ),
        page=page,
        page_size=page_size,
    )
    return MovementListResponse(
        items=[StockMovementResponse.from_entity(m) for m in result.items],
        pagination=PaginationMeta(
            total=result.total,
            page=result.page,
            page_size=result.page_size,
            total_pages=result.total_pages,
            has_next_page=result.has_next_page,
            has_previous_page=result.has_previous_page,
        ),
    )


@router.get("/types", response_model=list[MovementTypeResponse])
async def movement_types() -> list[MovementTypeResponse]:
    """Movement types with their balance effect."""
    return [
        MovementTypeResponse(
            movement_type=info.movement_type.value,
            label=info.label,
            description=info.description,
            effect=info.effect.value,
            reference_types=[r.value for r in info.reference_types],
        )
        for info in MOVEMENT_TYPES.values()
    ]


@router.get("/summary", response_model=MovementSummaryResponse)
async def movement_summary(
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    reports: StockReportService = Depends(get_reports),
) -> MovementSummaryResponse:
    """Movement activity over a period (default: the recent window)."""
    summary = await reports.movement_summary(start=start_date, end=end_date)
    return MovementSummaryResponse(
        period_start=summary.period_start,
        period_end=summary.period_end,
        total_movements=summary.total_movements,
        total_approved=summary.total_approved,
        total_pending=summary.total_pending,
        total_value=summary.total_value,
        by_type=[
            MovementTypeSummaryResponse(
                movement_type=row.movement_type.value,
                count=row.count,
                total_quantity=row.total_quantity,
                total_value=row.total_value,
                approved_count=row.approved_count,
                pending_count=row.pending_count,
            )
            for row in summary.by_type
        ],
        totals=MovementTotalsResponse(
            **summary.totals.model_dump(),
            net_change=summary.totals.net_change,
        ),
    )


@router.post(
    "/batch",
    response_model=SubmitBatchResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_REJECTION_RESPONSES,
)
async def submit_batch(
    request: SubmitBatchRequest,
    use_case: SubmitBatchUseCase = Depends(get_submit_batch_use_case),
) -> SubmitBatchResponse:
    """Record every movement of the batch, or none of them."""
    result = await use_case.execute(request)
    return use_case.to_response(result)


@router.get(
    "/{movement_id}",
    response_model=StockMovementResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_movement(
    movement_id: int,
    ledger: StockLedgerService = Depends(get_ledger),
) -> StockMovementResponse:
    movement = await ledger.get_movement(movement_id)
    return StockMovementResponse.from_entity(movement)


@router.post(
    "/{movement_id}/approve",
    response_model=StockMovementResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def approve_movement(
    movement_id: int,
    request: ApproveMovementRequest,
    use_case: ApproveMovementUseCase = Depends(get_approve_movement_use_case),
) -> StockMovementResponse:
    """Sign off a movement. Fails with 409 if it was approved before."""
    movement = await use_case.execute(movement_id, request)
    return use_case.to_response(movement)
