"""Inventory catalog and stock report endpoints."""

from fastapi import APIRouter, Depends, Query, status

from stockledger.api.dependencies import (
    get_create_inventory_item_use_case,
    get_inv_item_store,
    get_reports,
    get_update_inventory_item_use_case,
)
from stockledger.application.dto.requests import CreateInventoryItemRequest, UpdateInventoryItemRequest
from stockledger.application.dto.responses import (
    CategoryStatsResponse,
    ErrorResponse,
    InventoryItemListResponse,
    InventoryItemResponse,
    InventoryStatsResponse,
    LowStockItemResponse,
    LowStockResponse,
    LowStockSummaryResponse,
)
from stockledger.application.use_cases.create_inventory_item import CreateInventoryItemUseCase
from stockledger.application.use_cases.update_inventory_item import UpdateInventoryItemUseCase
from stockledger.core.exceptions import InventoryItemNotFoundError
from stockledger.core.services import StockReportService
from stockledger.infrastructure.storage.sqlite import SQLiteInventoryStore

router = APIRouter(prefix="/api/inventory", tags=["inventory"])


@router.post(
    "/items",
    response_model=InventoryItemResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def create_item(
    request: CreateInventoryItemRequest,
    use_case: CreateInventoryItemUseCase = Depends(get_create_inventory_item_use_case),
) -> InventoryItemResponse:
    """Add an item to the catalog with its initial stock."""
    item = await use_case.execute(request)
    return use_case.to_response(item)


@router.get("/items", response_model=InventoryItemListResponse)
async def list_items(
    category: str | None = None,
    include_inactive: bool = False,
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    store: SQLiteInventoryStore = Depends(get_inv_item_store),
) -> InventoryItemListResponse:
    """List catalog items, active only unless asked otherwise."""
    items = await store.list_items(
        category=category,
        include_inactive=include_inactive,
        limit=limit,
        offset=offset,
    )
    return InventoryItemListResponse(
        items=[InventoryItemResponse.from_entity(item) for item in items],
        total=await store.count_items(category=category, include_inactive=include_inactive),
        limit=limit,
        offset=offset,
    )


@router.get("/low-stock", response_model=LowStockResponse)
async def low_stock(
    reports: StockReportService = Depends(get_reports),
) -> LowStockResponse:
    """Active items at or below their minimum, most urgent first."""
    report = await reports.low_stock_report()
    return LowStockResponse(
        items=[
            LowStockItemResponse(
                item=InventoryItemResponse.from_entity(entry.item),
                urgency=entry.urgency.value,
                stock_percentage=entry.stock_percentage,
                stock_difference=entry.stock_difference,
                reorder_amount=entry.reorder_amount,
                is_out_of_stock=entry.is_out_of_stock,
            )
            for entry in report.entries
        ],
        summary=LowStockSummaryResponse(**report.summary.model_dump()),
    )


@router.get("/stats", response_model=InventoryStatsResponse)
async def inventory_stats(
    reports: StockReportService = Depends(get_reports),
) -> InventoryStatsResponse:
    """Catalog-wide stock statistics."""
    stats = await reports.inventory_stats()
    return InventoryStatsResponse(
        total_items=stats.total_items,
        total_value=stats.total_value,
        low_stock_count=stats.low_stock_count,
        out_of_stock_count=stats.out_of_stock_count,
        overstocked_count=stats.overstocked_count,
        by_category=[CategoryStatsResponse(**c.model_dump()) for c in stats.by_category],
    )


@router.get(
    "/items/{item_id}",
    response_model=InventoryItemResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_item(
    item_id: int,
    store: SQLiteInventoryStore = Depends(get_inv_item_store),
) -> InventoryItemResponse:
    item = await store.get_item(item_id)
    if item is None:
        raise InventoryItemNotFoundError(item_id)
    return InventoryItemResponse.from_entity(item)


@router.put(
    "/items/{item_id}",
    response_model=InventoryItemResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
async def update_item(
    item_id: int,
    request: UpdateInventoryItemRequest,
    use_case: UpdateInventoryItemUseCase = Depends(get_update_inventory_item_use_case),
) -> InventoryItemResponse:
    """Edit catalog fields; stock changes go through movements."""
    item = await use_case.execute(item_id, request)
    return use_case.to_response(item)


@router.post(
    "/items/{item_id}/deactivate",
    response_model=InventoryItemResponse,
    responses={404: {"model": ErrorResponse}},
)
async def deactivate_item(
    item_id: int,
    store: SQLiteInventoryStore = Depends(get_inv_item_store),
) -> InventoryItemResponse:
    """Soft-deactivate an item; its ledger history is kept."""
    item = await store.set_active(item_id, is_active=False)
    if item is None:
        raise InventoryItemNotFoundError(item_id)
    return InventoryItemResponse.from_entity(item)
