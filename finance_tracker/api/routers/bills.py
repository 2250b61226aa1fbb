from datetime import date
from typing import Any, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query

from finance_tracker.api.dependencies import (
    ApiContext,
    build_filter,
    get_correlation_id,
    get_ctx,
    get_owner_id,
)

router = APIRouter(prefix="/bills", tags=["bills"])


@router.get("")
async def list_bills(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    status: Optional[str] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    owner_id: str = Depends(get_owner_id),
    correlation_id: Optional[UUID] = Depends(get_correlation_id),
    ctx: ApiContext = Depends(get_ctx),
) -> dict:
    listing = await ctx.components.bills.list_bills(
        owner_id,
        build_filter(
            categories=category,
            start_date=start_date,
            end_date=end_date,
            statuses=status,
            search=search,
        ),
        page=page,
        limit=limit,
        correlation_id=correlation_id,
    )
    return listing.to_export_dict()


@router.post("", status_code=201)
async def create_bill(
    payload: dict[str, Any] = Body(...),
    owner_id: str = Depends(get_owner_id),
    correlation_id: Optional[UUID] = Depends(get_correlation_id),
    ctx: ApiContext = Depends(get_ctx),
) -> dict:
    bill = await ctx.components.bills.create(owner_id, payload, correlation_id=correlation_id)
    return bill.model_dump(mode="json")


@router.get("/upcoming")
async def upcoming_bills(
    days: Optional[int] = Query(None, ge=0, le=365),
    limit: int = Query(10, ge=1, le=100),
    owner_id: str = Depends(get_owner_id),
    correlation_id: Optional[UUID] = Depends(get_correlation_id),
    ctx: ApiContext = Depends(get_ctx),
) -> dict:
    upcoming = await ctx.components.bills.upcoming(
        owner_id, days=days, limit=limit, correlation_id=correlation_id
    )
    return upcoming.to_export_dict()


@router.get("/{bill_id}")
async def get_bill(
    bill_id: UUID,
    owner_id: str = Depends(get_owner_id),
    ctx: ApiContext = Depends(get_ctx),
    correlation_id: Optional[UUID] = Depends(get_correlation_id),
) -> dict:
    bill = await ctx.components.bills.get(owner_id, bill_id, correlation_id=correlation_id)
    return bill.model_dump(mode="json")


@router.put("/{bill_id}")
@router.patch("/{bill_id}")
async def update_bill(
    bill_id: UUID,
    payload: dict[str, Any] = Body(...),
    owner_id: str = Depends(get_owner_id),
    correlation_id: Optional[UUID] = Depends(get_correlation_id),
    ctx: ApiContext = Depends(get_ctx),
) -> dict:
    """Partial update; only the fields present in the body change."""
    bill = await ctx.components.bills.update(
        owner_id, bill_id, payload, correlation_id=correlation_id
    )
    return bill.model_dump(mode="json")


@router.delete("/{bill_id}")
async def delete_bill(
    bill_id: UUID,
    owner_id: str = Depends(get_owner_id),
    correlation_id: Optional[UUID] = Depends(get_correlation_id),
    ctx: ApiContext = Depends(get_ctx),
) -> dict:
    await ctx.components.bills.delete(owner_id, bill_id, correlation_id)
    return {"deleted": True, "id": str(bill_id)}
