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
    split_csv,
)

router = APIRouter(prefix="/expenses", tags=["expenses"])


@router.get("")
async def list_expenses(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    category: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    search: Optional[str] = None,
    sort_by: str = "spent_on",
    order: str = Query("desc", pattern="^(asc|desc)$"),
    owner_id: str = Depends(get_owner_id),
    ctx: ApiContext = Depends(get_ctx),
) -> dict:
    listing = await ctx.components.expenses.list_expenses(
        owner_id,
        build_filter(categories=category, start_date=start_date, end_date=end_date, search=search),
        page=page,
        limit=limit,
        sort_by=sort_by,
        descending=order == "desc",
    )
    return listing.to_export_dict()


@router.post("", status_code=201)
async def create_expense(
    payload: dict[str, Any] = Body(...),
    owner_id: str = Depends(get_owner_id),
    correlation_id: Optional[UUID] = Depends(get_correlation_id),
    ctx: ApiContext = Depends(get_ctx),
) -> dict:
    expense = await ctx.components.expenses.create(owner_id, payload, correlation_id)
    return expense.model_dump(mode="json")


@router.get("/stats")
async def expense_stats(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    category: Optional[str] = None,
    owner_id: str = Depends(get_owner_id),
    ctx: ApiContext = Depends(get_ctx),
) -> dict:
    stats = await ctx.components.expenses.stats(
        owner_id, start_date, end_date, split_csv(category)
    )
    return stats.to_export_dict()


@router.get("/{expense_id}")
async def get_expense(
    expense_id: UUID,
    owner_id: str = Depends(get_owner_id),
    ctx: ApiContext = Depends(get_ctx),
) -> dict:
    expense = await ctx.components.expenses.get(owner_id, expense_id)
    return expense.model_dump(mode="json")


@router.put("/{expense_id}")
async def update_expense(
    expense_id: UUID,
    payload: dict[str, Any] = Body(...),
    owner_id: str = Depends(get_owner_id),
    correlation_id: Optional[UUID] = Depends(get_correlation_id),
    ctx: ApiContext = Depends(get_ctx),
) -> dict:
    expense = await ctx.components.expenses.update(owner_id, expense_id, payload, correlation_id)
    return expense.model_dump(mode="json")


@router.delete("/{expense_id}")
async def delete_expense(
    expense_id: UUID,
    owner_id: str = Depends(get_owner_id),
    correlation_id: Optional[UUID] = Depends(get_correlation_id),
    ctx: ApiContext = Depends(get_ctx),
) -> dict:
    await ctx.components.expenses.delete(owner_id, expense_id, correlation_id)
    return {"deleted": True, "id": str(expense_id)}
