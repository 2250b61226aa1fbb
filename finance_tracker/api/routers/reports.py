from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from finance_tracker.api.dependencies import (
    ApiContext,
    get_correlation_id,
    get_ctx,
    get_owner_id,
)

router = APIRouter(tags=["reports"])


@router.get("/reports")
async def get_report(
    type: str = Query("both", description="expenses, bills or both"),
    period: str = Query("monthly", description="monthly or yearly"),
    year: Optional[int] = None,
    month: Optional[int] = Query(None, description="1-12"),
    categories: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    owner_id: str = Depends(get_owner_id),
    correlation_id: Optional[UUID] = Depends(get_correlation_id),
    ctx: ApiContext = Depends(get_ctx),
) -> dict:
    params = {
        "entry_type": type,
        "period_mode": period,
        "year": year,
        "month": month,
        "categories": categories,
        "start_date": start_date,
        "end_date": end_date,
    }
    report = await ctx.components.reports.generate(
        owner_id,
        {key: value for key, value in params.items() if value is not None},
        correlation_id=correlation_id,
    )
    return report.to_export_dict()
