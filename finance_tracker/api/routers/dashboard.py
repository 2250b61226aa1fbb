from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends

from finance_tracker.api.dependencies import (
    ApiContext,
    get_correlation_id,
    get_ctx,
    get_owner_id,
)

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/summary")
async def dashboard_summary(
    owner_id: str = Depends(get_owner_id),
    correlation_id: Optional[UUID] = Depends(get_correlation_id),
    ctx: ApiContext = Depends(get_ctx),
) -> dict:
    summary = await ctx.components.dashboard.summary(owner_id, correlation_id=correlation_id)
    return summary.to_export_dict()
