from fastapi import APIRouter, Depends

from finance_tracker import __version__
from finance_tracker.api.dependencies import ApiContext, get_ctx

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(ctx: ApiContext = Depends(get_ctx)) -> dict:
    return {
        "status": "ok",
        "version": __version__,
        "environment": ctx.settings.app.app_environment,
        "storage_backend": ctx.components.storage_backend,
    }
