"""
FastAPI application.

Thin HTTP surface over the orchestrator flows. Every request gets a request
id (taken from X-Request-Id when present) which is bound into the structlog
context and echoed back in the response headers and error bodies.
"""

import logging
from time import perf_counter
from typing import Optional
from uuid import UUID, uuid4

import structlog
import uvicorn
from fastapi import FastAPI, Request

from finance_tracker import __version__
from finance_tracker.api.dependencies import build_context
from finance_tracker.api.error_handlers import register_error_handlers
from finance_tracker.api.routers.bills import router as bills_router
from finance_tracker.api.routers.dashboard import router as dashboard_router
from finance_tracker.api.routers.expenses import router as expenses_router
from finance_tracker.api.routers.health import router as health_router
from finance_tracker.api.routers.reports import router as reports_router
from finance_tracker.config import Settings, get_settings, validate_all_settings
from finance_tracker.orchestrator import AppComponents


logger = structlog.get_logger(__name__)


def _correlation_id_for(request_id: str) -> UUID:
    try:
        return UUID(request_id)
    except ValueError:
        return uuid4()


def create_app(
    settings: Optional[Settings] = None,
    components: Optional[AppComponents] = None,
) -> FastAPI:
    app = FastAPI(title="Finance Tracker API", version=__version__)
    app.state.ctx = build_context(settings, components)

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):
        request_id = (request.headers.get("x-request-id") or "").strip() or uuid4().hex
        request.state.request_id = request_id
        request.state.correlation_id = _correlation_id_for(request_id)
        structlog.contextvars.bind_contextvars(request_id=request_id)
        started = perf_counter()
        try:
            response = await call_next(request)
            duration_ms = round((perf_counter() - started) * 1000, 2)
            status_code = int(response.status_code)
            log = logger.bind(
                method=request.method,
                path=request.url.path,
                status_code=status_code,
                duration_ms=duration_ms,
            )
            if status_code >= 500:
                log.error("request_completed")
            elif status_code >= 400:
                log.warning("request_completed")
            else:
                log.info("request_completed")
            response.headers["X-Request-Id"] = request_id
            return response
        finally:
            structlog.contextvars.unbind_contextvars("request_id")

    register_error_handlers(app)

    prefix = "/api"
    app.include_router(health_router, prefix=prefix)
    app.include_router(expenses_router, prefix=prefix)
    app.include_router(bills_router, prefix=prefix)
    app.include_router(reports_router, prefix=prefix)
    app.include_router(dashboard_router, prefix=prefix)

    return app


def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if settings.app.debug_mode else logging.INFO,
        format="%(message)s",
    )
    logger.info("settings_checked", **validate_all_settings())
    app = create_app(settings)
    uvicorn.run(
        app,
        host=settings.api.host,
        port=settings.api.port,
        log_level="debug" if settings.app.debug_mode else "info",
    )


if __name__ == "__main__":
    main()
