"""
Maps failures to HTTP responses.

Every error body has the same shape:
    {"error": {"kind": ..., "message": ..., "details": ...}, "request_id": ...}
"""

from typing import Any, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from finance_tracker.errors import FinanceTrackerError


logger = structlog.get_logger(__name__)

STATUS_BY_KIND = {
    "validation_error": 400,
    "not_found": 404,
    "upstream_unavailable": 503,
}


def error_body(
    request: Request,
    kind: str,
    message: str,
    details: Optional[Any] = None,
) -> dict:
    return {
        "error": {"kind": kind, "message": message, "details": jsonable_encoder(details)},
        "request_id": getattr(request.state, "request_id", None),
    }


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(FinanceTrackerError)
    async def _domain_error_handler(request: Request, exc: FinanceTrackerError) -> JSONResponse:
        return JSONResponse(
            status_code=STATUS_BY_KIND.get(exc.kind, 500),
            content=error_body(request, exc.kind, exc.message, exc.details),
        )

    @app.exception_handler(HTTPException)
    async def _http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
        kind = "http_error"
        if exc.status_code == 401:
            kind = "unauthorized"
        elif exc.status_code == 404:
            kind = "not_found"
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(request, kind, str(exc.detail)),
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_error_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content=error_body(
                request,
                "validation_error",
                "request validation failed",
                details=exc.errors(),
            ),
        )

    @app.exception_handler(Exception)
    async def _generic_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled_error", error=str(exc))
        await request.app.state.ctx.components.audit_logger.log_error(
            error_type=type(exc).__name__,
            error_message=str(exc),
            details={"method": request.method, "path": request.url.path},
            correlation_id=getattr(request.state, "correlation_id", None),
        )
        return JSONResponse(
            status_code=500,
            content=error_body(request, "internal_error", "internal server error"),
        )
