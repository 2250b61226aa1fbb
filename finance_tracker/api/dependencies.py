"""
Request-scoped dependencies.

The owner id is taken from a header set by the identity provider in front
of this service. It is trusted as-is; authentication is not done here.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Request
from pydantic import ValidationError

from finance_tracker.config import Settings, get_settings
from finance_tracker.errors import EntryValidationFailed
from finance_tracker.models.entries import LedgerFilter
from finance_tracker.orchestrator import AppComponents, create_app_components
from finance_tracker.validation import issues_from_error


@dataclass
class ApiContext:
    settings: Settings
    components: AppComponents


def build_context(
    settings: Optional[Settings] = None,
    components: Optional[AppComponents] = None,
) -> ApiContext:
    settings = settings or get_settings()
    components = components or create_app_components(settings.app)
    return ApiContext(settings=settings, components=components)


def get_ctx(request: Request) -> ApiContext:
    return request.app.state.ctx


def get_owner_id(request: Request, ctx: ApiContext = Depends(get_ctx)) -> str:
    header = ctx.settings.api.owner_header
    owner_id = (request.headers.get(header) or "").strip()
    if not owner_id:
        raise HTTPException(status_code=401, detail=f"missing {header} header")
    return owner_id


def get_correlation_id(request: Request) -> Optional[UUID]:
    return getattr(request.state, "correlation_id", None)


def split_csv(value: Optional[str]) -> Optional[list[str]]:
    """'food,rent' -> ['food', 'rent']; 'all' and blanks mean no filter."""
    if not value:
        return None
    items = [item.strip() for item in value.split(",") if item.strip()]
    items = [item for item in items if item.lower() != "all"]
    return items or None


def build_filter(
    categories: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    statuses: Optional[str] = None,
    search: Optional[str] = None,
) -> Optional[LedgerFilter]:
    """LedgerFilter from query parameters, or None when nothing filters."""
    if not any((categories, start_date, end_date, statuses, search)):
        return None
    try:
        return LedgerFilter(
            categories=split_csv(categories),
            date_from=start_date,
            date_to=end_date,
            statuses=split_csv(statuses),
            search=search,
        )
    except ValidationError as e:
        issues = issues_from_error(e)
        raise EntryValidationFailed(
            "Invalid filter: " + "; ".join(issue.message for issue in issues),
            details={"issues": [issue.model_dump() for issue in issues]},
        ) from e
