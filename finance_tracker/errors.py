"""
Caller-facing error taxonomy.

Every failure that leaves the orchestrator is one of three kinds:
- validation_error: input rejected before any persistence or aggregation
- not_found: the entry does not exist OR belongs to another owner
  (the two cases look the same to the caller)
- upstream_unavailable: the ledger store could not be reached

Storage backends raise their own StorageError family; the flows translate
those into UpstreamUnavailableError at the boundary.
"""

from typing import Any, Optional


class FinanceTrackerError(Exception):
    """Base class for failures reported to callers."""

    kind: str = "internal_error"

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {
            "kind": self.kind,
            "message": self.message,
            "details": self.details,
        }


class EntryValidationFailed(FinanceTrackerError):
    """Input failed schema validation."""

    kind = "validation_error"


class EntryNotFoundError(FinanceTrackerError):
    """Entry is missing or not owned by the requesting owner."""

    kind = "not_found"


class UpstreamUnavailableError(FinanceTrackerError):
    """The ledger store could not be reached."""

    kind = "upstream_unavailable"
