"""Validation package."""

from finance_tracker.validation.validator import EntryValidator, issues_from_error

__all__ = ["EntryValidator", "issues_from_error"]
