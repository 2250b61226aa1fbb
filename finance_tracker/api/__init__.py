"""HTTP API package (FastAPI)."""

from finance_tracker.api.app import create_app, main

__all__ = ["create_app", "main"]
