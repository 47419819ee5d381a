"""Core package for the users API service."""

from __future__ import annotations

from typing import Any

from .config import Settings, load_settings, resolve_database_path
from .database import SQLiteRecordStore


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the FastAPI application."""

    from .service import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "SQLiteRecordStore",
    "Settings",
    "create_app",
    "load_settings",
    "resolve_database_path",
]
