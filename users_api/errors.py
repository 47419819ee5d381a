"""Typed errors raised by the request handlers and converted into HTTP responses."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import status


class APIError(Exception):
    """Base class for errors that map onto a JSON error envelope."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {"message": self.message}
        if self.details is not None:
            error["details"] = self.details
        return {"success": False, "error": error}


class ValidationError(APIError):
    status_code = status.HTTP_400_BAD_REQUEST


class BadRequestError(APIError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(APIError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(APIError):
    status_code = status.HTTP_409_CONFLICT


class StoreError(APIError):
    """Raised when the backing record store fails."""


class UnhandledError(APIError):
    """Wraps any exception that was not classified by a handler."""


__all__ = [
    "APIError",
    "BadRequestError",
    "ConflictError",
    "NotFoundError",
    "StoreError",
    "UnhandledError",
    "ValidationError",
]
