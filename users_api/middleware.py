"""ASGI middleware for request logging and request body limits."""

from __future__ import annotations

import logging
import time
from typing import List

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger("users_api.requests")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log one line per request with its status code and duration."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.perf_counter() - started) * 1000
            logger.error("%s %s -> 500 (%.1f ms)", request.method, request.url.path, duration_ms)
            raise
        duration_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "%s %s -> %s (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        return response


class BodySizeLimitMiddleware:
    """Reject request bodies larger than ``max_body_bytes`` with a 413 envelope.

    A declared ``Content-Length`` is checked up front. Bodies streamed without
    one (chunked uploads) are buffered and counted before the application sees
    them, so the limit holds either way.
    """

    def __init__(self, app: ASGIApp, *, max_body_bytes: int) -> None:
        self.app = app
        self._max_body_bytes = max_body_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        declared = headers.get("content-length")
        if declared is not None:
            try:
                length = int(declared)
            except ValueError:
                length = -1
            if length < 0:
                response = JSONResponse(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    content={
                        "success": False,
                        "error": {"message": "Invalid Content-Length header"},
                    },
                )
                await response(scope, receive, send)
                return
            if length > self._max_body_bytes:
                await self._reject(scope, receive, send, length)
                return
            await self.app(scope, receive, send)
            return

        chunks: List[bytes] = []
        received = 0
        while True:
            message = await receive()
            if message["type"] != "http.request":
                # Client went away before finishing the body.
                return
            chunk = message.get("body", b"")
            received += len(chunk)
            if received > self._max_body_bytes:
                await self._reject(scope, receive, send, received)
                return
            chunks.append(chunk)
            if not message.get("more_body", False):
                break

        body = b"".join(chunks)
        replayed = False

        async def replay() -> Message:
            nonlocal replayed
            if not replayed:
                replayed = True
                return {"type": "http.request", "body": body, "more_body": False}
            return await receive()

        await self.app(scope, replay, send)

    async def _reject(self, scope: Scope, receive: Receive, send: Send, size: int) -> None:
        logger.warning(
            "Rejected %s %s: body of at least %s bytes exceeds limit of %s",
            scope.get("method"),
            scope.get("path"),
            size,
            self._max_body_bytes,
        )
        response = JSONResponse(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            content={
                "success": False,
                "error": {
                    "message": "Request body too large",
                    "details": f"Maximum request body size is {self._max_body_bytes} bytes",
                },
            },
        )
        await response(scope, receive, send)


__all__ = ["BodySizeLimitMiddleware", "RequestLoggingMiddleware"]
