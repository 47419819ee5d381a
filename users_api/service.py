"""HTTP API exposing CRUD operations on users plus health endpoints."""

from __future__ import annotations

import logging
import traceback
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict
from starlette.exceptions import HTTPException as StarletteHTTPException
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from . import handlers
from .config import Settings, load_settings
from .errors import APIError, UnhandledError, ValidationError
from .health import health_payload, status_payload
from .middleware import BodySizeLimitMiddleware, RequestLoggingMiddleware
from .repository import UserRepository
from .store import RecordStore, build_record_store

logger = logging.getLogger("users_api.service")

API_VERSION = "1.0.0"


class UserPayload(BaseModel):
    """Body of create and update requests.

    Fields stay untyped so that wrong types are reported by
    :func:`users_api.validation.validate_user` with its own messages.
    """

    model_config = ConfigDict(extra="ignore")

    name: Any = None
    email: Any = None


def _fields(payload: Optional[UserPayload]) -> Dict[str, Any]:
    return payload.model_dump(exclude_unset=True) if payload is not None else {}


def _success(message: str, data: Dict[str, Any]) -> Dict[str, Any]:
    return {"success": True, "message": message, "data": data}


def _trusted_proxy_hosts(raw: str) -> list[str] | str:
    hosts = [item.strip() for item in raw.split(",") if item.strip()]
    return hosts or "*"


def _cors_origins(raw: str) -> List[str]:
    origins = [item.strip() for item in raw.split(",") if item.strip()]
    return origins or ["*"]


def _describe_validation_error(error: Dict[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    message = str(error.get("msg", "Invalid value"))
    return f"{location}: {message}" if location else message


def _build_router(get_repository, settings: Settings) -> APIRouter:
    router = APIRouter()

    @router.get("/health", tags=["Health"])
    async def healthcheck() -> Dict[str, Any]:
        return _success("Server is healthy", health_payload(settings.environment))

    @router.get("/health/status", tags=["Health"])
    async def system_status() -> Dict[str, Any]:
        return _success("System status retrieved successfully", status_payload(settings.environment))

    @router.get("/users", tags=["Users"])
    async def list_users(repository: UserRepository = Depends(get_repository)) -> Dict[str, Any]:
        users, count = await handlers.list_users(repository)
        return _success(
            "Users fetched successfully",
            {"users": [user.to_dict() for user in users], "count": count},
        )

    @router.get("/users/{user_id}", tags=["Users"])
    async def read_user(
        user_id: str,
        repository: UserRepository = Depends(get_repository),
    ) -> Dict[str, Any]:
        user = await handlers.get_user(repository, user_id)
        return _success("User fetched successfully", {"user": user.to_dict()})

    @router.post("/users", status_code=status.HTTP_201_CREATED, tags=["Users"])
    async def create_user(
        payload: Optional[UserPayload] = Body(default=None),
        repository: UserRepository = Depends(get_repository),
    ) -> Dict[str, Any]:
        user = await handlers.create_user(repository, _fields(payload))
        return _success("User created successfully", {"user": user.to_dict()})

    @router.put("/users/{user_id}", tags=["Users"])
    async def update_user(
        user_id: str,
        payload: Optional[UserPayload] = Body(default=None),
        repository: UserRepository = Depends(get_repository),
    ) -> Dict[str, Any]:
        user = await handlers.update_user(repository, user_id, _fields(payload))
        return _success("User updated successfully", {"user": user.to_dict()})

    @router.delete("/users/{user_id}", tags=["Users"])
    async def delete_user(
        user_id: str,
        repository: UserRepository = Depends(get_repository),
    ) -> Dict[str, Any]:
        deleted_id = await handlers.delete_user(repository, user_id)
        return _success("User deleted successfully", {"deletedUserId": deleted_id})

    return router


def _register_error_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(APIError)
    async def handle_api_error(_: Request, exc: APIError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s: %s", type(exc).__name__, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(_: Request, exc: RequestValidationError) -> JSONResponse:
        error = ValidationError(
            "Validation failed",
            [_describe_validation_error(item) for item in exc.errors()],
        )
        return JSONResponse(status_code=error.status_code, content=error.to_payload())

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
            content = {
                "success": False,
                "error": {
                    "message": "Route not found",
                    "details": f"Cannot {request.method} {request.url.path}",
                },
            }
            return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=content)
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": {"message": str(exc.detail)}},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        error = UnhandledError(str(exc) or "Internal server error")
        content = error.to_payload()
        if not settings.is_production:
            content["error"]["stack"] = "".join(
                traceback.format_exception(type(exc), exc, exc.__traceback__)
            )
        return JSONResponse(status_code=error.status_code, content=content)


def create_app(
    settings: Settings | None = None,
    *,
    store: RecordStore | None = None,
    repository: UserRepository | None = None,
) -> FastAPI:
    """Instantiate the FastAPI application for the users API."""

    settings = settings or load_settings()
    if repository is None:
        repository = UserRepository(store or build_record_store(settings))

    app = FastAPI(
        title="Users API",
        description="CRUD operations on users backed by a hosted database.",
        version=API_VERSION,
    )
    app.state.settings = settings
    app.state.repository = repository

    # Added innermost first; the last middleware added runs first.
    app.add_middleware(BodySizeLimitMiddleware, max_body_bytes=settings.max_body_bytes)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(settings.cors_origin),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    if settings.trust_proxy:
        app.add_middleware(
            ProxyHeadersMiddleware,
            trusted_hosts=_trusted_proxy_hosts(settings.trusted_proxies),
        )

    def get_repository() -> UserRepository:
        return repository

    router = _build_router(get_repository, settings)
    app.include_router(router, prefix="/api")
    app.include_router(router)

    def _api_info() -> Dict[str, Any]:
        return _success(
            "Welcome to the API",
            {
                "version": API_VERSION,
                "endpoints": {
                    "health": "/health",
                    "status": "/health/status",
                    "users": "/users",
                },
            },
        )

    @app.get("/", include_in_schema=False)
    async def root_info() -> Dict[str, Any]:
        return _api_info()

    @app.get("/api", include_in_schema=False)
    async def api_info() -> Dict[str, Any]:
        return _api_info()

    _register_error_handlers(app, settings)

    logger.info(
        "Users API configured (environment=%s, store=%s)",
        settings.environment,
        type(repository.store).__name__,
    )
    return app


__all__ = ["API_VERSION", "create_app"]
