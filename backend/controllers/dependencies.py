"""Shared FastAPI dependency providers and error envelope for the widget API."""

from __future__ import annotations

from typing import Any, Callable, Optional

from fastapi import Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader
from starlette.exceptions import HTTPException as StarletteHTTPException

from backend.services.auth_service import (
    API_KEY_HEADER,
    ApiKeyNotConfiguredError,
    AuthService,
    InvalidApiKeyError,
)
from backend.services.availability_service import AvailabilityService
from backend.services.booking_service import BookingService
from backend.utils.config import Settings, get_settings
from backend.utils.logger import get_logger


logger = get_logger(__name__)

API_PREFIX = "/api/wordpress"
READ_METHODS = "GET, OPTIONS"

api_key_scheme = APIKeyHeader(name=API_KEY_HEADER, auto_error=False)

ERROR_LABELS = {
    status.HTTP_400_BAD_REQUEST: "Bad request",
    status.HTTP_401_UNAUTHORIZED: "Unauthorized",
    status.HTTP_404_NOT_FOUND: "Not found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "Method not allowed",
    status.HTTP_409_CONFLICT: "Capacity exceeded",
    status.HTTP_500_INTERNAL_SERVER_ERROR: "Internal server error",
    status.HTTP_503_SERVICE_UNAVAILABLE: "Service unavailable",
}


def get_app_settings(request: Request) -> Settings:
    settings = getattr(request.app.state, "settings", None)
    return settings if settings is not None else get_settings()


def get_auth_service(request: Request) -> AuthService:
    service = getattr(request.app.state, "auth_service", None)
    if service is None:
        service = AuthService(settings=get_app_settings(request))
        request.app.state.auth_service = service
    return service


def get_availability_service(request: Request) -> AvailabilityService:
    service = getattr(request.app.state, "availability_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Availability service is not initialized",
        )
    return service


def get_booking_service(request: Request) -> BookingService:
    service = getattr(request.app.state, "booking_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Booking service is not initialized",
        )
    return service


async def require_api_key(
    api_key: Optional[str] = Depends(api_key_scheme),
    auth_service: AuthService = Depends(get_auth_service),
) -> None:
    try:
        auth_service.validate_api_key(api_key)
    except ApiKeyNotConfiguredError as exc:
        logger.error("Rejected widget request: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        ) from exc
    except InvalidApiKeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(exc),
        ) from exc


def cors_headers(settings: Settings, methods: str = READ_METHODS) -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": settings.cors_allow_origin,
        "Access-Control-Allow-Methods": methods,
        "Access-Control-Allow-Headers": f"Content-Type, {API_KEY_HEADER}",
        "Access-Control-Allow-Credentials": "true",
        "Access-Control-Max-Age": "86400",
    }


def cors_dependency(methods: str = READ_METHODS) -> Callable[..., None]:
    """Dependency that stamps the widget CORS allow-list on successful responses."""

    def apply_cors_headers(
        response: Response,
        settings: Settings = Depends(get_app_settings),
    ) -> None:
        response.headers.update(cors_headers(settings, methods))

    return apply_cors_headers


def request_origin(request: Request) -> str:
    return str(request.base_url).rstrip("/")


def describe_validation_errors(errors: list[dict[str, Any]]) -> str:
    messages = []
    for error in errors:
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = str(error.get("msg"))
        messages.append(f"{location}: {message}" if location else message)
    return "; ".join(messages)


def error_response(
    request: Request,
    status_code: int,
    message: str,
    details: Optional[list[str]] = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    content: dict[str, Any] = {
        "success": False,
        "error": ERROR_LABELS.get(status_code, "Request failed"),
        "message": message,
    }
    if details:
        content["details"] = details
    merged_headers = {**cors_headers(get_app_settings(request)), **(headers or {})}
    return JSONResponse(status_code=status_code, content=content, headers=merged_headers)


def register_exception_handlers(app: FastAPI) -> None:
    """Render every HTTP and validation failure in the widget error envelope."""

    @app.exception_handler(StarletteHTTPException)
    async def http_error_envelope(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        detail = exc.detail
        if isinstance(detail, dict):
            message = str(detail.get("message", ""))
            details = detail.get("details")
        else:
            message = str(detail)
            details = None
        return error_response(request, exc.status_code, message, details, exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error_envelope(request: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(
            request,
            status.HTTP_400_BAD_REQUEST,
            describe_validation_errors(list(exc.errors())),
        )
