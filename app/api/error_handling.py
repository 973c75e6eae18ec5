from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.errors import InternalError, ServiceError, Unauthorized, ValidationError

logger = logging.getLogger(__name__)

# Prefixos de localização do FastAPI que não fazem parte do campo do cliente.
_LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}


def error_response(
    status_code: int,
    message: str,
    details: Optional[list[dict[str, Any]]] = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    content: dict[str, Any] = {"error": message}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def validation_details(errors: list[dict[str, Any]]) -> list[dict[str, str]]:
    details = []
    for error in errors:
        loc = list(error.get("loc") or ())
        if loc and loc[0] in _LOCATION_PREFIXES:
            loc = loc[1:]
        details.append(
            {
                "path": ".".join(str(part) for part in loc),
                "message": str(error.get("msg", "Invalid value")),
            }
        )
    return details


def register_exception_handlers(app: FastAPI) -> None:
    """Every failure leaves the API as ``{"error": message}`` plus optional ``details``."""

    @app.exception_handler(ServiceError)
    async def handle_service_error(request: Request, exc: ServiceError):
        log_fn = logger.error if exc.status_code >= 500 else logger.warning
        log_fn(
            "Request failed status=%s error_code=%s message=%s",
            exc.status_code,
            exc.error_code,
            exc.message,
            extra={
                "endpoint": request.url.path,
                "method": request.method,
                "status_code": exc.status_code,
            },
        )
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
        return error_response(exc.status_code, exc.message, exc.details, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        details = validation_details(list(exc.errors()))
        logger.info(
            "Validation failed endpoint=%s fields=%s",
            request.url.path,
            [detail["path"] for detail in details],
            extra={"endpoint": request.url.path, "method": request.method, "status_code": 400},
        )
        return error_response(ValidationError.status_code, ValidationError.default_message, details)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return error_response(exc.status_code, message, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        # Detalhes do erro ficam só no log, nunca na resposta.
        logger.exception(
            "Unhandled error endpoint=%s %s",
            request.method,
            request.url.path,
            extra={"endpoint": request.url.path, "method": request.method, "status_code": 500},
        )
        return error_response(InternalError.status_code, InternalError.default_message)
