from __future__ import annotations

from typing import Any, Optional


class ServiceError(Exception):
    """Base class for domain errors converted to HTTP responses at the app boundary.

    Each subclass pins an HTTP ``status_code`` and a stable ``error_code``.
    ``message`` goes to the client as ``{"error": message}``; ``details`` (a list
    of per-field problems) is only attached for validation failures.
    """

    status_code: int = 400
    error_code: str = "bad_request"
    default_message: str = "Bad request"

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[list[dict[str, Any]]] = None,
    ) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)
        self.details = details


class ValidationError(ServiceError):
    status_code = 400
    error_code = "validation_error"
    default_message = "Validation failed"


class BadRequest(ServiceError):
    status_code = 400
    error_code = "bad_request"
    default_message = "Bad request"


class Conflict(ServiceError):
    # 400 para manter o contrato original do POST /tenants duplicado
    status_code = 400
    error_code = "conflict"
    default_message = "Resource already exists"


class DuplicateSubdomain(Conflict):
    default_message = "Subdomain already taken"


class Unauthorized(ServiceError):
    status_code = 401
    error_code = "unauthorized"
    default_message = "Authentication required"


class InvalidToken(Unauthorized):
    default_message = "Invalid or expired token"


class Forbidden(ServiceError):
    status_code = 403
    error_code = "forbidden"
    default_message = "Insufficient permissions"


class TenantInactive(Forbidden):
    error_code = "tenant_inactive"
    default_message = "Tenant account is inactive"


class NotFound(ServiceError):
    status_code = 404
    error_code = "not_found"
    default_message = "Resource not found"


class TenantNotFound(NotFound):
    default_message = "Tenant not found"


class InternalError(ServiceError):
    status_code = 500
    error_code = "internal_error"
    default_message = "Internal server error"


__all__ = [
    "ServiceError",
    "ValidationError",
    "BadRequest",
    "Conflict",
    "DuplicateSubdomain",
    "Unauthorized",
    "InvalidToken",
    "Forbidden",
    "TenantInactive",
    "NotFound",
    "TenantNotFound",
    "InternalError",
]
