"""Per-request authentication and tenant-isolation pipeline.

Every step takes an immutable :class:`AuthContext` and returns either a new
context or a :class:`ServiceError` value. :func:`run_pipeline` threads the
context through the steps and raises the first error it gets back, so a
route composes exactly the checks it needs and nothing mutates the request.

Order used by tenant-scoped routes::

    resolve_tenant_from_path -> authenticate -> check_tenant_access -> require_role
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable, Iterable, Optional, Union

from app.core.errors import (
    BadRequest,
    Forbidden,
    InvalidToken,
    ServiceError,
    TenantInactive,
    TenantNotFound,
    Unauthorized,
)
from app.models.tenant import Tenant
from app.models.user import Role
from app.services.tenant_directory import TenantDirectory
from app.services.tenant_resolver import TenantResolver
from app.services.tokens import TokenKind, TokenPayload, TokenService

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


@dataclass(frozen=True)
class RequestFacts:
    method: str
    path: str
    client_ip: Optional[str] = None
    host: Optional[str] = None
    authorization: Optional[str] = None
    path_tenant_id: Optional[str] = None

    @property
    def endpoint(self) -> str:
        return f"{self.method} {self.path}"


@dataclass(frozen=True)
class Principal:
    user_id: str
    tenant_id: str
    email: str
    role: Role

    @classmethod
    def from_payload(cls, payload: TokenPayload) -> "Principal":
        return cls(user_id=payload.sub, tenant_id=payload.tenant_id, email=payload.email, role=payload.role)


@dataclass(frozen=True)
class TenantRef:
    id: str
    name: str
    subdomain: str
    is_active: bool

    @classmethod
    def from_model(cls, tenant: Tenant) -> "TenantRef":
        return cls(id=tenant.id, name=tenant.name, subdomain=tenant.subdomain, is_active=bool(tenant.is_active))


@dataclass(frozen=True)
class AuthContext:
    request: RequestFacts
    principal: Optional[Principal] = None
    tenant: Optional[TenantRef] = None


StepResult = Union[AuthContext, ServiceError]
Step = Callable[[AuthContext], StepResult]


def run_pipeline(context: AuthContext, steps: Iterable[Step]) -> AuthContext:
    for step in steps:
        result = step(context)
        if isinstance(result, ServiceError):
            raise result
        context = result
    return context


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.lower().startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


def log_access_denied(*, reason: str, context: AuthContext, target_tenant_id: Optional[str]) -> None:
    principal = context.principal
    logger.warning(
        "Access denied (%s): user_id=%s user_role=%s user_tenant=%s tenant_id=%s endpoint=%s ip=%s",
        reason,
        principal.user_id if principal else None,
        principal.role.value if principal else None,
        principal.tenant_id if principal else None,
        target_tenant_id,
        context.request.endpoint,
        context.request.client_ip,
        extra={
            "event": "access_denied",
            "reason": reason,
            "user_id": principal.user_id if principal else None,
            "principal_tenant_id": principal.tenant_id if principal else None,
            "target_tenant_id": target_tenant_id,
            "role": principal.role.value if principal else None,
            "client_ip": context.request.client_ip,
            "endpoint": context.request.endpoint,
        },
    )


# -- 1. tenant resolution ----------------------------------------------------


def resolve_tenant_from_path(directory: TenantDirectory) -> Step:
    def _step(context: AuthContext) -> StepResult:
        tenant_id = context.request.path_tenant_id
        if not tenant_id:
            return BadRequest("Tenant ID required")

        tenant = directory.find_by_id(tenant_id, include_inactive=True)
        if tenant is None:
            return TenantNotFound()
        if not tenant.is_active:
            logger.info("Request for inactive tenant tenant_id=%s endpoint=%s", tenant_id, context.request.endpoint)
            return TenantInactive()
        return replace(context, tenant=TenantRef.from_model(tenant))

    return _step


def resolve_tenant_from_host(directory: TenantDirectory) -> Step:
    """Public routes only: a miss leaves the tenant unset instead of failing."""

    def _step(context: AuthContext) -> StepResult:
        tenant = TenantResolver.resolve_from_host(directory, context.request.host)
        if tenant is None:
            return context
        return replace(context, tenant=TenantRef.from_model(tenant))

    return _step


# -- 2. token verification ---------------------------------------------------


def authenticate(tokens: TokenService) -> Step:
    def _step(context: AuthContext) -> StepResult:
        token = extract_bearer_token(context.request.authorization)
        if token is None:
            return Unauthorized("No token provided")
        try:
            payload = tokens.verify(token, TokenKind.ACCESS)
        except InvalidToken as exc:
            logger.info("JWT verification failed endpoint=%s", context.request.endpoint)
            return exc
        return replace(context, principal=Principal.from_payload(payload))

    return _step


def authenticate_optional(tokens: TokenService) -> Step:
    def _step(context: AuthContext) -> StepResult:
        token = extract_bearer_token(context.request.authorization)
        if token is None:
            return context
        try:
            payload = tokens.verify(token, TokenKind.ACCESS)
        except InvalidToken:
            logger.warning("Optional auth: invalid token provided endpoint=%s", context.request.endpoint)
            return context
        return replace(context, principal=Principal.from_payload(payload))

    return _step


# -- 3. cross-tenant check ---------------------------------------------------


def check_tenant_access(context: AuthContext) -> StepResult:
    if context.principal is None:
        return Unauthorized()
    if context.tenant is None:
        return BadRequest("Tenant context not set")

    if context.principal.tenant_id != context.tenant.id:
        log_access_denied(reason="tenant_mismatch", context=context, target_tenant_id=context.tenant.id)
        return Forbidden("Access denied to this tenant")
    return context


# -- 4. role check -----------------------------------------------------------


def require_role(*roles: Role) -> Step:
    allowed = frozenset(Role(role) for role in roles)

    def _step(context: AuthContext) -> StepResult:
        if context.principal is None:
            return Unauthorized()
        if context.principal.role not in allowed:
            log_access_denied(
                reason="role_denied",
                context=context,
                target_tenant_id=context.tenant.id if context.tenant else None,
            )
            return Forbidden()
        return context

    return _step
