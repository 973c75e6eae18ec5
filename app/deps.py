# app/deps.py
from __future__ import annotations

import logging

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.database import get_db
from app.core.request_context import set_request_context
from app.models.user import Role
from app.services.auth_pipeline import (
    AuthContext,
    RequestFacts,
    authenticate,
    authenticate_optional,
    check_tenant_access,
    require_role,
    resolve_tenant_from_host,
    resolve_tenant_from_path,
    run_pipeline,
)
from app.services.passwords import PasswordHasher
from app.services.tenant_directory import TenantDirectory
from app.services.tokens import TokenService

logger = logging.getLogger(__name__)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_password_hasher(request: Request) -> PasswordHasher:
    return request.app.state.password_hasher


def _forwarded_hops(request: Request) -> list[str]:
    raw = request.headers.get("X-Forwarded-For") or ""
    return [hop.strip() for hop in raw.split(",") if hop.strip()]


def client_ip_from_request(request: Request) -> str | None:
    """IP do peer; X-Forwarded-For só vale quando o peer é um proxy confiável."""
    peer = request.client.host if request.client else None
    settings = getattr(request.app.state, "settings", None)
    trusted = settings.trusted_proxies if settings is not None else ()
    if peer is None or peer not in trusted:
        return peer

    # Da direita para a esquerda: o primeiro hop fora da lista é o cliente.
    for hop in reversed(_forwarded_hops(request)):
        if hop not in trusted:
            return hop
    return peer


def build_request_facts(request: Request) -> RequestFacts:
    host = request.headers.get("X-Forwarded-Host") or request.headers.get("Host")
    path_tenant = request.path_params.get("tenant_id")
    return RequestFacts(
        method=request.method,
        path=request.url.path,
        client_ip=client_ip_from_request(request),
        host=host,
        authorization=request.headers.get("Authorization"),
        path_tenant_id=str(path_tenant) if path_tenant else None,
    )


def _bind_log_context(request: Request, context: AuthContext) -> AuthContext:
    tenant_id = context.tenant.id if context.tenant else None
    user_id = context.principal.user_id if context.principal else None
    if tenant_id is None and context.principal is not None:
        tenant_id = context.principal.tenant_id
    set_request_context(tenant_id=tenant_id, user_id=user_id)
    # Lido pelo ObservabilityMiddleware na linha "request completed".
    request.state.auth_context = context
    return context


def tenant_member(*roles: Role):
    """Path tenant -> token -> cross-tenant check, plus a role check when roles are given."""

    def _dependency(
        request: Request,
        db: Session = Depends(get_db),
        tokens: TokenService = Depends(get_token_service),
    ) -> AuthContext:
        steps = [
            resolve_tenant_from_path(TenantDirectory(db)),
            authenticate(tokens),
            check_tenant_access,
        ]
        if roles:
            steps.append(require_role(*roles))
        context = run_pipeline(AuthContext(request=build_request_facts(request)), steps)
        return _bind_log_context(request, context)

    return _dependency


def current_principal(
    request: Request,
    tokens: TokenService = Depends(get_token_service),
) -> AuthContext:
    context = run_pipeline(AuthContext(request=build_request_facts(request)), [authenticate(tokens)])
    return _bind_log_context(request, context)


def public_tenant_context(
    request: Request,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> AuthContext:
    """Storefront routes: tenant from the Host header, token optional, never rejects."""
    context = run_pipeline(
        AuthContext(request=build_request_facts(request)),
        [resolve_tenant_from_host(TenantDirectory(db)), authenticate_optional(tokens)],
    )
    return _bind_log_context(request, context)
