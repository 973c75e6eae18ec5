from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from sqlalchemy.orm import Session

from app.core.database import transaction
from app.core.errors import Conflict, InvalidToken, NotFound, Unauthorized
from app.models.tenant import Tenant
from app.models.user import Role, User
from app.services.passwords import PasswordHasher
from app.services.tenant_directory import TenantDirectory, TenantDraft
from app.services.tokens import TokenKind, TokenPayload, TokenService
from app.services.users import (
    DUPLICATE_EMAIL_MESSAGE,
    create_user,
    find_user_by_id,
    find_user_by_tenant_and_email,
    normalize_email,
    update_user_last_login,
)

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"
INVALID_REFRESH_TOKEN = "Invalid or expired refresh token"


@dataclass(frozen=True)
class TokenPair:
    token: str
    refresh_token: str
    expires_in: int


@dataclass(frozen=True)
class AuthResult:
    user: User
    tokens: TokenPair


@dataclass(frozen=True)
class ProvisionResult:
    tenant: Tenant
    admin: User
    tokens: TokenPair


@dataclass(frozen=True)
class RefreshResult:
    token: str
    expires_in: int


def _payload_for(user: User) -> TokenPayload:
    return TokenPayload(sub=user.id, tenant_id=user.tenant_id, email=user.email, role=Role(user.role))


def _issue_pair(tokens: TokenService, user: User) -> TokenPair:
    payload = _payload_for(user)
    return TokenPair(
        token=tokens.issue_access_token(payload),
        refresh_token=tokens.issue_refresh_token(payload),
        expires_in=tokens.access_token_ttl_seconds,
    )


def register(
    db: Session,
    *,
    tokens: TokenService,
    hasher: PasswordHasher,
    tenant_id: str,
    email: str,
    password: str,
    name: str,
    role: Role = Role.STAFF,
) -> AuthResult:
    email = normalize_email(email)

    if find_user_by_tenant_and_email(db, tenant_id, email) is not None:
        raise Conflict(DUPLICATE_EMAIL_MESSAGE)

    if TenantDirectory(db).find_by_id(tenant_id) is None:
        raise NotFound("Tenant not found or inactive")

    hashed_password = hasher.hash(password)
    with transaction(db):
        user = create_user(
            db,
            tenant_id=tenant_id,
            email=email,
            name=name,
            hashed_password=hashed_password,
            role=role,
        )

    logger.info("User registered successfully user_id=%s tenant_id=%s", user.id, user.tenant_id)
    return AuthResult(user=user, tokens=_issue_pair(tokens, user))


def login(
    db: Session,
    *,
    tokens: TokenService,
    hasher: PasswordHasher,
    tenant_id: str,
    email: str,
    password: str,
) -> AuthResult:
    """Authenticate within one tenant.

    Missing user, inactive user, inactive tenant and wrong password all fail
    with the same message, and a missing user still pays for one hash check.
    """
    user = find_user_by_tenant_and_email(db, tenant_id, email)
    if user is None:
        hasher.dummy_verify(password)
        logger.info("Login failed tenant_id=%s reason=unknown_user", tenant_id)
        raise Unauthorized(INVALID_CREDENTIALS)

    password_ok = hasher.verify(password, user.hashed_password)
    tenant = TenantDirectory(db).find_by_id(user.tenant_id)
    if not password_ok or not user.is_active or tenant is None:
        logger.info("Login failed tenant_id=%s user_id=%s", tenant_id, user.id)
        raise Unauthorized(INVALID_CREDENTIALS)

    with transaction(db):
        update_user_last_login(db, user)

    logger.info("User logged in successfully user_id=%s tenant_id=%s", user.id, user.tenant_id)
    return AuthResult(user=user, tokens=_issue_pair(tokens, user))


def refresh_access_token(*, tokens: TokenService, refresh_token: str) -> RefreshResult:
    try:
        payload = tokens.verify(refresh_token, TokenKind.REFRESH)
    except InvalidToken:
        raise Unauthorized(INVALID_REFRESH_TOKEN) from None

    # O refresh token não é rotacionado; só um novo access token é emitido.
    return RefreshResult(
        token=tokens.issue_access_token(payload),
        expires_in=tokens.access_token_ttl_seconds,
    )


def provision_tenant(
    db: Session,
    *,
    tokens: TokenService,
    hasher: PasswordHasher,
    name: str,
    subdomain: str,
    admin_email: str,
    admin_password: str,
    admin_name: str,
    accent_color: str | None = None,
    default_accent_color: str | None = None,
) -> ProvisionResult:
    """Create a tenant and its first admin as one unit: both or neither."""
    directory = TenantDirectory(db)
    hashed_password = hasher.hash(admin_password)

    with transaction(db):
        tenant = directory.create(
            TenantDraft(name=name, subdomain=subdomain, accent_color=accent_color or default_accent_color)
        )
        admin = create_user(
            db,
            tenant_id=tenant.id,
            email=admin_email,
            name=admin_name,
            hashed_password=hashed_password,
            role=Role.ADMIN,
        )

    logger.info(
        "Tenant created successfully tenant_id=%s subdomain=%s admin_id=%s",
        tenant.id,
        tenant.subdomain,
        admin.id,
    )
    return ProvisionResult(tenant=tenant, admin=admin, tokens=_issue_pair(tokens, admin))


def get_tenant(db: Session, tenant_id: str) -> Tenant:
    tenant = TenantDirectory(db).find_by_id(tenant_id)
    if tenant is None:
        raise NotFound("Tenant not found")
    return tenant


def update_tenant(db: Session, tenant_id: str, changes: Mapping[str, Any]) -> Tenant:
    """Apply only the provided branding fields.

    Who may call this is decided by the auth pipeline in front of it.
    """
    directory = TenantDirectory(db)
    tenant = directory.find_by_id(tenant_id)
    if tenant is None:
        raise NotFound("Tenant not found")

    with transaction(db):
        directory.update(tenant, changes)

    logger.info("Tenant updated tenant_id=%s fields=%s", tenant_id, sorted(changes))
    return tenant


def set_tenant_active(db: Session, tenant_id: str, active: bool) -> Tenant:
    # Operação administrativa: precisa enxergar tenants inativos.
    directory = TenantDirectory(db)
    tenant = directory.find_by_id(tenant_id, include_inactive=True)
    if tenant is None:
        raise NotFound("Tenant not found")

    with transaction(db):
        directory.set_active(tenant, active)

    logger.warning("Tenant status changed tenant_id=%s is_active=%s", tenant_id, active)
    return tenant


def describe_principal(db: Session, *, user_id: str, tenant_id: str) -> User:
    user = find_user_by_id(db, user_id)
    if user is None or user.tenant_id != tenant_id or not user.is_active:
        raise Unauthorized()
    return user
