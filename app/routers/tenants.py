# app/routers/tenants.py
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.core.config import Settings
from app.core.errors import TenantNotFound
from app.deps import get_password_hasher, get_settings, get_token_service, public_tenant_context, tenant_member
from app.models.user import Role
from app.schemas.auth import UserOut
from app.schemas.tenant import (
    ProvisionOut,
    StorefrontOut,
    TenantCreate,
    TenantOut,
    TenantPublicOut,
    TenantUpdate,
    TenantViewer,
)
from app.services import identity
from app.services.auth_pipeline import AuthContext
from app.services.passwords import PasswordHasher
from app.services.tokens import TokenService

router = APIRouter(prefix="/api/tenants", tags=["tenants"])


@router.post("", response_model=ProvisionOut, status_code=status.HTTP_201_CREATED)
def create_tenant(
    payload: TenantCreate,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
    hasher: PasswordHasher = Depends(get_password_hasher),
    settings: Settings = Depends(get_settings),
):
    result = identity.provision_tenant(
        db,
        tokens=tokens,
        hasher=hasher,
        name=payload.name,
        subdomain=payload.subdomain,
        accent_color=payload.accent_color,
        admin_email=payload.admin_email,
        admin_password=payload.admin_password,
        admin_name=payload.admin_name,
        default_accent_color=settings.default_accent_color,
    )
    return ProvisionOut(
        tenant=TenantOut.model_validate(result.tenant),
        admin=UserOut.model_validate(result.admin),
        token=result.tokens.token,
        refresh_token=result.tokens.refresh_token,
        expires_in=result.tokens.expires_in,
    )


# Precisa vir antes de /{tenant_id} para "current" não ser lido como id.
@router.get("/current", response_model=StorefrontOut)
def current_tenant(
    context: AuthContext = Depends(public_tenant_context),
    db: Session = Depends(get_db),
):
    if context.tenant is None:
        raise TenantNotFound()

    tenant = identity.get_tenant(db, context.tenant.id)
    viewer = None
    principal = context.principal
    if principal is not None and principal.tenant_id == tenant.id:
        viewer = TenantViewer(user_id=principal.user_id, role=principal.role.value)

    return StorefrontOut(tenant=TenantPublicOut.model_validate(tenant), viewer=viewer)


@router.get("/{tenant_id}", response_model=TenantOut)
def read_tenant(
    tenant_id: str,
    context: AuthContext = Depends(tenant_member()),
    db: Session = Depends(get_db),
):
    return TenantOut.model_validate(identity.get_tenant(db, context.tenant.id))


@router.patch("/{tenant_id}", response_model=TenantOut)
def update_tenant(
    tenant_id: str,
    payload: TenantUpdate,
    context: AuthContext = Depends(tenant_member(Role.ADMIN)),
    db: Session = Depends(get_db),
):
    tenant = identity.update_tenant(db, context.tenant.id, payload.changes())
    return TenantOut.model_validate(tenant)
