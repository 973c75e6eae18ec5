from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import AnyHttpUrl, EmailStr, Field, model_validator

from app.models.tenant import Theme
from app.schemas.auth import UserOut
from app.schemas.common import CamelModel

SUBDOMAIN_REGEX = r"^[a-z0-9-]+$"
HEX_COLOR_REGEX = r"^#[0-9A-Fa-f]{6}$"

_NON_NULLABLE_UPDATE_FIELDS = ("name", "accent_color", "theme")


class TenantCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    subdomain: str = Field(..., min_length=3, max_length=100, pattern=SUBDOMAIN_REGEX)
    accent_color: Optional[str] = Field(default=None, pattern=HEX_COLOR_REGEX)
    admin_email: EmailStr
    admin_password: str = Field(..., min_length=8, max_length=200)
    admin_name: str = Field(..., min_length=1, max_length=255)


class TenantUpdate(CamelModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    logo_url: Optional[AnyHttpUrl] = None
    accent_color: Optional[str] = Field(default=None, pattern=HEX_COLOR_REGEX)
    theme: Optional[Theme] = None
    custom_domain: Optional[str] = Field(default=None, max_length=255)

    @model_validator(mode="after")
    def _reject_null_for_required_columns(self) -> "TenantUpdate":
        for field_name in _NON_NULLABLE_UPDATE_FIELDS:
            if field_name in self.model_fields_set and getattr(self, field_name) is None:
                raise ValueError(f"{field_name} cannot be null")
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True, mode="json")


class TenantOut(CamelModel):
    id: str
    name: str
    subdomain: str
    logo_url: Optional[str] = None
    accent_color: str
    theme: Theme
    plan: str
    custom_domain: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TenantPublicOut(CamelModel):
    id: str
    name: str
    subdomain: str
    logo_url: Optional[str] = None
    accent_color: str
    theme: Theme


class TenantViewer(CamelModel):
    user_id: str
    role: str


class StorefrontOut(CamelModel):
    tenant: TenantPublicOut
    viewer: Optional[TenantViewer] = None


class ProvisionOut(CamelModel):
    tenant: TenantOut
    admin: UserOut
    token: str
    refresh_token: str
    expires_in: int
