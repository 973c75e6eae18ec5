from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field

from app.models.user import Role
from app.schemas.common import CamelModel


class RegisterIn(CamelModel):
    tenant_id: str = Field(..., min_length=1, max_length=36)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=200)
    name: str = Field(..., min_length=1, max_length=255)
    role: Role = Role.STAFF


class LoginIn(CamelModel):
    tenant_id: str = Field(..., min_length=1, max_length=36)
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=200)


class RefreshIn(CamelModel):
    refresh_token: str = Field(..., min_length=1)


class UserOut(CamelModel):
    id: str
    tenant_id: str
    email: str
    name: str
    role: Role
    is_active: bool = True
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None


class AuthOut(CamelModel):
    user: UserOut
    token: str
    refresh_token: str
    expires_in: int


class RefreshOut(CamelModel):
    token: str
    expires_in: int
