from __future__ import annotations

import enum
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Enum, String, Text, func
from sqlalchemy.orm import relationship

from app.core.database import Base

DEFAULT_ACCENT_COLOR = "#C0B8A7"


class Theme(str, enum.Enum):
    LIGHT = "light"
    DARK = "dark"
    AUTO = "auto"


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))
    name = Column(String(255), nullable=False)
    subdomain = Column(String(100), unique=True, index=True, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    # Branding / plano: únicos campos que o admin do tenant pode alterar.
    logo_url = Column(Text, nullable=True)
    accent_color = Column(String(7), nullable=False, default=DEFAULT_ACCENT_COLOR)
    theme = Column(
        Enum(Theme, native_enum=False, length=10, values_callable=lambda members: [m.value for m in members]),
        nullable=False,
        default=Theme.LIGHT,
    )
    plan = Column(String(50), nullable=False, default="free")
    custom_domain = Column(String(255), unique=True, index=True, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    users = relationship("User", back_populates="tenant")
