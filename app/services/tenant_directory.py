from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.errors import Conflict, DuplicateSubdomain, ValidationError
from app.models.tenant import DEFAULT_ACCENT_COLOR, Tenant, Theme
from utils.slug import is_valid_subdomain, normalize_subdomain

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "logo_url", "accent_color", "theme", "custom_domain")


@dataclass
class TenantDraft:
    name: str
    subdomain: str
    accent_color: str | None = None


class TenantDirectory:
    """Lookup and creation of tenant records.

    Read paths only ever return active tenants; pass ``include_inactive=True``
    for direct administrative lookups.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def find_by_id(self, tenant_id: str, *, include_inactive: bool = False) -> Tenant | None:
        if not tenant_id:
            return None
        tenant = self.db.get(Tenant, str(tenant_id))
        if tenant is None:
            return None
        if not tenant.is_active and not include_inactive:
            return None
        return tenant

    def find_by_subdomain(self, subdomain: str) -> Tenant | None:
        normalized = normalize_subdomain(subdomain)
        if not normalized:
            return None
        return (
            self.db.query(Tenant)
            .filter(Tenant.subdomain == normalized, Tenant.is_active.is_(True))
            .first()
        )

    def subdomain_taken(self, subdomain: str) -> bool:
        normalized = normalize_subdomain(subdomain)
        return self.db.query(Tenant.id).filter(Tenant.subdomain == normalized).first() is not None

    def create(self, draft: TenantDraft) -> Tenant:
        subdomain = normalize_subdomain(draft.subdomain)
        if not is_valid_subdomain(subdomain):
            raise ValidationError(
                details=[{"path": "subdomain", "message": "Use 3-100 lowercase letters, digits or hyphens"}]
            )

        # Checagem prévia; a constraint UNIQUE do banco cobre a corrida entre requests.
        if self.subdomain_taken(subdomain):
            raise DuplicateSubdomain()

        tenant = Tenant(
            name=draft.name.strip(),
            subdomain=subdomain,
            accent_color=draft.accent_color or DEFAULT_ACCENT_COLOR,
        )
        self.db.add(tenant)
        try:
            self.db.flush()
        except IntegrityError as exc:
            logger.warning("tenant insert hit unique constraint subdomain=%s", subdomain)
            raise DuplicateSubdomain() from exc
        return tenant

    def update(self, tenant: Tenant, changes: Mapping[str, Any]) -> Tenant:
        applied = {key: value for key, value in changes.items() if key in UPDATABLE_FIELDS}

        if "custom_domain" in applied:
            applied["custom_domain"] = self._normalize_custom_domain(tenant, applied["custom_domain"])
        if "theme" in applied and applied["theme"] is not None:
            applied["theme"] = Theme(applied["theme"])

        for key, value in applied.items():
            setattr(tenant, key, value)
        try:
            self.db.flush()
        except IntegrityError as exc:
            raise Conflict("Custom domain already in use") from exc
        return tenant

    def set_active(self, tenant: Tenant, active: bool) -> Tenant:
        tenant.is_active = active
        self.db.flush()
        return tenant

    def _normalize_custom_domain(self, tenant: Tenant, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip().lower()
        if not normalized:
            return None
        in_use = (
            self.db.query(Tenant.id)
            .filter(func.lower(Tenant.custom_domain) == normalized, Tenant.id != tenant.id)
            .first()
        )
        if in_use is not None:
            raise Conflict("Custom domain already in use")
        return normalized
