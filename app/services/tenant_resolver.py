from __future__ import annotations

import logging
from urllib.parse import urlsplit

from sqlalchemy.exc import SQLAlchemyError

from app.models.tenant import Tenant
from app.services.tenant_directory import TenantDirectory
from utils.slug import normalize_subdomain

logger = logging.getLogger(__name__)

RESERVED_SUBDOMAINS = frozenset({"www", "api"})


class TenantResolver:
    """Resolve tenant identity from the leftmost label of the request host."""

    @staticmethod
    def normalize_host(host: str | None) -> str:
        normalized = (host or "").split(",")[0].strip().lower()
        if not normalized:
            return ""

        if "://" in normalized:
            return (urlsplit(normalized).hostname or "").lower()

        normalized = normalized.split("/")[0].strip()
        if normalized.startswith("["):
            # IPv6 literal, nunca é subdomínio
            return ""
        if ":" in normalized:
            normalized = normalized.split(":")[0].strip()
        return normalized.rstrip(".")

    @classmethod
    def extract_subdomain(cls, host: str | None) -> str | None:
        normalized_host = cls.normalize_host(host)
        if not normalized_host:
            return None

        labels = normalized_host.split(".")
        if len(labels) < 2:
            return None
        if all(label.isdigit() for label in labels):
            return None

        subdomain = normalize_subdomain(labels[0])
        if not subdomain or subdomain in RESERVED_SUBDOMAINS:
            return None
        return subdomain

    @classmethod
    def resolve_from_host(cls, directory: TenantDirectory, host: str | None) -> Tenant | None:
        """Best-effort lookup: any miss or lookup failure yields ``None``."""
        subdomain = cls.extract_subdomain(host)
        if subdomain is None:
            return None

        try:
            tenant = directory.find_by_subdomain(subdomain)
        except SQLAlchemyError:
            logger.exception("Error fetching tenant by subdomain subdomain=%s", subdomain)
            return None

        if tenant is None:
            logger.info("No active tenant for subdomain=%s", subdomain)
        return tenant
