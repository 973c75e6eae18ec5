from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import Mapping

from dotenv import load_dotenv

DEV_JWT_SECRET = "dev-secret-change-in-production"
DEV_JWT_REFRESH_SECRET = "dev-refresh-secret-change-in-production"
MIN_PRODUCTION_SECRET_LENGTH = 32

_TRUTHY = {"1", "true", "yes", "on"}
_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_DURATION_UNITS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


def parse_duration(value: str) -> int:
    """Converte '90', '90s', '15m', '1h' ou '7d' em segundos."""
    match = _DURATION_PATTERN.match(value or "")
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return int(amount) * _DURATION_UNITS[unit.lower()]


def _env_flag(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


def _env_duration(env: Mapping[str, str], seconds_name: str, short_name: str, default: int) -> int:
    raw_seconds = env.get(seconds_name)
    if raw_seconds:
        return int(raw_seconds)
    raw_short = env.get(short_name)
    if raw_short:
        return parse_duration(raw_short)
    return default


@dataclass(frozen=True)
class Settings:
    env: str = "dev"
    database_url: str = "sqlite:///./silvercraft.db"
    jwt_secret: str = DEV_JWT_SECRET
    jwt_refresh_secret: str = DEV_JWT_REFRESH_SECRET
    jwt_algorithm: str = "HS256"
    access_token_ttl_seconds: int = 3600
    refresh_token_ttl_seconds: int = 7 * 24 * 3600
    bcrypt_rounds: int = 12
    cors_origins: tuple[str, ...] = field(default_factory=tuple)
    rate_limit_enabled: bool = True
    rate_limit_window_seconds: int = 900
    rate_limit_max_requests: int = 100
    auth_rate_limit_max_requests: int = 20
    log_level: str = "INFO"
    default_accent_color: str = "#C0B8A7"
    trusted_proxies: tuple[str, ...] = field(default_factory=tuple)

    @property
    def env_normalized(self) -> str:
        return self.env.strip().lower()

    @property
    def is_dev(self) -> bool:
        return self.env_normalized in {"dev", "development", "local"}

    @property
    def is_prod(self) -> bool:
        return self.env_normalized in {"prod", "production"}

    @property
    def is_test(self) -> bool:
        return self.env_normalized == "test"

    @property
    def uses_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def validate(self) -> "Settings":
        if self.jwt_secret == self.jwt_refresh_secret:
            raise RuntimeError("SECURITY: JWT_SECRET and JWT_REFRESH_SECRET must differ")

        if self.access_token_ttl_seconds <= 0 or self.refresh_token_ttl_seconds <= 0:
            raise RuntimeError("Token TTLs must be positive")

        if self.is_prod:
            for name, value, dev_default in (
                ("JWT_SECRET", self.jwt_secret, DEV_JWT_SECRET),
                ("JWT_REFRESH_SECRET", self.jwt_refresh_secret, DEV_JWT_REFRESH_SECRET),
            ):
                if not value or value == dev_default:
                    raise RuntimeError(f"SECURITY: {name} is required in production")
                if len(value) < MIN_PRODUCTION_SECRET_LENGTH:
                    raise RuntimeError(
                        f"SECURITY: {name} too short (min {MIN_PRODUCTION_SECRET_LENGTH} chars)"
                    )
        return self


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    if env is None:
        load_dotenv()
        env = os.environ

    app_env = env.get("ENV", "dev").strip() or "dev"
    is_dev = app_env.lower() in {"dev", "development", "local"}

    _cors_env = env.get("CORS_ORIGINS", env.get("ALLOWED_ORIGINS", ""))
    cors_origins = [origin.strip() for origin in _cors_env.split(",") if origin.strip() and origin.strip() != "*"]
    if not cors_origins and is_dev:
        cors_origins = ["http://localhost:3000", "http://127.0.0.1:3000"]

    settings = Settings(
        env=app_env,
        database_url=env.get("DATABASE_URL", Settings.database_url),
        jwt_secret=env.get("JWT_SECRET", DEV_JWT_SECRET).strip(),
        jwt_refresh_secret=env.get("JWT_REFRESH_SECRET", DEV_JWT_REFRESH_SECRET).strip(),
        jwt_algorithm=env.get("JWT_ALGORITHM", "HS256"),
        access_token_ttl_seconds=_env_duration(env, "ACCESS_TOKEN_TTL_SECONDS", "JWT_EXPIRES_IN", 3600),
        refresh_token_ttl_seconds=_env_duration(
            env, "REFRESH_TOKEN_TTL_SECONDS", "JWT_REFRESH_EXPIRES_IN", 7 * 24 * 3600
        ),
        bcrypt_rounds=int(env.get("BCRYPT_ROUNDS", "12")),
        cors_origins=tuple(cors_origins),
        rate_limit_enabled=_env_flag(env, "RATE_LIMIT_ENABLED", True),
        rate_limit_window_seconds=int(env.get("RATE_LIMIT_WINDOW_SECONDS", "900")),
        rate_limit_max_requests=int(env.get("RATE_LIMIT_MAX_REQUESTS", "100")),
        auth_rate_limit_max_requests=int(env.get("AUTH_RATE_LIMIT_MAX_REQUESTS", "20")),
        log_level=env.get("LOG_LEVEL", "INFO").upper(),
        default_accent_color=env.get("DEFAULT_ACCENT_COLOR", "#C0B8A7"),
        trusted_proxies=tuple(
            proxy.strip() for proxy in env.get("TRUSTED_PROXIES", "").split(",") if proxy.strip()
        ),
    )
    return settings.validate()
