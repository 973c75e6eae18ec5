from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import create_engine, text

from app.core import startup_checks
from app.core.config import DEV_JWT_SECRET, Settings, load_settings, parse_duration

REPO_ROOT = Path(__file__).resolve().parents[1]
ALEMBIC_INI = REPO_ROOT / "alembic.ini"
STRONG_SECRET = "s" * 48
STRONG_REFRESH_SECRET = "r" * 48


@pytest.mark.parametrize(
    ("raw", "seconds"),
    [("90", 90), ("90s", 90), ("15m", 900), ("1h", 3600), ("7d", 604800)],
)
def test_parse_duration(raw, seconds):
    assert parse_duration(raw) == seconds


def test_parse_duration_rejects_garbage():
    with pytest.raises(ValueError):
        parse_duration("soon")


def test_load_settings_defaults_for_dev():
    settings = load_settings({})

    assert settings.is_dev
    assert settings.access_token_ttl_seconds == 3600
    assert settings.refresh_token_ttl_seconds == 604800
    assert settings.jwt_secret != settings.jwt_refresh_secret
    assert "http://localhost:3000" in settings.cors_origins
    assert settings.default_accent_color == "#C0B8A7"


def test_load_settings_reads_short_durations_and_cors():
    settings = load_settings(
        {
            "JWT_EXPIRES_IN": "15m",
            "JWT_REFRESH_EXPIRES_IN": "30d",
            "CORS_ORIGINS": "https://app.example.com, *",
            "RATE_LIMIT_MAX_REQUESTS": "5",
        }
    )

    assert settings.access_token_ttl_seconds == 900
    assert settings.refresh_token_ttl_seconds == 30 * 86400
    assert settings.cors_origins == ("https://app.example.com",)
    assert settings.rate_limit_max_requests == 5


def test_equal_secrets_are_rejected():
    with pytest.raises(RuntimeError, match="must differ"):
        load_settings({"JWT_SECRET": "same-value", "JWT_REFRESH_SECRET": "same-value"})


def test_production_requires_explicit_secrets():
    with pytest.raises(RuntimeError, match="JWT_SECRET is required"):
        load_settings({"ENV": "production", "JWT_REFRESH_SECRET": STRONG_REFRESH_SECRET})

    with pytest.raises(RuntimeError, match="JWT_SECRET is required"):
        load_settings(
            {"ENV": "production", "JWT_SECRET": DEV_JWT_SECRET, "JWT_REFRESH_SECRET": STRONG_REFRESH_SECRET}
        )


def test_production_rejects_short_secrets():
    with pytest.raises(RuntimeError, match="too short"):
        load_settings({"ENV": "prod", "JWT_SECRET": "short-secret", "JWT_REFRESH_SECRET": STRONG_REFRESH_SECRET})


def test_production_accepts_strong_secrets():
    settings = load_settings(
        {
            "ENV": "production",
            "JWT_SECRET": STRONG_SECRET,
            "JWT_REFRESH_SECRET": STRONG_REFRESH_SECRET,
            "DATABASE_URL": "postgresql://db/silvercraft",
        }
    )

    assert settings.is_prod
    assert settings.cors_origins == ()


def test_non_positive_ttl_is_rejected():
    with pytest.raises(RuntimeError, match="positive"):
        Settings(access_token_ttl_seconds=0).validate()


def test_production_environment_rejects_sqlite():
    settings = Settings(
        env="production",
        database_url="sqlite:///./forbidden.db",
        jwt_secret=STRONG_SECRET,
        jwt_refresh_secret=STRONG_REFRESH_SECRET,
    )

    with pytest.raises(RuntimeError, match="SQLite is forbidden"):
        startup_checks.validate_database_environment(settings)


def test_sqlite_allowed_outside_production():
    startup_checks.validate_database_environment(Settings(env="dev", database_url="sqlite:///./dev.db"))


def test_migration_check_fails_without_migration_state(tmp_path: Path):
    engine = create_engine(f"sqlite:///{tmp_path / 'empty.db'}")

    with pytest.raises(RuntimeError, match="no migration state"):
        startup_checks.ensure_migrations_applied(engine=engine, alembic_config_path=ALEMBIC_INI)


def test_migration_check_fails_when_pending_migration(tmp_path: Path):
    engine = create_engine(f"sqlite:///{tmp_path / 'stale.db'}")
    with engine.begin() as connection:
        connection.execute(text("CREATE TABLE alembic_version (version_num VARCHAR(32) NOT NULL)"))
        connection.execute(text("INSERT INTO alembic_version (version_num) VALUES ('0000_ancient')"))

    with pytest.raises(RuntimeError, match="Pending migrations"):
        startup_checks.ensure_migrations_applied(engine=engine, alembic_config_path=ALEMBIC_INI)


def test_migration_check_passes_at_head(tmp_path: Path):
    engine = create_engine(f"sqlite:///{tmp_path / 'head.db'}")
    with engine.begin() as connection:
        connection.execute(text("CREATE TABLE alembic_version (version_num VARCHAR(32) NOT NULL)"))
        connection.execute(
            text("INSERT INTO alembic_version (version_num) VALUES ('0001_create_tenants_and_users')")
        )

    startup_checks.ensure_migrations_applied(engine=engine, alembic_config_path=ALEMBIC_INI)


def test_missing_alembic_config_is_fatal(tmp_path: Path):
    engine = create_engine(f"sqlite:///{tmp_path / 'any.db'}")

    with pytest.raises(RuntimeError, match="alembic config not found"):
        startup_checks.ensure_migrations_applied(engine=engine, alembic_config_path=tmp_path / "missing.ini")


def test_load_settings_reads_trusted_proxies():
    assert load_settings({}).trusted_proxies == ()

    settings = load_settings({"TRUSTED_PROXIES": "10.0.0.1, 10.0.0.2,"})

    assert settings.trusted_proxies == ("10.0.0.1", "10.0.0.2")


def test_revision_helpers_report_script_heads_and_database_state(tmp_path: Path):
    engine = create_engine(f"sqlite:///{tmp_path / 'fresh.db'}")

    assert startup_checks.expected_revisions(ALEMBIC_INI) == {"0001_create_tenants_and_users"}
    assert startup_checks.applied_revisions(engine) == frozenset()
