"""Checks que rodam antes do serviço aceitar requests fora do ambiente de teste."""
from __future__ import annotations

import logging
from pathlib import Path

from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy.engine import Engine

from app.core.config import Settings

logger = logging.getLogger(__name__)
SCHEMA_PREFIX = "[SCHEMA]"


def validate_database_environment(settings: Settings) -> None:
    if not (settings.is_prod and settings.uses_sqlite):
        return
    logger.critical("%s env=%s refuses database_url=sqlite", SCHEMA_PREFIX, settings.env_normalized)
    raise RuntimeError("SQLite is forbidden in production environment")


def expected_revisions(alembic_config_path: Path) -> frozenset[str]:
    """Heads of the revision scripts shipped next to ``alembic.ini``."""
    if not alembic_config_path.exists():
        logger.critical("%s missing %s", SCHEMA_PREFIX, alembic_config_path)
        raise RuntimeError("alembic config not found")

    config = Config(str(alembic_config_path))
    config.set_main_option("script_location", str(alembic_config_path.parent / "alembic"))
    return frozenset(ScriptDirectory.from_config(config).get_heads())


def applied_revisions(engine: Engine) -> frozenset[str]:
    # Vazio quando a tabela alembic_version não existe.
    with engine.connect() as connection:
        return frozenset(MigrationContext.configure(connection).get_current_heads())


def ensure_migrations_applied(*, engine: Engine, alembic_config_path: Path) -> None:
    wanted = expected_revisions(alembic_config_path)
    applied = applied_revisions(engine)

    if not applied:
        logger.critical("%s database never stamped; run `alembic upgrade head`", SCHEMA_PREFIX)
        raise RuntimeError("Database has no migration state")

    if applied != wanted:
        logger.critical("%s behind head applied=%s wanted=%s", SCHEMA_PREFIX, sorted(applied), sorted(wanted))
        raise RuntimeError("Pending migrations detected")

    logger.info("%s at head %s", SCHEMA_PREFIX, ",".join(sorted(applied)))
