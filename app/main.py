import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine

from app.api.error_handling import register_exception_handlers
from app.core.config import Settings, load_settings
from app.core.database import Base, build_engine, build_session_factory
from app.core.logging_setup import configure_logging
from app.core.rate_limiter import InMemoryRateLimiterService, RateLimiterService
from app.core.startup_checks import ensure_migrations_applied, validate_database_environment
from app.middleware.observability import ObservabilityMiddleware
from app.middleware.rate_limit import RateLimitMiddleware
import app.models  # garante que os models são importados antes do create_all
from app.routers.auth import router as auth_router
from app.routers.tenants import router as tenants_router
from app.services.passwords import PasswordHasher
from app.services.tokens import TokenService

logger = logging.getLogger(__name__)
STARTUP_PREFIX = "[STARTUP]"
REPO_ROOT = Path(__file__).resolve().parents[1]
ALEMBIC_CONFIG_PATH = Path(os.getenv("ALEMBIC_CONFIG", str(REPO_ROOT / "alembic.ini")))


def _startup_tasks(app: FastAPI) -> None:
    settings: Settings = app.state.settings
    engine: Engine = app.state.engine
    if settings.is_test:
        logger.info("%s skipped in test environment", STARTUP_PREFIX)
        return

    try:
        validate_database_environment(settings)
        if settings.uses_sqlite:
            # Dev: SQLite cria as tabelas direto. Em produção, use migrations.
            Base.metadata.create_all(bind=engine)
        else:
            ensure_migrations_applied(engine=engine, alembic_config_path=ALEMBIC_CONFIG_PATH)
    except Exception:
        logger.exception("%s ERROR startup failed", STARTUP_PREFIX)
        raise
    logger.info("%s ready env=%s", STARTUP_PREFIX, settings.env_normalized)


@asynccontextmanager
async def lifespan(app: FastAPI):
    _startup_tasks(app)
    yield


def create_app(
    settings: Settings | None = None,
    *,
    engine: Engine | None = None,
    rate_limiter: RateLimiterService | None = None,
) -> FastAPI:
    settings = settings or load_settings()
    engine = engine or build_engine(settings)

    application = FastAPI(
        title="Silvercraft API",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    application.state.settings = settings
    application.state.engine = engine
    application.state.session_factory = build_session_factory(engine)
    application.state.token_service = TokenService(settings)
    application.state.password_hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    application.state.rate_limiter = rate_limiter or InMemoryRateLimiterService(
        limit=settings.rate_limit_max_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )

    # Último middleware adicionado é o mais externo.
    application.add_middleware(
        RateLimitMiddleware,
        rate_limiter=application.state.rate_limiter,
        auth_limit=settings.auth_rate_limit_max_requests,
        enabled=settings.rate_limit_enabled,
    )
    application.add_middleware(ObservabilityMiddleware)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(application)

    application.include_router(auth_router)
    application.include_router(tenants_router)

    @application.get("/health")
    def health():
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    return application


_settings = load_settings()
configure_logging(_settings.log_level)
app = create_app(_settings)
