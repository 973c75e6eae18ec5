from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.core.database import Base, build_engine
from app.main import create_app

TEST_PASSWORD = "longpass1"


def make_settings(**overrides) -> Settings:
    values = {
        "env": "test",
        "database_url": "sqlite://",
        "bcrypt_rounds": 4,
        "rate_limit_enabled": False,
        "cors_origins": ("http://localhost:3000",),
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def engine(settings):
    engine = build_engine(settings)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def application(settings, engine):
    return create_app(settings, engine=engine)


@pytest.fixture
def client(application):
    with TestClient(application, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def db(application):
    session = application.state.session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def provision(client):
    """POST /api/tenants and return the JSON body; fails the test on non-201."""

    def _provision(subdomain: str = "acme", *, name: str | None = None, email: str | None = None) -> dict:
        response = client.post(
            "/api/tenants",
            json={
                "name": name or subdomain.title(),
                "subdomain": subdomain,
                "adminEmail": email or f"admin@{subdomain}.io",
                "adminPassword": TEST_PASSWORD,
                "adminName": "Ann",
            },
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _provision


def auth_header(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
