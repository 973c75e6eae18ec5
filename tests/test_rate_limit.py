from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.core.database import Base, build_engine
from app.core.rate_limiter import InMemoryRateLimiterService
from app.main import create_app
from app.middleware.rate_limit import API_GROUP, AUTH_GROUP, route_group
from conftest import make_settings


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_limiter_blocks_after_limit_and_recovers_after_window():
    clock = _Clock()
    limiter = InMemoryRateLimiterService(limit=2, window_seconds=60, clock=clock)

    first = limiter.check(client_key="1.1.1.1", group="auth")
    second = limiter.check(client_key="1.1.1.1", group="auth")
    third = limiter.check(client_key="1.1.1.1", group="auth")

    assert (first.allowed, first.remaining) == (True, 1)
    assert (second.allowed, second.remaining) == (True, 0)
    assert third.allowed is False
    assert third.retry_after_seconds == 60

    clock.now += 61
    assert limiter.check(client_key="1.1.1.1", group="auth").allowed is True


def test_limiter_buckets_are_per_client_and_group():
    limiter = InMemoryRateLimiterService(limit=1, window_seconds=60, clock=_Clock())

    assert limiter.check(client_key="1.1.1.1", group="auth").allowed is True
    assert limiter.check(client_key="1.1.1.1", group="auth").allowed is False
    assert limiter.check(client_key="2.2.2.2", group="auth").allowed is True
    assert limiter.check(client_key="1.1.1.1", group="api").allowed is True


def test_reset_clears_all_buckets():
    limiter = InMemoryRateLimiterService(limit=1, window_seconds=60, clock=_Clock())
    limiter.check(client_key="k", group="auth")

    limiter.reset()

    assert limiter.check(client_key="k", group="auth").allowed is True


def test_limit_override_per_call():
    limiter = InMemoryRateLimiterService(limit=100, window_seconds=60, clock=_Clock())

    limiter.check(client_key="k", group="auth", limit=1)
    decision = limiter.check(client_key="k", group="auth", limit=1)

    assert decision.allowed is False
    assert decision.limit == 1


@pytest.mark.parametrize(
    ("method", "path", "group"),
    [
        ("POST", "/api/auth/login", AUTH_GROUP),
        ("POST", "/api/auth/register", AUTH_GROUP),
        ("POST", "/api/tenants", AUTH_GROUP),
        ("GET", "/api/tenants/abc", API_GROUP),
        ("PATCH", "/api/tenants/abc", API_GROUP),
        ("GET", "/health", None),
    ],
)
def test_route_groups(method, path, group):
    assert route_group(method, path) == group


@pytest.fixture
def limited_client():
    settings = make_settings(rate_limit_enabled=True, auth_rate_limit_max_requests=2, rate_limit_max_requests=3)
    engine = build_engine(settings)
    Base.metadata.create_all(bind=engine)
    with TestClient(create_app(settings, engine=engine)) as client:
        yield client
    engine.dispose()


def test_auth_endpoints_return_429_after_limit(limited_client):
    body = {"tenantId": "missing", "email": "a@acme.io", "password": "whatever"}

    responses = [limited_client.post("/api/auth/login", json=body) for _ in range(3)]

    assert [response.status_code for response in responses] == [401, 401, 429]
    assert responses[-1].json() == {"error": "Too many requests"}
    assert int(responses[-1].headers["Retry-After"]) > 0
    assert responses[-1].headers["X-RateLimit-Limit"] == "2"
    assert responses[0].headers["X-RateLimit-Remaining"] == "1"


def test_api_group_uses_general_limit(limited_client):
    statuses = [limited_client.get("/api/tenants/abc").status_code for _ in range(4)]

    assert statuses == [404, 404, 404, 429]


def test_health_is_not_rate_limited(limited_client):
    statuses = {limited_client.get("/health").status_code for _ in range(10)}

    assert statuses == {200}


def test_idle_buckets_are_evicted_after_a_window():
    clock = _Clock()
    limiter = InMemoryRateLimiterService(limit=5, window_seconds=60, clock=clock)
    for index in range(10):
        limiter.check(client_key=f"10.0.0.{index}", group="auth")
    assert limiter.bucket_count() == 10

    clock.now += 61
    limiter.check(client_key="10.0.0.200", group="auth")

    assert limiter.bucket_count() == 1


def test_active_buckets_survive_eviction():
    clock = _Clock()
    limiter = InMemoryRateLimiterService(limit=5, window_seconds=60, clock=clock)
    limiter.check(client_key="idle", group="auth")
    clock.now += 30
    limiter.check(client_key="busy", group="auth")

    clock.now += 31
    limiter.check(client_key="busy", group="auth")

    assert limiter.bucket_count() == 1
    assert limiter.check(client_key="busy", group="auth").remaining == 2


def test_forwarded_for_header_does_not_reset_auth_limit(limited_client):
    body = {"tenantId": "missing", "email": "a@acme.io", "password": "whatever"}

    statuses = [
        limited_client.post(
            "/api/auth/login",
            json=body,
            headers={"X-Forwarded-For": f"203.0.113.{index}"},
        ).status_code
        for index in range(3)
    ]

    assert statuses == [401, 401, 429]
    assert limited_client.app.state.rate_limiter.bucket_count() == 1


def test_forwarded_for_is_honoured_behind_trusted_proxy():
    # O peer do TestClient aparece como "testclient".
    settings = make_settings(
        rate_limit_enabled=True,
        auth_rate_limit_max_requests=2,
        trusted_proxies=("testclient",),
    )
    engine = build_engine(settings)
    Base.metadata.create_all(bind=engine)
    body = {"tenantId": "missing", "email": "a@acme.io", "password": "whatever"}
    try:
        with TestClient(create_app(settings, engine=engine)) as client:
            statuses = [
                client.post(
                    "/api/auth/login",
                    json=body,
                    headers={"X-Forwarded-For": f"203.0.113.{index}"},
                ).status_code
                for index in range(3)
            ]
            same_client = [
                client.post(
                    "/api/auth/login",
                    json=body,
                    headers={"X-Forwarded-For": "198.51.100.7, testclient"},
                ).status_code
                for _ in range(3)
            ]
    finally:
        engine.dispose()

    assert statuses == [401, 401, 401]
    assert same_client == [401, 401, 429]
