from __future__ import annotations

from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.api.error_handling import register_exception_handlers, validation_details
from app.core.errors import Conflict, Forbidden, InternalError, NotFound, Unauthorized, ValidationError


def _build_client() -> TestClient:
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/conflict")
    def conflict():
        raise Conflict("Subdomain already taken")

    @app.get("/validation")
    def validation():
        raise ValidationError(details=[{"path": "subdomain", "message": "bad"}])

    @app.get("/unauthorized")
    def unauthorized():
        raise Unauthorized()

    @app.get("/boom")
    def boom():
        raise RuntimeError("connection string postgresql://user:pw@db")

    @app.get("/items/{item_id}")
    def item(item_id: int):
        return {"id": item_id}

    return TestClient(app, raise_server_exceptions=False)


def test_service_errors_use_error_envelope():
    client = _build_client()

    conflict = client.get("/conflict")
    validation = client.get("/validation")

    assert conflict.status_code == 400
    assert conflict.json() == {"error": "Subdomain already taken"}
    assert validation.status_code == 400
    assert validation.json() == {
        "error": "Validation failed",
        "details": [{"path": "subdomain", "message": "bad"}],
    }


def test_unauthorized_sets_www_authenticate():
    response = _build_client().get("/unauthorized")

    assert response.status_code == 401
    assert response.json() == {"error": "Authentication required"}
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_unexpected_errors_do_not_leak_internals():
    response = _build_client().get("/boom")

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}
    assert "postgresql" not in response.text


def test_request_validation_is_mapped_to_400_with_paths():
    response = _build_client().get("/items/not-a-number")

    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Validation failed"
    assert body["details"][0]["path"] == "item_id"


def test_unknown_route_uses_error_envelope():
    response = _build_client().get("/nope")

    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


def test_validation_details_strip_location_prefix():
    details = validation_details(
        [
            {"loc": ("body", "adminEmail"), "msg": "value is not a valid email address"},
            {"loc": ("body", "items", 0, "name"), "msg": "Field required"},
        ]
    )

    assert details == [
        {"path": "adminEmail", "message": "value is not a valid email address"},
        {"path": "items.0.name", "message": "Field required"},
    ]


def test_error_taxonomy_status_codes():
    assert ValidationError.status_code == 400
    assert Conflict.status_code == 400
    assert Unauthorized.status_code == 401
    assert Forbidden.status_code == 403
    assert NotFound.status_code == 404
    assert InternalError.status_code == 500
