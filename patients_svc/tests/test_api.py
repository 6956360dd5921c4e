"""
Tests for application-wide behavior: error envelopes, CORS and lifespan.
"""
from fastapi.testclient import TestClient

from core import dependencies as deps
from core.config import Settings
from core.exceptions import DatabaseError
import main
from main import create_app

from conftest import JUAN


def test_unknown_route_returns_envelope(client):
    response = client.get("/api/nothing-here")
    assert response.status_code == 404
    assert response.json() == {"success": False, "message": "Route not found"}


def test_wrong_method_returns_envelope(client):
    response = client.patch("/api/patients/1", json=JUAN)
    assert response.status_code == 405
    assert response.json()["success"] is False
    assert "allow" in {k.lower() for k in response.headers.keys()}


def test_database_error_is_opaque(test_app, patient_service, monkeypatch):
    """Data-store failures answer 500 with a generic message and code only."""
    def broken(*args, **kwargs):
        raise DatabaseError(operation="list_patients", code="OperationalError", detail="disk I/O error")

    monkeypatch.setattr(patient_service, "list_patients", broken)
    response = TestClient(test_app).get("/api/patients")
    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Database error", "code": "OperationalError"}
    assert "disk" not in response.text


def test_unexpected_error_returns_generic_500(test_app, patient_service, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("secret internals")

    monkeypatch.setattr(patient_service, "get_patient", broken)
    client = TestClient(test_app, raise_server_exceptions=False)
    response = client.get("/api/patients/1")
    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Internal server error"}
    assert "secret" not in response.text


def test_cors_allows_configured_origin(client):
    response = client.options(
        "/api/patients",
        headers={
            "Origin": "http://localhost:4200",
            "Access-Control-Request-Method": "POST",
        }
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:4200"


def test_cors_rejects_other_origin(client):
    response = client.get("/api/health", headers={"Origin": "http://evil.example"})
    assert "access-control-allow-origin" not in response.headers


def test_lifespan_creates_and_closes_pool(tmp_path):
    """The application lifespan owns the process pool."""
    settings = Settings(db_path=str(tmp_path / "lifespan.db"), pool_min=1, pool_max=2)
    app = create_app(settings)

    with TestClient(app) as client:
        assert deps.get_pool().stats()["size"] >= 1
        created = client.post("/api/patients", json=JUAN)
        assert created.status_code == 201
        assert client.get("/api/ready").status_code == 200

    assert deps._pool is None


def test_lifespan_configures_logging_from_settings(tmp_path, monkeypatch):
    calls = []
    monkeypatch.setattr(main, "setup_logging", lambda **kwargs: calls.append(kwargs))
    settings = Settings(
        _env_file=None,
        db_path=str(tmp_path / "logging.db"),
        pool_min=1,
        pool_max=2,
        log_level="warning",
        log_format="text",
    )

    with TestClient(create_app(settings)):
        pass

    assert calls == [{"level": "WARNING", "json_format": False}]
