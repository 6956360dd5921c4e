"""
Tests for health, readiness and root endpoints.
"""
from core import dependencies as deps


def test_root_endpoint(client):
    """Test root endpoint returns API information."""
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Patient Management System API",
        "data": {
            "version": "1.0.0",
            "endpoints": {"patients": "/api/patients", "health": "/api/health"},
        },
    }


def test_health_endpoint(client):
    """Test /api/health liveness probe."""
    response = client.get("/api/health")
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "API is healthy"
    assert body["data"]["timestamp"].endswith("Z")


def test_ready_endpoint(client):
    """Test /api/ready reports the pool when the database answers."""
    response = client.get("/api/ready")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "ready"
    assert data["database"]["status"] == "ok"
    assert data["database"]["pool"]["max"] == 4
    assert data["database"]["pool"]["in_use"] == 0


def test_ready_endpoint_without_pool(client, monkeypatch):
    """Test /api/ready returns 503 when the pool is missing."""
    monkeypatch.setattr(deps, "_pool", None)
    response = client.get("/api/ready")
    assert response.status_code == 503
    body = response.json()
    assert body["success"] is False
    assert body["data"]["status"] == "not_ready"
    assert body["data"]["database"]["status"] == "unavailable"


def test_ready_endpoint_with_closed_pool(client, pool):
    pool.close()
    response = client.get("/api/ready")
    assert response.status_code == 503
    assert response.json()["code"] == "DATABASE_ERROR"
