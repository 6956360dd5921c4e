"""
Shared pytest fixtures for API tests.

Key patterns:

1. Database Isolation: Each test gets a fresh temporary database file
2. DI Override: app.dependency_overrides injects the test service
3. Real application: create_app() with the production middleware and routers

Fixture Hierarchy:
    db_path → pool → patient_repo → patient_service → test_app → client
"""
import os
import tempfile

import pytest
from fastapi.testclient import TestClient

# Settings are read from the environment; DB_PATH is required
os.environ.setdefault("DB_PATH", os.path.join(tempfile.gettempdir(), "patients-svc-test.db"))

from core import dependencies as deps
from core.config import Settings
from main import create_app
from repositories import PatientRepository, open_pool
from schemas import PatientPayload
from services import PatientService


JUAN = {
    "firstName": "Juan",
    "lastName": "Perez",
    "email": "juan@test.com",
    "phone": "0999999999",
    "birthDate": "1990-01-15",
}


def make_patient_body(**overrides):
    """A valid request body, with selected fields replaced."""
    body = dict(JUAN)
    body.update(overrides)
    return body


def make_payload(**overrides) -> PatientPayload:
    """A valid PatientPayload, with selected (camelCase) fields replaced."""
    return PatientPayload.model_validate(make_patient_body(**overrides))


@pytest.fixture
def db_path(tmp_path):
    """Path of a fresh SQLite database file inside a per-test directory."""
    return str(tmp_path / "patients.db")


@pytest.fixture
def pool(db_path):
    """Open a small pool on the test database; closed after the test."""
    pool = open_pool(db_path=db_path, pool_min=1, pool_max=4, pool_increment=1, timeout=5.0)
    yield pool
    pool.close()


@pytest.fixture
def patient_repo(pool):
    """Create a PatientRepository with the test pool."""
    return PatientRepository(pool=pool)


@pytest.fixture
def patient_service(patient_repo):
    """Create a PatientService with the test repository."""
    return PatientService(patient_repository=patient_repo)


@pytest.fixture
def test_settings(db_path):
    """Settings pointing at the test database with a generous rate limit."""
    return Settings(
        db_path=db_path,
        pool_min=1,
        pool_max=4,
        pool_increment=1,
        rate_limit_max_requests=1000,
    )


@pytest.fixture
def test_app(test_settings, pool, patient_repo, patient_service, monkeypatch):
    """
    Create the application with dependency overrides.

    The lifespan does not run here (the client is not used as a context
    manager), so the test pool is installed as the process pool directly.
    """
    monkeypatch.setattr(deps, "_pool", pool)

    app = create_app(test_settings)
    app.dependency_overrides[deps.get_pool] = lambda: pool
    app.dependency_overrides[deps.get_patient_repository] = lambda: patient_repo
    app.dependency_overrides[deps.get_patient_service] = lambda: patient_service

    yield app

    app.dependency_overrides.clear()


@pytest.fixture
def client(test_app):
    """Create a test client for the API."""
    return TestClient(test_app)


@pytest.fixture
def created_patient(client):
    """Juan Perez, created through the API."""
    response = client.post("/api/patients", json=JUAN)
    assert response.status_code == 201
    return response.json()["data"]
