"""
FastAPI Dependency Injection configuration for Patients Service API.

This module provides the dependency injection (DI) infrastructure:
- Clean separation between API, Service, and Repository layers
- Easy testing with fake dependencies
- One process-lifetime connection pool, created and closed by the
  application lifespan (main.py)

Architecture Flow:
    API Layer (Routers)
         ↓ Depends()
    Service Layer (Business Logic)
         ↓ Injected
    Repository Layer (Data Access)
         ↓ Injected
    ConnectionPool (SQLite connections)

Usage in Routers:
    from core.dependencies import get_patient_service

    @router.get("/patients/{patient_id}")
    async def get_patient(
        patient_id: int,
        patient_service: PatientService = Depends(get_patient_service)
    ):
        ...

Testing:
    # Override dependencies in tests
    app.dependency_overrides[get_pool] = lambda: test_pool
"""
import logging
from typing import Optional

from fastapi import Depends

from core.config import Settings
from core.exceptions import DatabaseError

logger = logging.getLogger(__name__)


# =============================================================================
# CONNECTION POOL
# =============================================================================

_pool: Optional["ConnectionPool"] = None


def init_pool(settings: Settings) -> "ConnectionPool":
    """
    Create the process-wide connection pool and the schema.

    Called once from the application lifespan at startup.

    Args:
        settings: Validated application settings.

    Returns:
        ConnectionPool: The ready-to-use pool.
    """
    global _pool
    from repositories import open_pool

    if _pool is not None and not _pool.closed:
        return _pool

    logger.info(f"Initializing connection pool: {settings.db_path}")
    _pool = open_pool(
        db_path=settings.db_path,
        pool_min=settings.pool_min,
        pool_max=settings.pool_max,
        pool_increment=settings.pool_increment,
        timeout=settings.pool_timeout,
        busy_timeout=settings.db_busy_timeout,
    )
    return _pool


def close_pool() -> None:
    """Close the pool. Called from the application lifespan at shutdown."""
    global _pool
    if _pool is not None:
        _pool.close()
        _pool = None


def get_pool() -> "ConnectionPool":
    """
    Get the connection pool created at startup.

    Raises:
        DatabaseError: If the pool was never initialized or is already closed.
    """
    if _pool is None:
        raise DatabaseError(message="Database is not initialized", operation="get_pool")
    return _pool


# =============================================================================
# REPOSITORY DEPENDENCIES
# =============================================================================

def get_patient_repository(pool=Depends(get_pool)) -> "PatientRepository":
    """
    Get a PatientRepository instance with the pool injected.

    Returns:
        PatientRepository: Repository for patient CRUD operations.
    """
    from repositories import PatientRepository

    return PatientRepository(pool=pool)


# =============================================================================
# SERVICE DEPENDENCIES
# =============================================================================

def get_patient_service(
    patient_repo=Depends(get_patient_repository),
) -> "PatientService":
    """
    Get a PatientService instance with repository injected.

    Returns:
        PatientService: Service for patient operations.
    """
    from services import PatientService

    return PatientService(patient_repository=patient_repo)
