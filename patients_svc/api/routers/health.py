"""
Health, readiness and API info endpoints.

This module provides:
- /api/health: Liveness probe (is the app running?)
- /api/ready: Readiness probe (can a pooled connection run a query?)
- /: API name, version and main endpoints

Design Choices:
- No authentication required (infrastructure use)
- Readiness runs the database check on the worker thread pool
- Same response envelope as the patient endpoints
"""
import logging
import sqlite3
import time
from typing import Any, Dict

from fastapi import APIRouter, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from api.responses import error_response, success_response
from core.datetime_utils import format_iso, utc_now
from core.dependencies import get_pool
from core.exceptions import DatabaseError

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

router = APIRouter(tags=["Health & Observability"])

# Mounted without the API prefix
root_router = APIRouter(tags=["Health & Observability"])


# =============================================================================
# HEALTH ENDPOINT (LIVENESS)
# =============================================================================

@router.get(
    "/health",
    summary="Liveness probe",
    description="Check if the application is running. Returns immediately without checking dependencies."
)
async def health_check() -> Dict[str, Any]:
    """
    Liveness probe - is the application process alive?

    Always returns 200 if the app is running; does not touch the database
    (that's what /ready is for).
    """
    return success_response({"timestamp": format_iso(utc_now())}, message="API is healthy")


# =============================================================================
# READINESS ENDPOINT
# =============================================================================

def _check_database() -> Dict[str, Any]:
    """
    Run ``SELECT 1`` on a pooled connection.

    Blocking; call it through run_in_threadpool.
    """
    start = time.perf_counter()
    try:
        pool = get_pool()
        with pool.connection() as conn:
            conn.execute("SELECT 1").fetchone()
        latency_ms = (time.perf_counter() - start) * 1000
        return {
            "status": "ok",
            "latencyMs": round(latency_ms, 2),
            "pool": pool.stats(),
        }
    except (DatabaseError, sqlite3.Error) as e:
        latency_ms = (time.perf_counter() - start) * 1000
        code = e.code if isinstance(e, DatabaseError) else type(e).__name__
        logger.error("Database readiness check failed", extra={"error": str(e), "code": code})
        return {
            "status": "unavailable",
            "latencyMs": round(latency_ms, 2),
            "code": code,
        }


@router.get(
    "/ready",
    summary="Readiness probe",
    description="Check that a pooled database connection can run a query. Returns 503 if not ready."
)
async def readiness_check():
    """
    Readiness probe - can the application handle requests?

    Returns:
    - 200 with status="ready" and pool statistics when the database answers
    - 503 with status="not_ready" otherwise
    """
    database = await run_in_threadpool(_check_database)
    timestamp = format_iso(utc_now())

    if database["status"] != "ok":
        content = error_response("Service not ready", code=database.get("code"))
        content["data"] = {"status": "not_ready", "database": database, "timestamp": timestamp}
        return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=content)

    return success_response(
        {"status": "ready", "database": database, "timestamp": timestamp},
        message="API is ready"
    )


# =============================================================================
# ROOT ENDPOINT
# =============================================================================

def build_root_info(api_prefix: str = "/api") -> Dict[str, Any]:
    """API information returned by the root endpoint."""
    return success_response(
        {
            "version": API_VERSION,
            "endpoints": {
                "patients": f"{api_prefix}/patients",
                "health": f"{api_prefix}/health",
            },
        },
        message="Patient Management System API"
    )


@root_router.get(
    "/",
    summary="API root",
    description="Root endpoint with basic API information."
)
async def root(request: Request) -> Dict[str, Any]:
    """Service name, version and main endpoints."""
    return build_root_info(getattr(request.app.state, "api_prefix", "/api"))
