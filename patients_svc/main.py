"""
FastAPI application entry point for Patients Service API.

This module configures and creates the FastAPI application with:
- Structured JSON Logging: Request/response logging with request ids
- Dependency Injection: Services and repositories injected via Depends()
- Exception Handling: Consistent error envelopes via setup_exception_handlers()
- CORS Middleware: Only the configured front-end origins
- Rate Limiting and Body Size Limit on the API routes
- Lifespan Management: Connection pool creation and shutdown

Architecture Overview:
    ┌─────────────────────────────────────────────────────────────┐
    │                     FastAPI Application                      │
    ├─────────────────────────────────────────────────────────────┤
    │  Middleware Stack (order matters!)                          │
    │    ├── LoggingMiddleware       - Request logging & ids      │
    │    ├── BodySizeLimitMiddleware - 413 on oversized bodies    │
    │    ├── RateLimitMiddleware     - 429 per client address     │
    │    └── CORSMiddleware          - Cross-origin support       │
    ├─────────────────────────────────────────────────────────────┤
    │  Routers (api/routers/)                                     │
    │    ├── health.py     - /, /api/health, /api/ready           │
    │    └── patients.py   - /api/patients CRUD                   │
    ├─────────────────────────────────────────────────────────────┤
    │  Services (services/)     ← Injected via Depends()          │
    │    └── PatientService     - Patient business logic          │
    ├─────────────────────────────────────────────────────────────┤
    │  Repositories (repositories/)   ← Injected into Services    │
    │    └── PatientRepository        - Patient data access       │
    ├─────────────────────────────────────────────────────────────┤
    │  ConnectionPool (SQLite)        ← Injected into Repositories│
    └─────────────────────────────────────────────────────────────┘

Running:
    python main.py
    uvicorn main:create_app --factory --port 3000
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from core.config import Settings, validate_settings
from core.dependencies import close_pool, init_pool
from core.exceptions import setup_exception_handlers
from core.logging_config import setup_logging
from core.middleware import BodySizeLimitMiddleware, LoggingMiddleware, RateLimitMiddleware
from api.routers import health_router, patients_router, root_router
from api.routers.health import API_VERSION

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Application settings. Loaded and validated from the
            environment when not given.

    Returns:
        FastAPI: The configured application. The connection pool is only
        created when the lifespan starts.
    """
    if settings is None:
        settings = validate_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        Startup:
            - Configures structured logging
            - Creates the connection pool and the schema
        Shutdown:
            - Closes every pooled connection
        """
        setup_logging(level=settings.log_level, json_format=settings.log_format == "json")
        logger.info(
            "Starting Patients Service API...",
            extra={"environment": settings.environment, "port": settings.port}
        )

        pool = init_pool(settings)
        logger.info("Database initialized", extra={"db_path": settings.db_path, "pool": pool.stats()})

        yield  # Application runs here

        logger.info("Patients Service API shutting down...")
        close_pool()
        logger.info("Connection pool closed")

    app = FastAPI(
        title="Patients Service API",
        description="REST API for patient records: create, list with search and pagination, "
                    "read, update and delete patients.",
        version=API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.api_prefix = settings.api_prefix

    # =========================================================================
    # EXCEPTION HANDLERS
    # =========================================================================
    setup_exception_handlers(app)

    # =========================================================================
    # MIDDLEWARE
    # =========================================================================
    # Executed in REVERSE order of registration: last registered is outermost.

    # 1. CORS Middleware (innermost - closest to routes)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # 2. Rate limiting for the API routes
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.rate_limit_max_requests,
        window_seconds=settings.rate_limit_window_seconds,
        path_prefix=settings.api_prefix,
    )

    # 3. Request body size limit
    app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.max_body_bytes)

    # 4. Logging Middleware (outermost - captures all requests)
    app.add_middleware(LoggingMiddleware)

    # =========================================================================
    # ROUTERS
    # =========================================================================
    app.include_router(root_router)
    app.include_router(health_router, prefix=settings.api_prefix)
    app.include_router(patients_router, prefix=settings.api_prefix)

    return app


if __name__ == "__main__":
    settings = validate_settings()
    uvicorn.run(
        "main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.reload
    )
