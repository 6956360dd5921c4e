"""
Core module for application configuration, logging, and shared constants.

This module provides:
- Settings: Application configuration via pydantic-settings
- Dependency injection: FastAPI Depends() functions for the pool, repository and service
- Exceptions: Domain-specific exception classes with HTTP status codes
- Datetime utilities: UTC-first datetime handling
- Pagination: page/limit/search query construction
"""
from core.config import Settings, get_settings, validate_settings

# Dependency injection - import functions for FastAPI Depends()
from core.dependencies import (
    init_pool,
    close_pool,
    get_pool,
    get_patient_repository,
    get_patient_service,
)

# Exception classes for consistent error handling
from core.exceptions import (
    PatientServiceError,
    InvalidRequestError,
    PatientValidationError,
    PatientNotFoundError,
    EmailAlreadyExistsError,
    DatabaseError,
    PoolExhaustedError,
    setup_exception_handlers,
)

# UTC datetime utilities
from core.datetime_utils import (
    utc_now,
    utc_today,
    to_utc,
    format_iso,
    from_db_string,
)

from core.pagination import (
    PageRequest,
    PageQuery,
    parse_page_params,
    build_page_query,
    build_pagination,
    sanitize_search_term,
)

__all__ = [
    # Settings
    "Settings",
    "get_settings",
    "validate_settings",
    # Dependency injection
    "init_pool",
    "close_pool",
    "get_pool",
    "get_patient_repository",
    "get_patient_service",
    # Exceptions
    "PatientServiceError",
    "InvalidRequestError",
    "PatientValidationError",
    "PatientNotFoundError",
    "EmailAlreadyExistsError",
    "DatabaseError",
    "PoolExhaustedError",
    "setup_exception_handlers",
    # Datetime utilities
    "utc_now",
    "utc_today",
    "to_utc",
    "format_iso",
    "from_db_string",
    # Pagination
    "PageRequest",
    "PageQuery",
    "parse_page_params",
    "build_page_query",
    "build_pagination",
    "sanitize_search_term",
]
