"""
Repository layer for database access.

This module contains all database access operations, encapsulating SQL and data persistence logic.
"""
from repositories.base import ConnectionPool, open_pool
from repositories.patient_repository import PatientRepository

__all__ = [
    "ConnectionPool",
    "PatientRepository",
    "open_pool",
]
