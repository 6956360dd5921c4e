"""
Pydantic schemas for API request/response validation.

This module contains all Pydantic models used at API boundaries.
"""
from schemas.patient import (
    PatientPayload,
    PatientResponse,
    PaginationInfo,
    PatientPage,
)

__all__ = [
    "PatientPayload",
    "PatientResponse",
    "PaginationInfo",
    "PatientPage",
]
