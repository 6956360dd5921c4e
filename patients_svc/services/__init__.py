"""
Service layer for business logic.

This module contains the patient service. Related pure helpers:
- services.validators: patient record validation
- core.pagination: paginated query construction
"""
from services.patient_service import PatientService

__all__ = [
    "PatientService",
]
