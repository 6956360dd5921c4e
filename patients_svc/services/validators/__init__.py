"""
Validation utilities for services.
"""
from services.validators.patient_validator import (
    ValidationResult,
    validate_patient_data,
    is_not_empty,
    is_valid_email,
    is_valid_phone,
    is_valid_birth_date,
)

__all__ = [
    "ValidationResult",
    "validate_patient_data",
    "is_not_empty",
    "is_valid_email",
    "is_valid_phone",
    "is_valid_birth_date",
]
