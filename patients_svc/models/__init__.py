"""
Domain models for the patients service.

This module contains internal domain models built from database rows.
"""
from models.patient import Patient

__all__ = ["Patient"]
