"""
Domain model for patients.
"""
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from core.datetime_utils import from_db_string


@dataclass
class Patient:
    """Model representing a patient row."""

    id: int
    first_name: str
    last_name: str
    email: str
    phone: str
    birth_date: str
    created_at: Optional[datetime]
    updated_at: Optional[datetime]

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> "Patient":
        """
        Create a Patient from a database row.

        Args:
            row: Row selected with the columns of core.pagination.PATIENT_COLUMNS.

        Returns:
            Patient instance with timestamps parsed to UTC datetimes.
        """
        return cls(
            id=row["id"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            email=row["email"],
            phone=row["phone"],
            birth_date=row["birth_date"],
            created_at=from_db_string(row["created_at"]),
            updated_at=from_db_string(row["updated_at"]),
        )
