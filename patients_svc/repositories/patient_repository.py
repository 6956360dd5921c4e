"""
Repository for patient database operations.

This module contains all database access for patient-related operations.

Architecture:
    PatientRepository is the data access layer for patients.
    It should be injected via core.dependencies.get_patient_repository().

All SQL is encapsulated in this repository and in core.pagination - no
SQL in the service or API layers. Every method leases its own connection
from the pool and gives it back on every exit path; writes commit on
success and roll back on any failure.
"""
import logging
import sqlite3
from typing import List, Optional, Tuple

from core.datetime_utils import SQL_UTC_NOW
from core.exceptions import DatabaseError, EmailAlreadyExistsError
from core.pagination import (
    FOLD_FUNCTION,
    PATIENT_COLUMNS,
    SQLITE_MAX_INTEGER,
    PageRequest,
    build_page_query,
    fold_case,
)
from models.patient import Patient
from repositories.base import ConnectionPool
from schemas.patient import PatientPayload

logger = logging.getLogger(__name__)


class PatientRepository:
    """
    Repository for patient CRUD operations.

    This repository encapsulates all database operations for patients.
    It should be instantiated via core.dependencies.get_patient_repository().
    """

    def __init__(self, pool: ConnectionPool):
        """
        Initialize the patient repository.

        Args:
            pool: Connection pool for data access.
                  Injected via core.dependencies.get_patient_repository().
        """
        self._pool = pool

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _rollback(conn: sqlite3.Connection, operation: str) -> None:
        """Best-effort rollback: a failure is logged, never raised."""
        try:
            conn.rollback()
        except sqlite3.Error:
            logger.exception(f"Rollback failed during {operation}")

    @staticmethod
    def _fetch_by_id(conn: sqlite3.Connection, patient_id: int) -> Optional[Patient]:
        row = conn.execute(
            f"SELECT {PATIENT_COLUMNS} FROM patients WHERE id = :id",
            {"id": patient_id}
        ).fetchone()
        return Patient.from_row(row) if row else None

    @staticmethod
    def _storable_id(patient_id: int) -> bool:
        # Larger ids cannot be bound, so no row can have them
        return 1 <= patient_id <= SQLITE_MAX_INTEGER

    @staticmethod
    def _is_unique_violation(error: sqlite3.IntegrityError) -> bool:
        # ux_patients_email is the only unique constraint on the table
        return "UNIQUE" in str(error).upper()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def list_page(self, page_request: PageRequest) -> Tuple[List[Patient], int]:
        """
        Get one page of patients, newest first, plus the total match count.

        Args:
            page_request: Page number, page size and optional name search.

        Returns:
            Tuple of (patients on this page, total matching records).
        """
        query = build_page_query(page_request)
        with self._pool.connection() as conn:
            try:
                rows = conn.execute(query.sql, query.params).fetchall()
                total = conn.execute(query.count_sql, query.count_params).fetchone()["total"]
            except sqlite3.Error as e:
                logger.exception("Error listing patients")
                raise DatabaseError(operation="list_patients", code=type(e).__name__) from e

        return [Patient.from_row(row) for row in rows], total

    def get_by_id(self, patient_id: int) -> Optional[Patient]:
        """
        Get a patient by id.

        Returns:
            Optional[Patient]: The patient, or None if no row has this id.
        """
        if not self._storable_id(patient_id):
            return None
        with self._pool.connection() as conn:
            try:
                return self._fetch_by_id(conn, patient_id)
            except sqlite3.Error as e:
                logger.exception(f"Error reading patient id={patient_id}")
                raise DatabaseError(operation="get_patient", code=type(e).__name__) from e

    def email_exists(self, email: str, exclude_id: Optional[int] = None) -> bool:
        """
        Check whether a patient already uses ``email`` (case-insensitive).

        Args:
            email: Email to look for.
            exclude_id: Patient id to ignore, so a patient can keep its own email.

        Returns:
            bool: True if another patient has this email.
        """
        query = f"SELECT COUNT(*) AS count FROM patients WHERE {FOLD_FUNCTION}(email) = :email"
        params = {"email": fold_case(email)}
        if exclude_id is not None:
            query += " AND id != :exclude_id"
            params["exclude_id"] = exclude_id

        with self._pool.connection() as conn:
            try:
                return conn.execute(query, params).fetchone()["count"] > 0
            except sqlite3.Error as e:
                logger.exception("Error checking email uniqueness")
                raise DatabaseError(operation="email_exists", code=type(e).__name__) from e

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def create(self, payload: PatientPayload) -> Patient:
        """
        Insert a patient and return the stored row.

        The id and both timestamps are assigned by the database.

        Raises:
            EmailAlreadyExistsError: If the unique email index rejects the row.
            DatabaseError: On any other database failure (after rollback).
        """
        with self._pool.connection() as conn:
            try:
                cursor = conn.execute(
                    """
                    INSERT INTO patients (first_name, last_name, email, phone, birth_date)
                    VALUES (:first_name, :last_name, :email, :phone, :birth_date)
                    """,
                    payload.model_dump()
                )
                patient_id = cursor.lastrowid
                conn.commit()
                return self._fetch_by_id(conn, patient_id)
            except sqlite3.IntegrityError as e:
                self._rollback(conn, "create")
                if self._is_unique_violation(e):
                    raise EmailAlreadyExistsError(email=payload.email) from e
                logger.exception("Integrity error creating patient")
                raise DatabaseError(operation="create_patient", code=type(e).__name__) from e
            except sqlite3.Error as e:
                self._rollback(conn, "create")
                logger.exception("Error creating patient")
                raise DatabaseError(operation="create_patient", code=type(e).__name__) from e

    def update(self, patient_id: int, payload: PatientPayload) -> Optional[Patient]:
        """
        Replace a patient's fields and refresh its update timestamp.

        Returns:
            Optional[Patient]: The refreshed row, or None if the id does not exist.

        Raises:
            EmailAlreadyExistsError: If the unique email index rejects the change.
            DatabaseError: On any other database failure (after rollback).
        """
        if not self._storable_id(patient_id):
            return None
        with self._pool.connection() as conn:
            try:
                cursor = conn.execute(
                    f"""
                    UPDATE patients
                    SET first_name = :first_name,
                        last_name = :last_name,
                        email = :email,
                        phone = :phone,
                        birth_date = :birth_date,
                        updated_at = {SQL_UTC_NOW}
                    WHERE id = :id
                    """,
                    {**payload.model_dump(), "id": patient_id}
                )
                if cursor.rowcount == 0:
                    conn.rollback()
                    return None
                conn.commit()
                return self._fetch_by_id(conn, patient_id)
            except sqlite3.IntegrityError as e:
                self._rollback(conn, "update")
                if self._is_unique_violation(e):
                    raise EmailAlreadyExistsError(email=payload.email, patient_id=patient_id) from e
                logger.exception(f"Integrity error updating patient id={patient_id}")
                raise DatabaseError(operation="update_patient", code=type(e).__name__) from e
            except sqlite3.Error as e:
                self._rollback(conn, "update")
                logger.exception(f"Error updating patient id={patient_id}")
                raise DatabaseError(operation="update_patient", code=type(e).__name__) from e

    def delete(self, patient_id: int) -> bool:
        """
        Delete a patient by id.

        Returns:
            bool: True if a row was deleted, False if the id does not exist.

        Raises:
            DatabaseError: On database failure (after rollback).
        """
        if not self._storable_id(patient_id):
            return False
        with self._pool.connection() as conn:
            try:
                cursor = conn.execute("DELETE FROM patients WHERE id = :id", {"id": patient_id})
                conn.commit()
                return cursor.rowcount > 0
            except sqlite3.Error as e:
                self._rollback(conn, "delete")
                logger.exception(f"Error deleting patient id={patient_id}")
                raise DatabaseError(operation="delete_patient", code=type(e).__name__) from e
