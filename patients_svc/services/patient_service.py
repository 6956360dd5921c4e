"""
Service layer for patient operations.

This service contains business logic for patient management
and orchestrates calls to repositories.

Architecture:
    API Layer (routers) → PatientService → PatientRepository → ConnectionPool

Dependency Injection:
    PatientService receives its repository via constructor injection.
    Use core.dependencies.get_patient_service() in routers with Depends().

Absence is not an error here: lookups return None and delete returns
False, and the API layer decides to answer 404.
"""
import logging
from typing import Optional

from core.exceptions import EmailAlreadyExistsError
from core.pagination import PageRequest, build_pagination
from repositories import PatientRepository
from schemas import PatientPage, PatientPayload, PatientResponse, PaginationInfo

logger = logging.getLogger(__name__)


class PatientService:
    """
    Service layer for patient operations.

    Handles existence checks, email uniqueness and coordination with the
    repository layer. Payloads are expected to be validated already.
    """

    def __init__(self, patient_repository: PatientRepository):
        """
        Initialize the patient service.

        Args:
            patient_repository: PatientRepository instance for data access.
                               Injected via core.dependencies.get_patient_service().
        """
        self._repo = patient_repository

    def list_patients(self, page: int = 1, limit: int = 10, search: Optional[str] = None) -> PatientPage:
        """
        Get a page of patients, newest first.

        Args:
            page: 1-based page number.
            limit: Page size.
            search: Optional substring matched against first and last name.

        Returns:
            PatientPage: Patients on the page and the pagination descriptor.
            A page past the last one is empty, not an error.
        """
        page_request = PageRequest(page=page, limit=limit, search=search)
        patients, total = self._repo.list_page(page_request)
        logger.debug(
            "Listed patients",
            extra={"page": page, "limit": limit, "search": search, "total": total}
        )
        return PatientPage(
            patients=[PatientResponse.model_validate(p) for p in patients],
            pagination=PaginationInfo.model_validate(build_pagination(page_request, total)),
        )

    def get_patient(self, patient_id: int) -> Optional[PatientResponse]:
        """
        Get a patient by id.

        Returns:
            PatientResponse, or None if no patient has this id.
        """
        patient = self._repo.get_by_id(patient_id)
        if patient is None:
            return None
        return PatientResponse.model_validate(patient)

    def create_patient(self, payload: PatientPayload) -> PatientResponse:
        """
        Create a new patient.

        Args:
            payload: Validated patient fields.

        Returns:
            PatientResponse: The created patient with its generated id and timestamps.

        Raises:
            EmailAlreadyExistsError: If a patient with this email already exists.
        """
        logger.info("Creating patient", extra={"email": payload.email})

        if self._repo.email_exists(payload.email):
            logger.warning("Email already in use", extra={"email": payload.email})
            raise EmailAlreadyExistsError(email=payload.email)

        # The unique index still rejects a concurrent insert of the same email
        patient = self._repo.create(payload)

        logger.info(f"Patient created successfully (id={patient.id})")
        return PatientResponse.model_validate(patient)

    def update_patient(self, patient_id: int, payload: PatientPayload) -> Optional[PatientResponse]:
        """
        Update an existing patient.

        A patient may keep its own email; only other patients' emails conflict.

        Returns:
            PatientResponse with refreshed timestamps, or None if the patient does not exist.

        Raises:
            EmailAlreadyExistsError: If another patient already uses the email.
        """
        if self._repo.get_by_id(patient_id) is None:
            logger.info(f"Update requested for missing patient id={patient_id}")
            return None

        if self._repo.email_exists(payload.email, exclude_id=patient_id):
            logger.warning("Email already in use by another patient", extra={"email": payload.email, "patient_id": patient_id})
            raise EmailAlreadyExistsError(email=payload.email, patient_id=patient_id)

        patient = self._repo.update(patient_id, payload)
        if patient is None:
            # Deleted between the existence check and the update
            return None

        logger.info(f"Patient updated successfully (id={patient_id})")
        return PatientResponse.model_validate(patient)

    def delete_patient(self, patient_id: int) -> bool:
        """
        Delete a patient.

        Returns:
            bool: True if deleted, False if no patient has this id. Deleting
            the same id twice returns False the second time.
        """
        if self._repo.get_by_id(patient_id) is None:
            logger.info(f"Delete requested for missing patient id={patient_id}")
            return False

        deleted = self._repo.delete(patient_id)
        if deleted:
            logger.info(f"Patient deleted successfully (id={patient_id})")
        return deleted
