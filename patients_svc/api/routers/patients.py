"""
Patients router - patient management endpoints.

This router handles patient CRUD operations via RESTful endpoints.

Architecture:
    HTTP Request → Router (this file) → PatientService → PatientRepository → ConnectionPool

Request checks done here, before the service is called:
    - Path ids must be integers >= 1
    - page >= 1 and 1 <= limit <= 100
    - Request bodies go through services.validators.validate_patient_data

Dependency Injection:
    Services are injected via FastAPI's Depends() mechanism.
    The DI chain is defined in core/dependencies.py.
"""
import logging
import re
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.concurrency import run_in_threadpool

from api.responses import success_response
from core.dependencies import get_patient_service
from core.exceptions import InvalidRequestError, PatientNotFoundError, PatientValidationError
from core.pagination import MAX_LIMIT, parse_page_params
from schemas import PatientPayload
from services import PatientService
from services.validators import validate_patient_data

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/patients",
    tags=["Patients"],
)

_ID_REGEX = re.compile(r"^[0-9]+$")


# =============================================================================
# REQUEST CHECKS
# =============================================================================

def _parse_patient_id(raw_id: str) -> int:
    """Parse a path id, raising InvalidRequestError unless it is an integer >= 1."""
    value = raw_id.strip()
    try:
        patient_id = int(value) if _ID_REGEX.match(value) else 0
    except ValueError:
        # more digits than int() accepts from a string
        patient_id = 0
    if patient_id < 1:
        raise InvalidRequestError(message="Invalid patient id", patient_id=raw_id)
    return patient_id


def _parse_payload(body: Any) -> PatientPayload:
    """Validate a raw request body and build the typed payload."""
    result = validate_patient_data(body)
    if not result.is_valid:
        raise PatientValidationError(errors=result.errors)
    return PatientPayload.model_validate(body)


def _dump(model) -> Dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True)


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get(
    "",
    summary="List patients",
    description=f"Retrieve a page of patients, newest first. "
                f"Optional search on first and last name. Limit is 1-{MAX_LIMIT}."
)
async def list_patients(
    page: Optional[str] = Query(None, description="1-based page number (default 1)"),
    limit: Optional[str] = Query(None, description=f"Page size, 1-{MAX_LIMIT} (default 10)"),
    search: Optional[str] = Query(None, description="Case-insensitive name substring"),
    patient_service: PatientService = Depends(get_patient_service)
):
    """
    Get a page of patients.

    Missing or non-numeric page/limit fall back to the defaults; numeric
    values outside the allowed range are rejected with 400.
    """
    page_number, page_size = parse_page_params(page, limit)
    if page_number < 1:
        raise InvalidRequestError(message="Page must be greater than 0", page=page)
    if page_size < 1 or page_size > MAX_LIMIT:
        raise InvalidRequestError(message=f"Limit must be between 1 and {MAX_LIMIT}", limit=limit)

    result = await run_in_threadpool(
        patient_service.list_patients, page_number, page_size, search
    )
    return success_response(_dump(result), message="Patients retrieved successfully")


@router.get(
    "/{patient_id}",
    summary="Get a patient",
    description="Retrieve one patient by id. Returns 404 if it does not exist."
)
async def get_patient(
    patient_id: str,
    patient_service: PatientService = Depends(get_patient_service)
):
    """Get a patient by id."""
    pid = _parse_patient_id(patient_id)
    patient = await run_in_threadpool(patient_service.get_patient, pid)
    if patient is None:
        raise PatientNotFoundError(patient_id=pid)
    return success_response(_dump(patient), message="Patient retrieved successfully")


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create a new patient",
    description="Add a new patient. Emails must be unique (case-insensitive). "
                "Returns the created patient with its id and timestamps."
)
async def create_patient(
    body: Any = Body(None, examples=[PatientPayload.model_config["json_schema_extra"]["example"]]),
    patient_service: PatientService = Depends(get_patient_service)
):
    """
    Create a new patient.

    - **firstName** / **lastName**: required, up to 100 characters
    - **email**: required, unique, up to 150 characters
    - **phone**: exactly 10 digits
    - **birthDate**: YYYY-MM-DD between 1900-01-01 and today

    Returns 400 with every violated rule, or 409 if the email is taken.
    """
    payload = _parse_payload(body)
    patient = await run_in_threadpool(patient_service.create_patient, payload)
    return success_response(_dump(patient), message="Patient created successfully")


@router.put(
    "/{patient_id}",
    summary="Update a patient",
    description="Replace all fields of an existing patient. A patient may keep its own email."
)
async def update_patient(
    patient_id: str,
    body: Any = Body(None, examples=[PatientPayload.model_config["json_schema_extra"]["example"]]),
    patient_service: PatientService = Depends(get_patient_service)
):
    """Update an existing patient; refreshes ``updatedAt``."""
    pid = _parse_patient_id(patient_id)
    payload = _parse_payload(body)
    patient = await run_in_threadpool(patient_service.update_patient, pid, payload)
    if patient is None:
        raise PatientNotFoundError(patient_id=pid)
    return success_response(_dump(patient), message="Patient updated successfully")


@router.delete(
    "/{patient_id}",
    summary="Delete a patient",
    description="Permanently delete a patient. Deleting a missing patient returns 404."
)
async def delete_patient(
    patient_id: str,
    patient_service: PatientService = Depends(get_patient_service)
):
    """Delete a patient by id."""
    pid = _parse_patient_id(patient_id)
    deleted = await run_in_threadpool(patient_service.delete_patient, pid)
    if not deleted:
        raise PatientNotFoundError(patient_id=pid)
    return success_response(None, message="Patient deleted successfully")
