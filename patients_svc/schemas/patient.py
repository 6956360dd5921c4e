"""
Pydantic schemas for patient-related API operations.

Field names are snake_case in Python and camelCase on the wire.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

from core.datetime_utils import format_iso


class CamelModel(BaseModel):
    """Base model exposing camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class PatientPayload(CamelModel):
    """Schema for the create/update request body.

    Built only after services.validators.validate_patient_data accepted the
    raw body, so the field rules live in one place. Unknown keys such as
    ``id`` or ``createdAt`` are ignored: those values belong to the store.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
        json_schema_extra={
            "example": {
                "firstName": "Juan",
                "lastName": "Perez",
                "email": "juan@test.com",
                "phone": "0999999999",
                "birthDate": "1990-01-15"
            }
        },
    )

    first_name: str = Field(..., description="Patient first name (1-100 characters)")
    last_name: str = Field(..., description="Patient last name (1-100 characters)")
    email: str = Field(..., description="Email address, unique across patients (case-insensitive)")
    phone: str = Field(..., description="Phone number, exactly 10 digits")
    birth_date: str = Field(..., description="Birth date in YYYY-MM-DD format")


class PatientResponse(CamelModel):
    """Schema for patient response."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    id: int = Field(..., description="Unique patient identifier")
    first_name: str
    last_name: str
    email: str
    phone: str
    birth_date: str
    created_at: Optional[datetime] = Field(None, description="UTC timestamp assigned on insert")
    updated_at: Optional[datetime] = Field(None, description="UTC timestamp refreshed on update")

    @field_serializer("created_at", "updated_at")
    def _serialize_timestamp(self, value: Optional[datetime]) -> Optional[str]:
        return format_iso(value) if value is not None else None


class PaginationInfo(CamelModel):
    """Pagination descriptor returned with every patient list page."""

    current_page: int
    total_pages: int
    total_records: int
    limit: int


class PatientPage(BaseModel):
    """A page of patients plus its pagination descriptor."""

    patients: List[PatientResponse]
    pagination: PaginationInfo
