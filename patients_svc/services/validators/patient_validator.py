"""
Validation rules for patient records.

This module contains pure functions: no I/O, no logging, no exceptions
for rule violations. ``validate_patient_data`` collects every violated rule
so the client gets the complete list in a single response.
"""
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, List, Optional

from core.datetime_utils import utc_today

EMAIL_REGEX = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_REGEX = re.compile(r"^[0-9]{10}$")
DATE_REGEX = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")

NAME_MAX_LENGTH = 100
EMAIL_MAX_LENGTH = 150
MIN_BIRTH_DATE = date(1900, 1, 1)
MAX_AGE_YEARS = 150

# Fields checked for type, with the message used when a value is not text
TEXT_FIELDS = (
    ("firstName", "First name must be text"),
    ("lastName", "Last name must be text"),
    ("email", "Email must be text"),
    ("phone", "Phone must be text"),
    ("birthDate", "Birth date must be text in YYYY-MM-DD format"),
)


@dataclass
class ValidationResult:
    """Outcome of validating a patient record."""

    is_valid: bool
    errors: List[str] = field(default_factory=list)


def is_not_empty(value: Any) -> bool:
    """True if ``value`` is a string with at least one non-whitespace character."""
    if not isinstance(value, str):
        return False
    return len(value.strip()) > 0


def is_valid_email(email: str) -> bool:
    """True if ``email`` has the ``local@domain.tld`` shape."""
    return bool(EMAIL_REGEX.fullmatch(email))


def is_valid_phone(phone: str) -> bool:
    """True if ``phone`` is exactly 10 ASCII digits."""
    return bool(PHONE_REGEX.fullmatch(phone))


def _years_before(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        # Feb 29 in a year without one
        return day.replace(year=day.year - years, day=28)


def is_valid_birth_date(value: str, today: Optional[date] = None) -> bool:
    """
    Check a ``YYYY-MM-DD`` birth date.

    The date must be a real calendar date, not after today (UTC), not before
    1900-01-01 and not more than 150 years before today.

    Args:
        value: The date string to check.
        today: Reference day. Defaults to the current UTC date.

    Returns:
        bool: True if the date is acceptable.
    """
    if not DATE_REGEX.fullmatch(value):
        return False

    try:
        birth_date = date.fromisoformat(value)
    except ValueError:
        return False

    today = today or utc_today()
    if birth_date > today:
        return False
    if birth_date < MIN_BIRTH_DATE:
        return False
    if birth_date < _years_before(today, MAX_AGE_YEARS):
        return False
    return True


def validate_patient_data(data: Any, today: Optional[date] = None) -> ValidationResult:
    """
    Validate every field of a patient record.

    Type errors are reported together and stop the check; otherwise every
    business rule is evaluated and all violations are returned, in field
    order.

    Args:
        data: The decoded request body.
        today: Reference day for the birth date rules (defaults to UTC today).

    Returns:
        ValidationResult: Validity flag and the ordered error messages.
    """
    if not isinstance(data, dict):
        return ValidationResult(is_valid=False, errors=["Patient data must be a valid JSON object"])

    errors: List[str] = []

    # A key that is present must hold text, JSON null included
    for name, message in TEXT_FIELDS:
        if name in data and not isinstance(data[name], str):
            errors.append(message)

    if errors:
        return ValidationResult(is_valid=False, errors=errors)

    first_name = data.get("firstName")
    if not is_not_empty(first_name):
        errors.append("First name is required")
    elif len(first_name) > NAME_MAX_LENGTH:
        errors.append(f"First name cannot exceed {NAME_MAX_LENGTH} characters")

    last_name = data.get("lastName")
    if not is_not_empty(last_name):
        errors.append("Last name is required")
    elif len(last_name) > NAME_MAX_LENGTH:
        errors.append(f"Last name cannot exceed {NAME_MAX_LENGTH} characters")

    email = data.get("email")
    if not is_not_empty(email):
        errors.append("Email is required")
    elif not is_valid_email(email):
        errors.append("Email format is not valid")
    elif len(email) > EMAIL_MAX_LENGTH:
        errors.append(f"Email cannot exceed {EMAIL_MAX_LENGTH} characters")

    phone = data.get("phone")
    if not is_not_empty(phone):
        errors.append("Phone is required")
    elif not is_valid_phone(phone):
        errors.append("Phone must have exactly 10 digits")

    birth_date = data.get("birthDate")
    if not birth_date:
        errors.append("Birth date is required")
    elif not is_valid_birth_date(birth_date, today=today):
        errors.append(
            "Birth date is not valid, is in the future or is outside "
            "the allowed range (1900-present)"
        )

    return ValidationResult(is_valid=not errors, errors=errors)
