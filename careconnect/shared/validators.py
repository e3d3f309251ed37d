"""Shared validation utilities"""

import re
import uuid
from typing import Optional


def validate_uuid(value: str) -> bool:
    """Validate UUID format"""
    try:
        uuid.UUID(value)
        return True
    except (ValueError, AttributeError):
        return False


def validate_us_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize US phone number to E.164 format.

    Args:
        phone: Phone number string in various formats

    Returns:
        Normalized phone number in E.164 format (+1XXXXXXXXXX)

    Raises:
        ValueError: If phone number is invalid
    """
    if not phone:
        return phone

    # Remove all non-digit characters
    digits = re.sub(r"\D", "", phone)

    # Handle +1 prefix
    if digits.startswith("1") and len(digits) == 11:
        digits = digits[1:]

    # US phone numbers should have 10 digits
    if len(digits) != 10:
        raise ValueError("Phone number must be 10 digits for US numbers")

    # Format as E.164 for storage
    return f"+1{digits}"


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    # Basic email validation pattern
    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


SERVICE_TYPES = {"FRS", "CRS", "ICS", "ADL", "Assisted_Living"}
WAIVER_TYPES = {"CADI", "CAC", "DD", "BI", "Elderly"}


def validate_choices(values: Optional[list[str]], allowed: set[str], label: str) -> Optional[list[str]]:
    """
    Validate that every value is one of the allowed codes, dropping duplicates.

    Raises:
        ValueError: If any value is not allowed
    """
    if values is None:
        return values

    invalid = [v for v in values if v not in allowed]
    if invalid:
        raise ValueError(f"Invalid {label}: {', '.join(invalid)}")

    return list(dict.fromkeys(values))


def validate_zip_code(zip_code: Optional[str]) -> Optional[str]:
    """Validate a US ZIP or ZIP+4 code"""
    if not zip_code:
        return zip_code

    zip_code = zip_code.strip()
    if not re.match(r"^\d{5}(-\d{4})?$", zip_code):
        raise ValueError("ZIP code must be 5 digits")

    return zip_code


def validate_time_of_day(value: str) -> str:
    """Validate a 24-hour HH:MM time"""
    value = (value or "").strip()
    if not re.match(r"^([01]\d|2[0-3]):[0-5]\d$", value):
        raise ValueError("Time must be in HH:MM format")
    return value
