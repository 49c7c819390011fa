"""Shared validation utilities"""

import re
from typing import Optional


def clean_required(value: Optional[str], field: str) -> str:
    """
    Trim a required text field.

    Raises:
        ValueError: If the value is missing or blank
    """
    if value is None or not value.strip():
        raise ValueError(f"{field} is required")
    return value.strip()


def clean_optional(value: Optional[str]) -> Optional[str]:
    """Trim an optional text field, mapping blank strings to None"""
    if value is None:
        return None
    value = value.strip()
    return value or None


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Args:
        email: Email address string

    Returns:
        Lowercase email address, or None for blank input

    Raises:
        ValueError: If email format is invalid
    """
    email = clean_optional(email)
    if not email:
        return None

    email = email.lower()

    # Basic email validation pattern
    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate a free-form phone number.

    International numbers are accepted as typed; the value must contain between
    7 and 15 digits and only digits, spaces, dashes, dots, parentheses and a
    leading plus sign.
    """
    phone = clean_optional(phone)
    if not phone:
        return None

    if not re.match(r"^\+?[\d\s\-.()]+$", phone):
        raise ValueError("Phone number contains invalid characters")

    digits = re.sub(r"\D", "", phone)
    if not 7 <= len(digits) <= 15:
        raise ValueError("Phone number must have between 7 and 15 digits")

    return phone
