"""Shared validation utilities"""

import re
import uuid
from typing import Optional

# Greek mobile (69x) or landline (2x) numbers, optionally with the 30 / +30 country code
GREEK_PHONE_PATTERN = re.compile(r"^(\+30|30)?[62]\d{9}$")

# Greek and Latin letters, spaces, hyphens and apostrophes
NAME_PATTERN = re.compile(r"^[A-Za-zΑ-Ωα-ωΆ-Ώά-ώϊϋΐΰΪΫ\s'\-]{2,255}$")

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]{3,50}$")


def validate_uuid(value: str) -> bool:
    """Validate UUID format"""
    try:
        uuid.UUID(value)
        return True
    except (ValueError, AttributeError):
        return False


def validate_greek_phone(phone: Optional[str]) -> Optional[str]:
    """
    Validate and normalize a Greek phone number.

    Spaces, dashes, dots and parentheses are ignored.

    Returns:
        The phone number without separators (country code kept as given)

    Raises:
        ValueError: If the phone number is not a valid Greek number
    """
    if not phone:
        return phone

    compact = re.sub(r"[\s\-().]", "", phone)
    if not GREEK_PHONE_PATTERN.match(compact):
        raise ValueError("Please enter a valid Greek phone number (10 digits, e.g. 6912345678)")

    return compact


def validate_email(email: Optional[str]) -> Optional[str]:
    """
    Validate email format.

    Returns:
        Lowercase email address

    Raises:
        ValueError: If email format is invalid
    """
    if not email:
        return email

    email = email.strip().lower()

    email_pattern = r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"

    if len(email) > 255 or not re.match(email_pattern, email):
        raise ValueError("Invalid email format")

    return email


def validate_person_name(name: Optional[str]) -> Optional[str]:
    """Client names: 2-255 Greek or Latin letters, spaces, hyphens, apostrophes"""
    if name is None:
        return name

    name = re.sub(r"\s+", " ", name.strip())
    if not NAME_PATTERN.match(name):
        raise ValueError(
            "Name must be 2-255 characters and contain only letters, spaces, hyphens and apostrophes"
        )

    return name


def validate_username(username: str) -> str:
    username = username.strip()
    if not USERNAME_PATTERN.match(username):
        raise ValueError("Username must be 3-50 characters: letters, numbers and underscores only")

    return username
