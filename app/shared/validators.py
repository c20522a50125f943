"""Shared validation utilities"""

import re
from typing import Optional

from ..config import DEFAULT_PHONE_COUNTRY_CODE

MIN_PASSWORD_LENGTH = 8


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


def format_phone(phone: Optional[str], country_code: str = DEFAULT_PHONE_COUNTRY_CODE) -> Optional[str]:
    """
    Normalize a phone number for WhatsApp delivery.

    Spaces and hyphens are stripped; numbers stored without an international
    prefix get the default country code.
    """
    if not phone:
        return phone

    formatted = re.sub(r"[\s-]", "", phone)
    if not formatted.startswith("+"):
        formatted = country_code + formatted
    return formatted


def validate_min_password_length(password: str) -> str:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return password


def validate_password_strength(password: str) -> str:
    """
    Password policy for self-chosen passwords.

    Raises:
        ValueError: naming the first rule the password breaks
    """
    validate_min_password_length(password)
    if not re.search(r"[A-Z]", password):
        raise ValueError("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        raise ValueError("Password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        raise ValueError("Password must contain at least one number")
    return password
