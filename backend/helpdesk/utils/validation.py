"""Reusable validation helpers for request payloads.

Checks append a message to a shared ``errors`` list instead of failing on the first
problem, so callers can report every violated constraint at once via ``raise_if_errors``.
"""
from __future__ import annotations
import re
from typing import Any, Iterable, List, Optional, Tuple
from flask import request
from email_validator import validate_email, EmailNotValidError
from helpdesk.errors import ValidationError

PASSWORD_MIN_LENGTH = 6
NAME_LENGTH = (2, 100)
DEPARTMENT_MAX_LENGTH = 100
COMMENT_LENGTH = (1, 2000)

_PASSWORD_CLASSES = re.compile(r'^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)')
_PHONE = re.compile(r'^\+?[0-9 ()\-]{7,20}$')


def check_text(errors: List[str], field: str, value: Any, bounds: Tuple[int, int]) -> Optional[str]:
    """Trim ``value`` and check its length against inclusive bounds; returns the trimmed text."""
    lo, hi = bounds
    if not isinstance(value, str):
        errors.append(f"{field} must be a string between {lo} and {hi} characters")
        return None
    text = value.strip()
    if not lo <= len(text) <= hi:
        errors.append(f"{field} must be between {lo} and {hi} characters")
        return None
    return text


def check_choice(errors: List[str], field: str, value: Any, allowed: Iterable[str]) -> Optional[str]:
    allowed = tuple(allowed)
    if value not in allowed:
        errors.append(f"{field} must be one of: {', '.join(allowed)}")
        return None
    return value


def check_optional_text(errors: List[str], field: str, value: Any, max_length: int) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str) or len(value.strip()) > max_length:
        errors.append(f"{field} must be less than {max_length} characters")
        return None
    return value.strip() or None


def check_email(errors: List[str], value: Any, field: str = 'email') -> Optional[str]:
    """Return the normalized, lowercased address or record an error."""
    if not isinstance(value, str) or not value.strip():
        errors.append(f"Valid {field} is required")
        return None
    try:
        result = validate_email(value.strip(), check_deliverability=False)
    except EmailNotValidError:
        errors.append(f"Valid {field} is required")
        return None
    return result.normalized.lower()


def check_password(errors: List[str], value: Any, field: str = 'password') -> Optional[str]:
    if not isinstance(value, str) or len(value) < PASSWORD_MIN_LENGTH:
        errors.append(f"{field} must be at least {PASSWORD_MIN_LENGTH} characters long")
        return None
    if not _PASSWORD_CLASSES.match(value):
        errors.append(f"{field} must contain at least one uppercase letter, one lowercase letter, and one number")
        return None
    return value


def check_phone(errors: List[str], value: Any, field: str = 'phone') -> Optional[str]:
    if value is None or value == '':
        return None
    if not isinstance(value, str) or not _PHONE.match(value.strip()):
        errors.append(f"Invalid {field} number")
        return None
    return value.strip()


def check_positive_int(errors: List[str], field: str, value: Any, nullable: bool = False) -> Optional[int]:
    if value is None and nullable:
        return None
    number = 0
    # bool is an int subclass; never treat true/false as an id
    if not isinstance(value, (bool, float)):
        try:
            number = int(value)
        except (TypeError, ValueError):
            number = 0
    if number < 1:
        errors.append(f"{field} must be a positive integer")
        return None
    return number


def raise_if_errors(errors: List[str]):
    if errors:
        raise ValidationError(errors)


def json_body() -> dict:
    """The request's JSON object; a missing body reads as empty, any other shape is a 400."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError(['Request body must be a JSON object'])
    return data

__all__ = [
    'check_text', 'check_choice', 'check_optional_text', 'check_email',
    'check_password', 'check_phone', 'check_positive_int', 'raise_if_errors', 'json_body',
    'COMMENT_LENGTH', 'NAME_LENGTH', 'DEPARTMENT_MAX_LENGTH',
]
