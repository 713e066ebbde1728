"""Field rules shared by registration and profile updates."""

from __future__ import annotations

import re
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional

from email_validator import EmailNotValidError, validate_email

from .errors import ValidationError
from .models import INTERESTS, LANGUAGES

PHONE_PATTERN = re.compile(r"^\+?[\d\s\-()]+$")
MIN_PASSWORD_LENGTH = 6
MAX_NAME_LENGTH = 50
MAX_PASSWORD_BYTES = 72
MIN_RATING = 1
MAX_RATING = 5


def normalize_email(email: Optional[str]) -> str:
    value = (email or "").strip()
    if not value:
        raise ValidationError("Please add an email")
    try:
        result = validate_email(value, check_deliverability=False)
    except EmailNotValidError as exc:
        raise ValidationError("Please add a valid email") from exc
    return result.normalized.lower()


def validate_password(password: Optional[str]) -> str:
    if not password:
        raise ValidationError("Please add a password")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password cannot be longer than {MAX_PASSWORD_BYTES} bytes")
    return password


def validate_name(value: Optional[str], label: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"Please add a {label}")
    if len(cleaned) > MAX_NAME_LENGTH:
        raise ValidationError(f"{label.capitalize()} cannot be more than {MAX_NAME_LENGTH} characters")
    return cleaned


def validate_phone(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    cleaned = value.strip()
    if not cleaned:
        return None
    if not PHONE_PATTERN.match(cleaned):
        raise ValidationError("Please add a valid phone number")
    return cleaned


def validate_date_of_birth(value: Any) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as exc:
        raise ValidationError("Date of birth must be an ISO date") from exc


def validate_language(value: str) -> str:
    if value not in LANGUAGES:
        raise ValidationError(f"Language must be one of: {', '.join(LANGUAGES)}")
    return value


def validate_interests(values: Iterable[str]) -> List[str]:
    if isinstance(values, str) or not isinstance(values, Iterable):
        raise ValidationError("Interests must be a list")
    result = []
    for value in values:
        if value not in INTERESTS:
            raise ValidationError(f"Unknown interest: {value}")
        if value not in result:
            result.append(value)
    return result


def validate_budget(data: Mapping[str, Any]) -> Dict[str, Optional[float]]:
    if not isinstance(data, Mapping):
        raise ValidationError("Budget must be an object")
    minimum = data.get("min")
    maximum = data.get("max")
    for bound in (minimum, maximum):
        if bound is not None and (isinstance(bound, bool) or not isinstance(bound, (int, float))):
            raise ValidationError("Budget bounds must be numbers")
    if minimum is not None and maximum is not None and minimum > maximum:
        raise ValidationError("Budget minimum cannot exceed maximum")
    return {"min": minimum, "max": maximum}


def validate_rating(value: Optional[int]) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or not MIN_RATING <= value <= MAX_RATING:
        raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}")
    return value
