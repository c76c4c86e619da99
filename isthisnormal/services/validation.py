"""Inbound request checks for /analyze-symptom.

Every failure raises ClientValidationError with a message naming the field;
the route renders it as a 400.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from isthisnormal.schemas.symptoms import (
    AGE_RANGES,
    BODY_AREAS,
    DURATIONS,
    SYMPTOM_TEXT_MAX_LENGTH,
)
from isthisnormal.utils.exceptions import ClientValidationError


@dataclass(frozen=True)
class ValidatedSymptomRequest:
    symptom_text: str  # sanitized, safe to interpolate into a prompt
    body_area: Optional[str] = None
    duration: Optional[str] = None
    age_range: Optional[str] = None


def sanitize_input(text: str) -> str:
    """Drop backslashes and flatten newlines before prompt interpolation.

    Guards against control-character injection only, not semantic injection.
    """
    text = text.replace("\\", "")
    text = text.replace("\r\n", " ").replace("\r", " ").replace("\n", " ")
    return text.strip()


def validate_symptom_text(value: Any) -> str:
    if not value or not isinstance(value, str):
        raise ClientValidationError("Symptom description is required")

    trimmed = value.strip()
    if not trimmed:
        raise ClientValidationError("Symptom description cannot be empty")
    if len(trimmed) > SYMPTOM_TEXT_MAX_LENGTH:
        raise ClientValidationError(
            f"Symptom description must be less than {SYMPTOM_TEXT_MAX_LENGTH} characters"
        )
    return sanitize_input(trimmed)


def validate_enum_field(value: Any, allowed: Iterable[str], field_name: str) -> Optional[str]:
    if value is None or value == "":
        return None
    if not isinstance(value, str) or value not in allowed:
        raise ClientValidationError(f"Invalid {field_name}")
    return value


def validate_request(payload: Any) -> ValidatedSymptomRequest:
    if not isinstance(payload, Mapping):
        raise ClientValidationError("Invalid request body")

    symptom_text = validate_symptom_text(payload.get("symptomText"))
    return ValidatedSymptomRequest(
        symptom_text=symptom_text,
        body_area=validate_enum_field(payload.get("bodyArea"), BODY_AREAS, "body area"),
        duration=validate_enum_field(payload.get("duration"), DURATIONS, "duration"),
        age_range=validate_enum_field(payload.get("ageRange"), AGE_RANGES, "age range"),
    )


__all__ = [
    "ValidatedSymptomRequest",
    "sanitize_input",
    "validate_symptom_text",
    "validate_enum_field",
    "validate_request",
]
