"""Materialize the provider-signup notification from a partial provider record."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from ..schemas.notifications import ProviderSignupNotification

# payload field -> (record field, placeholder)
SCALAR_FIELDS: dict[str, tuple[str, str]] = {
    "name": ("provider_name", "Name not available"),
    "email": ("email", "Email not available"),
    "practice_name": ("practice_name", "Practice name not available"),
    "phone": ("phone", "Phone not provided"),
    "address": ("address", "Address not provided"),
    "npi_number": ("npi_number", "NPI not provided"),
}

LIST_FIELDS: dict[str, str] = {
    "specialties": "specialties",
    "certifications": "board_certifications",
    "hospital_affiliations": "hospital_affiliations",
    "education_and_training": "education_and_training",
}


def _scalar(value: Any, placeholder: str) -> str:
    if value is None:
        return placeholder
    text = str(value).strip()
    return text or placeholder


def _sequence(value: Any) -> list[Any]:
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def build_signup_notification(
    provider_id: str | int,
    record: Mapping[str, Any] | None,
) -> ProviderSignupNotification:
    """Build a fully populated notification payload.

    Every scalar field falls back to its placeholder when the record lacks
    it or holds an empty value; list fields fall back to ``[]``. Pure: the
    record is not modified.
    """
    record = record or {}
    payload: dict[str, Any] = {"id": str(provider_id)}
    for field_name, (source, placeholder) in SCALAR_FIELDS.items():
        payload[field_name] = _scalar(record.get(source), placeholder)
    for field_name, source in LIST_FIELDS.items():
        payload[field_name] = _sequence(record.get(source))
    return ProviderSignupNotification(**payload)
