"""Profile field extraction and validation.

MOI endpoints are inconsistent about key casing (`fullName` vs `FullName`),
so every field is looked up under both conventions. Validation mirrors the
formats the kiosk backend accepts; it runs before any kiosk call is made.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

from .sync_models import NATIONAL_ID_PATTERN, UserProfile

MOBILE_PATTERN = re.compile(r"^(010|011|012|015)[0-9]{8}$")
PASSPORT_MIN_LENGTH = 5

FULL_NAME_KEYS = ("fullName", "FullName")
MOBILE_KEYS = ("mobile", "Mobile")
NATIONAL_ID_KEYS = ("cardId", "CardId", "nationalId", "NationalId")
PASSPORT_KEYS = ("passportNumber", "PassportNumber")
EMAIL_KEYS = ("email", "Email")


class FieldValidationError(Exception):
    """A required profile field is missing or malformed."""

    def __init__(self, field: str, message_key: str, error: str):
        super().__init__(error)
        self.field = field
        self.message_key = message_key
        self.error = error


def _lookup(raw: Mapping[str, Any], keys: tuple[str, ...]) -> str:
    for key in keys:
        value = raw.get(key)
        if value is None:
            continue
        value = str(value).strip()
        if value:
            return value
    return ""


def extract_profile(raw: Mapping[str, Any]) -> UserProfile:
    return UserProfile(
        full_name=_lookup(raw, FULL_NAME_KEYS),
        mobile_number=_lookup(raw, MOBILE_KEYS),
        national_id=_lookup(raw, NATIONAL_ID_KEYS),
        passport_number=_lookup(raw, PASSPORT_KEYS),
        email=_lookup(raw, EMAIL_KEYS),
    )


def validate_profile(profile: UserProfile) -> None:
    """Raise FieldValidationError for the first missing or malformed field.

    Order: full name, mobile presence, identity presence, identity format,
    mobile format.
    """
    if not profile.full_name:
        raise FieldValidationError(
            "fullName", "profile_full_name_missing", "Full name not found in profile")

    if not profile.mobile_number:
        raise FieldValidationError(
            "mobile", "profile_mobile_missing", "Mobile number not found in profile")

    if not profile.identity_number:
        raise FieldValidationError(
            "nationalId", "profile_identity_missing", "National ID not found in profile")

    if profile.national_id:
        if not NATIONAL_ID_PATTERN.match(profile.national_id):
            raise FieldValidationError(
                "nationalId", "profile_national_id_format",
                "National ID must be exactly 14 digits")
    elif len(profile.passport_number) < PASSPORT_MIN_LENGTH:
        raise FieldValidationError(
            "passportNumber", "profile_passport_format",
            f"Passport number must be at least {PASSPORT_MIN_LENGTH} characters")

    if not MOBILE_PATTERN.match(profile.mobile_number):
        raise FieldValidationError(
            "mobile", "profile_mobile_format",
            "Mobile number must be 11 digits starting with 010, 011, 012, or 015")


def extract_and_validate(raw: Mapping[str, Any]) -> UserProfile:
    profile = extract_profile(raw)
    validate_profile(profile)
    return profile
