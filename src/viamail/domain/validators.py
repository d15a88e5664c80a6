"""Field format rules shared by the back-office services."""

from __future__ import annotations

import re

CI_PATTERN = re.compile(r"^[0-9]{5,15}$")
PHONE_PATTERN = re.compile(r"^[0-9]{5,15}$")
EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9+_.-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$")
PLATE_PATTERN = re.compile(r"^[A-Z0-9-]{3,15}$")


def is_valid_ci(value: str | None) -> bool:
    return value is not None and CI_PATTERN.match(value) is not None


def is_valid_phone(value: str | None) -> bool:
    return value is not None and PHONE_PATTERN.match(value) is not None


def is_valid_email(value: str | None) -> bool:
    return value is not None and EMAIL_PATTERN.match(value) is not None


def normalize_plate(value: str) -> str:
    return value.strip().upper()


def is_valid_plate(value: str | None) -> bool:
    return value is not None and PLATE_PATTERN.match(normalize_plate(value)) is not None


def is_blank(value: str | None) -> bool:
    return value is None or not value.strip()
