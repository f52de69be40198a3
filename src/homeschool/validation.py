"""Parsing of raw request parameters into typed, validated values.

Query strings and JSON bodies arrive as loosely typed data; every public entry
point runs them through these helpers before any classification or
aggregation happens.  Each helper raises :class:`InvalidInputError` on bad
input instead of substituting a default.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Optional, Tuple

from .academic import parse_date
from .classify import normalize_location
from .exceptions import InvalidInputError
from .hours import require_positive, to_decimal
from .models import GroupBy, Location
from .reporting import coerce_group_by

MIN_ACADEMIC_YEAR = 1900
MAX_ACADEMIC_YEAR = 2100
MAX_CREDIT_SCALE = Decimal("1000")
MIN_LOG_HOURS = Decimal("0.25")
MAX_LOG_HOURS = Decimal("24")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def parse_identifier(value: Any, field: str = "studentId") -> str:
    if _is_blank(value) or isinstance(value, bool):
        raise InvalidInputError(f"{field} is required.")
    return str(value).strip()


def parse_optional_identifier(value: Any, field: str = "studentId") -> Optional[str]:
    if _is_blank(value):
        return None
    return parse_identifier(value, field)


def parse_record_id(value: Any, field: str = "id") -> int:
    """Parse a positive integer primary key."""

    text = parse_identifier(value, field)
    try:
        number = int(text)
    except ValueError as exc:
        raise InvalidInputError(f"{field} must be a positive integer, got {value!r}.") from exc
    if number <= 0:
        raise InvalidInputError(f"{field} must be a positive integer, got {value!r}.")
    return number


def parse_positive_scale(value: Any, default: Decimal) -> Decimal:
    if _is_blank(value):
        return default
    try:
        scale = require_positive(to_decimal(value))
    except InvalidInputError as exc:
        raise InvalidInputError(f"scale must be a positive number, got {value!r}.") from exc
    if scale > MAX_CREDIT_SCALE:
        raise InvalidInputError(f"scale must not exceed {MAX_CREDIT_SCALE}, got {value!r}.")
    return scale


def parse_academic_year(value: Any) -> Optional[int]:
    if _is_blank(value):
        return None
    if isinstance(value, bool):
        raise InvalidInputError(f"Invalid academic year: {value!r}")
    try:
        year = int(str(value).strip())
    except ValueError as exc:
        raise InvalidInputError(f"Invalid academic year: {value!r}") from exc
    if not MIN_ACADEMIC_YEAR <= year <= MAX_ACADEMIC_YEAR:
        raise InvalidInputError(
            f"Academic year must be between {MIN_ACADEMIC_YEAR} and {MAX_ACADEMIC_YEAR}, got {year}."
        )
    return year


def parse_year_list(value: Any) -> Optional[Tuple[int, ...]]:
    """Parse ``"2023,2024"`` (or a sequence) into sorted unique years."""

    if _is_blank(value):
        return None
    parts = value.split(",") if isinstance(value, str) else list(value)
    years = {parse_academic_year(part) for part in parts if not _is_blank(part)}
    if not years:
        return None
    return tuple(sorted(years))


def parse_group_by(value: Any) -> GroupBy:
    if _is_blank(value):
        return GroupBy.SUBJECT
    return coerce_group_by(value)


def parse_hours(value: Any) -> Decimal:
    if _is_blank(value):
        raise InvalidInputError("hours is required.")
    hours = to_decimal(value)
    if not MIN_LOG_HOURS <= hours <= MAX_LOG_HOURS:
        raise InvalidInputError(f"hours must be between {MIN_LOG_HOURS} and {MAX_LOG_HOURS}, got {value!r}.")
    return hours


def parse_log_date(value: Any, *, today: date) -> date:
    if _is_blank(value):
        raise InvalidInputError("date is required.")
    day = parse_date(value)
    if day > today:
        raise InvalidInputError(f"date cannot be in the future: {day.isoformat()}.")
    return day


def parse_optional_date(value: Any) -> Optional[date]:
    if _is_blank(value):
        return None
    return parse_date(value)


def parse_location(value: Any) -> Location:
    if _is_blank(value):
        raise InvalidInputError("location is required.")
    return normalize_location(str(value))


__all__ = [
    "MAX_ACADEMIC_YEAR",
    "MAX_CREDIT_SCALE",
    "MAX_LOG_HOURS",
    "MIN_ACADEMIC_YEAR",
    "MIN_LOG_HOURS",
    "parse_academic_year",
    "parse_group_by",
    "parse_hours",
    "parse_identifier",
    "parse_location",
    "parse_log_date",
    "parse_optional_date",
    "parse_optional_identifier",
    "parse_positive_scale",
    "parse_record_id",
    "parse_year_list",
]
