"""Academic-year arithmetic.

An academic year runs from a configurable fiscal start (July 1 unless told
otherwise) to the day before the same month/day of the following calendar year
and is labelled by the calendar year it starts in.  Everything in this module
is pure; the boundary is always passed in by the caller.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Tuple, Union

from .exceptions import InvalidInputError

DateLike = Union[date, datetime, str]

# Fixed English abbreviations so month grouping does not depend on the locale.
MONTH_ABBREVIATIONS: Tuple[str, ...] = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)


@dataclass(slots=True, frozen=True)
class FiscalBoundary:
    """Month/day pair on which a new academic year starts (inclusive)."""

    month: int = 7
    day: int = 1

    def __post_init__(self) -> None:
        if isinstance(self.month, bool) or not isinstance(self.month, int) or not 1 <= self.month <= 12:
            raise InvalidInputError(f"Fiscal start month must be 1-12, got {self.month!r}.")
        # A non-leap year: a boundary on Feb 29 would skip most academic years.
        last_day = calendar.monthrange(2001, self.month)[1]
        if isinstance(self.day, bool) or not isinstance(self.day, int) or not 1 <= self.day <= last_day:
            raise InvalidInputError(
                f"Fiscal start day must be 1-{last_day} for month {self.month}, got {self.day!r}."
            )

    @classmethod
    def parse(cls, raw: str) -> "FiscalBoundary":
        """Build a boundary from ``"MM-DD"`` (``"7-1"`` is accepted too)."""

        month_part, sep, day_part = (raw or "").strip().partition("-")
        if not sep:
            raise InvalidInputError(f"Fiscal start must look like MM-DD, got {raw!r}.")
        try:
            return cls(int(month_part), int(day_part))
        except ValueError as exc:
            raise InvalidInputError(f"Fiscal start must look like MM-DD, got {raw!r}.") from exc

    def isoformat(self) -> str:
        return f"{self.month:02d}-{self.day:02d}"


DEFAULT_BOUNDARY = FiscalBoundary()


def parse_date(value: DateLike) -> date:
    """Return ``value`` as a :class:`~datetime.date`.

    Accepts ``date``/``datetime`` objects and ISO ``YYYY-MM-DD`` strings (a
    trailing time component is ignored).  Anything else raises
    :class:`InvalidInputError`.
    """

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        raw = value.strip()
        if "T" in raw:
            raw = raw.split("T", 1)[0]
        try:
            return date.fromisoformat(raw)
        except ValueError as exc:
            raise InvalidInputError(f"Invalid date: {value!r}") from exc
    raise InvalidInputError(f"Invalid date: {value!r}")


def academic_year(value: DateLike, boundary: FiscalBoundary = DEFAULT_BOUNDARY) -> int:
    """Return the academic-year label that ``value`` falls in."""

    day = parse_date(value)
    if (day.month, day.day) >= (boundary.month, boundary.day):
        return day.year
    return day.year - 1


def academic_year_bounds(year: int, boundary: FiscalBoundary = DEFAULT_BOUNDARY) -> Tuple[date, date]:
    """Return the first and last calendar day of academic ``year``."""

    start = date(year, boundary.month, boundary.day)
    end = date(year + 1, boundary.month, boundary.day) - timedelta(days=1)
    return start, end


def academic_year_label(year: int) -> str:
    return f"{year}-{year + 1}"


def month_label(value: DateLike) -> str:
    return MONTH_ABBREVIATIONS[parse_date(value).month - 1]


__all__ = [
    "DEFAULT_BOUNDARY",
    "FiscalBoundary",
    "MONTH_ABBREVIATIONS",
    "academic_year",
    "academic_year_bounds",
    "academic_year_label",
    "month_label",
    "parse_date",
]
