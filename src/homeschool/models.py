"""Domain models used by the homeschool reporting engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .academic import parse_date
from .exceptions import InvalidInputError
from .hours import ZERO, as_float, require_positive, to_decimal

UNTITLED_COURSE = "Untitled Course"
UNASSIGNED_SUBJECT = "Unassigned"
ELECTIVE_SUBJECT = "Elective"
UNKNOWN_STUDENT = "Unknown"


class Location(str, Enum):
    """Where an hour of instruction took place."""

    HOME = "home"
    OFFSITE = "offsite"


class GroupBy(str, Enum):
    """Dimensions an annual report breakdown can be grouped by."""

    SUBJECT = "subject"
    COURSE = "course"
    MONTH = "month"


@dataclass(slots=True, frozen=True)
class HourLogEntry:
    """A single logged block of instruction time, as read from the log store.

    The engine only reads these.  ``location`` and ``subject`` are kept as the
    raw strings the store returned; classification normalises them.
    """

    student_id: str
    date: date
    hours: Decimal
    location: str = ""
    subject: str = ""
    course_id: Optional[str] = None
    course_title: str = ""
    student_name: str = ""

    def __post_init__(self) -> None:
        if self.student_id is None or str(self.student_id).strip() == "":
            raise InvalidInputError("Hour log entries require a student id.")
        hours = to_decimal(self.hours)
        require_positive(hours, allow_zero=True)
        object.__setattr__(self, "student_id", str(self.student_id).strip())
        object.__setattr__(self, "date", parse_date(self.date))
        object.__setattr__(self, "hours", hours)
        object.__setattr__(self, "location", self.location or "")
        object.__setattr__(self, "subject", self.subject or "")
        object.__setattr__(self, "course_title", self.course_title or "")
        object.__setattr__(self, "student_name", self.student_name or "")
        if self.course_id is not None:
            object.__setattr__(self, "course_id", str(self.course_id))


@dataclass(slots=True)
class ReportTotals:
    """Aggregate hour buckets for an annual report."""

    total_hours: Decimal = ZERO
    core_hours: Decimal = ZERO
    core_at_home_hours: Decimal = ZERO
    non_core_hours: Decimal = ZERO

    def to_dict(self) -> Dict[str, float]:
        return {
            "totalHours": as_float(self.total_hours),
            "coreHours": as_float(self.core_hours),
            "coreAtHomeHours": as_float(self.core_at_home_hours),
            "nonCoreHours": as_float(self.non_core_hours),
        }


@dataclass(slots=True)
class BreakdownRow:
    """Hour buckets for one value of the grouping dimension."""

    group: str
    total: Decimal = ZERO
    core: Decimal = ZERO
    core_home: Decimal = ZERO
    non_core: Decimal = ZERO

    def to_dict(self) -> Dict[str, Any]:
        return {
            "group": self.group,
            "total": as_float(self.total),
            "core": as_float(self.core),
            "coreHome": as_float(self.core_home),
            "nonCore": as_float(self.non_core),
        }


@dataclass(slots=True, frozen=True)
class HourGoals:
    """Annual hour targets the report progress bars are measured against."""

    total: Decimal = Decimal("1000")
    core: Decimal = Decimal("600")
    core_home: Decimal = Decimal("400")
    non_core: Decimal = Decimal("400")

    def __post_init__(self) -> None:
        for name in ("total", "core", "core_home", "non_core"):
            try:
                value = require_positive(to_decimal(getattr(self, name)))
            except InvalidInputError as exc:
                raise InvalidInputError(f"Goal {name!r} must be a positive number.") from exc
            object.__setattr__(self, name, value)

    @classmethod
    def parse(cls, raw: str) -> "HourGoals":
        """Build goals from ``"total=1000,core=600,coreHome=400,nonCore=400"``.

        Keys that are left out keep their defaults.
        """

        values: Dict[str, str] = {}
        for part in (raw or "").split(","):
            if not part.strip():
                continue
            key, sep, value = part.partition("=")
            field_name = _GOAL_KEYS.get(key.strip().replace("_", "").lower())
            if not sep or field_name is None:
                raise InvalidInputError(f"Unknown goal setting: {part.strip()!r}")
            values[field_name] = value.strip()
        return cls(**values)

    def to_dict(self) -> Dict[str, float]:
        return {
            "totalHours": as_float(self.total),
            "coreHours": as_float(self.core),
            "coreAtHomeHours": as_float(self.core_home),
            "nonCoreHours": as_float(self.non_core),
        }


_GOAL_KEYS = {
    "total": "total",
    "totalhours": "total",
    "core": "core",
    "corehours": "core",
    "corehome": "core_home",
    "coreathomehours": "core_home",
    "noncore": "non_core",
    "noncorehours": "non_core",
}


@dataclass(slots=True, frozen=True)
class MetricProgress:
    """Hours logged against one goal."""

    goal: Decimal
    hours: Decimal
    remaining: Decimal
    percent: Decimal

    def to_dict(self) -> Dict[str, float]:
        return {
            "goal": as_float(self.goal),
            "hours": as_float(self.hours),
            "remaining": as_float(self.remaining),
            "percent": as_float(self.percent),
        }


@dataclass(slots=True)
class AnnualReport:
    """Totals plus the ordered per-group breakdown.

    ``progress`` is keyed like the totals payload and only present when the
    report was built against goals.
    """

    totals: ReportTotals = field(default_factory=ReportTotals)
    breakdown: Tuple[BreakdownRow, ...] = ()
    progress: Optional[Dict[str, MetricProgress]] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "totals": self.totals.to_dict(),
            "breakdown": [row.to_dict() for row in self.breakdown],
        }
        if self.progress is not None:
            payload["progress"] = {key: value.to_dict() for key, value in self.progress.items()}
        return payload


@dataclass(slots=True, frozen=True)
class TranscriptRow:
    """Hours and derived credits for one (year, course, subject) group."""

    student_id: str
    academic_year: int
    course_title: str
    subject: str
    hours_total: Decimal
    credits_at_scale: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "studentId": self.student_id,
            "academicYear": self.academic_year,
            "courseTitle": self.course_title,
            "subject": self.subject,
            "hoursTotal": as_float(self.hours_total),
            "creditsAtScale": as_float(self.credits_at_scale),
        }


@dataclass(slots=True)
class YearlySummaryRow:
    """Per-student, per-academic-year hour totals."""

    student_id: str
    student_name: str
    academic_year: int
    totals: ReportTotals = field(default_factory=ReportTotals)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "studentId": self.student_id,
            "studentName": self.student_name,
            "academicYear": self.academic_year,
            **self.totals.to_dict(),
        }


__all__ = [
    "AnnualReport",
    "BreakdownRow",
    "ELECTIVE_SUBJECT",
    "GroupBy",
    "HourLogEntry",
    "Location",
    "ReportTotals",
    "TranscriptRow",
    "UNASSIGNED_SUBJECT",
    "UNKNOWN_STUDENT",
    "UNTITLED_COURSE",
    "YearlySummaryRow",
]
