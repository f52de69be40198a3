"""Annual hour reports and transcript credit conversion.

All functions here are pure: they take the candidate log entries, re-apply the
student/year filters themselves (the store may over- or under-filter) and
return freshly built report objects.  Sums are carried as unrounded
:class:`~decimal.Decimal` values and only rounded to two places when the
output rows are built.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Collection, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from .academic import DEFAULT_BOUNDARY, FiscalBoundary, academic_year, month_label
from .classify import CoreSubjectSet, is_core, is_core_at_home, normalize_label
from .exceptions import InvalidInputError
from .hours import HoursLike, ZERO, clamp_non_negative, require_positive, round2, to_decimal
from .models import (
    ELECTIVE_SUBJECT,
    UNASSIGNED_SUBJECT,
    UNKNOWN_STUDENT,
    UNTITLED_COURSE,
    AnnualReport,
    BreakdownRow,
    GroupBy,
    HourGoals,
    HourLogEntry,
    MetricProgress,
    ReportTotals,
    TranscriptRow,
    YearlySummaryRow,
)

DEFAULT_SCALE = Decimal("120")
HUNDRED = Decimal("100")


@dataclass(slots=True)
class _Bucket:
    total: Decimal = ZERO
    core: Decimal = ZERO
    core_home: Decimal = ZERO

    def add(self, entry: HourLogEntry, core_subjects: CoreSubjectSet) -> None:
        self.total += entry.hours
        if is_core(entry.subject, core_subjects):
            self.core += entry.hours
            if is_core_at_home(entry.subject, entry.location, core_subjects):
                self.core_home += entry.hours

    def totals(self) -> ReportTotals:
        return ReportTotals(
            total_hours=round2(self.total),
            core_hours=round2(self.core),
            core_at_home_hours=round2(self.core_home),
            non_core_hours=round2(clamp_non_negative(self.total - self.core)),
        )

    def row(self, group: str) -> BreakdownRow:
        return BreakdownRow(
            group=group,
            total=round2(self.total),
            core=round2(self.core),
            core_home=round2(self.core_home),
            non_core=round2(clamp_non_negative(self.total - self.core)),
        )


def coerce_group_by(value: Union[GroupBy, str]) -> GroupBy:
    if isinstance(value, GroupBy):
        return value
    try:
        return GroupBy(str(value).strip().lower())
    except ValueError as exc:
        choices = ", ".join(option.value for option in GroupBy)
        raise InvalidInputError(f"groupBy must be one of {choices}; got {value!r}.") from exc


def _text_or(value: str, fallback: str) -> str:
    cleaned = " ".join((value or "").split())
    return cleaned or fallback


def _group_key_function(group_by: GroupBy) -> Callable[[HourLogEntry], str]:
    if group_by is GroupBy.SUBJECT:
        return lambda entry: _text_or(entry.subject, UNASSIGNED_SUBJECT)
    if group_by is GroupBy.COURSE:
        return lambda entry: _text_or(entry.course_title, UNTITLED_COURSE)
    return lambda entry: month_label(entry.date)


def _normalise_student_id(student_id: object) -> Optional[str]:
    if student_id is None:
        return None
    text = str(student_id).strip()
    return text or None


def filter_entries(
    entries: Iterable[HourLogEntry],
    *,
    student_id: object = None,
    academic_years: Optional[Collection[int]] = None,
    fiscal_boundary: FiscalBoundary = DEFAULT_BOUNDARY,
) -> Iterator[HourLogEntry]:
    """Yield the entries matching ``student_id`` and ``academic_years``.

    ``None`` for either filter accepts everything.
    """

    wanted_student = _normalise_student_id(student_id)
    wanted_years = None if academic_years is None else frozenset(academic_years)
    for entry in entries:
        if wanted_student is not None and entry.student_id != wanted_student:
            continue
        if wanted_years is not None and academic_year(entry.date, fiscal_boundary) not in wanted_years:
            continue
        yield entry


def build_annual_report(
    entries: Iterable[HourLogEntry],
    *,
    group_by: Union[GroupBy, str],
    core_subjects: CoreSubjectSet,
    fiscal_boundary: FiscalBoundary = DEFAULT_BOUNDARY,
    student_id: object = None,
    academic_year: Optional[int] = None,
    goals: Optional[HourGoals] = None,
) -> AnnualReport:
    """Aggregate ``entries`` into totals and a first-seen ordered breakdown.

    With ``goals`` the report also carries progress towards each target.
    """

    dimension = coerce_group_by(group_by)
    key_for = _group_key_function(dimension)
    years = None if academic_year is None else (academic_year,)

    overall = _Bucket()
    groups: Dict[str, _Bucket] = {}
    for entry in filter_entries(
        entries,
        student_id=student_id,
        academic_years=years,
        fiscal_boundary=fiscal_boundary,
    ):
        overall.add(entry, core_subjects)
        key = key_for(entry)
        bucket = groups.get(key)
        if bucket is None:
            bucket = groups[key] = _Bucket()
        bucket.add(entry, core_subjects)

    totals = overall.totals()
    return AnnualReport(
        totals=totals,
        breakdown=tuple(bucket.row(group) for group, bucket in groups.items()),
        progress=None if goals is None else progress_against(totals, goals),
    )


def _progress(hours: Decimal, goal: Decimal) -> MetricProgress:
    percent = min(max(hours / goal * HUNDRED, ZERO), HUNDRED)
    return MetricProgress(
        goal=goal,
        hours=hours,
        remaining=round2(clamp_non_negative(goal - hours)),
        percent=round2(percent),
    )


def progress_against(totals: ReportTotals, goals: HourGoals) -> Dict[str, MetricProgress]:
    """Return per-metric progress keyed like :meth:`ReportTotals.to_dict`."""

    return {
        "totalHours": _progress(totals.total_hours, goals.total),
        "coreHours": _progress(totals.core_hours, goals.core),
        "coreAtHomeHours": _progress(totals.core_at_home_hours, goals.core_home),
        "nonCoreHours": _progress(totals.non_core_hours, goals.non_core),
    }


def credits_for(hours: Decimal, scale: Decimal) -> Decimal:
    return round2(hours / scale)


def build_transcript(
    entries: Iterable[HourLogEntry],
    *,
    student_id: object,
    academic_years: Optional[Collection[int]] = None,
    scale: HoursLike = DEFAULT_SCALE,
    fiscal_boundary: FiscalBoundary = DEFAULT_BOUNDARY,
) -> List[TranscriptRow]:
    """Sum hours per (academic year, course, subject) and convert them to credits.

    Rows come back ordered by academic year, then course title, then subject.
    """

    wanted_student = _normalise_student_id(student_id)
    if wanted_student is None:
        raise InvalidInputError("A student id is required to build a transcript.")
    divisor = require_positive(to_decimal(scale))

    sums: Dict[Tuple[int, str, str], Decimal] = {}
    for entry in filter_entries(
        entries,
        student_id=wanted_student,
        academic_years=academic_years,
        fiscal_boundary=fiscal_boundary,
    ):
        key = (
            academic_year(entry.date, fiscal_boundary),
            _text_or(entry.course_title, UNTITLED_COURSE),
            _text_or(entry.subject, ELECTIVE_SUBJECT),
        )
        sums[key] = sums.get(key, ZERO) + entry.hours

    return [
        TranscriptRow(
            student_id=wanted_student,
            academic_year=year,
            course_title=course_title,
            subject=subject,
            hours_total=round2(hours),
            credits_at_scale=credits_for(hours, divisor),
        )
        for (year, course_title, subject), hours in sorted(sums.items(), key=lambda item: _course_sort_key(item[0]))
    ]


def build_yearly_summary(
    entries: Iterable[HourLogEntry],
    *,
    core_subjects: CoreSubjectSet,
    fiscal_boundary: FiscalBoundary = DEFAULT_BOUNDARY,
    student_id: object = None,
    academic_year: Optional[int] = None,
) -> List[YearlySummaryRow]:
    """Return one totals row per (student, academic year), ordered by both."""

    years = None if academic_year is None else (academic_year,)
    buckets: Dict[Tuple[str, int], _Bucket] = {}
    names: Dict[str, str] = {}
    for entry in filter_entries(
        entries,
        student_id=student_id,
        academic_years=years,
        fiscal_boundary=fiscal_boundary,
    ):
        key = (entry.student_id, _year_of(entry, fiscal_boundary))
        bucket = buckets.get(key)
        if bucket is None:
            bucket = buckets[key] = _Bucket()
        bucket.add(entry, core_subjects)
        if entry.student_name and entry.student_id not in names:
            names[entry.student_id] = entry.student_name

    return [
        YearlySummaryRow(
            student_id=student,
            student_name=names.get(student, UNKNOWN_STUDENT),
            academic_year=year,
            totals=bucket.totals(),
        )
        for (student, year), bucket in sorted(buckets.items(), key=lambda item: _student_sort_key(item[0]))
    ]


def _course_sort_key(key: Tuple[int, str, str]) -> Tuple[int, str, str, str, str]:
    year, course_title, subject = key
    return (year, normalize_label(course_title), normalize_label(subject), course_title, subject)


def _year_of(entry: HourLogEntry, boundary: FiscalBoundary) -> int:
    return academic_year(entry.date, boundary)


def _student_sort_key(key: Tuple[str, int]) -> Tuple[int, int, str, int]:
    # Numeric ids sort numerically, anything else after them alphabetically.
    student, year = key
    if student.isdigit():
        return (0, int(student), "", year)
    return (1, 0, student, year)


__all__ = [
    "DEFAULT_SCALE",
    "build_annual_report",
    "build_transcript",
    "build_yearly_summary",
    "coerce_group_by",
    "credits_for",
    "filter_entries",
    "progress_against",
]
