"""High level service tying the reporting engine to a log-record source."""

from __future__ import annotations

from datetime import date
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple

from .academic import academic_year_bounds
from .config import ReportingConfig
from .models import AnnualReport, HourLogEntry, TranscriptRow, YearlySummaryRow
from .ops import StructuredLogger
from .reporting import build_annual_report, build_transcript, build_yearly_summary
from .validation import (
    parse_academic_year,
    parse_group_by,
    parse_identifier,
    parse_optional_identifier,
    parse_positive_scale,
    parse_year_list,
)

# source(student_id=..., start=..., end=...) -> hour log entries.  The source
# may filter coarsely; the engine re-applies every filter itself.
LogSource = Callable[..., Iterable[HourLogEntry]]
DateRange = Tuple[Optional[date], Optional[date]]


class ReportingService:
    """Validate report requests, fetch candidate logs and run the engine."""

    __slots__ = ("_config", "_source", "_logger")

    def __init__(
        self,
        config: ReportingConfig,
        source: LogSource,
        *,
        logger: Optional[StructuredLogger] = None,
    ) -> None:
        self._config = config
        self._source = source
        self._logger = logger or StructuredLogger()

    @property
    def config(self) -> ReportingConfig:
        return self._config

    @property
    def logger(self) -> StructuredLogger:
        return self._logger

    def annual_report(
        self,
        *,
        student_id: Any = None,
        academic_year: Any = None,
        group_by: Any = None,
    ) -> AnnualReport:
        student = parse_optional_identifier(student_id)
        year = parse_academic_year(academic_year)
        dimension = parse_group_by(group_by)
        entries = self._fetch(student, self._range_for((year,) if year is not None else None))
        report = build_annual_report(
            entries,
            group_by=dimension,
            core_subjects=self._config.core_subjects,
            fiscal_boundary=self._config.fiscal_boundary,
            student_id=student,
            academic_year=year,
            goals=self._config.goals,
        )
        self._logger.log(
            "annual_report_built",
            student=student,
            academic_year=year,
            group_by=dimension.value,
            entries=len(entries),
            groups=len(report.breakdown),
        )
        return report

    def transcript(
        self,
        student_id: Any,
        *,
        academic_years: Any = None,
        scale: Any = None,
    ) -> List[TranscriptRow]:
        student = parse_identifier(student_id)
        years = parse_year_list(academic_years)
        divisor = parse_positive_scale(scale, self._config.default_credit_scale)
        entries = self._fetch(student, self._range_for(years))
        rows = build_transcript(
            entries,
            student_id=student,
            academic_years=years,
            scale=divisor,
            fiscal_boundary=self._config.fiscal_boundary,
        )
        self._logger.log(
            "transcript_built",
            student=student,
            academic_years=list(years) if years else None,
            scale=float(divisor),
            entries=len(entries),
            rows=len(rows),
        )
        return rows

    def yearly_summary(self, *, student_id: Any = None, academic_year: Any = None) -> List[YearlySummaryRow]:
        student = parse_optional_identifier(student_id)
        year = parse_academic_year(academic_year)
        entries = self._fetch(student, self._range_for((year,) if year is not None else None))
        rows = build_yearly_summary(
            entries,
            core_subjects=self._config.core_subjects,
            fiscal_boundary=self._config.fiscal_boundary,
            student_id=student,
            academic_year=year,
        )
        self._logger.log("yearly_summary_built", student=student, academic_year=year, rows=len(rows))
        return rows

    def _range_for(self, years: Optional[Sequence[int]]) -> DateRange:
        if not years:
            return None, None
        boundary = self._config.fiscal_boundary
        start, _ = academic_year_bounds(min(years), boundary)
        _, end = academic_year_bounds(max(years), boundary)
        return start, end

    def _fetch(self, student_id: Optional[str], date_range: DateRange) -> List[HourLogEntry]:
        start, end = date_range
        return list(self._source(student_id=student_id, start=start, end=end))


__all__ = ["LogSource", "ReportingService"]
