"""Homeschool records: instruction-hour logging and compliance reporting."""

from .academic import FiscalBoundary, academic_year, academic_year_bounds, academic_year_label
from .api import ReportExporter
from .classify import CoreSubjectSet, is_core, is_core_at_home, normalize_location
from .config import ReportingConfig, default_reporting_config, load_reporting_config
from .exceptions import DuplicateRecordError, HomeschoolError, InvalidInputError, RecordNotFoundError
from .models import (
    AnnualReport,
    BreakdownRow,
    GroupBy,
    HourGoals,
    HourLogEntry,
    Location,
    MetricProgress,
    ReportTotals,
    TranscriptRow,
    YearlySummaryRow,
)
from .ops import HealthMonitor, StructuredLogger
from .reporting import build_annual_report, build_transcript, build_yearly_summary
from .service import ReportingService

__all__ = [
    "AnnualReport",
    "BreakdownRow",
    "CoreSubjectSet",
    "DuplicateRecordError",
    "FiscalBoundary",
    "GroupBy",
    "HealthMonitor",
    "HomeschoolError",
    "HourGoals",
    "HourLogEntry",
    "InvalidInputError",
    "Location",
    "MetricProgress",
    "RecordNotFoundError",
    "ReportExporter",
    "ReportTotals",
    "ReportingConfig",
    "ReportingService",
    "StructuredLogger",
    "TranscriptRow",
    "YearlySummaryRow",
    "academic_year",
    "academic_year_bounds",
    "academic_year_label",
    "build_annual_report",
    "build_transcript",
    "build_yearly_summary",
    "default_reporting_config",
    "is_core",
    "is_core_at_home",
    "load_reporting_config",
    "normalize_location",
]
