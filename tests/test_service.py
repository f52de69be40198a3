from datetime import date
from decimal import Decimal

import pytest

from homeschool.api import ReportExporter
from homeschool.config import default_reporting_config
from homeschool.exceptions import InvalidInputError
from homeschool.models import HourLogEntry
from homeschool.ops import HealthMonitor, StructuredLogger
from homeschool.service import ReportingService


class RecordingSource:
    """Log source that ignores its filters, like a store that over-fetches."""

    def __init__(self, entries):
        self.entries = list(entries)
        self.calls = []

    def __call__(self, *, student_id=None, start=None, end=None):
        self.calls.append({"student_id": student_id, "start": start, "end": end})
        return iter(self.entries)


def make_service(entries, **kwargs):
    source = RecordingSource(entries)
    service = ReportingService(default_reporting_config(), source, **kwargs)
    return service, source


ENTRIES = [
    HourLogEntry(student_id="1", date="2024-08-10", subject="Math", hours=10, location="home", course_title="Algebra"),
    HourLogEntry(student_id="1", date="2024-09-01", subject="PE", hours=5, location="offsite"),
    HourLogEntry(student_id="2", date="2024-09-01", subject="Math", hours=7, location="home"),
    HourLogEntry(student_id="1", date="2023-09-01", subject="Math", hours=60, location="home", course_title="Algebra"),
]


def test_annual_report_passes_date_range_and_refilters() -> None:
    service, source = make_service(ENTRIES)

    report = service.annual_report(student_id="1", academic_year="2024", group_by="subject")

    assert source.calls == [{"student_id": "1", "start": date(2024, 7, 1), "end": date(2025, 6, 30)}]
    assert report.totals.total_hours == Decimal("15.00")
    assert report.totals.core_at_home_hours == Decimal("10.00")


def test_annual_report_without_filters_uses_everything() -> None:
    service, source = make_service(ENTRIES)
    report = service.annual_report()
    assert source.calls[0]["start"] is None
    assert report.totals.total_hours == Decimal("82.00")


def test_transcript_uses_default_scale_and_year_span() -> None:
    service, source = make_service(ENTRIES)

    rows = service.transcript("1", academic_years="2023,2024")

    assert source.calls[0]["start"] == date(2023, 7, 1)
    assert source.calls[0]["end"] == date(2025, 6, 30)
    assert [(row.academic_year, row.course_title, row.credits_at_scale) for row in rows] == [
        (2023, "Algebra", Decimal("0.50")),
        (2024, "Algebra", Decimal("0.08")),
        (2024, "Untitled Course", Decimal("0.04")),
    ]


def test_invalid_requests_raise_before_fetching() -> None:
    service, source = make_service(ENTRIES)
    with pytest.raises(InvalidInputError):
        service.transcript("")
    with pytest.raises(InvalidInputError):
        service.transcript("1", scale="0")
    with pytest.raises(InvalidInputError):
        service.annual_report(group_by="week")
    with pytest.raises(InvalidInputError):
        service.yearly_summary(academic_year="1700")
    assert source.calls == []


def test_service_logs_structured_events(tmp_path) -> None:
    logger = StructuredLogger(path=tmp_path / "events.jsonl")
    service, _ = make_service(ENTRIES, logger=logger)

    service.yearly_summary(academic_year=2024)
    service.transcript("2")

    assert [event["event"] for event in logger.tail()] == ["yearly_summary_built", "transcript_built"]
    assert logger.events("yearly_summary_built")[0]["rows"] == 2
    assert len((tmp_path / "events.jsonl").read_text(encoding="utf-8").splitlines()) == 2


def test_exporter_payloads() -> None:
    service, _ = make_service(ENTRIES)
    exporter = ReportExporter()

    rows = service.transcript("1", academic_years=[2023])
    payload = exporter.transcript_payload(rows, scale=Decimal("120"))
    assert payload == {
        "rows": [
            {
                "studentId": "1",
                "academicYear": 2023,
                "courseTitle": "Algebra",
                "subject": "Math",
                "hoursTotal": 60.0,
                "creditsAtScale": 0.5,
            }
        ],
        "scale": 120.0,
    }

    csv_text = exporter.transcript_csv(rows)
    assert csv_text.splitlines() == [
        "academic_year,course_title,subject,hours_total,credits_at_scale",
        "2023,Algebra,Math,60.00,0.50",
    ]


def test_health_monitor_status() -> None:
    monitor = HealthMonitor()
    monitor.add_migration("idx_student_name")
    monitor.add_migration("idx_student_name")
    monitor.record_check(online=False)

    status = monitor.status()
    assert status["database"] == "down"
    assert status["migrations"] == ["idx_student_name"]
    assert status["checked_at"] is not None
