from decimal import Decimal

import pytest

from homeschool.academic import FiscalBoundary
from homeschool.classify import CoreSubjectSet
from homeschool.config import DEFAULT_CORE_SUBJECTS
from homeschool.exceptions import InvalidInputError
from homeschool.hours import clamp_non_negative
from homeschool.models import GroupBy, HourGoals, HourLogEntry
from homeschool.reporting import build_annual_report, build_transcript, build_yearly_summary, filter_entries

CORE = CoreSubjectSet(DEFAULT_CORE_SUBJECTS)


def entry(student="s1", day="2024-08-10", subject="Math", hours=1, location="home", **extra) -> HourLogEntry:
    return HourLogEntry(student_id=student, date=day, subject=subject, hours=hours, location=location, **extra)


def test_annual_report_by_subject() -> None:
    entries = [
        entry(day="2024-08-10", subject="Math", hours=10, location="home"),
        entry(day="2024-09-01", subject="PE", hours=5, location="offsite"),
    ]

    report = build_annual_report(
        entries, group_by="subject", core_subjects=CORE, student_id="s1", academic_year=2024
    )

    assert report.to_dict() == {
        "totals": {"totalHours": 15.0, "coreHours": 10.0, "coreAtHomeHours": 10.0, "nonCoreHours": 5.0},
        "breakdown": [
            {"group": "Math", "total": 10.0, "core": 10.0, "coreHome": 10.0, "nonCore": 0.0},
            {"group": "PE", "total": 5.0, "core": 0.0, "coreHome": 0.0, "nonCore": 5.0},
        ],
    }


def test_empty_input_yields_zero_totals() -> None:
    report = build_annual_report([], group_by=GroupBy.COURSE, core_subjects=CORE)
    assert report.totals.total_hours == Decimal("0.00")
    assert report.breakdown == ()


def test_filters_by_student_and_year() -> None:
    entries = [
        entry(student="s1", day="2024-06-30", hours=3),
        entry(student="s1", day="2024-07-01", hours=4),
        entry(student="s2", day="2024-07-02", hours=8),
    ]

    report = build_annual_report(
        entries, group_by="subject", core_subjects=CORE, student_id=" s1 ", academic_year=2024
    )
    assert report.totals.total_hours == Decimal("4.00")

    everyone = build_annual_report(entries, group_by="subject", core_subjects=CORE)
    assert everyone.totals.total_hours == Decimal("15.00")


def test_breakdown_sums_match_totals_and_keep_first_seen_order() -> None:
    entries = [
        entry(subject="Science", hours="1.25", location="offsite"),
        entry(subject="Art", hours="2.5"),
        entry(subject="science", hours="0.75"),
        entry(subject="", hours=1),
    ]

    report = build_annual_report(entries, group_by="subject", core_subjects=CORE)
    groups = [row.group for row in report.breakdown]
    assert groups == ["Science", "Art", "science", "Unassigned"]

    assert sum(row.total for row in report.breakdown) == report.totals.total_hours
    assert sum(row.core for row in report.breakdown) == report.totals.core_hours
    assert report.totals.core_hours == Decimal("2.00")
    assert report.totals.core_at_home_hours == Decimal("0.75")
    assert report.totals.non_core_hours == Decimal("3.50")


def test_group_by_course_and_month() -> None:
    entries = [
        entry(day="2024-09-02", course_title="Algebra I", hours=2),
        entry(day="2024-10-05", course_title="", hours=1),
        entry(day="2024-09-20", course_title="Algebra I", hours=1),
    ]

    by_course = build_annual_report(entries, group_by="course", core_subjects=CORE)
    assert [(row.group, row.total) for row in by_course.breakdown] == [
        ("Algebra I", Decimal("3.00")),
        ("Untitled Course", Decimal("1.00")),
    ]

    by_month = build_annual_report(entries, group_by="MONTH", core_subjects=CORE)
    assert [row.group for row in by_month.breakdown] == ["Sep", "Oct"]


def test_unknown_group_by_raises() -> None:
    with pytest.raises(InvalidInputError):
        build_annual_report([], group_by="weekday", core_subjects=CORE)


def test_custom_core_set_changes_classification() -> None:
    report = build_annual_report(
        [entry(subject="PE", hours=2)], group_by="subject", core_subjects=CoreSubjectSet(["PE"])
    )
    assert report.totals.core_hours == Decimal("2.00")


def test_transcript_converts_hours_to_credits() -> None:
    entries = [
        entry(day="2024-08-10", course_title="Biology", subject="Science", hours=60),
        entry(day="2024-09-10", course_title="Biology", subject="Science", hours=60),
        entry(day="2023-10-01", course_title="Latin", subject="", hours=30),
        entry(student="s2", day="2024-08-10", course_title="Biology", subject="Science", hours=99),
    ]

    rows = build_transcript(entries, student_id="s1")

    assert [row.to_dict() for row in rows] == [
        {
            "studentId": "s1",
            "academicYear": 2023,
            "courseTitle": "Latin",
            "subject": "Elective",
            "hoursTotal": 30.0,
            "creditsAtScale": 0.25,
        },
        {
            "studentId": "s1",
            "academicYear": 2024,
            "courseTitle": "Biology",
            "subject": "Science",
            "hoursTotal": 120.0,
            "creditsAtScale": 1.0,
        },
    ]


def test_transcript_year_filter_and_scale() -> None:
    entries = [
        entry(day="2023-10-01", course_title="Latin", hours=30),
        entry(day="2024-10-01", course_title="Latin", hours=45),
    ]

    rows = build_transcript(entries, student_id="s1", academic_years=[2024], scale=180)
    assert len(rows) == 1
    assert rows[0].credits_at_scale == Decimal("0.25")


def test_transcript_rejects_bad_arguments() -> None:
    with pytest.raises(InvalidInputError):
        build_transcript([], student_id="")
    with pytest.raises(InvalidInputError):
        build_transcript([], student_id="s1", scale=0)


def test_yearly_summary_orders_students_and_years() -> None:
    entries = [
        entry(student="10", day="2024-08-01", hours=1, student_name="Zoe"),
        entry(student="2", day="2024-08-01", hours=2),
        entry(student="2", day="2023-08-01", hours=3, student_name="Ada"),
        entry(student="10", day="2024-09-01", subject="Art", hours=4),
    ]

    rows = build_yearly_summary(entries, core_subjects=CORE)

    assert [(row.student_id, row.academic_year) for row in rows] == [("2", 2023), ("2", 2024), ("10", 2024)]
    assert rows[0].student_name == "Ada"
    assert rows[2].to_dict()["totalHours"] == 5.0
    assert rows[2].to_dict()["nonCoreHours"] == 4.0

    nameless = build_yearly_summary([entry(student="7")], core_subjects=CORE)
    assert nameless[0].student_name == "Unknown"


def test_filter_entries_respects_boundary() -> None:
    entries = [entry(day="2024-07-15")]
    assert list(filter_entries(entries, academic_years=[2024])) == entries
    assert list(filter_entries(entries, academic_years=[2024], fiscal_boundary=FiscalBoundary(8, 1))) == []


def test_hour_log_entry_rejects_negative_hours() -> None:
    with pytest.raises(InvalidInputError):
        entry(hours=-1)
    with pytest.raises(InvalidInputError):
        HourLogEntry(student_id=" ", date="2024-08-01", hours=1)


def test_rounding_happens_after_summing() -> None:
    entries = [entry(subject="Art", hours="0.005") for _ in range(3)]

    report = build_annual_report(entries, group_by="subject", core_subjects=CORE)

    assert report.totals.total_hours == Decimal("0.02")
    assert report.breakdown[0].total == Decimal("0.02")
    assert report.to_dict()["totals"]["totalHours"] == 0.02


def test_non_core_hours_never_go_negative() -> None:
    assert clamp_non_negative(Decimal("-0.01")) == Decimal("0")
    assert clamp_non_negative(Decimal("2.5")) == Decimal("2.5")

    report = build_annual_report([entry(subject="Math", hours=3)], group_by="subject", core_subjects=CORE)
    assert report.totals.non_core_hours == Decimal("0.00")


def test_progress_against_goals() -> None:
    entries = [
        entry(subject="Math", hours=10, location="home"),
        entry(subject="PE", hours=5, location="offsite"),
    ]

    report = build_annual_report(entries, group_by="subject", core_subjects=CORE, goals=HourGoals())

    progress = report.to_dict()["progress"]
    assert progress["totalHours"] == {"goal": 1000.0, "hours": 15.0, "remaining": 985.0, "percent": 1.5}
    assert progress["coreHours"]["percent"] == 1.67
    assert progress["coreAtHomeHours"]["remaining"] == 390.0
    assert progress["nonCoreHours"]["hours"] == 5.0

    small = HourGoals(total=10, core=5, core_home=5, non_core=5)
    capped = build_annual_report(entries, group_by="subject", core_subjects=CORE, goals=small).to_dict()
    assert capped["progress"]["totalHours"]["percent"] == 100.0
    assert capped["progress"]["totalHours"]["remaining"] == 0.0
    assert capped["progress"]["nonCoreHours"]["percent"] == 100.0

    assert "progress" not in build_annual_report(entries, group_by="subject", core_subjects=CORE).to_dict()


def test_goal_parsing() -> None:
    goals = HourGoals.parse("total=900, coreHome=300")
    assert goals.total == Decimal("900")
    assert goals.core_home == Decimal("300")
    assert goals.core == Decimal("600")
    with pytest.raises(InvalidInputError):
        HourGoals.parse("weekly=10")
    with pytest.raises(InvalidInputError):
        HourGoals.parse("total=0")


def test_transcript_orders_titles_ignoring_case() -> None:
    entries = [
        entry(course_title="Zoology", subject="Science", hours=10),
        entry(course_title="algebra", subject="Math", hours=10),
        entry(course_title="Biology", subject="science", hours=10),
    ]

    rows = build_transcript(entries, student_id="s1")

    assert [row.course_title for row in rows] == ["algebra", "Biology", "Zoology"]
