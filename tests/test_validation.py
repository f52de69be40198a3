from datetime import date
from decimal import Decimal

import pytest

from homeschool.exceptions import InvalidInputError
from homeschool.models import GroupBy, Location
from homeschool.validation import (
    parse_academic_year,
    parse_group_by,
    parse_hours,
    parse_location,
    parse_log_date,
    parse_positive_scale,
    parse_record_id,
    parse_year_list,
)


def test_academic_year_range() -> None:
    assert parse_academic_year(" 2024 ") == 2024
    assert parse_academic_year("") is None
    for bad in ("1899", "2101", "twenty", True):
        with pytest.raises(InvalidInputError):
            parse_academic_year(bad)


def test_year_list() -> None:
    assert parse_year_list("2024, 2023,2024") == (2023, 2024)
    assert parse_year_list([2022]) == (2022,)
    assert parse_year_list(" ") is None


def test_scale() -> None:
    default = Decimal("120")
    assert parse_positive_scale(None, default) == default
    assert parse_positive_scale("180", default) == Decimal("180")
    for bad in ("0", "-5", "abc", "1001"):
        with pytest.raises(InvalidInputError):
            parse_positive_scale(bad, default)


def test_hours_limits() -> None:
    assert parse_hours("1.5") == Decimal("1.5")
    assert parse_hours(24) == Decimal("24")
    for bad in (None, "0.1", "24.5", "lots"):
        with pytest.raises(InvalidInputError):
            parse_hours(bad)


def test_log_date_cannot_be_in_the_future() -> None:
    today = date(2024, 9, 1)
    assert parse_log_date("2024-09-01", today=today) == today
    with pytest.raises(InvalidInputError):
        parse_log_date("2024-09-02", today=today)
    with pytest.raises(InvalidInputError):
        parse_log_date("", today=today)


def test_group_by_and_location() -> None:
    assert parse_group_by(None) is GroupBy.SUBJECT
    assert parse_group_by("Course") is GroupBy.COURSE
    assert parse_location("Off Site") is Location.OFFSITE
    with pytest.raises(InvalidInputError):
        parse_group_by("week")


def test_record_id() -> None:
    assert parse_record_id("12") == 12
    for bad in ("0", "-3", "abc", None):
        with pytest.raises(InvalidInputError):
            parse_record_id(bad)
