from datetime import date, datetime

import pytest

from homeschool.academic import (
    FiscalBoundary,
    academic_year,
    academic_year_bounds,
    academic_year_label,
    month_label,
    parse_date,
)
from homeschool.exceptions import InvalidInputError


def test_academic_year_around_july_first() -> None:
    assert academic_year("2024-06-30") == 2023
    assert academic_year("2024-07-01") == 2024
    assert academic_year(date(2025, 3, 15)) == 2024
    assert academic_year(datetime(2024, 12, 31, 23, 59)) == 2024


def test_academic_year_with_custom_boundary() -> None:
    august = FiscalBoundary(8, 1)
    assert academic_year("2024-07-31", august) == 2023
    assert academic_year("2024-08-01", august) == 2024


def test_bounds_cover_a_full_year() -> None:
    start, end = academic_year_bounds(2024)
    assert start == date(2024, 7, 1)
    assert end == date(2025, 6, 30)
    assert academic_year(start) == academic_year(end) == 2024

    start, end = academic_year_bounds(2023, FiscalBoundary(3, 1))
    assert end == date(2024, 2, 29)


def test_parse_date_ignores_time_component() -> None:
    assert parse_date("2024-09-01T10:30:00Z") == date(2024, 9, 1)
    assert parse_date(" 2024-09-01 ") == date(2024, 9, 1)


@pytest.mark.parametrize("value", ["", "yesterday", "2024-13-01", None, 20240901])
def test_invalid_dates_raise(value) -> None:
    with pytest.raises(InvalidInputError):
        academic_year(value)


def test_fiscal_boundary_parsing() -> None:
    assert FiscalBoundary.parse("08-01") == FiscalBoundary(8, 1)
    assert FiscalBoundary.parse("7-1").isoformat() == "07-01"
    with pytest.raises(InvalidInputError):
        FiscalBoundary.parse("0801")
    with pytest.raises(InvalidInputError):
        FiscalBoundary(2, 29)
    with pytest.raises(InvalidInputError):
        FiscalBoundary(13, 1)


def test_labels() -> None:
    assert academic_year_label(2024) == "2024-2025"
    assert month_label("2024-09-14") == "Sep"
