import pytest

from homeschool.classify import CoreSubjectSet, is_core, is_core_at_home, normalize_label, normalize_location
from homeschool.config import DEFAULT_CORE_SUBJECTS
from homeschool.exceptions import InvalidInputError
from homeschool.models import Location

CORE = CoreSubjectSet(DEFAULT_CORE_SUBJECTS)


def test_normalize_label_trims_and_casefolds() -> None:
    assert normalize_label("  Language   ARTS ") == "language arts"
    assert normalize_label(None) == ""


def test_core_membership_is_case_and_space_insensitive() -> None:
    assert is_core("math", CORE)
    assert is_core(" Social  studies ", CORE)
    assert is_core("HISTORY", CORE)
    assert not is_core("PE", CORE)
    assert not is_core("", CORE)
    assert not is_core(None, CORE)


def test_core_at_home_requires_both() -> None:
    assert is_core_at_home("Science", " Home ", CORE)
    assert not is_core_at_home("Science", "offsite", CORE)
    assert not is_core_at_home("Art", "home", CORE)
    assert not is_core_at_home("Science", None, CORE)


def test_subject_set_deduplicates_and_keeps_display_names() -> None:
    subjects = CoreSubjectSet(["Math", "math ", "  Science", ""])
    assert subjects.names == ("Math", "Science")
    assert len(subjects) == 2
    assert subjects == CoreSubjectSet(["science", "MATH"])


def test_subject_set_parse() -> None:
    assert CoreSubjectSet.parse("Math, Science ,Art").names == ("Math", "Science", "Art")
    with pytest.raises(InvalidInputError):
        CoreSubjectSet.parse(" , ")


def test_normalize_location() -> None:
    assert normalize_location("Home") is Location.HOME
    assert normalize_location("off-site") is Location.OFFSITE
    assert normalize_location("away") is Location.OFFSITE
    with pytest.raises(InvalidInputError):
        normalize_location("library")
