"""Reporting configuration.

The core subject list, the academic-year boundary, the default credit scale
and the annual hour goals are read from the environment exactly once, when the
process starts, and then passed explicitly into every report call.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping, Optional, Tuple

from .academic import FiscalBoundary
from .classify import CoreSubjectSet
from .exceptions import InvalidInputError
from .hours import require_positive, to_decimal
from .models import HourGoals

CORE_SUBJECTS_ENV = "HOMESCHOOL_CORE_SUBJECTS"
FISCAL_START_ENV = "HOMESCHOOL_FISCAL_START"
CREDIT_SCALE_ENV = "HOMESCHOOL_CREDIT_SCALE"
GOALS_ENV = "HOMESCHOOL_GOALS"

DEFAULT_CORE_SUBJECTS: Tuple[str, ...] = (
    "Reading",
    "Language Arts",
    "Mathematics",
    "Math",
    "Science",
    "Social Studies",
    "History",
)
DEFAULT_FISCAL_START = "07-01"
DEFAULT_CREDIT_SCALE = Decimal("120")


@dataclass(slots=True, frozen=True)
class ReportingConfig:
    core_subjects: CoreSubjectSet
    fiscal_boundary: FiscalBoundary = FiscalBoundary()
    default_credit_scale: Decimal = DEFAULT_CREDIT_SCALE
    goals: HourGoals = HourGoals()

    def __post_init__(self) -> None:
        scale = require_positive(to_decimal(self.default_credit_scale))
        object.__setattr__(self, "default_credit_scale", scale)

    def describe(self) -> dict:
        return {
            "coreSubjects": list(self.core_subjects.names),
            "fiscalStart": self.fiscal_boundary.isoformat(),
            "defaultCreditScale": float(self.default_credit_scale),
            "goals": self.goals.to_dict(),
        }


def default_reporting_config() -> ReportingConfig:
    return ReportingConfig(core_subjects=CoreSubjectSet(DEFAULT_CORE_SUBJECTS))


def load_reporting_config(environ: Optional[Mapping[str, str]] = None) -> ReportingConfig:
    """Read :class:`ReportingConfig` from ``environ`` (``os.environ`` by default)."""

    env = os.environ if environ is None else environ
    raw_subjects = env.get(CORE_SUBJECTS_ENV, "").strip()
    subjects = CoreSubjectSet.parse(raw_subjects) if raw_subjects else CoreSubjectSet(DEFAULT_CORE_SUBJECTS)
    boundary = FiscalBoundary.parse(env.get(FISCAL_START_ENV, "").strip() or DEFAULT_FISCAL_START)
    raw_goals = env.get(GOALS_ENV, "").strip()
    goals = HourGoals.parse(raw_goals) if raw_goals else HourGoals()
    raw_scale = env.get(CREDIT_SCALE_ENV, "").strip()
    try:
        scale = to_decimal(raw_scale) if raw_scale else DEFAULT_CREDIT_SCALE
        return ReportingConfig(
            core_subjects=subjects,
            fiscal_boundary=boundary,
            default_credit_scale=scale,
            goals=goals,
        )
    except InvalidInputError as exc:
        raise InvalidInputError(f"{CREDIT_SCALE_ENV} must be a positive number, got {raw_scale!r}.") from exc


__all__ = [
    "CORE_SUBJECTS_ENV",
    "CREDIT_SCALE_ENV",
    "DEFAULT_CORE_SUBJECTS",
    "DEFAULT_CREDIT_SCALE",
    "DEFAULT_FISCAL_START",
    "FISCAL_START_ENV",
    "GOALS_ENV",
    "ReportingConfig",
    "default_reporting_config",
    "load_reporting_config",
]
