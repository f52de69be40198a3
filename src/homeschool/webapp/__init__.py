"""Homeschool records web application.

Serve with ``uvicorn homeschool.webapp:app``.
"""

from .application import app, event_log, health_monitor, reporting_service
from .persistence import (
    Course,
    HourLog,
    PortfolioItem,
    Student,
    engine,
    fetch_log_entries,
    open_session,
)

__all__ = [
    "Course",
    "HourLog",
    "PortfolioItem",
    "Student",
    "app",
    "engine",
    "event_log",
    "fetch_log_entries",
    "health_monitor",
    "open_session",
    "reporting_service",
]
