"""Persistence and SQLModel definitions for the homeschool records web app."""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import inspect, text
from sqlmodel import Field, Session, SQLModel, create_engine, select

from ..models import HourLogEntry
from .config import DATABASE_URL

# Column named `date` would shadow the type inside the class body.
_Date = date

# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------
_IS_SQLITE = DATABASE_URL.startswith("sqlite")

engine = create_engine(
    DATABASE_URL,
    echo=False,
    pool_pre_ping=not _IS_SQLITE,
    connect_args={"check_same_thread": False} if _IS_SQLITE else {},
)

# Ensure fresh metadata when re-importing in test contexts.
SQLModel.metadata.clear()


def open_session() -> Session:
    return Session(engine, expire_on_commit=False)


# ---------------------------------------------------------------------------
# Database models
# ---------------------------------------------------------------------------
class Student(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    dob: Optional[date] = None
    grade: Optional[str] = None
    start_year: Optional[int] = None
    notes: Optional[str] = None
    active: bool = True
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class Course(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    subject: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class HourLog(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: int = Field(index=True)
    student_name: Optional[str] = None
    course_id: Optional[int] = None
    course_title: Optional[str] = None
    subject: Optional[str] = None
    date: _Date
    hours: Decimal = Field(max_digits=6, decimal_places=2)
    location: str = "home"  # home|offsite
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class PortfolioItem(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    student_id: Optional[int] = Field(default=None, index=True)
    student_name: Optional[str] = None
    course_id: Optional[int] = None
    course_title: Optional[str] = None
    subject: Optional[str] = None
    date: Optional[_Date] = None
    title: Optional[str] = None
    tags: Optional[str] = None  # comma separated
    description: Optional[str] = None
    file_name: Optional[str] = None
    file_type: Optional[str] = None
    file_size: Optional[int] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


# ---------------------------------------------------------------------------
# Database initialisation & migrations
# ---------------------------------------------------------------------------
# Columns added after the first schema went out; older databases get them
# via ALTER TABLE.
_COLUMN_MIGRATIONS: Dict[str, Dict[str, str]] = {
    "student": {
        "active": "BOOLEAN DEFAULT TRUE",
        "start_year": "INTEGER",
    },
    "course": {
        "subject": "VARCHAR",
    },
    "hourlog": {
        "student_name": "VARCHAR",
        "course_title": "VARCHAR",
        "subject": "VARCHAR",
        "location": "VARCHAR DEFAULT 'home'",
    },
    "portfolioitem": {
        "tags": "VARCHAR",
        "file_name": "VARCHAR",
        "file_type": "VARCHAR",
        "file_size": "INTEGER",
    },
}

_INDEXES: Dict[str, str] = {
    "idx_student_name": "CREATE INDEX IF NOT EXISTS idx_student_name ON student (lower(name))",
    "uq_course_title_lower": "CREATE UNIQUE INDEX IF NOT EXISTS uq_course_title_lower ON course (lower(title))",
    "idx_hourlog_student_date": "CREATE INDEX IF NOT EXISTS idx_hourlog_student_date ON hourlog (student_id, date)",
}


def create_db_and_tables() -> None:
    SQLModel.metadata.create_all(engine)


def run_migrations() -> List[str]:
    """Bring an existing database up to the current schema.

    Returns the names of the migration steps that ran.
    """

    applied: List[str] = []
    inspector = inspect(engine)
    tables = set(inspector.get_table_names())
    with engine.begin() as conn:
        for table, columns in _COLUMN_MIGRATIONS.items():
            if table not in tables:
                continue
            existing = {column["name"] for column in inspector.get_columns(table)}
            for column, ddl in columns.items():
                if column in existing:
                    continue
                conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {column} {ddl}"))
                applied.append(f"{table}.{column}")
        for name, statement in _INDEXES.items():
            conn.execute(text(statement))
            applied.append(name)
    return applied


# ---------------------------------------------------------------------------
# Log-record source for the reporting engine
# ---------------------------------------------------------------------------
def hour_log_to_entry(row: HourLog) -> HourLogEntry:
    return HourLogEntry(
        student_id=str(row.student_id),
        date=row.date,
        hours=row.hours,
        location=row.location or "",
        subject=row.subject or "",
        course_id=str(row.course_id) if row.course_id is not None else None,
        course_title=row.course_title or "",
        student_name=row.student_name or "",
    )


def fetch_log_entries(
    student_id: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    *,
    session: Optional[Session] = None,
) -> List[HourLogEntry]:
    """Return hour log entries for ``student_id`` between ``start`` and ``end``."""

    query = select(HourLog)
    if student_id is not None:
        if not str(student_id).isdigit():
            return []
        query = query.where(HourLog.student_id == int(student_id))
    if start is not None:
        query = query.where(HourLog.date >= start)
    if end is not None:
        query = query.where(HourLog.date <= end)
    query = query.order_by(HourLog.date, HourLog.id)

    if session is not None:
        return [hour_log_to_entry(row) for row in session.exec(query).all()]
    with open_session() as own_session:
        return [hour_log_to_entry(row) for row in own_session.exec(query).all()]


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def row_to_dict(row: SQLModel, **extra: Any) -> Dict[str, Any]:
    """JSON friendly dict of a table row with camelCase keys."""

    payload: Dict[str, Any] = {}
    for name, value in row.model_dump().items():
        key = _camel(name)
        if isinstance(value, (date, datetime)):
            payload[key] = value.isoformat()
        elif isinstance(value, Decimal):
            payload[key] = float(value)
        else:
            payload[key] = value
    payload.update(extra)
    return payload


create_db_and_tables()
APPLIED_MIGRATIONS: List[str] = run_migrations()


__all__ = [
    "APPLIED_MIGRATIONS",
    "Course",
    "HourLog",
    "PortfolioItem",
    "Student",
    "create_db_and_tables",
    "engine",
    "fetch_log_entries",
    "hour_log_to_entry",
    "open_session",
    "row_to_dict",
    "run_migrations",
]
