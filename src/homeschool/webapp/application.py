"""FastAPI application exposing the homeschool records JSON API."""
from __future__ import annotations

import time
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from fastapi import Body, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from sqlalchemy import func, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, desc, select

from ..academic import academic_year, academic_year_bounds
from ..api import ReportExporter
from ..classify import normalize_label
from ..exceptions import DuplicateRecordError, HomeschoolError, InvalidInputError, RecordNotFoundError
from ..models import Location, TranscriptRow
from ..ops import HealthMonitor, StructuredLogger
from ..service import ReportingService
from ..validation import (
    parse_academic_year,
    parse_hours,
    parse_location,
    parse_log_date,
    parse_optional_date,
    parse_optional_identifier,
    parse_positive_scale,
    parse_record_id,
    parse_year_list,
)
from .config import (
    CORS_ALLOW_ORIGINS,
    LATEST_LOGS_LIMIT,
    LOG_PATH,
    REPORTING,
    describe_environment,
)
from .persistence import (
    APPLIED_MIGRATIONS,
    Course,
    HourLog,
    PortfolioItem,
    Student,
    engine,
    fetch_log_entries,
    open_session,
    row_to_dict,
)

# ---------------------------------------------------------------------------
# FastAPI application setup
# ---------------------------------------------------------------------------
app = FastAPI(title="Homeschool Records")
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(CORS_ALLOW_ORIGINS),
    allow_methods=["*"],
    allow_headers=["*"],
)

_time_provider: Callable[[], datetime] = datetime.now

event_log = StructuredLogger(path=LOG_PATH)
health_monitor = HealthMonitor()
for _migration in APPLIED_MIGRATIONS:
    health_monitor.add_migration(_migration)

reporting_service = ReportingService(REPORTING, fetch_log_entries, logger=event_log)
exporter = ReportExporter()


def _today() -> date:
    return _time_provider().date()


def _timestamp() -> str:
    return datetime.utcnow().isoformat()


# ---------------------------------------------------------------------------
# Error handling
# ---------------------------------------------------------------------------
def _error_response(status_code: int, message: str, request: Request) -> JSONResponse:
    event_log.log(
        "request_failed",
        status=status_code,
        method=request.method,
        path=request.url.path,
        error=message,
    )
    return JSONResponse({"error": message, "timestamp": _timestamp()}, status_code=status_code)


@app.exception_handler(InvalidInputError)
async def _invalid_input(request: Request, exc: InvalidInputError) -> JSONResponse:
    return _error_response(400, str(exc), request)


@app.exception_handler(RecordNotFoundError)
async def _not_found(request: Request, exc: RecordNotFoundError) -> JSONResponse:
    return _error_response(404, str(exc), request)


@app.exception_handler(DuplicateRecordError)
async def _duplicate(request: Request, exc: DuplicateRecordError) -> JSONResponse:
    return _error_response(409, str(exc), request)


@app.exception_handler(HomeschoolError)
async def _domain_error(request: Request, exc: HomeschoolError) -> JSONResponse:
    return _error_response(400, str(exc), request)


@app.exception_handler(Exception)
async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
    event_log.log("unhandled_error", path=request.url.path, error_type=type(exc).__name__, error=str(exc))
    return _error_response(500, "Internal server error", request)


# ---------------------------------------------------------------------------
# Payload helpers
# ---------------------------------------------------------------------------
def _text(payload: Mapping[str, Any], key: str) -> Optional[str]:
    value = payload.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _required_text(payload: Mapping[str, Any], key: str) -> str:
    value = _text(payload, key)
    if value is None:
        raise InvalidInputError(f"{key} is required.")
    return value


def _optional_int(payload: Mapping[str, Any], key: str) -> Optional[int]:
    value = payload.get(key)
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_record_id(value, key)


def _flag(value: Any, default: bool = True) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    raise InvalidInputError(f"Invalid boolean value: {value!r}")


def _tags(value: Any) -> Optional[str]:
    if value is None:
        return None
    parts = value.split(",") if isinstance(value, str) else list(value)
    cleaned = [str(part).strip() for part in parts if str(part).strip()]
    return ",".join(cleaned) or None


def _get_or_404(session: Session, model: Any, record_id: int, label: str) -> Any:
    row = session.get(model, record_id)
    if row is None:
        raise RecordNotFoundError(f"{label} {record_id} not found.")
    return row


def _ensure_unique_title(session: Session, title: str, exclude_id: Optional[int] = None) -> None:
    query = select(Course).where(func.lower(Course.title) == title.lower())
    if exclude_id is not None:
        query = query.where(Course.id != exclude_id)
    if session.exec(query).first() is not None:
        raise DuplicateRecordError(f"A course titled {title!r} already exists.")


def _portfolio_dict(item: PortfolioItem) -> Dict[str, Any]:
    year = academic_year(item.date, REPORTING.fiscal_boundary) if item.date else None
    tags = [tag for tag in (item.tags or "").split(",") if tag]
    return row_to_dict(item, tags=tags, academicYear=year)


# ---------------------------------------------------------------------------
# Health & stats
# ---------------------------------------------------------------------------
@app.get("/api/health")
def health() -> JSONResponse:
    started = time.perf_counter()
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        health_monitor.record_check(online=False)
        event_log.log("health_check_failed", error=str(exc))
        return JSONResponse(
            {
                "status": "error",
                "error": "Database unavailable",
                "environment": describe_environment(),
                "timestamp": _timestamp(),
            },
            status_code=503,
        )
    latency_ms = int((time.perf_counter() - started) * 1000)
    health_monitor.record_check(online=True, latency_ms=latency_ms)
    return JSONResponse(
        {
            "status": "ok",
            "environment": describe_environment(),
            **health_monitor.status(),
            "timestamp": _timestamp(),
        }
    )


@app.get("/api/stats")
def stats() -> Dict[str, Any]:
    with open_session() as session:
        counts = {
            key: session.exec(select(func.count()).select_from(model)).one()
            for key, model in (
                ("students", Student),
                ("courses", Course),
                ("logs", HourLog),
                ("portfolio", PortfolioItem),
            )
        }
    return {**counts, "timestamp": _timestamp()}


# ---------------------------------------------------------------------------
# Students
# ---------------------------------------------------------------------------
def _apply_student_payload(student: Student, payload: Mapping[str, Any]) -> None:
    if "name" in payload or student.name is None:
        student.name = _required_text(payload, "name")
    if "dob" in payload:
        student.dob = parse_optional_date(payload.get("dob"))
    if "grade" in payload:
        student.grade = _text(payload, "grade")
    if "startYear" in payload:
        student.start_year = parse_academic_year(payload.get("startYear"))
    if "notes" in payload:
        student.notes = _text(payload, "notes")
    if "active" in payload:
        student.active = _flag(payload.get("active"))


@app.get("/api/students")
def list_students() -> List[Dict[str, Any]]:
    with open_session() as session:
        rows = session.exec(select(Student).order_by(func.lower(Student.name), Student.id)).all()
    return [row_to_dict(row) for row in rows]


@app.post("/api/students", status_code=201)
def create_student(payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    student = Student(name=_required_text(payload, "name"))
    _apply_student_payload(student, payload)
    with open_session() as session:
        session.add(student)
        session.commit()
        session.refresh(student)
    event_log.log("student_created", student_id=student.id)
    return row_to_dict(student)


@app.get("/api/students/{student_id}")
def get_student(student_id: str) -> Dict[str, Any]:
    record_id = parse_record_id(student_id)
    with open_session() as session:
        student = _get_or_404(session, Student, record_id, "Student")
    return row_to_dict(student)


@app.put("/api/students/{student_id}")
def update_student(student_id: str, payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    record_id = parse_record_id(student_id)
    with open_session() as session:
        student = _get_or_404(session, Student, record_id, "Student")
        _apply_student_payload(student, payload)
        student.updated_at = datetime.utcnow()
        session.add(student)
        if "name" in payload:
            for model in (HourLog, PortfolioItem):
                for row in session.exec(select(model).where(model.student_id == record_id)).all():
                    row.student_name = student.name
                    session.add(row)
        session.commit()
        session.refresh(student)
    event_log.log("student_updated", student_id=record_id)
    return row_to_dict(student)


@app.delete("/api/students/{student_id}")
def delete_student(student_id: str) -> Dict[str, Any]:
    record_id = parse_record_id(student_id)
    with open_session() as session:
        student = _get_or_404(session, Student, record_id, "Student")
        for model in (HourLog, PortfolioItem):
            for row in session.exec(select(model).where(model.student_id == record_id)).all():
                session.delete(row)
        session.delete(student)
        session.commit()
    event_log.log("student_deleted", student_id=record_id)
    return {"deleted": record_id}


# ---------------------------------------------------------------------------
# Courses
# ---------------------------------------------------------------------------
@app.get("/api/courses")
def list_courses() -> List[Dict[str, Any]]:
    with open_session() as session:
        rows = session.exec(select(Course).order_by(func.lower(Course.title), Course.id)).all()
    return [row_to_dict(row) for row in rows]


@app.post("/api/courses", status_code=201)
def create_course(payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    title = _required_text(payload, "title")
    course = Course(title=title, subject=_text(payload, "subject"), description=_text(payload, "description"))
    with open_session() as session:
        _ensure_unique_title(session, title)
        session.add(course)
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise DuplicateRecordError(f"A course titled {title!r} already exists.") from exc
        session.refresh(course)
    event_log.log("course_created", course_id=course.id)
    return row_to_dict(course)


@app.get("/api/courses/{course_id}")
def get_course(course_id: str) -> Dict[str, Any]:
    record_id = parse_record_id(course_id, "courseId")
    with open_session() as session:
        course = _get_or_404(session, Course, record_id, "Course")
    return row_to_dict(course)


@app.put("/api/courses/{course_id}")
def update_course(course_id: str, payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    record_id = parse_record_id(course_id, "courseId")
    with open_session() as session:
        course = _get_or_404(session, Course, record_id, "Course")
        if "title" in payload:
            title = _required_text(payload, "title")
            _ensure_unique_title(session, title, exclude_id=record_id)
            course.title = title
        if "subject" in payload:
            course.subject = _text(payload, "subject")
        if "description" in payload:
            course.description = _text(payload, "description")
        course.updated_at = datetime.utcnow()
        session.add(course)
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise DuplicateRecordError(f"A course titled {course.title!r} already exists.") from exc
        session.refresh(course)
    event_log.log("course_updated", course_id=record_id)
    return row_to_dict(course)


@app.delete("/api/courses/{course_id}")
def delete_course(course_id: str) -> Dict[str, Any]:
    record_id = parse_record_id(course_id, "courseId")
    with open_session() as session:
        course = _get_or_404(session, Course, record_id, "Course")
        # Linked rows keep the denormalised title and lose the link.
        for model in (HourLog, PortfolioItem):
            for row in session.exec(select(model).where(model.course_id == record_id)).all():
                row.course_id = None
                session.add(row)
        session.delete(course)
        session.commit()
    event_log.log("course_deleted", course_id=record_id)
    return {"deleted": record_id}


# ---------------------------------------------------------------------------
# Hour logs
# ---------------------------------------------------------------------------
def _fill_log(session: Session, log: HourLog, payload: Mapping[str, Any]) -> None:
    """Validate ``payload`` onto ``log``; absent keys keep their stored values."""

    if "studentId" in payload or log.student_id is None:
        log.student_id = parse_record_id(payload.get("studentId"), "studentId")
    student = _get_or_404(session, Student, log.student_id, "Student")
    log.student_name = student.name

    if "courseId" in payload:
        log.course_id = _optional_int(payload, "courseId")
        log.course_title = None
    course = _get_or_404(session, Course, log.course_id, "Course") if log.course_id is not None else None
    if course is not None:
        log.course_title = course.title
    elif "courseTitle" in payload:
        log.course_title = _text(payload, "courseTitle")

    if "subject" in payload:
        log.subject = _text(payload, "subject")
    if not log.subject and course is not None:
        log.subject = course.subject

    if "date" in payload or log.date is None:
        log.date = parse_log_date(payload.get("date"), today=_today())
    if "hours" in payload or log.hours is None:
        log.hours = parse_hours(payload.get("hours"))
    if "location" in payload:
        log.location = parse_location(payload.get("location")).value
    if "notes" in payload:
        log.notes = _text(payload, "notes")


@app.get("/api/logs")
def list_logs(
    student_id: Optional[str] = Query(None, alias="studentId"),
    from_date: Optional[str] = Query(None, alias="from"),
    to_date: Optional[str] = Query(None, alias="to"),
    subject: Optional[str] = Query(None),
) -> List[Dict[str, Any]]:
    student = parse_optional_identifier(student_id)
    start = parse_optional_date(from_date)
    end = parse_optional_date(to_date)
    if start and end and start > end:
        raise InvalidInputError("from must not be after to.")
    query = select(HourLog)
    if student is not None:
        query = query.where(HourLog.student_id == parse_record_id(student, "studentId"))
    if start is not None:
        query = query.where(HourLog.date >= start)
    if end is not None:
        query = query.where(HourLog.date <= end)
    with open_session() as session:
        rows = session.exec(query.order_by(desc(HourLog.date), desc(HourLog.id))).all()
    if subject:
        wanted = normalize_label(subject)
        rows = [row for row in rows if normalize_label(row.subject) == wanted]
    return [row_to_dict(row) for row in rows]


@app.get("/api/logs/latest")
def latest_logs() -> List[Dict[str, Any]]:
    with open_session() as session:
        rows = session.exec(
            select(HourLog).order_by(desc(HourLog.date), desc(HourLog.id)).limit(LATEST_LOGS_LIMIT)
        ).all()
    return [row_to_dict(row) for row in rows]


@app.post("/api/logs", status_code=201)
def create_log(payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    with open_session() as session:
        record = HourLog(location="home")
        _fill_log(session, record, payload)
        session.add(record)
        session.commit()
        session.refresh(record)
    event_log.log("log_created", log_id=record.id, student_id=record.student_id, hours=record.hours)
    return row_to_dict(record)


def _parse_import_entry(raw: Any, index: int, today: date, courses: Mapping[str, Course]) -> Dict[str, Any]:
    if not isinstance(raw, Mapping):
        raise InvalidInputError(f"entries[{index}] must be an object.")
    try:
        title = _text(raw, "courseTitle")
        course = courses.get(normalize_label(title)) if title else None
        return {
            "date": parse_log_date(raw.get("date"), today=today),
            "hours": parse_hours(raw.get("hours")),
            "location": parse_location(raw.get("location") or Location.HOME.value).value,
            "subject": _text(raw, "subject") or (course.subject if course else None),
            "course_id": course.id if course else None,
            "course_title": course.title if course else title,
            "notes": _text(raw, "notes"),
        }
    except InvalidInputError as exc:
        raise InvalidInputError(f"entries[{index}]: {exc}") from exc


def _import_student(session: Session, payload: Mapping[str, Any]) -> Student:
    """Find the student by id, else by name (case-insensitive), else create one."""

    if _text(payload, "studentId") is not None:
        return _get_or_404(session, Student, parse_record_id(payload.get("studentId"), "studentId"), "Student")
    name = _required_text(payload, "studentName")
    student = session.exec(select(Student).where(func.lower(Student.name) == name.lower())).first()
    if student is None:
        student = Student(name=name)
        session.add(student)
        session.flush()
    return student


@app.post("/api/logs/import", status_code=201)
def import_logs(payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    """Bulk-load hour logs for one student in a single transaction.

    Every entry is validated before anything is written; one bad entry rejects
    the whole batch.  The response carries the student's report totals for
    ``academicYear`` (all years when omitted).
    """

    raw_entries = payload.get("entries")
    if not isinstance(raw_entries, list) or not raw_entries:
        raise InvalidInputError("entries must be a non-empty list.")
    year = parse_academic_year(payload.get("academicYear"))
    today = _today()
    with open_session() as session:
        courses = {normalize_label(course.title): course for course in session.exec(select(Course)).all()}
        parsed = [_parse_import_entry(raw, index, today, courses) for index, raw in enumerate(raw_entries)]
        student = _import_student(session, payload)
        session.add_all(
            [HourLog(student_id=student.id, student_name=student.name, **fields) for fields in parsed]
        )
        session.commit()
        student_id, student_name = student.id, student.name
    event_log.log("logs_imported", student_id=student_id, entries=len(parsed))
    report = reporting_service.annual_report(student_id=student_id, academic_year=year)
    return {
        "studentId": student_id,
        "studentName": student_name,
        "academicYear": year,
        "imported": len(parsed),
        "totals": report.totals.to_dict(),
    }


@app.put("/api/logs/{log_id}")
def update_log(log_id: str, payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    record_id = parse_record_id(log_id, "logId")
    with open_session() as session:
        log = _get_or_404(session, HourLog, record_id, "Hour log")
        _fill_log(session, log, payload)
        log.updated_at = datetime.utcnow()
        session.add(log)
        session.commit()
        session.refresh(log)
    event_log.log("log_updated", log_id=record_id)
    return row_to_dict(log)


@app.delete("/api/logs/{log_id}")
def delete_log(log_id: str) -> Dict[str, Any]:
    record_id = parse_record_id(log_id, "logId")
    with open_session() as session:
        log = _get_or_404(session, HourLog, record_id, "Hour log")
        session.delete(log)
        session.commit()
    event_log.log("log_deleted", log_id=record_id)
    return {"deleted": record_id}


# ---------------------------------------------------------------------------
# Portfolio
# ---------------------------------------------------------------------------
def _fill_portfolio(session: Session, item: PortfolioItem, payload: Mapping[str, Any]) -> None:
    if "studentId" in payload:
        item.student_id = _optional_int(payload, "studentId")
    if item.student_id is not None:
        item.student_name = _get_or_404(session, Student, item.student_id, "Student").name
    elif "studentName" in payload:
        item.student_name = _text(payload, "studentName")

    if "courseId" in payload:
        item.course_id = _optional_int(payload, "courseId")
    if item.course_id is not None:
        course = _get_or_404(session, Course, item.course_id, "Course")
        item.course_title = course.title
        item.subject = item.subject or course.subject
    elif "courseTitle" in payload:
        item.course_title = _text(payload, "courseTitle")

    if "subject" in payload:
        item.subject = _text(payload, "subject")
    if "date" in payload:
        item.date = parse_optional_date(payload.get("date"))
    if "title" in payload:
        item.title = _text(payload, "title")
    if "tags" in payload:
        item.tags = _tags(payload.get("tags"))
    if "description" in payload:
        item.description = _text(payload, "description")
    if "fileName" in payload:
        item.file_name = _text(payload, "fileName")
    if "fileType" in payload:
        item.file_type = _text(payload, "fileType")
    if "fileSize" in payload:
        size = payload.get("fileSize")
        item.file_size = None if size in (None, "") else parse_record_id(size, "fileSize")


@app.get("/api/portfolio")
def list_portfolio(
    student_id: Optional[str] = Query(None, alias="studentId"),
    year: Optional[str] = Query(None),
) -> List[Dict[str, Any]]:
    student = parse_optional_identifier(student_id)
    academic = parse_academic_year(year)
    query = select(PortfolioItem)
    if student is not None:
        query = query.where(PortfolioItem.student_id == parse_record_id(student, "studentId"))
    if academic is not None:
        start, end = academic_year_bounds(academic, REPORTING.fiscal_boundary)
        query = query.where(PortfolioItem.date >= start, PortfolioItem.date <= end)
    with open_session() as session:
        rows = session.exec(query.order_by(desc(PortfolioItem.date), desc(PortfolioItem.id))).all()
    return [_portfolio_dict(row) for row in rows]


@app.post("/api/portfolio", status_code=201)
def create_portfolio_item(payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    item = PortfolioItem()
    with open_session() as session:
        _fill_portfolio(session, item, payload)
        session.add(item)
        session.commit()
        session.refresh(item)
    event_log.log("portfolio_created", item_id=item.id, student_id=item.student_id)
    return _portfolio_dict(item)


@app.put("/api/portfolio/{item_id}")
def update_portfolio_item(item_id: str, payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    record_id = parse_record_id(item_id, "itemId")
    with open_session() as session:
        item = _get_or_404(session, PortfolioItem, record_id, "Portfolio item")
        _fill_portfolio(session, item, payload)
        item.updated_at = datetime.utcnow()
        session.add(item)
        session.commit()
        session.refresh(item)
    event_log.log("portfolio_updated", item_id=record_id)
    return _portfolio_dict(item)


@app.delete("/api/portfolio/{item_id}")
def delete_portfolio_item(item_id: str) -> Dict[str, Any]:
    record_id = parse_record_id(item_id, "itemId")
    with open_session() as session:
        item = _get_or_404(session, PortfolioItem, record_id, "Portfolio item")
        session.delete(item)
        session.commit()
    event_log.log("portfolio_deleted", item_id=record_id)
    return {"deleted": record_id}


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------
@app.get("/api/reports/annual")
def annual_report(
    student_id: Optional[str] = Query(None, alias="studentId"),
    year: Optional[str] = Query(None),
    group_by: Optional[str] = Query(None, alias="groupBy"),
) -> Dict[str, Any]:
    report = reporting_service.annual_report(student_id=student_id, academic_year=year, group_by=group_by)
    return exporter.annual_report_payload(report)


@app.get("/api/reports/yearly")
def yearly_summary(
    student_id: Optional[str] = Query(None, alias="studentId"),
    year: Optional[str] = Query(None),
) -> Dict[str, Any]:
    rows = reporting_service.yearly_summary(student_id=student_id, academic_year=year)
    return exporter.yearly_summary_payload(rows)


def _transcript_rows(
    student_id: str, years: Optional[str], scale: Optional[str]
) -> Tuple[List[TranscriptRow], Decimal]:
    """Return the transcript rows and the scale they were computed at."""

    record_id = parse_record_id(student_id, "studentId")
    academic_years = parse_year_list(years)
    divisor = parse_positive_scale(scale, REPORTING.default_credit_scale)
    with open_session() as session:
        _get_or_404(session, Student, record_id, "Student")
    rows = reporting_service.transcript(str(record_id), academic_years=academic_years, scale=divisor)
    return rows, divisor


@app.get("/api/transcript/{student_id}")
def transcript(
    student_id: str,
    years: Optional[str] = Query(None),
    scale: Optional[str] = Query(None),
) -> Dict[str, Any]:
    rows, divisor = _transcript_rows(student_id, years, scale)
    return exporter.transcript_payload(rows, scale=divisor)


@app.get("/api/transcript/{student_id}/export.csv")
def transcript_csv(
    student_id: str,
    years: Optional[str] = Query(None),
    scale: Optional[str] = Query(None),
) -> StreamingResponse:
    rows, _ = _transcript_rows(student_id, years, scale)
    filename = f"transcript-{parse_record_id(student_id, 'studentId')}.csv"
    return StreamingResponse(
        iter([exporter.transcript_csv(rows)]),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )


__all__ = ["app", "event_log", "health_monitor", "reporting_service"]
