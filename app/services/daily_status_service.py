"""
Daily status aggregator: one classification per employee per calendar day.

Precedence per day: approved leave > scheduled rest day > attendance > no record.
A day on leave is never reported as worked even if a stray session exists for it.
Pure read; the same input always yields the same rows.
"""
import logging
from collections import defaultdict
from datetime import date
from typing import Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import InvalidStateError
from app.models.attendance_session import AttendanceSession
from app.schemas.report import DailyStatus, DayClassification
from app.services import leave_service, schedule_service
from app.utils.datetime_utils import ensure_utc, iter_days

logger = logging.getLogger(__name__)

DayPredicate = Callable[[int, date], bool]


def validate_range(start_date: date, end_date: date) -> None:
    if start_date > end_date:
        raise InvalidStateError(
            "invalid_date_range", from_date=start_date.isoformat(), to_date=end_date.isoformat()
        )
    span = (end_date - start_date).days + 1
    if span > settings.DAILY_STATUS_MAX_RANGE_DAYS:
        raise InvalidStateError(
            "date_range_too_large",
            from_date=start_date.isoformat(),
            to_date=end_date.isoformat(),
            max_days=settings.DAILY_STATUS_MAX_RANGE_DAYS,
        )


def _session_hours(session: AttendanceSession) -> float:
    delta = ensure_utc(session.punch_out_at) - ensure_utc(session.punch_in_at)
    return delta.total_seconds() / 3600.0


def aggregate(
    db: Session,
    employee_id: int,
    start_date: date,
    end_date: date,
    *,
    leave_covers: Optional[DayPredicate] = None,
    rest_day_covers: Optional[DayPredicate] = None,
) -> List[DailyStatus]:
    """
    Classify every day in [start_date, end_date] for employee_id, in date order.

    leave_covers / rest_day_covers are (employee_id, day) -> bool lookups; by default
    approved leave requests and the work schedule are read in one query each.

    Raises:
        InvalidStateError: start_date after end_date, or range longer than DAILY_STATUS_MAX_RANGE_DAYS
    """
    validate_range(start_date, end_date)

    if leave_covers is None:
        leave_days = leave_service.approved_leave_days(db, employee_id, start_date, end_date)
        leave_covers = lambda _emp, day: day in leave_days
    if rest_day_covers is None:
        rest = schedule_service.rest_days(db, employee_id, start_date, end_date)
        rest_day_covers = lambda _emp, day: day in rest

    sessions = (
        db.query(AttendanceSession)
        .filter(
            AttendanceSession.employee_id == employee_id,
            AttendanceSession.work_date >= start_date,
            AttendanceSession.work_date <= end_date,
        )
        .all()
    )
    by_day: Dict[date, List[AttendanceSession]] = defaultdict(list)
    for session in sessions:
        by_day[session.work_date].append(session)

    rows: List[DailyStatus] = []
    for day in iter_days(start_date, end_date):
        day_sessions = by_day.get(day, [])
        has_open = any(s.is_open for s in day_sessions)

        if leave_covers(employee_id, day):
            classification = DayClassification.LEAVE
        elif rest_day_covers(employee_id, day):
            classification = DayClassification.REST_DAY
        elif day_sessions:
            classification = DayClassification.ATTENDANCE
        else:
            classification = DayClassification.NO_RECORD

        total_hours = None
        if classification == DayClassification.ATTENDANCE:
            # Open sessions count zero until closed
            total_hours = round(sum(_session_hours(s) for s in day_sessions if not s.is_open), 2)

        rows.append(
            DailyStatus(
                employee_id=employee_id,
                day=day,
                classification=classification,
                total_hours=total_hours,
                session_count=len(day_sessions),
                has_open_session=has_open,
            )
        )

    logger.debug(
        "daily status aggregated: employee_id=%s from=%s to=%s rows=%s",
        employee_id, start_date, end_date, len(rows),
    )
    return rows
