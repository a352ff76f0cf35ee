"""
Overtime marking rule: at most one overtime-marked session per employee per work_date.

Pure reads only. Clock-out, historical insert and admin edit all go through
ensure_can_mark_overtime() before setting the flag.
"""
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import ConflictError
from app.models.attendance_session import AttendanceSession


def find_overtime_session_id(
    db: Session,
    employee_id: int,
    day: date,
    excluding_session_id: Optional[int] = None,
) -> Optional[int]:
    """Id of the session already marked overtime for employee on day, ignoring excluding_session_id."""
    query = db.query(AttendanceSession.id).filter(
        AttendanceSession.employee_id == employee_id,
        AttendanceSession.work_date == day,
        AttendanceSession.is_overtime_marked.is_(True),
    )
    if excluding_session_id is not None:
        query = query.filter(AttendanceSession.id != excluding_session_id)
    row = query.first()
    return row[0] if row else None


def can_mark_overtime(
    db: Session,
    employee_id: int,
    day: date,
    excluding_session_id: Optional[int] = None,
) -> bool:
    """True iff no other session of employee on day is marked overtime."""
    return find_overtime_session_id(db, employee_id, day, excluding_session_id) is None


def ensure_can_mark_overtime(
    db: Session,
    employee_id: int,
    day: date,
    excluding_session_id: Optional[int] = None,
) -> None:
    conflicting = find_overtime_session_id(db, employee_id, day, excluding_session_id)
    if conflicting is not None:
        raise ConflictError(
            "overtime_already_marked",
            employee_id=employee_id,
            work_date=day.isoformat(),
            conflicting_session_id=conflicting,
        )
