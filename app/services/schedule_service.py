"""
Work schedule service - read-only rest-day lookups used by the daily status report
"""
from datetime import date
from typing import Set
from sqlalchemy.orm import Session
from sqlalchemy import and_
from app.models.schedule import WorkSchedule


def is_rest_day(db: Session, employee_id: int, day: date) -> bool:
    """True if the employee's schedule marks day as a rest day. Unscheduled days are not rest days."""
    row = db.query(WorkSchedule.id).filter(
        and_(
            WorkSchedule.employee_id == employee_id,
            WorkSchedule.schedule_date == day,
            WorkSchedule.is_rest_day == True
        )
    ).first()
    return row is not None


def rest_days(
    db: Session,
    employee_id: int,
    from_date: date,
    to_date: date
) -> Set[date]:
    """Set of scheduled rest days for the employee within [from_date, to_date]"""
    rows = db.query(WorkSchedule.schedule_date).filter(
        and_(
            WorkSchedule.employee_id == employee_id,
            WorkSchedule.is_rest_day == True,
            WorkSchedule.schedule_date >= from_date,
            WorkSchedule.schedule_date <= to_date
        )
    ).all()
    return {schedule_date for (schedule_date,) in rows}
