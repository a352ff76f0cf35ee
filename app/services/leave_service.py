"""
Leave service - read-only leave lookups used by the daily status report

Leave requests are filed and decided by leave management; only APPROVED leave
covers a day here.
"""
from datetime import date, timedelta
from typing import Set
from sqlalchemy.orm import Session
from sqlalchemy import and_
from app.models.leave import LeaveRequest, LeaveStatus


def covers_day(db: Session, employee_id: int, day: date) -> bool:
    """True if an approved leave request of the employee includes day."""
    row = db.query(LeaveRequest.id).filter(
        and_(
            LeaveRequest.employee_id == employee_id,
            LeaveRequest.status == LeaveStatus.APPROVED,
            LeaveRequest.from_date <= day,
            LeaveRequest.to_date >= day
        )
    ).first()
    return row is not None


def approved_leave_days(
    db: Session,
    employee_id: int,
    from_date: date,
    to_date: date
) -> Set[date]:
    """
    Get set of days within the range covered by approved leave

    Args:
        db: Database session
        employee_id: Employee whose leave is read
        from_date: Start date (inclusive)
        to_date: End date (inclusive)

    Returns:
        Set of covered dates, clipped to the range
    """
    leaves = db.query(LeaveRequest.from_date, LeaveRequest.to_date).filter(
        and_(
            LeaveRequest.employee_id == employee_id,
            LeaveRequest.status == LeaveStatus.APPROVED,
            LeaveRequest.from_date <= to_date,
            LeaveRequest.to_date >= from_date
        )
    ).all()

    days: Set[date] = set()
    for leave_from, leave_to in leaves:
        current = max(leave_from, from_date)
        last = min(leave_to, to_date)
        while current <= last:
            days.add(current)
            current += timedelta(days=1)
    return days
