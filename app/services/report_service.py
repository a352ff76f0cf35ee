"""
Report service - daily status rows for export
"""
from datetime import date
from typing import List, Dict, Optional
from sqlalchemy.orm import Session
from app.core.errors import NotFoundError
from app.models.employee import Employee
from app.services.authorization_service import Permission, ensure_authorized
from app.services.daily_status_service import aggregate

DAILY_STATUS_HEADERS = [
    "emp_code",
    "employee_name",
    "date",
    "classification",
    "total_hours",
    "session_count",
    "has_open_session",
]


def get_daily_status_rows(
    db: Session,
    current_user: Employee,
    from_date: date,
    to_date: date,
    employee_id: Optional[int] = None
) -> List[Dict]:
    """
    Get daily status rows for export

    Args:
        db: Database session
        current_user: Current authenticated user
        from_date: Start date (inclusive)
        to_date: End date (inclusive)
        employee_id: Employee to report on; defaults to the caller

    Returns:
        One dictionary per day, keyed by DAILY_STATUS_HEADERS

    Raises:
        UnauthorizedError: another employee's report without view_attendance_reports
        NotFoundError: unknown employee
        InvalidStateError: bad or oversized date range
    """
    target_id = employee_id if employee_id is not None else current_user.id
    if target_id != current_user.id:
        ensure_authorized(db, current_user.id, Permission.VIEW_ATTENDANCE_REPORTS, target_id)

    employee = db.get(Employee, target_id)
    if employee is None:
        raise NotFoundError("employee_not_found", employee_id=target_id)

    results = []
    for status_row in aggregate(db, target_id, from_date, to_date):
        results.append({
            "emp_code": employee.emp_code,
            "employee_name": employee.name,
            "date": status_row.day.isoformat(),
            "classification": status_row.classification.value,
            "total_hours": status_row.total_hours,
            "session_count": status_row.session_count,
            "has_open_session": status_row.has_open_session,
        })
    return results
