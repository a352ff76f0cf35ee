"""
Reports and exports endpoints
"""
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.core.deps import get_db, get_current_user
from app.db.transaction import atomic
from app.models.employee import Employee
from app.services.report_service import DAILY_STATUS_HEADERS, get_daily_status_rows
from app.utils.csv_export import stream_csv
from app.services.audit_service import log_audit

router = APIRouter()


@router.get("/daily-status.csv")
async def export_daily_status_csv(
    from_date: date = Query(..., alias="from", description="Start date (YYYY-MM-DD)"),
    to_date: date = Query(..., alias="to", description="End date (YYYY-MM-DD)"),
    employee_id: Optional[int] = Query(None, description="Employee ID; defaults to the caller"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user)
):
    """
    Export per-day attendance classification as CSV

    Scoping:
    - own records: always
    - another employee: requires view_attendance_reports

    One row per calendar day in [from, to]: LEAVE, REST_DAY, ATTENDANCE (with total_hours
    over closed sessions) or NO_RECORD.
    """
    rows = get_daily_status_rows(
        db=db,
        current_user=current_user,
        from_date=from_date,
        to_date=to_date,
        employee_id=employee_id
    )

    target_id = employee_id if employee_id is not None else current_user.id
    filename = f"daily_status_{target_id}_{from_date.strftime('%Y%m%d')}_{to_date.strftime('%Y%m%d')}.csv"

    with atomic(db, "report_export"):
        log_audit(
            db=db,
            actor_id=current_user.id,
            action="REPORT_EXPORT",
            entity_type="report",
            entity_id=None,
            meta={
                "report_type": "daily_status",
                "from_date": str(from_date),
                "to_date": str(to_date),
                "employee_id": target_id,
                "row_count": len(rows)
            }
        )

    return stream_csv(headers=DAILY_STATUS_HEADERS, rows=rows, filename=filename)
