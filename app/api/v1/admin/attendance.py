"""
Admin attendance endpoints: stale open sessions, force-close, historical insert, edit, delete.
Every route requires edit_time_entries (view_stale_sessions for /stale); the services check
the acting employee again. Changes are written as ADMIN_* attendance events.
"""
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.core.deps import get_db, require_permission
from app.models.employee import Employee
from app.schemas.attendance import (
    AdminEditSessionRequest,
    AdminInsertSessionRequest,
    ForceCloseRequest,
    SessionDto,
    SessionListResponse,
)
from app.services import attendance_session_service as svc
from app.services import reconciliation_service as reconcile
from app.services.authorization_service import Permission

router = APIRouter()


@router.get("/stale", response_model=SessionListResponse)
async def admin_stale_sessions(
    today: Optional[date] = Query(None, description="Override today's business date"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_permission(Permission.VIEW_STALE_SESSIONS)),
):
    """GET /api/v1/admin/attendance/stale - open sessions started before today (business zone)."""
    sessions = svc.list_stale_sessions(db, current_user.id, today=today)
    items = [SessionDto.model_validate(s) for s in sessions]
    return SessionListResponse(items=items, total=len(items))


@router.post("", response_model=SessionDto, status_code=201)
async def admin_insert_session(
    body: AdminInsertSessionRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_permission(Permission.EDIT_TIME_ENTRIES)),
):
    """POST /api/v1/admin/attendance - insert a closed historical session. Creates ADMIN_INSERT event."""
    session = reconcile.insert_historical(
        db,
        body.employee_id,
        body.punch_in_at,
        body.punch_out_at,
        current_user.id,
        overtime_flag=body.overtime,
        overtime_comment=body.overtime_comment,
    )
    return SessionDto.model_validate(session)


@router.patch("/{session_id}", response_model=SessionDto)
async def admin_patch_session(
    session_id: int,
    body: AdminEditSessionRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_permission(Permission.EDIT_TIME_ENTRIES)),
):
    """PATCH /api/v1/admin/attendance/{session_id} - edit times, overtime flag, remarks. Creates ADMIN_EDIT event."""
    session = reconcile.edit_session(
        db,
        session_id,
        current_user.id,
        new_start=body.punch_in_at,
        new_end=body.punch_out_at,
        new_overtime_flag=body.overtime,
        overtime_comment=body.overtime_comment,
        remarks=body.remarks,
    )
    return SessionDto.model_validate(session)


@router.post("/{session_id}/force-close", response_model=SessionDto)
async def admin_force_close(
    session_id: int,
    body: ForceCloseRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_permission(Permission.EDIT_TIME_ENTRIES)),
):
    """POST /api/v1/admin/attendance/{session_id}/force-close - close an open session at the given time. Creates FORCE_CLOSE event."""
    session = reconcile.force_close(db, session_id, body.punch_out_at, current_user.id)
    return SessionDto.model_validate(session)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def admin_delete_session(
    session_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_permission(Permission.EDIT_TIME_ENTRIES)),
):
    """DELETE /api/v1/admin/attendance/{session_id} - 409 if its overtime request is approved."""
    reconcile.delete_session(db, session_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
