"""
Attendance endpoints (session-based clock in/out).
Every employee can call these for their own records only.
"""
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.core.deps import get_db, get_current_user
from app.models.employee import Employee
from app.schemas.attendance import (
    ClockInRequest,
    ClockOutRequest,
    CurrentSessionResponse,
    SessionDto,
    SessionListResponse,
)
from app.schemas.report import DailyStatusResponse
from app.services import attendance_session_service as svc
from app.services.daily_status_service import aggregate

router = APIRouter()


@router.post("/clock-in", response_model=SessionDto, status_code=201)
async def clock_in(
    body: Optional[ClockInRequest] = None,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """POST /api/v1/attendance/clock-in - open a session at server time. 409 if one is already open."""
    body = body or ClockInRequest()
    session = svc.clock_in(db, current_user.id, remarks=body.remarks)
    return SessionDto.model_validate(session)


@router.post("/sessions/{session_id}/clock-out", response_model=SessionDto)
async def clock_out(
    session_id: int,
    body: Optional[ClockOutRequest] = None,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """
    POST /api/v1/attendance/sessions/{session_id}/clock-out

    With overtime=true the session is marked overtime and an approval request is opened.
    409 if another session that day is already marked overtime; nothing is changed and the
    call can be retried without the flag.
    """
    body = body or ClockOutRequest()
    session = svc.clock_out(
        db,
        session_id,
        overtime_flag=body.overtime,
        overtime_comment=body.overtime_comment,
        actor_id=current_user.id,
    )
    return SessionDto.model_validate(session)


@router.get("/current", response_model=CurrentSessionResponse)
async def current_session(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """GET /api/v1/attendance/current - the caller's open session, or null."""
    session = svc.get_current_session(db, current_user.id)
    return CurrentSessionResponse(session=SessionDto.model_validate(session) if session else None)


@router.get("/my", response_model=SessionListResponse)
async def my_sessions(
    from_date: date = Query(..., alias="from"),
    to_date: date = Query(..., alias="to"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """GET /api/v1/attendance/my?from=YYYY-MM-DD&to=YYYY-MM-DD"""
    sessions = svc.list_sessions(db, current_user.id, from_date, to_date)
    items = [SessionDto.model_validate(s) for s in sessions]
    return SessionListResponse(items=items, total=len(items))


@router.get("/daily-status", response_model=DailyStatusResponse)
async def my_daily_status(
    from_date: date = Query(..., alias="from"),
    to_date: date = Query(..., alias="to"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """GET /api/v1/attendance/daily-status?from=&to= - per-day classification for the caller."""
    rows = aggregate(db, current_user.id, from_date, to_date)
    return DailyStatusResponse(items=rows, total=len(rows))
