"""
Attendance session service: clock in/out with business-tz work_date, current/stale session lookups.
All timestamps stored in UTC. At most one open session per employee; the check below is
repeated by the store's partial unique index at commit time.
"""
import logging
from datetime import datetime, date
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.errors import ConflictError, InvalidStateError, NotFoundError, UnauthorizedError
from app.db.transaction import atomic
from app.models.approval import SubjectKind
from app.models.attendance_session import (
    AttendanceSession,
    AttendanceEvent,
    SessionStatus,
    AttendanceEventType,
)
from app.models.employee import Employee
from app.services import approval_service
from app.services.audit_service import log_audit
from app.services.authorization_service import Permission, ensure_authorized
from app.services.overtime_service import ensure_can_mark_overtime
from app.utils.datetime_utils import ensure_utc, local_date, now_utc, today_local
from app.utils.json_serializer import sanitize_for_json

_log = logging.getLogger(__name__)


def get_work_date(moment: Optional[datetime] = None) -> date:
    """Return work_date (date in the business zone) for the given UTC time (default now)."""
    return local_date(moment or now_utc())


def get_active_employee(db: Session, employee_id: int) -> Employee:
    employee = db.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError("employee_not_found", employee_id=employee_id)
    if not employee.active:
        raise InvalidStateError("employee_inactive", employee_id=employee_id)
    return employee


def get_session(db: Session, session_id: int) -> AttendanceSession:
    session = db.get(AttendanceSession, session_id)
    if session is None:
        raise NotFoundError("session_not_found", session_id=session_id)
    return session


def find_open_session(db: Session, employee_id: int) -> Optional[AttendanceSession]:
    return (
        db.query(AttendanceSession)
        .filter(
            AttendanceSession.employee_id == employee_id,
            AttendanceSession.punch_out_at.is_(None),
        )
        .first()
    )


def ensure_end_after_start(start: datetime, end: datetime, **context) -> None:
    if ensure_utc(end) <= ensure_utc(start):
        raise InvalidStateError(
            "end_not_after_start",
            start=ensure_utc(start).isoformat(),
            end=ensure_utc(end).isoformat(),
            **context,
        )


def add_event(
    db: Session,
    session: Optional[AttendanceSession],
    employee_id: int,
    event_type: AttendanceEventType,
    event_at: datetime,
    actor_id: int,
    meta: Optional[dict] = None,
) -> AttendanceEvent:
    event = AttendanceEvent(
        session_id=session.id if session is not None else None,
        employee_id=employee_id,
        event_type=event_type,
        event_at=event_at,
        meta_json=sanitize_for_json(meta) if meta else None,
        created_by=actor_id,
    )
    db.add(event)
    return event


def clock_in(
    db: Session,
    employee_id: int,
    now: Optional[datetime] = None,
    *,
    remarks: Optional[str] = None,
) -> AttendanceSession:
    """
    Open a new session for employee at now (server UTC time by default).

    Raises:
        NotFoundError: unknown employee
        InvalidStateError: inactive employee
        ConflictError: the employee already has an open session (checked here and again at commit)
    """
    now = ensure_utc(now) or now_utc()
    work_date = get_work_date(now)

    with atomic(db, "session_already_open", employee_id=employee_id):
        get_active_employee(db, employee_id)

        existing = find_open_session(db, employee_id)
        if existing is not None:
            _log.debug("clock_in rejected: employee_id=%s open_session_id=%s", employee_id, existing.id)
            raise ConflictError("session_already_open", employee_id=employee_id, open_session_id=existing.id)

        session = AttendanceSession(
            employee_id=employee_id,
            work_date=work_date,
            punch_in_at=now,
            punch_out_at=None,
            status=SessionStatus.OPEN,
            is_overtime_marked=False,
            remarks=remarks,
            created_by=employee_id,
            modified_by=employee_id,
        )
        db.add(session)
        db.flush()

        add_event(db, session, employee_id, AttendanceEventType.IN, now, employee_id)
        log_audit(
            db=db,
            actor_id=employee_id,
            action="ATTENDANCE_CLOCK_IN",
            entity_type="attendance_sessions",
            entity_id=session.id,
            meta={"work_date": work_date, "punch_in_at": now},
        )

    db.refresh(session)
    _log.info("clock_in: employee_id=%s session_id=%s work_date=%s", employee_id, session.id, work_date)
    return session


def clock_out(
    db: Session,
    session_id: int,
    now: Optional[datetime] = None,
    *,
    overtime_flag: bool = False,
    overtime_comment: Optional[str] = None,
    actor_id: Optional[int] = None,
) -> AttendanceSession:
    """
    Close an open session. With overtime_flag, the session is marked overtime and a
    PENDING/PENDING overtime approval workflow is opened for it.

    If another session of the same work_date is already marked overtime, the session
    is still closed, unmarked and without a workflow, and ConflictError is raised
    after that close is committed.

    Raises:
        NotFoundError: unknown session, or the session is already closed
        UnauthorizedError: actor_id given and not the session's owner
        InvalidStateError: now is not after the session start
        ConflictError: overtime already marked for that employee and day
    """
    now = ensure_utc(now) or now_utc()
    overtime_conflict: Optional[ConflictError] = None

    with atomic(db, "overtime_already_marked", session_id=session_id):
        session = db.get(AttendanceSession, session_id)
        if session is None or not session.is_open:
            raise NotFoundError("open_session_not_found", session_id=session_id)
        if actor_id is not None and actor_id != session.employee_id:
            raise UnauthorizedError("not_session_owner", session_id=session_id, actor_id=actor_id)
        ensure_end_after_start(session.punch_in_at, now, session_id=session_id)

        mark_overtime = overtime_flag
        if overtime_flag:
            try:
                ensure_can_mark_overtime(db, session.employee_id, session.work_date, excluding_session_id=session.id)
            except ConflictError as exc:
                overtime_conflict = exc
                mark_overtime = False

        session.punch_out_at = now
        session.status = SessionStatus.CLOSED
        session.modified_by = session.employee_id

        if mark_overtime:
            session.is_overtime_marked = True
            session.overtime_comment = overtime_comment
            workflow = approval_service.create_workflow(
                db, SubjectKind.OVERTIME, session.id, session.employee_id
            )
            session.overtime_request_id = workflow.id
            event_meta = {"overtime": True, "overtime_comment": overtime_comment}
        elif overtime_conflict is not None:
            event_meta = {"overtime_rejected": overtime_conflict.code, **overtime_conflict.context}
        else:
            event_meta = None
        add_event(db, session, session.employee_id, AttendanceEventType.OUT, now, session.employee_id, meta=event_meta)
        log_audit(
            db=db,
            actor_id=session.employee_id,
            action="ATTENDANCE_CLOCK_OUT",
            entity_type="attendance_sessions",
            entity_id=session.id,
            meta={
                "work_date": session.work_date,
                "punch_out_at": now,
                "overtime": mark_overtime,
                "overtime_rejected": overtime_conflict is not None,
                "overtime_request_id": session.overtime_request_id,
            },
        )

    db.refresh(session)
    _log.info(
        "clock_out: session_id=%s employee_id=%s overtime=%s overtime_request_id=%s",
        session.id, session.employee_id, mark_overtime, session.overtime_request_id,
    )
    if overtime_conflict is not None:
        _log.debug("clock_out overtime rejected: session_id=%s context=%s", session.id, overtime_conflict.context)
        raise overtime_conflict
    return session


def get_current_session(db: Session, employee_id: int) -> Optional[AttendanceSession]:
    """The employee's open session, if any."""
    return find_open_session(db, employee_id)


def list_sessions(
    db: Session,
    employee_id: int,
    from_date: date,
    to_date: date,
) -> List[AttendanceSession]:
    """List sessions for the given employee whose work_date falls in [from_date, to_date]."""
    if from_date > to_date:
        raise InvalidStateError(
            "invalid_date_range", from_date=from_date.isoformat(), to_date=to_date.isoformat()
        )
    return (
        db.query(AttendanceSession)
        .filter(
            AttendanceSession.employee_id == employee_id,
            AttendanceSession.work_date >= from_date,
            AttendanceSession.work_date <= to_date,
        )
        .order_by(AttendanceSession.work_date.desc(), AttendanceSession.punch_in_at.desc())
        .all()
    )


def list_stale_sessions(
    db: Session,
    actor_id: int,
    today: Optional[date] = None,
) -> List[AttendanceSession]:
    """
    Open sessions started on an earlier work_date than today (business zone).
    These are the candidates for an admin force-close.
    """
    ensure_authorized(db, actor_id, Permission.VIEW_STALE_SESSIONS)
    today = today or today_local()
    return (
        db.query(AttendanceSession)
        .filter(
            AttendanceSession.punch_out_at.is_(None),
            AttendanceSession.work_date < today,
        )
        .order_by(AttendanceSession.work_date.asc(), AttendanceSession.punch_in_at.asc())
        .all()
    )
