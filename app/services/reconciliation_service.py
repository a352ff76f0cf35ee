"""
Admin reconciliation: force-close, historical insert, edit and delete of attendance sessions.

Every operation requires the edit_time_entries permission, records modified_by, writes an
attendance event plus an audit row, and re-validates the one-open-session and
one-overtime-per-day rules inside its own transaction.
"""
import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.core.errors import ConflictError, ImmutableError, InvalidStateError
from app.db.transaction import atomic
from app.models.approval import ApprovalStatus, ApprovalWorkflow, SubjectKind
from app.models.attendance_session import (
    AttendanceSession,
    AttendanceEventType,
    SessionStatus,
)
from app.services import approval_service
from app.services.attendance_session_service import (
    add_event,
    ensure_end_after_start,
    get_active_employee,
    get_session,
)
from app.services.audit_service import log_audit
from app.services.authorization_service import Permission, ensure_authorized
from app.services.overtime_service import ensure_can_mark_overtime
from app.utils.datetime_utils import ensure_utc, local_date, now_utc

logger = logging.getLogger(__name__)


def _ensure_closed(session: AttendanceSession) -> None:
    if session.is_open:
        raise InvalidStateError("session_open", session_id=session.id)


def _discard_workflow(db: Session, session: AttendanceSession) -> Optional[int]:
    """Drop the session's overtime workflow (never an approved one) and unlink it."""
    workflow = session.overtime_request
    if workflow is None:
        return None
    workflow_id = workflow.id
    session.overtime_request = None
    session.is_overtime_approved = False
    db.delete(workflow)
    logger.info("overtime workflow discarded: workflow_id=%s session_id=%s", workflow_id, session.id)
    return workflow_id


def force_close(
    db: Session,
    session_id: int,
    timestamp: datetime,
    actor_id: int,
) -> AttendanceSession:
    """
    Close an open session at an admin-supplied time.

    Raises:
        UnauthorizedError: actor lacks edit_time_entries
        NotFoundError: unknown session
        InvalidStateError: session already closed, or timestamp not after its start
    """
    timestamp = ensure_utc(timestamp)

    with atomic(db, "concurrent_modification", session_id=session_id):
        ensure_authorized(db, actor_id, Permission.EDIT_TIME_ENTRIES, session_id)
        session = get_session(db, session_id)
        if not session.is_open:
            raise InvalidStateError("session_already_closed", session_id=session_id)
        ensure_end_after_start(session.punch_in_at, timestamp, session_id=session_id)

        session.punch_out_at = timestamp
        session.status = SessionStatus.FORCE_CLOSED
        session.modified_by = actor_id

        meta = {"forced_by": actor_id, "punch_out_at": timestamp}
        add_event(db, session, session.employee_id, AttendanceEventType.FORCE_CLOSE, now_utc(), actor_id, meta)
        log_audit(
            db=db,
            actor_id=actor_id,
            action="ATTENDANCE_SESSION_FORCE_CLOSE",
            entity_type="attendance_sessions",
            entity_id=session.id,
            meta={"session_id": session_id, **meta},
        )

    db.refresh(session)
    logger.info("force_close: session_id=%s actor_id=%s", session_id, actor_id)
    return session


def insert_historical(
    db: Session,
    employee_id: int,
    start: datetime,
    end: datetime,
    actor_id: int,
    *,
    overtime_flag: bool = False,
    overtime_comment: Optional[str] = None,
    now: Optional[datetime] = None,
) -> AttendanceSession:
    """
    Create a closed session in the past. Never creates an open session.

    Raises:
        UnauthorizedError: actor lacks edit_time_entries
        NotFoundError: unknown employee
        InvalidStateError: end not after start, or end in the future
        ConflictError: overtime_flag set and that day already has an overtime session
    """
    start = ensure_utc(start)
    end = ensure_utc(end)
    now = ensure_utc(now) or now_utc()
    work_date = local_date(start)

    with atomic(db, "overtime_already_marked", employee_id=employee_id, work_date=work_date.isoformat()):
        ensure_authorized(db, actor_id, Permission.EDIT_TIME_ENTRIES, employee_id)
        get_active_employee(db, employee_id)
        ensure_end_after_start(start, end, employee_id=employee_id)
        if end > now:
            raise InvalidStateError("end_in_future", employee_id=employee_id, end=end.isoformat())
        if overtime_flag:
            ensure_can_mark_overtime(db, employee_id, work_date)

        session = AttendanceSession(
            employee_id=employee_id,
            work_date=work_date,
            punch_in_at=start,
            punch_out_at=end,
            status=SessionStatus.CLOSED,
            is_overtime_marked=bool(overtime_flag),
            overtime_comment=overtime_comment if overtime_flag else None,
            created_by=actor_id,
            modified_by=actor_id,
        )
        db.add(session)
        db.flush()

        if overtime_flag:
            workflow = approval_service.create_workflow(db, SubjectKind.OVERTIME, session.id, employee_id)
            session.overtime_request_id = workflow.id

        meta = {
            "punch_in_at": start,
            "punch_out_at": end,
            "overtime": bool(overtime_flag),
            "inserted_by": actor_id,
        }
        add_event(db, session, employee_id, AttendanceEventType.ADMIN_INSERT, now, actor_id, meta)
        log_audit(
            db=db,
            actor_id=actor_id,
            action="ATTENDANCE_SESSION_ADMIN_INSERT",
            entity_type="attendance_sessions",
            entity_id=session.id,
            meta={"employee_id": employee_id, "work_date": work_date, **meta},
        )

    db.refresh(session)
    logger.info(
        "insert_historical: session_id=%s employee_id=%s work_date=%s overtime=%s",
        session.id, employee_id, work_date, overtime_flag,
    )
    return session


def edit_session(
    db: Session,
    session_id: int,
    actor_id: int,
    *,
    new_start: Optional[datetime] = None,
    new_end: Optional[datetime] = None,
    new_overtime_flag: Optional[bool] = None,
    overtime_comment: Optional[str] = None,
    remarks: Optional[str] = None,
) -> AttendanceSession:
    """
    Correct a closed session's times and/or overtime flag.

    Turning the flag on opens a fresh PENDING/PENDING overtime workflow; turning it off
    discards the pending one. Sessions whose overtime workflow is already decided
    (approved or rejected) cannot be edited here.

    Raises:
        UnauthorizedError: actor lacks edit_time_entries
        NotFoundError: unknown session
        InvalidStateError: session still open, or resulting end not after start
        ImmutableError: linked overtime workflow is finalized
        ConflictError: the resulting day already has another overtime session
    """
    with atomic(db, "overtime_already_marked", session_id=session_id):
        ensure_authorized(db, actor_id, Permission.EDIT_TIME_ENTRIES, session_id)
        session = get_session(db, session_id)
        _ensure_closed(session)

        workflow: Optional[ApprovalWorkflow] = session.overtime_request
        if workflow is not None and workflow.final_status != ApprovalStatus.PENDING:
            raise ImmutableError(
                "overtime_request_finalized",
                session_id=session_id,
                workflow_id=workflow.id,
                final_status=workflow.final_status.value,
            )

        start = ensure_utc(new_start) if new_start is not None else ensure_utc(session.punch_in_at)
        end = ensure_utc(new_end) if new_end is not None else ensure_utc(session.punch_out_at)
        ensure_end_after_start(start, end, session_id=session_id)

        new_day = local_date(start)
        was_marked = bool(session.is_overtime_marked)
        marked_after = was_marked if new_overtime_flag is None else bool(new_overtime_flag)

        # Re-check the per-day rule when the flag turns on or a marked session moves to another day
        if marked_after and (not was_marked or new_day != session.work_date):
            ensure_can_mark_overtime(db, session.employee_id, new_day, excluding_session_id=session.id)

        meta = {"edited_by": actor_id}
        if new_start is not None:
            meta["old_punch_in_at"] = session.punch_in_at
            meta["new_punch_in_at"] = start
            session.punch_in_at = start
            session.work_date = new_day
        if new_end is not None:
            meta["old_punch_out_at"] = session.punch_out_at
            meta["new_punch_out_at"] = end
            session.punch_out_at = end

        if marked_after != was_marked:
            meta["old_overtime"] = was_marked
            meta["new_overtime"] = marked_after
            session.is_overtime_marked = marked_after
            if marked_after:
                session.overtime_comment = overtime_comment
                db.flush()
                created = approval_service.create_workflow(
                    db, SubjectKind.OVERTIME, session.id, session.employee_id
                )
                session.overtime_request = created
                meta["overtime_request_id"] = created.id
            else:
                session.overtime_comment = None
                meta["discarded_overtime_request_id"] = _discard_workflow(db, session)
        elif marked_after and overtime_comment is not None:
            session.overtime_comment = overtime_comment
            meta["overtime_comment"] = overtime_comment

        if remarks is not None:
            session.remarks = remarks
            meta["remarks"] = remarks
        session.modified_by = actor_id

        add_event(db, session, session.employee_id, AttendanceEventType.ADMIN_EDIT, now_utc(), actor_id, meta)
        log_audit(
            db=db,
            actor_id=actor_id,
            action="ATTENDANCE_SESSION_ADMIN_EDIT",
            entity_type="attendance_sessions",
            entity_id=session.id,
            meta={"session_id": session_id, **meta},
        )

    db.refresh(session)
    logger.info("edit_session: session_id=%s actor_id=%s", session_id, actor_id)
    return session


def delete_session(db: Session, session_id: int, actor_id: int) -> None:
    """
    Delete a closed session together with its undecided or rejected overtime workflow.

    Raises:
        UnauthorizedError: actor lacks edit_time_entries
        NotFoundError: unknown session
        InvalidStateError: session still open (force-close it first)
        ConflictError: linked overtime workflow is approved
    """
    with atomic(db, "concurrent_modification", session_id=session_id):
        ensure_authorized(db, actor_id, Permission.EDIT_TIME_ENTRIES, session_id)
        session = get_session(db, session_id)
        _ensure_closed(session)

        workflow = session.overtime_request
        if workflow is not None and workflow.final_status == ApprovalStatus.APPROVED:
            raise ConflictError(
                "overtime_request_approved",
                session_id=session_id,
                workflow_id=workflow.id,
            )

        employee_id = session.employee_id
        meta = {
            "session_id": session_id,
            "work_date": session.work_date,
            "punch_in_at": session.punch_in_at,
            "punch_out_at": session.punch_out_at,
            "was_overtime": bool(session.is_overtime_marked),
            "deleted_by": actor_id,
        }
        meta["discarded_overtime_request_id"] = _discard_workflow(db, session)
        db.flush()
        db.delete(session)

        add_event(db, None, employee_id, AttendanceEventType.ADMIN_DELETE, now_utc(), actor_id, meta)
        log_audit(
            db=db,
            actor_id=actor_id,
            action="ATTENDANCE_SESSION_ADMIN_DELETE",
            entity_type="attendance_sessions",
            entity_id=session_id,
            meta=meta,
        )

    logger.info("delete_session: session_id=%s actor_id=%s", session_id, actor_id)
