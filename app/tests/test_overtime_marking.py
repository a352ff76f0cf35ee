"""
Tests for the one-overtime-session-per-day rule
"""
from datetime import date

import pytest

from app.core.errors import ConflictError
from app.db.transaction import atomic
from app.models.approval import ApprovalWorkflow
from app.models.attendance_session import (
    AttendanceEvent,
    AttendanceEventType,
    AttendanceSession,
    SessionStatus,
)
from app.services import attendance_session_service as svc
from app.services.overtime_service import can_mark_overtime, find_overtime_session_id
from app.tests.helpers import utc
from app.utils.datetime_utils import ensure_utc


def _overtime_sessions(db, employee_id, day):
    return db.query(AttendanceSession).filter(
        AttendanceSession.employee_id == employee_id,
        AttendanceSession.work_date == day,
        AttendanceSession.is_overtime_marked.is_(True),
    ).all()


@pytest.fixture
def overtime_session(db, employee):
    """Session A on 2024-03-02, already marked overtime"""
    session = svc.clock_in(db, employee.id, now=utc(2024, 3, 2, 1, 0))
    return svc.clock_out(db, session.id, now=utc(2024, 3, 2, 5, 0), overtime_flag=True)


def test_can_mark_overtime_free_day(db, employee):
    assert can_mark_overtime(db, employee.id, date(2024, 3, 2)) is True


def test_can_mark_overtime_taken_day(db, employee, overtime_session):
    day = overtime_session.work_date
    assert can_mark_overtime(db, employee.id, day) is False
    assert find_overtime_session_id(db, employee.id, day) == overtime_session.id


def test_can_mark_overtime_excluding_itself(db, employee, overtime_session):
    assert can_mark_overtime(
        db, employee.id, overtime_session.work_date, excluding_session_id=overtime_session.id
    ) is True


def test_can_mark_overtime_is_per_employee(db, other_employee, overtime_session):
    assert can_mark_overtime(db, other_employee.id, overtime_session.work_date) is True


def test_second_overtime_clock_out_same_day_closes_unmarked(db, employee, overtime_session):
    second = svc.clock_in(db, employee.id, now=utc(2024, 3, 2, 6, 0))

    with pytest.raises(ConflictError) as exc_info:
        svc.clock_out(db, second.id, now=utc(2024, 3, 2, 12, 0), overtime_flag=True)

    assert exc_info.value.code == "overtime_already_marked"
    assert exc_info.value.context["conflicting_session_id"] == overtime_session.id

    # B is closed without the overtime mark; no second workflow
    db.refresh(second)
    assert not second.is_open
    assert second.status == SessionStatus.CLOSED
    assert ensure_utc(second.punch_out_at) == utc(2024, 3, 2, 12, 0)
    assert second.is_overtime_marked is False
    assert second.overtime_request_id is None
    assert db.query(ApprovalWorkflow).count() == 1
    assert len(_overtime_sessions(db, employee.id, overtime_session.work_date)) == 1


def test_rejected_overtime_recorded_on_clock_out_event(db, employee, overtime_session):
    second = svc.clock_in(db, employee.id, now=utc(2024, 3, 2, 6, 0))
    with pytest.raises(ConflictError):
        svc.clock_out(db, second.id, now=utc(2024, 3, 2, 12, 0), overtime_flag=True)

    event = db.query(AttendanceEvent).filter(
        AttendanceEvent.session_id == second.id,
        AttendanceEvent.event_type == AttendanceEventType.OUT,
    ).one()
    assert event.meta_json["overtime_rejected"] == "overtime_already_marked"
    assert event.meta_json["conflicting_session_id"] == overtime_session.id

    # Employee can clock in again right away
    third = svc.clock_in(db, employee.id, now=utc(2024, 3, 2, 13, 0))
    assert third.is_open


def test_overtime_on_next_day_allowed(db, employee, overtime_session):
    next_day = svc.clock_in(db, employee.id, now=utc(2024, 3, 3, 1, 0))
    closed = svc.clock_out(db, next_day.id, now=utc(2024, 3, 3, 12, 0), overtime_flag=True)
    assert closed.is_overtime_marked is True


def test_store_rejects_second_overtime_session(db, employee, overtime_session):
    """The partial unique index backs the rule even if a writer skips the check."""
    with pytest.raises(ConflictError) as exc_info:
        with atomic(db, "overtime_already_marked", employee_id=employee.id):
            db.add(AttendanceSession(
                employee_id=employee.id,
                work_date=overtime_session.work_date,
                punch_in_at=utc(2024, 3, 2, 6, 0),
                punch_out_at=utc(2024, 3, 2, 7, 0),
                status=SessionStatus.CLOSED,
                is_overtime_marked=True,
            ))

    assert exc_info.value.code == "overtime_already_marked"
    assert len(_overtime_sessions(db, employee.id, overtime_session.work_date)) == 1


def test_clock_out_conflict_endpoint(client, db, employee, overtime_session):
    second = svc.clock_in(db, employee.id, now=utc(2024, 3, 2, 6, 0))

    response = client.post(
        f"/api/v1/attendance/sessions/{second.id}/clock-out",
        json={"overtime": True},
        headers={"X-Employee-Id": str(employee.id)},
    )

    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "overtime_already_marked"
    assert body["context"]["conflicting_session_id"] == overtime_session.id
    db.refresh(second)
    assert not second.is_open
    assert second.is_overtime_marked is False
