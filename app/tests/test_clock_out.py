"""
Tests for clock-out
"""
import pytest
from fastapi import status

from app.core.errors import InvalidStateError, NotFoundError, UnauthorizedError
from app.models.approval import ApprovalStatus, ApprovalWorkflow, SubjectKind
from app.models.attendance_session import AttendanceEvent, AttendanceEventType, SessionStatus
from app.services import attendance_session_service as svc
from app.tests.helpers import auth_headers, utc


def test_clock_out_closes_session(db, employee):
    session = svc.clock_in(db, employee.id, now=utc(2024, 3, 2, 1, 0))

    closed = svc.clock_out(db, session.id, now=utc(2024, 3, 2, 10, 0))

    assert closed.status == SessionStatus.CLOSED
    assert closed.punch_out_at is not None
    assert closed.is_overtime_marked is False
    assert closed.overtime_request_id is None
    assert db.query(ApprovalWorkflow).count() == 0
    event_types = [
        e.event_type for e in db.query(AttendanceEvent).order_by(AttendanceEvent.id).all()
    ]
    assert event_types == [AttendanceEventType.IN, AttendanceEventType.OUT]


def test_clock_out_with_overtime_creates_pending_workflow(db, employee):
    session = svc.clock_in(db, employee.id, now=utc(2024, 3, 2, 1, 0))

    closed = svc.clock_out(
        db, session.id, now=utc(2024, 3, 2, 12, 0),
        overtime_flag=True, overtime_comment="Quarter-end close",
    )

    assert closed.is_overtime_marked is True
    assert closed.is_overtime_approved is False
    assert closed.overtime_comment == "Quarter-end close"
    workflow = db.get(ApprovalWorkflow, closed.overtime_request_id)
    assert workflow.subject_kind == SubjectKind.OVERTIME
    assert workflow.subject_id == closed.id
    assert workflow.employee_id == employee.id
    assert workflow.level1_status == ApprovalStatus.PENDING
    assert workflow.level2_status == ApprovalStatus.PENDING
    assert workflow.final_status == ApprovalStatus.PENDING


def test_clock_out_unknown_session(db):
    with pytest.raises(NotFoundError) as exc_info:
        svc.clock_out(db, 12345, now=utc(2024, 3, 2, 10, 0))
    assert exc_info.value.code == "open_session_not_found"


def test_clock_out_already_closed(db, employee):
    session = svc.clock_in(db, employee.id, now=utc(2024, 3, 2, 1, 0))
    svc.clock_out(db, session.id, now=utc(2024, 3, 2, 10, 0))

    with pytest.raises(NotFoundError):
        svc.clock_out(db, session.id, now=utc(2024, 3, 2, 11, 0))


def test_clock_out_before_start_rejected(db, employee):
    session = svc.clock_in(db, employee.id, now=utc(2024, 3, 2, 5, 0))

    with pytest.raises(InvalidStateError) as exc_info:
        svc.clock_out(db, session.id, now=utc(2024, 3, 2, 4, 0))

    assert exc_info.value.code == "end_not_after_start"
    db.refresh(session)
    assert session.punch_out_at is None


def test_clock_out_by_another_employee_rejected(db, employee, other_employee):
    session = svc.clock_in(db, employee.id, now=utc(2024, 3, 2, 1, 0))

    with pytest.raises(UnauthorizedError):
        svc.clock_out(db, session.id, now=utc(2024, 3, 2, 10, 0), actor_id=other_employee.id)

    db.refresh(session)
    assert session.is_open


def test_list_sessions_in_range(db, employee):
    first = svc.clock_in(db, employee.id, now=utc(2024, 3, 2, 1, 0))
    svc.clock_out(db, first.id, now=utc(2024, 3, 2, 9, 0))
    second = svc.clock_in(db, employee.id, now=utc(2024, 3, 5, 1, 0))
    svc.clock_out(db, second.id, now=utc(2024, 3, 5, 9, 0))

    sessions = svc.list_sessions(db, employee.id, first.work_date, first.work_date)
    assert [s.id for s in sessions] == [first.id]

    with pytest.raises(InvalidStateError):
        svc.list_sessions(db, employee.id, second.work_date, first.work_date)


def test_clock_out_endpoint(client, db, employee):
    opened = client.post("/api/v1/attendance/clock-in", headers=auth_headers(employee)).json()

    response = client.post(
        f"/api/v1/attendance/sessions/{opened['id']}/clock-out",
        json={"overtime": True, "overtime_comment": "Inventory count"},
        headers=auth_headers(employee),
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "CLOSED"
    assert data["is_overtime_marked"] is True
    assert data["overtime_request_id"] is not None


def test_clock_out_endpoint_other_owner_forbidden(client, db, employee, other_employee):
    opened = client.post("/api/v1/attendance/clock-in", headers=auth_headers(employee)).json()

    response = client.post(
        f"/api/v1/attendance/sessions/{opened['id']}/clock-out",
        headers=auth_headers(other_employee),
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["code"] == "not_session_owner"


def test_my_sessions_endpoint(client, db, employee):
    session = svc.clock_in(db, employee.id, now=utc(2024, 3, 2, 1, 0))
    svc.clock_out(db, session.id, now=utc(2024, 3, 2, 9, 0))

    response = client.get(
        "/api/v1/attendance/my",
        params={"from": "2024-03-01", "to": "2024-03-31"},
        headers=auth_headers(employee),
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["id"] == session.id
    assert data["items"][0]["work_date"] == "2024-03-02"
