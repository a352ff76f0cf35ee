"""
Tests for error translation: engine errors to HTTP, store errors to engine errors
"""
from datetime import date

import pytest
from fastapi import status
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from app.core.errors import (
    ConflictError,
    EngineError,
    ImmutableError,
    InvalidStateError,
    NotFoundError,
    UnauthorizedError,
)
from app.db.transaction import atomic
from app.models.attendance_session import AttendanceSession, SessionStatus
from app.services import attendance_session_service as svc
from app.tests.helpers import auth_headers, utc


@pytest.mark.parametrize("error_cls,status_code,code", [
    (ConflictError, 409, "conflict"),
    (NotFoundError, 404, "not_found"),
    (InvalidStateError, 400, "invalid_state"),
    (ImmutableError, 423, "immutable"),
    (UnauthorizedError, 403, "unauthorized"),
])
def test_error_kinds(error_cls, status_code, code):
    err = error_cls()
    assert isinstance(err, EngineError)
    assert err.status_code == status_code
    assert err.code == code
    assert err.context == {}

    err = error_cls("specific_code", session_id=7)
    assert err.code == "specific_code"
    assert err.context == {"session_id": 7}


def test_not_found_envelope(client, db, employee):
    response = client.get("/api/v1/approvals/999", headers=auth_headers(employee))

    assert response.status_code == status.HTTP_404_NOT_FOUND
    data = response.json()
    assert data["error"] is True
    assert data["status_code"] == 404
    assert data["detail"] == "approval_workflow_not_found"
    assert data["context"] == {"workflow_id": 999}
    assert data["path"] == "/api/v1/approvals/999"


def test_invalid_range_envelope(client, db, employee):
    response = client.get(
        "/api/v1/attendance/my",
        params={"from": "2024-03-05", "to": "2024-03-01"},
        headers=auth_headers(employee),
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["code"] == "invalid_date_range"


def test_validation_error_envelope(client, db, employee):
    response = client.get("/api/v1/attendance/my", headers=auth_headers(employee))

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    data = response.json()
    assert data["error"] is True
    assert data["detail"] == "Validation error"


def test_unknown_identity_rejected(client, db):
    response = client.get("/api/v1/attendance/current", headers={"X-Employee-Id": "424242"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED

    response = client.get("/api/v1/attendance/current", headers={"X-Employee-Id": "abc"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_stale_version_becomes_conflict(db, employee):
    session = svc.clock_in(db, employee.id, now=utc(2024, 3, 2, 1, 0))
    assert session.version == 1

    with pytest.raises(ConflictError) as exc_info:
        with atomic(db, "unused", session_id=session.id):
            session.remarks = "late edit"
            # Another writer bumps the row version before this one flushes
            db.execute(
                text("UPDATE attendance_sessions SET version = version + 1 WHERE id = :id"),
                {"id": session.id},
            )

    assert exc_info.value.code == "concurrent_modification"
    db.refresh(session)
    assert session.remarks is None


def test_other_integrity_errors_propagate(db):
    with pytest.raises(IntegrityError):
        with atomic(db, "unused"):
            db.add(AttendanceSession(
                employee_id=123456,
                work_date=date(2024, 3, 2),
                punch_in_at=utc(2024, 3, 2, 1, 0),
                status=SessionStatus.OPEN,
            ))

    assert db.query(AttendanceSession).count() == 0
