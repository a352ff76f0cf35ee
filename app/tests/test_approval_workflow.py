"""
Tests for the two-stage approval workflow (overtime and cash advance)
"""
import itertools

import pytest
from fastapi import status

from app.core.errors import InvalidStateError, NotFoundError, UnauthorizedError
from app.models.approval import (
    ApprovalAction,
    ApprovalLevel,
    ApprovalStatus,
    ApprovalWorkflow,
    SubjectKind,
)
from app.models.audit_log import AuditLog
from app.services import approval_service
from app.services import attendance_session_service as svc
from app.tests.helpers import auth_headers, utc

P, A, R = ApprovalStatus.PENDING, ApprovalStatus.APPROVED, ApprovalStatus.REJECTED

EXPECTED_FINAL = {
    (P, P): P,
    (P, A): P,
    (P, R): P,
    (A, P): P,
    (A, A): A,
    (A, R): R,
    (R, P): R,
    (R, A): R,
    (R, R): R,
}


@pytest.fixture
def overtime_workflow(db, employee):
    """Overtime workflow W in PENDING/PENDING, created by an overtime clock-out"""
    session = svc.clock_in(db, employee.id, now=utc(2024, 3, 2, 1, 0))
    session = svc.clock_out(db, session.id, now=utc(2024, 3, 2, 12, 0), overtime_flag=True)
    return db.get(ApprovalWorkflow, session.overtime_request_id)


@pytest.mark.parametrize("level1,level2", list(itertools.product([P, A, R], repeat=2)))
def test_final_status_table(level1, level2):
    workflow = ApprovalWorkflow(level1_status=level1, level2_status=level2)

    first = approval_service.derive_final_status(workflow)
    second = approval_service.derive_final_status(workflow)

    assert first == EXPECTED_FINAL[(level1, level2)]
    assert first == second


def test_full_approval_chain(db, employee, supervisor, manager, overtime_workflow):
    assert overtime_workflow.final_status == ApprovalStatus.PENDING

    workflow = approval_service.decide_stage1(
        db, overtime_workflow.id, supervisor.id, ApprovalAction.APPROVE, comment="ok"
    )
    assert workflow.level1_status == ApprovalStatus.APPROVED
    assert workflow.level1_reviewer_id == supervisor.id
    assert workflow.level1_decided_at is not None
    assert workflow.final_status == ApprovalStatus.PENDING

    workflow = approval_service.decide_stage2(
        db, overtime_workflow.id, manager.id, ApprovalAction.APPROVE
    )
    assert workflow.level2_status == ApprovalStatus.APPROVED
    assert workflow.level2_reviewer_id == manager.id
    assert workflow.final_status == ApprovalStatus.APPROVED

    session = svc.get_session(db, workflow.subject_id)
    assert session.is_overtime_approved is True


def test_level2_rejection(db, supervisor, manager, overtime_workflow):
    approval_service.decide_stage1(db, overtime_workflow.id, supervisor.id, ApprovalAction.APPROVE)

    workflow = approval_service.decide_stage2(
        db, overtime_workflow.id, manager.id, ApprovalAction.REJECT, comment="not budgeted"
    )

    assert workflow.final_status == ApprovalStatus.REJECTED
    assert workflow.level2_comment == "not budgeted"
    assert svc.get_session(db, workflow.subject_id).is_overtime_approved is False


def test_stage1_rejection_short_circuits(db, supervisor, manager, overtime_workflow):
    workflow = approval_service.decide_stage1(
        db, overtime_workflow.id, supervisor.id, ApprovalAction.REJECT
    )
    assert workflow.final_status == ApprovalStatus.REJECTED

    with pytest.raises(InvalidStateError) as exc_info:
        approval_service.decide_stage2(db, overtime_workflow.id, manager.id, ApprovalAction.APPROVE)

    assert exc_info.value.code == "level1_not_approved"
    db.refresh(workflow)
    assert workflow.level2_status == ApprovalStatus.PENDING
    assert workflow.final_status == ApprovalStatus.REJECTED


def test_stage2_blocked_while_stage1_pending(db, manager, overtime_workflow):
    with pytest.raises(InvalidStateError):
        approval_service.decide_stage2(db, overtime_workflow.id, manager.id, ApprovalAction.APPROVE)

    db.refresh(overtime_workflow)
    assert overtime_workflow.level2_status == ApprovalStatus.PENDING
    assert overtime_workflow.final_status == ApprovalStatus.PENDING


def test_stage1_decided_once(db, supervisor, overtime_workflow):
    approval_service.decide_stage1(db, overtime_workflow.id, supervisor.id, ApprovalAction.APPROVE)

    with pytest.raises(InvalidStateError) as exc_info:
        approval_service.decide_stage1(db, overtime_workflow.id, supervisor.id, ApprovalAction.REJECT)

    assert exc_info.value.code == "level1_already_decided"
    db.refresh(overtime_workflow)
    assert overtime_workflow.level1_status == ApprovalStatus.APPROVED


def test_stage2_decided_once(db, supervisor, manager, overtime_workflow):
    approval_service.decide_stage1(db, overtime_workflow.id, supervisor.id, ApprovalAction.APPROVE)
    approval_service.decide_stage2(db, overtime_workflow.id, manager.id, ApprovalAction.APPROVE)

    with pytest.raises(InvalidStateError) as exc_info:
        approval_service.decide_stage2(db, overtime_workflow.id, manager.id, ApprovalAction.REJECT)

    assert exc_info.value.code == "level2_already_decided"


def test_reviewer_needs_stage_permission(db, employee, other_employee, supervisor, overtime_workflow):
    with pytest.raises(UnauthorizedError):
        approval_service.decide_stage1(db, overtime_workflow.id, other_employee.id, ApprovalAction.APPROVE)

    approval_service.decide_stage1(db, overtime_workflow.id, supervisor.id, ApprovalAction.APPROVE)

    # Level 1 permission does not grant level 2
    with pytest.raises(UnauthorizedError):
        approval_service.decide_stage2(db, overtime_workflow.id, supervisor.id, ApprovalAction.APPROVE)


def test_requester_cannot_review_own_request(db, admin):
    session = svc.clock_in(db, admin.id, now=utc(2024, 3, 2, 1, 0))
    session = svc.clock_out(db, session.id, now=utc(2024, 3, 2, 12, 0), overtime_flag=True)

    with pytest.raises(UnauthorizedError) as exc_info:
        approval_service.decide_stage1(db, session.overtime_request_id, admin.id, ApprovalAction.APPROVE)

    assert exc_info.value.code == "self_review_not_allowed"


def test_unknown_workflow(db, supervisor):
    with pytest.raises(NotFoundError):
        approval_service.decide_stage1(db, 4242, supervisor.id, ApprovalAction.APPROVE)


def test_decisions_are_audited(db, supervisor, overtime_workflow):
    approval_service.decide_stage1(db, overtime_workflow.id, supervisor.id, ApprovalAction.APPROVE)

    audit = db.query(AuditLog).filter(AuditLog.action == "APPROVAL_LEVEL1_APPROVE").one()
    assert audit.actor_id == supervisor.id
    assert audit.entity_id == overtime_workflow.id
    assert audit.meta_json["final_status_after"] == "PENDING"


def test_review_queue_filters(db, supervisor, overtime_workflow):
    awaiting_l1 = approval_service.list_workflows(db, awaiting_level=ApprovalLevel.LEVEL1)
    assert [w.id for w in awaiting_l1] == [overtime_workflow.id]
    assert approval_service.list_workflows(db, awaiting_level=ApprovalLevel.LEVEL2) == []

    approval_service.decide_stage1(db, overtime_workflow.id, supervisor.id, ApprovalAction.APPROVE)

    assert approval_service.list_workflows(db, awaiting_level=ApprovalLevel.LEVEL1) == []
    awaiting_l2 = approval_service.list_workflows(
        db, subject_kind=SubjectKind.OVERTIME, awaiting_level=ApprovalLevel.LEVEL2
    )
    assert [w.id for w in awaiting_l2] == [overtime_workflow.id]
    assert approval_service.list_workflows(db, subject_kind=SubjectKind.CASH_ADVANCE) == []


def test_approval_endpoints(client, db, supervisor, manager, overtime_workflow):
    response = client.post(
        f"/api/v1/approvals/{overtime_workflow.id}/level2",
        json={"decision": "APPROVE"},
        headers=auth_headers(manager),
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["code"] == "level1_not_approved"

    response = client.post(
        f"/api/v1/approvals/{overtime_workflow.id}/level1",
        json={"decision": "APPROVE", "comment": "fine"},
        headers=auth_headers(supervisor),
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["level1_status"] == "APPROVED"
    assert response.json()["final_status"] == "PENDING"

    response = client.post(
        f"/api/v1/approvals/{overtime_workflow.id}/level2",
        json={"decision": "APPROVE"},
        headers=auth_headers(manager),
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["final_status"] == "APPROVED"

    response = client.get(f"/api/v1/approvals/{overtime_workflow.id}", headers=auth_headers(manager))
    assert response.json()["level2_reviewer_id"] == manager.id


def test_approval_endpoint_forbidden(client, db, other_employee, overtime_workflow):
    response = client.post(
        f"/api/v1/approvals/{overtime_workflow.id}/level1",
        json={"decision": "APPROVE"},
        headers=auth_headers(other_employee),
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["code"] == "not_authorized"


def test_approval_queue_endpoint(client, db, supervisor, overtime_workflow):
    response = client.get(
        "/api/v1/approvals",
        params={"awaiting_level": "LEVEL1", "subject_kind": "OVERTIME"},
        headers=auth_headers(supervisor),
    )
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["id"] == overtime_workflow.id


def test_plain_employee_sees_only_own_requests(client, db, employee, other_employee, overtime_workflow):
    response = client.get("/api/v1/approvals", headers=auth_headers(other_employee))
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["total"] == 0

    response = client.get(f"/api/v1/approvals/{overtime_workflow.id}", headers=auth_headers(other_employee))
    assert response.status_code == status.HTTP_403_FORBIDDEN

    response = client.get("/api/v1/approvals", headers=auth_headers(employee))
    assert [w["id"] for w in response.json()["items"]] == [overtime_workflow.id]
    response = client.get(f"/api/v1/approvals/{overtime_workflow.id}", headers=auth_headers(employee))
    assert response.status_code == status.HTTP_200_OK


def test_reviewers_see_only_kinds_they_review(db, employee, hr_user, supervisor, overtime_workflow):
    # HR reviews cash advances only
    assert approval_service.list_workflows(db, viewer_id=hr_user.id) == []
    with pytest.raises(UnauthorizedError):
        approval_service.get_visible_workflow(db, overtime_workflow.id, hr_user.id)

    visible = approval_service.list_workflows(db, viewer_id=supervisor.id)
    assert [w.id for w in visible] == [overtime_workflow.id]


def test_withdraw_pending_overtime_request(db, employee, overtime_workflow):
    workflow_id, session_id = overtime_workflow.id, overtime_workflow.subject_id

    approval_service.withdraw_request(db, workflow_id, employee.id)

    assert db.query(ApprovalWorkflow).count() == 0
    session = svc.get_session(db, session_id)
    assert session.status.value == "CLOSED"
    assert session.is_overtime_marked is False
    assert session.overtime_request_id is None
    audit = db.query(AuditLog).filter(AuditLog.action == "APPROVAL_WITHDRAW").one()
    assert audit.meta_json["workflow_id"] == workflow_id


def test_withdrawn_day_can_be_marked_again(db, employee, overtime_workflow):
    approval_service.withdraw_request(db, overtime_workflow.id, employee.id)

    later = svc.clock_in(db, employee.id, now=utc(2024, 3, 2, 13, 0))
    later = svc.clock_out(db, later.id, now=utc(2024, 3, 2, 15, 0), overtime_flag=True)
    assert later.is_overtime_marked is True


def test_withdraw_only_by_requester(db, other_employee, overtime_workflow):
    with pytest.raises(UnauthorizedError) as exc_info:
        approval_service.withdraw_request(db, overtime_workflow.id, other_employee.id)

    assert exc_info.value.code == "not_request_owner"
    assert db.query(ApprovalWorkflow).count() == 1


def test_withdraw_refused_after_level1_decision(db, employee, supervisor, overtime_workflow):
    approval_service.decide_stage1(db, overtime_workflow.id, supervisor.id, ApprovalAction.REJECT)

    with pytest.raises(InvalidStateError) as exc_info:
        approval_service.withdraw_request(db, overtime_workflow.id, employee.id)

    assert exc_info.value.code == "request_already_reviewed"
    assert svc.get_session(db, overtime_workflow.subject_id).is_overtime_marked is True


def test_withdraw_endpoint(client, db, employee, overtime_workflow):
    workflow_id = overtime_workflow.id
    response = client.delete(f"/api/v1/approvals/{workflow_id}", headers=auth_headers(employee))
    assert response.status_code == status.HTTP_204_NO_CONTENT

    response = client.delete(f"/api/v1/approvals/{workflow_id}", headers=auth_headers(employee))
    assert response.status_code == status.HTTP_404_NOT_FOUND
