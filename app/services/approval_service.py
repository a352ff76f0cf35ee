"""
Two-stage approval state machine shared by overtime and cash-advance requests.

Each stage moves PENDING -> APPROVED or PENDING -> REJECTED exactly once. Level 2
may only be decided after level 1 approved. final_status is never set by a caller;
it is recomputed from the two stage statuses after every transition:

    level1 REJECTED                      -> REJECTED
    level1 APPROVED, level2 APPROVED     -> APPROVED
    level1 APPROVED, level2 REJECTED     -> REJECTED
    anything else                        -> PENDING

subject_kind only selects the side effect applied when a workflow finalizes.
"""
import logging
from datetime import datetime
from typing import Callable, Dict, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.errors import InvalidStateError, NotFoundError, UnauthorizedError
from app.db.transaction import atomic
from app.models.approval import (
    ApprovalAction,
    ApprovalLevel,
    ApprovalStatus,
    ApprovalWorkflow,
    SubjectKind,
)
from app.models.attendance_session import AttendanceSession
from app.models.cash_advance import CashAdvance
from app.services.audit_service import log_audit
from app.services.authorization_service import ensure_authorized, reviewable_kinds, stage_permission
from app.utils.datetime_utils import ensure_utc, now_utc

logger = logging.getLogger(__name__)


def final_status_for(level1_status: ApprovalStatus, level2_status: ApprovalStatus) -> ApprovalStatus:
    level1_status = ApprovalStatus(level1_status)
    level2_status = ApprovalStatus(level2_status)
    if level1_status == ApprovalStatus.REJECTED:
        return ApprovalStatus.REJECTED
    if level1_status == ApprovalStatus.APPROVED:
        if level2_status == ApprovalStatus.APPROVED:
            return ApprovalStatus.APPROVED
        if level2_status == ApprovalStatus.REJECTED:
            return ApprovalStatus.REJECTED
    return ApprovalStatus.PENDING


def derive_final_status(workflow: ApprovalWorkflow) -> ApprovalStatus:
    """Final status of workflow as a pure function of its two stage statuses."""
    return final_status_for(workflow.level1_status, workflow.level2_status)


def create_workflow(
    db: Session,
    subject_kind: SubjectKind,
    subject_id: int,
    employee_id: int,
) -> ApprovalWorkflow:
    """
    Add a PENDING/PENDING workflow to the caller's transaction.

    Does not commit; the caller owns the transaction boundary.
    """
    workflow = ApprovalWorkflow(
        subject_kind=SubjectKind(subject_kind),
        subject_id=subject_id,
        employee_id=employee_id,
        level1_status=ApprovalStatus.PENDING,
        level2_status=ApprovalStatus.PENDING,
        final_status=ApprovalStatus.PENDING,
    )
    db.add(workflow)
    db.flush()
    logger.info(
        "approval workflow created: workflow_id=%s kind=%s subject_id=%s",
        workflow.id, workflow.subject_kind.value, subject_id,
    )
    return workflow


def get_workflow(db: Session, workflow_id: int, *, for_update: bool = False) -> ApprovalWorkflow:
    query = db.query(ApprovalWorkflow).filter(ApprovalWorkflow.id == workflow_id)
    if for_update:
        # Row lock on dialects that support it (no-op on SQLite)
        query = query.with_for_update()
    workflow = query.first()
    if workflow is None:
        raise NotFoundError("approval_workflow_not_found", workflow_id=workflow_id)
    return workflow


def get_visible_workflow(db: Session, workflow_id: int, viewer_id: int) -> ApprovalWorkflow:
    """
    Workflow as seen by viewer_id: the requester, or a reviewer of its subject kind.

    Raises:
        NotFoundError: unknown workflow
        UnauthorizedError: viewer is neither
    """
    workflow = get_workflow(db, workflow_id)
    if workflow.employee_id != viewer_id and workflow.subject_kind not in reviewable_kinds(db, viewer_id):
        raise UnauthorizedError("not_authorized", workflow_id=workflow_id, actor_id=viewer_id)
    return workflow


def list_workflows(
    db: Session,
    subject_kind: Optional[SubjectKind] = None,
    final_status: Optional[ApprovalStatus] = None,
    awaiting_level: Optional[ApprovalLevel] = None,
    employee_id: Optional[int] = None,
    viewer_id: Optional[int] = None,
) -> List[ApprovalWorkflow]:
    """
    Review queue.

    awaiting_level=LEVEL1 selects workflows whose first stage is undecided;
    LEVEL2 selects workflows approved at level 1 and undecided at level 2.
    With viewer_id, only the viewer's own requests and the kinds the viewer may
    review are returned.
    """
    query = db.query(ApprovalWorkflow)
    if viewer_id is not None:
        kinds = list(reviewable_kinds(db, viewer_id))
        query = query.filter(
            or_(ApprovalWorkflow.subject_kind.in_(kinds), ApprovalWorkflow.employee_id == viewer_id)
        )
    if subject_kind is not None:
        query = query.filter(ApprovalWorkflow.subject_kind == SubjectKind(subject_kind))
    if final_status is not None:
        query = query.filter(ApprovalWorkflow.final_status == ApprovalStatus(final_status))
    if employee_id is not None:
        query = query.filter(ApprovalWorkflow.employee_id == employee_id)
    if awaiting_level is not None:
        if ApprovalLevel(awaiting_level) == ApprovalLevel.LEVEL1:
            query = query.filter(ApprovalWorkflow.level1_status == ApprovalStatus.PENDING)
        else:
            query = query.filter(
                ApprovalWorkflow.level1_status == ApprovalStatus.APPROVED,
                ApprovalWorkflow.level2_status == ApprovalStatus.PENDING,
            )
    return list(query.order_by(ApprovalWorkflow.created_at.asc(), ApprovalWorkflow.id.asc()).all())


# --- finalization side effects, keyed by subject kind ---


def _finalize_overtime(db: Session, workflow: ApprovalWorkflow, comment: Optional[str]) -> None:
    session = db.get(AttendanceSession, workflow.subject_id)
    if session is None:
        logger.warning("overtime workflow %s finalized without a session (subject_id=%s)", workflow.id, workflow.subject_id)
        return
    session.is_overtime_approved = workflow.final_status == ApprovalStatus.APPROVED


def _finalize_cash_advance(db: Session, workflow: ApprovalWorkflow, comment: Optional[str]) -> None:
    advance = db.get(CashAdvance, workflow.subject_id)
    if advance is None:
        logger.warning("cash advance workflow %s finalized without a record (subject_id=%s)", workflow.id, workflow.subject_id)
        return
    advance.status = workflow.final_status
    if workflow.final_status == ApprovalStatus.REJECTED:
        advance.rejection_reason = comment


_FINALIZERS: Dict[SubjectKind, Callable[[Session, ApprovalWorkflow, Optional[str]], None]] = {
    SubjectKind.OVERTIME: _finalize_overtime,
    SubjectKind.CASH_ADVANCE: _finalize_cash_advance,
}


def _decide(
    db: Session,
    workflow_id: int,
    level: ApprovalLevel,
    reviewer_id: int,
    decision: ApprovalAction,
    comment: Optional[str],
    now: Optional[datetime],
) -> ApprovalWorkflow:
    decision = ApprovalAction(decision)
    decided_at = ensure_utc(now) or now_utc()
    stage_status = ApprovalStatus.APPROVED if decision == ApprovalAction.APPROVE else ApprovalStatus.REJECTED

    with atomic(db, "concurrent_decision", workflow_id=workflow_id):
        # Stage preconditions are re-read inside this transaction, under the row lock
        workflow = get_workflow(db, workflow_id, for_update=True)
        ensure_authorized(db, reviewer_id, stage_permission(workflow.subject_kind, level), workflow.id)
        if reviewer_id == workflow.employee_id:
            raise UnauthorizedError("self_review_not_allowed", workflow_id=workflow.id, actor_id=reviewer_id)

        if level == ApprovalLevel.LEVEL1:
            if workflow.level1_status != ApprovalStatus.PENDING:
                raise InvalidStateError(
                    "level1_already_decided",
                    workflow_id=workflow.id,
                    level1_status=workflow.level1_status.value,
                )
            workflow.level1_status = stage_status
            workflow.level1_reviewer_id = reviewer_id
            workflow.level1_comment = comment
            workflow.level1_decided_at = decided_at
        else:
            if workflow.level1_status != ApprovalStatus.APPROVED:
                raise InvalidStateError(
                    "level1_not_approved",
                    workflow_id=workflow.id,
                    level1_status=workflow.level1_status.value,
                )
            if workflow.level2_status != ApprovalStatus.PENDING:
                raise InvalidStateError(
                    "level2_already_decided",
                    workflow_id=workflow.id,
                    level2_status=workflow.level2_status.value,
                )
            workflow.level2_status = stage_status
            workflow.level2_reviewer_id = reviewer_id
            workflow.level2_comment = comment
            workflow.level2_decided_at = decided_at

        before = workflow.final_status
        workflow.final_status = derive_final_status(workflow)
        logger.info(
            "approval transition: workflow_id=%s kind=%s level=%s decision=%s final before=%s after=%s",
            workflow.id, workflow.subject_kind.value, level.value, decision.value,
            before.value, workflow.final_status.value,
        )
        if workflow.final_status != ApprovalStatus.PENDING:
            _FINALIZERS[workflow.subject_kind](db, workflow, comment)
        elif level == ApprovalLevel.LEVEL1:
            logger.info("approval workflow %s ready for level 2 review", workflow.id)

        log_audit(
            db=db,
            actor_id=reviewer_id,
            action=f"APPROVAL_{level.value}_{decision.value}",
            entity_type="approval_workflows",
            entity_id=workflow.id,
            meta={
                "subject_kind": workflow.subject_kind,
                "subject_id": workflow.subject_id,
                "final_status_before": before,
                "final_status_after": workflow.final_status,
                "comment": comment,
            },
        )

    db.refresh(workflow)
    return workflow


def decide_stage1(
    db: Session,
    workflow_id: int,
    reviewer_id: int,
    decision: ApprovalAction,
    comment: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ApprovalWorkflow:
    """
    Record the first-line decision.

    Raises:
        NotFoundError: unknown workflow
        UnauthorizedError: reviewer lacks the level 1 permission for this kind, or is the requester
        InvalidStateError: level 1 already decided
    """
    return _decide(db, workflow_id, ApprovalLevel.LEVEL1, reviewer_id, decision, comment, now)


def decide_stage2(
    db: Session,
    workflow_id: int,
    reviewer_id: int,
    decision: ApprovalAction,
    comment: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ApprovalWorkflow:
    """
    Record the second-line decision.

    Raises:
        NotFoundError: unknown workflow
        UnauthorizedError: reviewer lacks the level 2 permission for this kind, or is the requester
        InvalidStateError: level 1 not approved, or level 2 already decided
    """
    return _decide(db, workflow_id, ApprovalLevel.LEVEL2, reviewer_id, decision, comment, now)


# --- requester withdrawal, keyed by subject kind ---


def _withdraw_overtime(db: Session, workflow: ApprovalWorkflow) -> None:
    session = (
        db.query(AttendanceSession)
        .filter(AttendanceSession.overtime_request_id == workflow.id)
        .first()
    )
    if session is None:
        return
    # Session stays closed; only the overtime mark goes
    session.overtime_request = None
    session.is_overtime_marked = False
    session.is_overtime_approved = False
    session.overtime_comment = None
    session.modified_by = workflow.employee_id


def _withdraw_cash_advance(db: Session, workflow: ApprovalWorkflow) -> None:
    advance = db.get(CashAdvance, workflow.subject_id)
    if advance is None:
        return
    db.delete(advance)
    db.flush()


_WITHDRAWERS: Dict[SubjectKind, Callable[[Session, ApprovalWorkflow], None]] = {
    SubjectKind.OVERTIME: _withdraw_overtime,
    SubjectKind.CASH_ADVANCE: _withdraw_cash_advance,
}


def ensure_open_for_requester(workflow: ApprovalWorkflow, actor_id: int) -> None:
    """The requester may change or withdraw a request only before level 1 decides it."""
    if workflow.employee_id != actor_id:
        raise UnauthorizedError("not_request_owner", workflow_id=workflow.id, actor_id=actor_id)
    if workflow.level1_status != ApprovalStatus.PENDING:
        raise InvalidStateError(
            "request_already_reviewed",
            workflow_id=workflow.id,
            level1_status=workflow.level1_status.value,
        )


def withdraw_request(db: Session, workflow_id: int, actor_id: int) -> int:
    """
    Withdraw the actor's own request while level 1 is still pending.

    The workflow is deleted. An overtime session keeps its times and loses the
    overtime mark; a cash advance record is deleted with its workflow.

    Raises:
        NotFoundError: unknown workflow
        UnauthorizedError: actor is not the requester
        InvalidStateError: level 1 already decided
    """
    with atomic(db, "concurrent_decision", workflow_id=workflow_id):
        workflow = get_workflow(db, workflow_id, for_update=True)
        ensure_open_for_requester(workflow, actor_id)

        subject_kind = workflow.subject_kind
        subject_id = workflow.subject_id
        _WITHDRAWERS[subject_kind](db, workflow)
        db.delete(workflow)

        log_audit(
            db=db,
            actor_id=actor_id,
            action="APPROVAL_WITHDRAW",
            entity_type="approval_workflows",
            entity_id=None,
            meta={"workflow_id": workflow_id, "subject_kind": subject_kind, "subject_id": subject_id},
        )

    logger.info(
        "approval workflow withdrawn: workflow_id=%s kind=%s subject_id=%s actor_id=%s",
        workflow_id, subject_kind.value, subject_id, actor_id,
    )
    return workflow_id
