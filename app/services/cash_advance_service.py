"""
Cash advance service - filing and lookups.

Review goes through the shared two-stage approval workflow (subject kind CASH_ADVANCE);
the record's status mirrors the workflow's final status once it is decided.
"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.errors import InvalidStateError, NotFoundError
from app.db.transaction import atomic
from app.models.approval import ApprovalStatus, SubjectKind
from app.models.cash_advance import CashAdvance, CashAdvanceType
from app.services import approval_service
from app.services.attendance_session_service import get_active_employee
from app.services.audit_service import log_audit
from app.utils.datetime_utils import ensure_utc, now_utc

logger = logging.getLogger(__name__)


def file_cash_advance(
    db: Session,
    employee_id: int,
    amount: Decimal,
    advance_type: CashAdvanceType = CashAdvanceType.CASH_ADVANCE,
    purpose: Optional[str] = None,
    now: Optional[datetime] = None,
) -> CashAdvance:
    """
    File a cash advance and open its PENDING/PENDING approval workflow.

    Raises:
        NotFoundError: unknown employee
        InvalidStateError: inactive employee, or amount not positive
    """
    amount = Decimal(str(amount))
    requested_at = ensure_utc(now) or now_utc()

    with atomic(db, "cash_advance_conflict", employee_id=employee_id):
        get_active_employee(db, employee_id)
        if amount <= 0:
            raise InvalidStateError("amount_not_positive", employee_id=employee_id, amount=str(amount))

        advance = CashAdvance(
            employee_id=employee_id,
            advance_type=CashAdvanceType(advance_type).value,
            amount=amount,
            purpose=purpose,
            status=ApprovalStatus.PENDING,
            requested_at=requested_at,
        )
        db.add(advance)
        db.flush()

        workflow = approval_service.create_workflow(db, SubjectKind.CASH_ADVANCE, advance.id, employee_id)
        advance.workflow_id = workflow.id

        log_audit(
            db=db,
            actor_id=employee_id,
            action="CASH_ADVANCE_FILE",
            entity_type="cash_advances",
            entity_id=advance.id,
            meta={
                "advance_type": advance.advance_type,
                "amount": amount,
                "workflow_id": workflow.id,
            },
        )

    db.refresh(advance)
    logger.info(
        "cash advance filed: id=%s employee_id=%s amount=%s workflow_id=%s",
        advance.id, employee_id, amount, advance.workflow_id,
    )
    return advance


def get_cash_advance(db: Session, advance_id: int) -> CashAdvance:
    advance = db.get(CashAdvance, advance_id)
    if advance is None:
        raise NotFoundError("cash_advance_not_found", cash_advance_id=advance_id)
    return advance


def list_my_cash_advances(
    db: Session,
    employee_id: int,
    status: Optional[ApprovalStatus] = None,
) -> List[CashAdvance]:
    query = db.query(CashAdvance).filter(CashAdvance.employee_id == employee_id)
    if status is not None:
        query = query.filter(CashAdvance.status == ApprovalStatus(status))
    return query.order_by(CashAdvance.requested_at.desc(), CashAdvance.id.desc()).all()


def update_own_cash_advance(
    db: Session,
    advance_id: int,
    actor_id: int,
    *,
    advance_type: Optional[CashAdvanceType] = None,
    amount: Optional[Decimal] = None,
    purpose: Optional[str] = None,
) -> CashAdvance:
    """
    Let the requester correct a cash advance before level 1 decides it.

    Only the fields passed are changed; the approval workflow is left as is.

    Raises:
        NotFoundError: unknown cash advance
        UnauthorizedError: actor is not the requester
        InvalidStateError: nothing to change, amount not positive, or level 1 already decided
    """
    if advance_type is None and amount is None and purpose is None:
        raise InvalidStateError("nothing_to_update", cash_advance_id=advance_id)

    with atomic(db, "cash_advance_conflict", cash_advance_id=advance_id):
        advance = get_cash_advance(db, advance_id)
        workflow = approval_service.get_workflow(db, advance.workflow_id, for_update=True)
        approval_service.ensure_open_for_requester(workflow, actor_id)

        changes = {}
        if amount is not None:
            amount = Decimal(str(amount))
            if amount <= 0:
                raise InvalidStateError("amount_not_positive", cash_advance_id=advance_id, amount=str(amount))
            changes["amount"] = {"before": advance.amount, "after": amount}
            advance.amount = amount
        if advance_type is not None:
            new_type = CashAdvanceType(advance_type).value
            changes["advance_type"] = {"before": advance.advance_type, "after": new_type}
            advance.advance_type = new_type
        if purpose is not None:
            changes["purpose"] = {"before": advance.purpose, "after": purpose}
            advance.purpose = purpose

        log_audit(
            db=db,
            actor_id=actor_id,
            action="CASH_ADVANCE_EDIT",
            entity_type="cash_advances",
            entity_id=advance.id,
            meta={"workflow_id": workflow.id, "changes": changes},
        )

    db.refresh(advance)
    logger.info("cash advance edited by requester: id=%s fields=%s", advance.id, sorted(changes))
    return advance
