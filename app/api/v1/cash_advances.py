"""
Cash advance endpoints (file, correct and list own requests). Decisions and withdrawal go
through /approvals.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.deps import get_db, get_current_user
from app.models.approval import ApprovalStatus
from app.models.employee import Employee
from app.schemas.cash_advance import (
    CashAdvanceCreate,
    CashAdvanceListResponse,
    CashAdvanceOut,
    CashAdvanceUpdate,
)
from app.services import cash_advance_service

router = APIRouter()


@router.post("", response_model=CashAdvanceOut, status_code=201)
async def file_cash_advance(
    body: CashAdvanceCreate,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """POST /api/v1/cash-advances - file a request and open its approval workflow."""
    advance = cash_advance_service.file_cash_advance(
        db,
        current_user.id,
        body.amount,
        advance_type=body.advance_type,
        purpose=body.purpose,
    )
    return CashAdvanceOut.model_validate(advance)


@router.get("/my", response_model=CashAdvanceListResponse)
async def my_cash_advances(
    status: Optional[ApprovalStatus] = Query(None),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    advances = cash_advance_service.list_my_cash_advances(db, current_user.id, status=status)
    items = [CashAdvanceOut.model_validate(a) for a in advances]
    return CashAdvanceListResponse(items=items, total=len(items))


@router.patch("/{advance_id}", response_model=CashAdvanceOut)
async def edit_own_cash_advance(
    advance_id: int,
    body: CashAdvanceUpdate,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """PATCH /api/v1/cash-advances/{advance_id} - requester only, while level 1 is pending."""
    advance = cash_advance_service.update_own_cash_advance(
        db,
        advance_id,
        current_user.id,
        advance_type=body.advance_type,
        amount=body.amount,
        purpose=body.purpose,
    )
    return CashAdvanceOut.model_validate(advance)
