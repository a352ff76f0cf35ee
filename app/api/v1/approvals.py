"""
Approval endpoints: review queue, stage decisions and requester withdrawal for overtime and
cash-advance requests. Reads are limited to the caller's own requests and the kinds the caller reviews.
"""
from typing import Optional
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.core.deps import get_db, get_current_user
from app.models.approval import ApprovalLevel, ApprovalStatus, SubjectKind
from app.models.employee import Employee
from app.schemas.approval import DecisionRequest, WorkflowDto, WorkflowListResponse
from app.services import approval_service

router = APIRouter()


@router.get("", response_model=WorkflowListResponse)
async def list_approvals(
    subject_kind: Optional[SubjectKind] = Query(None),
    final_status: Optional[ApprovalStatus] = Query(None),
    awaiting_level: Optional[ApprovalLevel] = Query(None, description="LEVEL1 or LEVEL2"),
    employee_id: Optional[int] = Query(None, description="Requester"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """GET /api/v1/approvals?subject_kind=&final_status=&awaiting_level=&employee_id="""
    workflows = approval_service.list_workflows(
        db,
        subject_kind=subject_kind,
        final_status=final_status,
        awaiting_level=awaiting_level,
        employee_id=employee_id,
        viewer_id=current_user.id,
    )
    items = [WorkflowDto.model_validate(w) for w in workflows]
    return WorkflowListResponse(items=items, total=len(items))


@router.get("/{workflow_id}", response_model=WorkflowDto)
async def get_approval(
    workflow_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    workflow = approval_service.get_visible_workflow(db, workflow_id, current_user.id)
    return WorkflowDto.model_validate(workflow)


@router.post("/{workflow_id}/level1", response_model=WorkflowDto)
async def decide_level1(
    workflow_id: int,
    body: DecisionRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """POST /api/v1/approvals/{workflow_id}/level1 - first-line decision."""
    workflow = approval_service.decide_stage1(
        db, workflow_id, current_user.id, body.decision, comment=body.comment
    )
    return WorkflowDto.model_validate(workflow)


@router.post("/{workflow_id}/level2", response_model=WorkflowDto)
async def decide_level2(
    workflow_id: int,
    body: DecisionRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """POST /api/v1/approvals/{workflow_id}/level2 - second-line decision; 400 unless level 1 approved."""
    workflow = approval_service.decide_stage2(
        db, workflow_id, current_user.id, body.decision, comment=body.comment
    )
    return WorkflowDto.model_validate(workflow)


@router.delete("/{workflow_id}", status_code=status.HTTP_204_NO_CONTENT)
async def withdraw_approval(
    workflow_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """DELETE /api/v1/approvals/{workflow_id} - requester withdraws a request not yet reviewed."""
    approval_service.withdraw_request(db, workflow_id, current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
