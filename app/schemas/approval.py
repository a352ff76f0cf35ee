"""
Approval workflow schemas
"""
from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field, field_serializer

from app.models.approval import ApprovalAction, ApprovalStatus, SubjectKind
from app.utils.datetime_utils import iso_local


class DecisionRequest(BaseModel):
    """Reviewer decision on one stage"""
    decision: ApprovalAction
    comment: Optional[str] = Field(None, max_length=1000)


class WorkflowDto(BaseModel):
    """Two-stage approval workflow; final_status is derived from the stage statuses"""
    id: int
    subject_kind: SubjectKind
    subject_id: int
    employee_id: int
    level1_status: ApprovalStatus
    level1_reviewer_id: Optional[int] = None
    level1_comment: Optional[str] = None
    level1_decided_at: Optional[datetime] = None
    level2_status: ApprovalStatus
    level2_reviewer_id: Optional[int] = None
    level2_comment: Optional[str] = None
    level2_decided_at: Optional[datetime] = None
    final_status: ApprovalStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("level1_decided_at", "level2_decided_at", "created_at", when_used="always")
    def _serialize_datetime_local(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_local(dt)


class WorkflowListResponse(BaseModel):
    items: List[WorkflowDto]
    total: int
