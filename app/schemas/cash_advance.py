"""
Cash advance schemas
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator

from app.models.approval import ApprovalStatus
from app.models.cash_advance import CashAdvanceType
from app.utils.datetime_utils import iso_local


class CashAdvanceCreate(BaseModel):
    """Schema for filing a cash advance"""
    advance_type: CashAdvanceType = Field(CashAdvanceType.CASH_ADVANCE, description="CASH_ADVANCE or REIMBURSEMENT")
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    purpose: Optional[str] = Field(None, max_length=1000)


class CashAdvanceUpdate(BaseModel):
    """Requester's correction of a cash advance still awaiting level 1"""
    advance_type: Optional[CashAdvanceType] = None
    amount: Optional[Decimal] = Field(None, gt=0, max_digits=12, decimal_places=2)
    purpose: Optional[str] = Field(None, max_length=1000)

    @model_validator(mode="after")
    def _require_a_field(self) -> "CashAdvanceUpdate":
        if self.advance_type is None and self.amount is None and self.purpose is None:
            raise ValueError("Provide at least one of advance_type, amount, purpose")
        return self


class CashAdvanceOut(BaseModel):
    id: int
    employee_id: int
    advance_type: CashAdvanceType
    amount: Decimal
    purpose: Optional[str] = None
    status: ApprovalStatus
    rejection_reason: Optional[str] = None
    workflow_id: Optional[int] = None
    requested_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("requested_at", when_used="always")
    def _serialize_datetime_local(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_local(dt)


class CashAdvanceListResponse(BaseModel):
    items: List[CashAdvanceOut]
    total: int
