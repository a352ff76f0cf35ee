"""
Cash advance request model
"""
from sqlalchemy import (
    Column,
    Integer,
    DateTime,
    ForeignKey,
    String,
    Text,
    Numeric,
    Enum as SQLEnum,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.db.base import Base
from app.models.approval import ApprovalStatus


class CashAdvanceType(str, enum.Enum):
    CASH_ADVANCE = "CASH_ADVANCE"
    REIMBURSEMENT = "REIMBURSEMENT"


class CashAdvance(Base):
    __tablename__ = "cash_advances"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    advance_type = Column(String(30), nullable=False, default=CashAdvanceType.CASH_ADVANCE.value)
    amount = Column(Numeric(12, 2), nullable=False)
    purpose = Column(Text, nullable=True)
    # Mirror of the workflow's final status
    status = Column(SQLEnum(ApprovalStatus), nullable=False, default=ApprovalStatus.PENDING)
    rejection_reason = Column(Text, nullable=True)
    workflow_id = Column(Integer, ForeignKey("approval_workflows.id"), nullable=True, index=True)
    requested_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    employee = relationship("Employee", foreign_keys=[employee_id])
    workflow = relationship("ApprovalWorkflow", foreign_keys=[workflow_id])

    __table_args__ = (
        CheckConstraint("amount > 0", name="check_cash_advance_amount_positive"),
    )
