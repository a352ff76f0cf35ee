"""
Two-stage approval workflow model, shared by overtime and cash-advance requests
"""
from sqlalchemy import (
    Column,
    Integer,
    DateTime,
    ForeignKey,
    Text,
    Enum as SQLEnum,
    UniqueConstraint,
    Index,
)
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class SubjectKind(str, enum.Enum):
    OVERTIME = "OVERTIME"
    CASH_ADVANCE = "CASH_ADVANCE"


class ApprovalStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class ApprovalAction(str, enum.Enum):
    APPROVE = "APPROVE"
    REJECT = "REJECT"


class ApprovalLevel(str, enum.Enum):
    LEVEL1 = "LEVEL1"
    LEVEL2 = "LEVEL2"


class ApprovalWorkflow(Base):
    __tablename__ = "approval_workflows"

    id = Column(Integer, primary_key=True, index=True)
    subject_kind = Column(SQLEnum(SubjectKind), nullable=False)
    subject_id = Column(Integer, nullable=False)  # attendance_sessions.id or cash_advances.id
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)  # requester

    level1_status = Column(SQLEnum(ApprovalStatus), nullable=False, default=ApprovalStatus.PENDING)
    level1_reviewer_id = Column(Integer, ForeignKey("employees.id"), nullable=True)
    level1_comment = Column(Text, nullable=True)
    level1_decided_at = Column(DateTime(timezone=True), nullable=True)

    level2_status = Column(SQLEnum(ApprovalStatus), nullable=False, default=ApprovalStatus.PENDING)
    level2_reviewer_id = Column(Integer, ForeignKey("employees.id"), nullable=True)
    level2_comment = Column(Text, nullable=True)
    level2_decided_at = Column(DateTime(timezone=True), nullable=True)

    # Derived from the two stage statuses; written only by approval_service
    final_status = Column(SQLEnum(ApprovalStatus), nullable=False, default=ApprovalStatus.PENDING, index=True)

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        UniqueConstraint("subject_kind", "subject_id", name="uq_approval_workflows_subject"),
        Index("ix_approval_workflows_kind_final", "subject_kind", "final_status"),
    )
