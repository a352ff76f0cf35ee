"""
Attendance session and event models (clock in/out sessions and immutable event log).

Store-level guards:
- one open session (punch_out_at IS NULL) per employee
- one overtime-marked session per employee per work_date
"""
from sqlalchemy import (
    Boolean,
    Column,
    Integer,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    JSON,
    Enum as SQLEnum,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class SessionStatus(str, enum.Enum):
    OPEN = "OPEN"
    CLOSED = "CLOSED"
    FORCE_CLOSED = "FORCE_CLOSED"


class AttendanceEventType(str, enum.Enum):
    IN = "IN"
    OUT = "OUT"
    FORCE_CLOSE = "FORCE_CLOSE"
    ADMIN_INSERT = "ADMIN_INSERT"
    ADMIN_EDIT = "ADMIN_EDIT"
    ADMIN_DELETE = "ADMIN_DELETE"


class AttendanceSession(Base):
    __tablename__ = "attendance_sessions"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    work_date = Column(Date, nullable=False, index=True)  # business-tz date of punch_in_at
    punch_in_at = Column(DateTime(timezone=True), nullable=False)
    punch_out_at = Column(DateTime(timezone=True), nullable=True)
    status = Column(SQLEnum(SessionStatus), nullable=False, default=SessionStatus.OPEN)
    is_overtime_marked = Column(Boolean, nullable=False, default=False)
    is_overtime_approved = Column(Boolean, nullable=False, default=False)
    overtime_comment = Column(Text, nullable=True)
    overtime_request_id = Column(
        Integer,
        ForeignKey("approval_workflows.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    remarks = Column(Text, nullable=True)
    created_by = Column(Integer, ForeignKey("employees.id"), nullable=True)
    modified_by = Column(Integer, ForeignKey("employees.id"), nullable=True)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    employee = relationship("Employee", foreign_keys=[employee_id])
    overtime_request = relationship("ApprovalWorkflow", foreign_keys=[overtime_request_id])

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index(
            "uq_attendance_sessions_one_open",
            "employee_id",
            unique=True,
            sqlite_where=text("punch_out_at IS NULL"),
            postgresql_where=text("punch_out_at IS NULL"),
        ),
        Index(
            "uq_attendance_sessions_one_overtime_per_day",
            "employee_id",
            "work_date",
            unique=True,
            sqlite_where=text("is_overtime_marked = 1"),
            postgresql_where=text("is_overtime_marked"),
        ),
    )

    @property
    def is_open(self) -> bool:
        return self.punch_out_at is None


class AttendanceEvent(Base):
    __tablename__ = "attendance_events"

    id = Column(Integer, primary_key=True, index=True)
    # Nulled when the session is deleted; the event row itself is kept
    session_id = Column(Integer, ForeignKey("attendance_sessions.id", ondelete="SET NULL"), nullable=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    event_type = Column(SQLEnum(AttendanceEventType), nullable=False)
    event_at = Column(DateTime(timezone=True), nullable=False)
    meta_json = Column(JSON, nullable=True)
    created_by = Column(Integer, ForeignKey("employees.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
