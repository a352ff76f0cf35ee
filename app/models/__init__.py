"""
Database models
"""
from app.models.employee import Employee, Role
from app.models.audit_log import AuditLog
from app.models.approval import (
    ApprovalWorkflow,
    ApprovalStatus,
    ApprovalAction,
    ApprovalLevel,
    SubjectKind,
)
from app.models.attendance_session import (
    AttendanceSession,
    AttendanceEvent,
    SessionStatus,
    AttendanceEventType,
)
from app.models.cash_advance import CashAdvance, CashAdvanceType
from app.models.leave import LeaveRequest, LeaveStatus
from app.models.schedule import WorkSchedule

__all__ = [
    "Employee",
    "Role",
    "AuditLog",
    "ApprovalWorkflow",
    "ApprovalStatus",
    "ApprovalAction",
    "ApprovalLevel",
    "SubjectKind",
    "AttendanceSession",
    "AttendanceEvent",
    "SessionStatus",
    "AttendanceEventType",
    "CashAdvance",
    "CashAdvanceType",
    "LeaveRequest",
    "LeaveStatus",
    "WorkSchedule",
]
