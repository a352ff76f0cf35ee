"""
Authorization collaborator: decides whether an actor may perform an operation.

Backed by a role -> permission table. ADMIN holds every permission; inactive or
unknown actors hold none.
"""
import enum
import logging
from typing import Dict, FrozenSet, Optional

from sqlalchemy.orm import Session

from app.core.errors import UnauthorizedError
from app.models.approval import ApprovalLevel, SubjectKind
from app.models.employee import Employee, Role

logger = logging.getLogger(__name__)


class Permission(str, enum.Enum):
    EDIT_TIME_ENTRIES = "edit_time_entries"
    APPROVE_OVERTIME_LEVEL1 = "approve_overtime_level1"
    APPROVE_OVERTIME_LEVEL2 = "approve_overtime_level2"
    APPROVE_CASH_ADVANCE_LEVEL1 = "approve_cash_advance_level1"
    APPROVE_CASH_ADVANCE_LEVEL2 = "approve_cash_advance_level2"
    VIEW_STALE_SESSIONS = "view_stale_sessions"
    VIEW_ATTENDANCE_REPORTS = "view_attendance_reports"


ROLE_PERMISSIONS: Dict[Role, FrozenSet[Permission]] = {
    Role.EMPLOYEE: frozenset(),
    Role.SUPERVISOR: frozenset({
        Permission.APPROVE_OVERTIME_LEVEL1,
        Permission.APPROVE_CASH_ADVANCE_LEVEL1,
    }),
    Role.MANAGER: frozenset({
        Permission.APPROVE_OVERTIME_LEVEL2,
        Permission.APPROVE_CASH_ADVANCE_LEVEL2,
        Permission.EDIT_TIME_ENTRIES,
        Permission.VIEW_STALE_SESSIONS,
        Permission.VIEW_ATTENDANCE_REPORTS,
    }),
    Role.HR: frozenset({
        Permission.APPROVE_CASH_ADVANCE_LEVEL2,
        Permission.EDIT_TIME_ENTRIES,
        Permission.VIEW_ATTENDANCE_REPORTS,
    }),
    Role.ADMIN: frozenset(Permission),
}

_STAGE_PERMISSIONS = {
    (SubjectKind.OVERTIME, ApprovalLevel.LEVEL1): Permission.APPROVE_OVERTIME_LEVEL1,
    (SubjectKind.OVERTIME, ApprovalLevel.LEVEL2): Permission.APPROVE_OVERTIME_LEVEL2,
    (SubjectKind.CASH_ADVANCE, ApprovalLevel.LEVEL1): Permission.APPROVE_CASH_ADVANCE_LEVEL1,
    (SubjectKind.CASH_ADVANCE, ApprovalLevel.LEVEL2): Permission.APPROVE_CASH_ADVANCE_LEVEL2,
}


def stage_permission(subject_kind: SubjectKind, level: ApprovalLevel) -> Permission:
    """Permission a reviewer needs to decide the given stage of the given kind of request."""
    return _STAGE_PERMISSIONS[(SubjectKind(subject_kind), ApprovalLevel(level))]


def _role_of(employee: Employee) -> Optional[Role]:
    try:
        return Role(employee.role)
    except ValueError:
        return None


def is_authorized(
    db: Session,
    actor_id: int,
    operation: Permission,
    subject_id: Optional[int] = None,
) -> bool:
    """Return True if the actor holds the permission for operation."""
    actor = db.get(Employee, actor_id)
    if actor is None or not actor.active:
        return False
    role = _role_of(actor)
    if role is None:
        return False
    return Permission(operation) in ROLE_PERMISSIONS.get(role, frozenset())


def reviewable_kinds(db: Session, actor_id: int) -> FrozenSet[SubjectKind]:
    """Subject kinds for which the actor holds at least one stage permission."""
    return frozenset(
        kind for (kind, _level), permission in _STAGE_PERMISSIONS.items()
        if is_authorized(db, actor_id, permission)
    )


def ensure_authorized(
    db: Session,
    actor_id: int,
    operation: Permission,
    subject_id: Optional[int] = None,
) -> None:
    """Raise UnauthorizedError unless is_authorized() allows the call."""
    if not is_authorized(db, actor_id, operation, subject_id):
        logger.debug(
            "authorization denied: actor_id=%s operation=%s subject_id=%s",
            actor_id, Permission(operation).value, subject_id,
        )
        raise UnauthorizedError(
            "not_authorized",
            actor_id=actor_id,
            operation=Permission(operation).value,
            subject_id=subject_id,
        )
