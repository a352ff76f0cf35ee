"""
Audit logging service
"""
from sqlalchemy.orm import Session
from app.models.audit_log import AuditLog
from app.utils.datetime_utils import now_utc
from app.utils.json_serializer import sanitize_for_json
from typing import Optional, Dict, Any


def log_audit(
    db: Session,
    actor_id: int,
    action: str,
    entity_type: str,
    entity_id: Optional[int] = None,
    meta: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Add an audit log entry to the caller's transaction

    The entry is flushed, not committed: it becomes durable together with the
    change it describes, or not at all.

    Args:
        db: Database session
        actor_id: ID of the employee performing the action
        action: Action type (e.g., "ATTENDANCE_CLOCK_IN", "APPROVAL_LEVEL1_DECIDE")
        entity_type: Type of entity (e.g., "attendance_sessions", "approval_workflows")
        entity_id: ID of the affected entity (optional)
        meta: Additional metadata as dictionary (optional)

    Returns:
        Pending AuditLog instance
    """
    safe_meta = sanitize_for_json(meta) if meta is not None else None

    # Explicitly set created_at to avoid SQLite issues with server_default
    audit_log = AuditLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_json=safe_meta,
        created_at=now_utc()
    )
    db.add(audit_log)
    db.flush()
    return audit_log
