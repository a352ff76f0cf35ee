"""
Dependencies and guards for FastAPI endpoints

Authentication happens upstream; the gateway forwards the authenticated employee id
in the X-Employee-Id header.
"""
from typing import Generator, Optional
from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session
from app.db.session import SessionLocal
from app.models.employee import Employee
from app.services.authorization_service import Permission, ensure_authorized


def get_db() -> Generator:
    """Dependency for getting database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


async def get_current_user(
    x_employee_id: Optional[str] = Header(None, alias="X-Employee-Id"),
    db: Session = Depends(get_db)
) -> Employee:
    """
    Resolve the calling employee from the X-Employee-Id header
    """
    if x_employee_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Employee-Id header",
        )
    try:
        employee_id = int(x_employee_id)
    except (ValueError, TypeError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid X-Employee-Id header",
        )

    employee = db.get(Employee, employee_id)
    if employee is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    if not employee.active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user"
        )

    return employee


def require_permission(permission: Permission):
    """
    Dependency factory for permission-based access control

    Usage:
        @router.get("/stale")
        async def stale(user: Employee = Depends(require_permission(Permission.VIEW_STALE_SESSIONS))):
            ...
    """
    def permission_checker(current_user: Employee = Depends(get_current_user), db: Session = Depends(get_db)) -> Employee:
        ensure_authorized(db, current_user.id, permission)
        return current_user
    return permission_checker
