"""
Shared helpers for tests
"""
from datetime import datetime, timezone
from app.models.employee import Employee


def utc(year, month, day, hour=0, minute=0):
    """Aware UTC datetime. With BUSINESS_TZ=Asia/Manila, 01:00 UTC is 09:00 local on the same day."""
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


def auth_headers(employee: Employee) -> dict:
    """Headers the upstream gateway sets for an authenticated employee"""
    return {"X-Employee-Id": str(employee.id)}
