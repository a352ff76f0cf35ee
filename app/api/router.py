"""
Main API router
"""
from fastapi import APIRouter

from app.api.v1 import (
    health,
    version,
    attendance,
    approvals,
    cash_advances,
    reports,
)
from app.api.v1.admin import admin_router

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(version.router, tags=["version"])
api_router.include_router(attendance.router, prefix="/attendance", tags=["attendance"])
api_router.include_router(admin_router)
api_router.include_router(approvals.router, prefix="/approvals", tags=["approvals"])
api_router.include_router(cash_advances.router, prefix="/cash-advances", tags=["cash-advances"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
