"""
Work schedule model (owned by scheduling; read-only input to daily status)
"""
from sqlalchemy import Column, Integer, Date, DateTime, ForeignKey, Boolean, String, UniqueConstraint
from sqlalchemy.sql import func
from app.db.base import Base


class WorkSchedule(Base):
    __tablename__ = "work_schedules"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    schedule_date = Column(Date, nullable=False, index=True)
    is_rest_day = Column(Boolean, nullable=False, default=False)
    shift_label = Column(String(50), nullable=True)  # e.g. "09:00-18:00"
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    __table_args__ = (
        UniqueConstraint('employee_id', 'schedule_date', name='uq_work_schedule_employee_date'),
    )
