"""
Daily status report schemas
"""
import enum
from datetime import date
from typing import Optional, List
from pydantic import BaseModel


class DayClassification(str, enum.Enum):
    ATTENDANCE = "ATTENDANCE"
    LEAVE = "LEAVE"
    REST_DAY = "REST_DAY"
    NO_RECORD = "NO_RECORD"


class DailyStatus(BaseModel):
    """
    One employee-day of the daily status report (computed, never stored).

    total_hours is the sum over closed sessions and is only set for ATTENDANCE days;
    has_open_session flags a session still in progress on that day.
    """
    employee_id: int
    day: date
    classification: DayClassification
    total_hours: Optional[float] = None
    session_count: int = 0
    has_open_session: bool = False


class DailyStatusResponse(BaseModel):
    items: List[DailyStatus]
    total: int
