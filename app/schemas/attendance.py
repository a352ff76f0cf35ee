"""
Attendance session schemas. All datetimes are returned in the business zone (BUSINESS_TZ offset).
"""
from datetime import date, datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field, field_serializer, model_validator

from app.models.attendance_session import SessionStatus
from app.utils.datetime_utils import iso_local


def _serialize_dt_local(dt: Optional[datetime]) -> Optional[str]:
    """Serialize datetime with the business zone offset for API responses."""
    return iso_local(dt)


class ClockInRequest(BaseModel):
    """Request for clock-in"""
    remarks: Optional[str] = Field(None, max_length=500)


class ClockOutRequest(BaseModel):
    """Request for clock-out; overtime marks the session and opens an approval request"""
    overtime: bool = Field(False, description="Mark this session as the day's overtime session")
    overtime_comment: Optional[str] = Field(None, max_length=1000)


class ForceCloseRequest(BaseModel):
    """Admin force-close of an open session"""
    punch_out_at: datetime = Field(..., description="End time to record; naive values are taken as UTC")


class AdminInsertSessionRequest(BaseModel):
    """Admin insert of a closed historical session"""
    employee_id: int
    punch_in_at: datetime
    punch_out_at: datetime
    overtime: bool = False
    overtime_comment: Optional[str] = Field(None, max_length=1000)


class AdminEditSessionRequest(BaseModel):
    """Admin correction of a closed session; omitted fields are left unchanged"""
    punch_in_at: Optional[datetime] = None
    punch_out_at: Optional[datetime] = None
    overtime: Optional[bool] = None
    overtime_comment: Optional[str] = Field(None, max_length=1000)
    remarks: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def _require_change(self):
        if (
            self.punch_in_at is None
            and self.punch_out_at is None
            and self.overtime is None
            and self.overtime_comment is None
            and self.remarks is None
        ):
            raise ValueError("at least one field must be provided")
        return self


class SessionDto(BaseModel):
    """Attendance session output; datetimes carry the business zone offset."""
    id: int
    employee_id: int
    work_date: date
    punch_in_at: datetime
    punch_out_at: Optional[datetime] = None
    status: SessionStatus
    is_overtime_marked: bool
    is_overtime_approved: bool
    overtime_comment: Optional[str] = None
    overtime_request_id: Optional[int] = None
    remarks: Optional[str] = None
    created_by: Optional[int] = None
    modified_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("punch_in_at", "punch_out_at", "created_at", "updated_at", when_used="always")
    def _serialize_datetime_local(self, dt: Optional[datetime]) -> Optional[str]:
        return _serialize_dt_local(dt)


class SessionListResponse(BaseModel):
    items: List[SessionDto]
    total: int


class CurrentSessionResponse(BaseModel):
    """Open session of the caller, or null"""
    session: Optional[SessionDto] = None
