"""
Leave application schemas
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, ConfigDict

from leave_engine.models.leave import ApplicationStatus, ApprovalAction


class LeaveApplicationCreate(BaseModel):
    """Schema for submitting a leave application"""
    leave_type_id: int = Field(..., description="Leave type ID")
    start_date: date = Field(..., description="First day of leave")
    end_date: date = Field(..., description="Last day of leave (inclusive)")
    reason: Optional[str] = Field(None, max_length=2000)
    attachment_url: Optional[str] = Field(None, max_length=500)
    relief_officer_id: Optional[int] = Field(None, description="Colleague covering during the leave")


class ApprovalDecision(BaseModel):
    """Schema for approving or rejecting a leave application"""
    comments: Optional[str] = Field(None, max_length=2000)


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=2000)


class ApprovalLogOut(BaseModel):
    id: int
    approver_id: int
    role_at_time: str
    action: ApprovalAction
    from_status: ApplicationStatus
    to_status: ApplicationStatus
    comments: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class LeaveApplicationOut(BaseModel):
    """Schema for leave application output"""
    id: int
    company_id: int
    employee_id: int
    leave_type_id: int
    fiscal_year: int
    start_date: date
    end_date: date
    return_date: date
    requested_days: Decimal
    reason: Optional[str] = None
    attachment_url: Optional[str] = None
    relief_officer_id: Optional[int] = None
    current_status: ApplicationStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    approval_logs: List[ApprovalLogOut] = []

    model_config = ConfigDict(from_attributes=True)


class OnLeaveOut(BaseModel):
    application_id: int
    employee_id: int
    full_name: str
    leave_type_code: str
    start_date: date
    end_date: date
    return_date: date


class LeaveStatsOut(BaseModel):
    fiscal_year: Optional[int] = None
    total_applications: int
    by_status: Dict[str, int]
    approved_days_by_type: Dict[str, Decimal]
    on_leave_today: int
