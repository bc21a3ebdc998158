"""
Leave recall schemas
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field, ConfigDict

from leave_engine.models.leave import RecallStatus


class RecallCreate(BaseModel):
    """Schema for recalling an employee from approved leave"""
    application_id: int
    recall_date: date = Field(..., description="Day the employee is asked to be back")
    reason: str = Field(..., min_length=1, max_length=2000)


class RecallResponse(BaseModel):
    """Employee's answer to a recall"""
    decision: Literal["ACCEPTED", "DECLINED"]
    actual_return_date: Optional[date] = Field(None, description="Defaults to the requested recall date")
    response: Optional[str] = Field(None, max_length=2000)


class RecallOut(BaseModel):
    id: int
    company_id: int
    application_id: int
    initiated_by_id: int
    reason: str
    recall_date: date
    status: RecallStatus
    employee_response: Optional[str] = None
    actual_return_date: Optional[date] = None
    responded_at: Optional[datetime] = None
    days_restored: Optional[Decimal] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
