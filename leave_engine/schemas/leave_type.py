"""
Leave type schemas
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict

from leave_engine.models.leave import ApplicableGender


class LeaveTypeCreate(BaseModel):
    """Schema for creating a leave type"""
    name: str = Field(..., min_length=1, max_length=100)
    code: str = Field(..., min_length=1, max_length=30, description="Unique per company, e.g. ANNUAL")
    description: Optional[str] = None
    default_allowance_days: Decimal = Field(..., ge=0)
    increment_amount: Decimal = Field(Decimal("0"), ge=0)
    increment_period_years: int = Field(0, ge=0)
    max_cap: Optional[Decimal] = Field(None, gt=0)
    allows_carry_over: bool = False
    carry_over_expiry_months: Optional[int] = Field(None, ge=1)
    applicable_gender: ApplicableGender = ApplicableGender.ALL
    requires_attachment: bool = False
    is_paid: bool = True
    uses_calendar_days: bool = False
    accrues_gradually: bool = False


class LeaveTypeUpdate(BaseModel):
    """Schema for updating a leave type; omitted fields are left unchanged"""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    code: Optional[str] = Field(None, min_length=1, max_length=30)
    description: Optional[str] = None
    default_allowance_days: Optional[Decimal] = Field(None, ge=0)
    increment_amount: Optional[Decimal] = Field(None, ge=0)
    increment_period_years: Optional[int] = Field(None, ge=0)
    max_cap: Optional[Decimal] = Field(None, gt=0)
    allows_carry_over: Optional[bool] = None
    carry_over_expiry_months: Optional[int] = Field(None, ge=1)
    applicable_gender: Optional[ApplicableGender] = None
    requires_attachment: Optional[bool] = None
    is_paid: Optional[bool] = None
    uses_calendar_days: Optional[bool] = None
    accrues_gradually: Optional[bool] = None
    is_active: Optional[bool] = None


class LeaveTypeOut(BaseModel):
    id: int
    company_id: int
    name: str
    code: str
    description: Optional[str] = None
    default_allowance_days: Decimal
    increment_amount: Decimal
    increment_period_years: int
    max_cap: Optional[Decimal] = None
    allows_carry_over: bool
    carry_over_expiry_months: Optional[int] = None
    applicable_gender: str
    requires_attachment: bool
    is_paid: bool
    uses_calendar_days: bool
    accrues_gradually: bool
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SeedResult(BaseModel):
    count: int
