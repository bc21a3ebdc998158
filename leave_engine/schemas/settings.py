"""
Leave settings schemas
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict

from leave_engine.models.leave_settings import AccrualBasis, EncashmentRounding


class LeaveSettingsUpdate(BaseModel):
    """Partial update of a company's leave policy; omitted fields keep their value"""
    saturday_half_day: Optional[bool] = None
    sunday_off: Optional[bool] = None
    fiscal_year_start_month: Optional[int] = Field(None, description="1-12")
    accrual_basis: Optional[AccrualBasis] = None
    annual_leave_base_days: Optional[Decimal] = None
    accrual_divisor: Optional[int] = Field(None, description="1-400")
    increment_period_years: Optional[int] = None
    increment_amount: Optional[Decimal] = None
    max_annual_leave_cap: Optional[Decimal] = None
    require_ceo_approval_for_managers: Optional[bool] = None
    enable_leave_expiry: Optional[bool] = None
    expiry_notification_days: Optional[int] = None
    enable_encashment: Optional[bool] = None
    encashment_salary_divisor: Optional[int] = None
    max_encashment_days: Optional[Decimal] = None
    encashment_rounding: Optional[EncashmentRounding] = None
    policy_effective_date: Optional[date] = None


class LeaveSettingsOut(BaseModel):
    id: Optional[int] = None  # None when the company still runs on defaults
    company_id: int
    saturday_half_day: bool
    sunday_off: bool
    fiscal_year_start_month: int
    accrual_basis: AccrualBasis
    annual_leave_base_days: Decimal
    accrual_divisor: int
    increment_period_years: int
    increment_amount: Decimal
    max_annual_leave_cap: Optional[Decimal] = None
    require_ceo_approval_for_managers: bool
    enable_leave_expiry: bool
    expiry_notification_days: int
    enable_encashment: bool
    encashment_salary_divisor: int
    max_encashment_days: Optional[Decimal] = None
    encashment_rounding: EncashmentRounding
    policy_version: int
    policy_effective_date: Optional[date] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
