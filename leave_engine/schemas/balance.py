"""
Leave balance (ledger) schemas
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, Field, ConfigDict, model_validator


class BalanceOut(BaseModel):
    """Ledger row with derived fields; remaining_days is never stored"""
    balance_id: int
    employee_id: int
    leave_type_id: int
    leave_type_code: str
    fiscal_year: int
    total_entitlement: Decimal
    accrued_days: Decimal
    effective_entitlement: Decimal
    used_days: Decimal
    pending_days: Decimal
    remaining_days: Decimal
    expiry_date: Optional[date] = None

    model_config = ConfigDict(from_attributes=True)


class AllocateRequest(BaseModel):
    employee_id: int
    leave_type_id: int
    fiscal_year: int = Field(..., ge=1900, le=2200)
    total_entitlement: Optional[Decimal] = Field(
        None, ge=0, description="Opening entitlement; computed from the tenure formula when omitted"
    )
    expiry_date: Optional[date] = None


class AdjustRequest(BaseModel):
    employee_id: int
    leave_type_id: int
    fiscal_year: int = Field(..., ge=1900, le=2200)
    days: Decimal = Field(..., gt=0)
    direction: Literal["add", "subtract"]
    reason: str = Field(..., min_length=1)


class CarryOverRequest(BaseModel):
    from_year: int = Field(..., ge=1900, le=2200)
    to_year: int = Field(..., ge=1900, le=2200)
    leave_type_id: Optional[int] = None

    @model_validator(mode="after")
    def validate_years(self):
        if self.to_year <= self.from_year:
            raise ValueError("to_year must be after from_year")
        return self


class CarryOverResult(BaseModel):
    processed: int
    carried_balances: int
    total_days_carried: Decimal


class TransactionOut(BaseModel):
    id: int
    balance_id: int
    application_id: Optional[int] = None
    action: str
    delta_days: Decimal
    remarks: Optional[str] = None
    actor_id: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class EncashmentQuoteOut(BaseModel):
    employee_id: int
    fiscal_year: int
    remaining_days: Decimal
    eligible_days: Decimal
    monthly_salary: Decimal
    daily_rate: Decimal
    cash_value: Decimal
