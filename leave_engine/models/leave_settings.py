"""
Leave policy settings model (one row per company)
"""
from sqlalchemy import (
    Column,
    Integer,
    Date,
    DateTime,
    Boolean,
    Numeric,
    ForeignKey,
    Enum as SQLEnum,
    UniqueConstraint,
)
from sqlalchemy.sql import func
import enum
from leave_engine.db.base import Base


class AccrualBasis(str, enum.Enum):
    ANNIVERSARY = "ANNIVERSARY"
    CALENDAR_YEAR = "CALENDAR_YEAR"


class EncashmentRounding(str, enum.Enum):
    ROUND = "ROUND"
    FLOOR = "FLOOR"
    CEIL = "CEIL"


class LeaveSettings(Base):
    __tablename__ = "leave_settings"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)

    # Working week
    saturday_half_day = Column(Boolean, nullable=False, default=True)
    sunday_off = Column(Boolean, nullable=False, default=True)

    # Fiscal year and accrual
    fiscal_year_start_month = Column(Integer, nullable=False, default=1)  # 1-12
    accrual_basis = Column(SQLEnum(AccrualBasis), nullable=False, default=AccrualBasis.ANNIVERSARY)
    annual_leave_base_days = Column(Numeric(6, 2), nullable=False, default=16)
    accrual_divisor = Column(Integer, nullable=False, default=365)
    increment_period_years = Column(Integer, nullable=False, default=2)
    increment_amount = Column(Numeric(5, 2), nullable=False, default=1)
    max_annual_leave_cap = Column(Numeric(6, 2), nullable=True)

    # Approval chain
    require_ceo_approval_for_managers = Column(Boolean, nullable=False, default=True)

    # Expiry
    enable_leave_expiry = Column(Boolean, nullable=False, default=True)
    expiry_notification_days = Column(Integer, nullable=False, default=30)

    # Encashment
    enable_encashment = Column(Boolean, nullable=False, default=False)
    encashment_salary_divisor = Column(Integer, nullable=False, default=30)
    max_encashment_days = Column(Numeric(6, 2), nullable=True)
    encashment_rounding = Column(SQLEnum(EncashmentRounding), nullable=False, default=EncashmentRounding.ROUND)

    # Bumped on every save
    policy_version = Column(Integer, nullable=False, default=1)
    policy_effective_date = Column(Date, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    __table_args__ = (
        UniqueConstraint('company_id', name='uq_leave_settings_company'),
    )
