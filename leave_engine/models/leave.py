"""
Leave models
"""
from sqlalchemy import (
    Column,
    Integer,
    Date,
    DateTime,
    ForeignKey,
    String,
    Text,
    Numeric,
    Enum as SQLEnum,
    Boolean,
    UniqueConstraint,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func, text
import enum
from leave_engine.db.base import Base


class ApplicableGender(str, enum.Enum):
    ALL = "All"
    MALE = "Male"
    FEMALE = "Female"


class ApplicationStatus(str, enum.Enum):
    PENDING_SUPERVISOR = "PENDING_SUPERVISOR"
    PENDING_HR = "PENDING_HR"
    PENDING_CEO = "PENDING_CEO"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


PENDING_STATUSES = (
    ApplicationStatus.PENDING_SUPERVISOR,
    ApplicationStatus.PENDING_HR,
    ApplicationStatus.PENDING_CEO,
)
# Statuses that hold days on the calendar (used by the overlap check)
BLOCKING_STATUSES = PENDING_STATUSES + (ApplicationStatus.APPROVED,)
TERMINAL_STATUSES = (ApplicationStatus.REJECTED, ApplicationStatus.CANCELLED)


class ApprovalAction(str, enum.Enum):
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"


class RecallStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"


class LedgerAction(str, enum.Enum):
    RESERVE = "RESERVE"
    COMMIT = "COMMIT"
    RELEASE = "RELEASE"
    REFUND = "REFUND"
    ADJUST = "ADJUST"
    ALLOCATE = "ALLOCATE"
    CARRY_OVER = "CARRY_OVER"


class LeaveType(Base):
    __tablename__ = "leave_types"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    code = Column(String(30), nullable=False)
    description = Column(Text, nullable=True)
    default_allowance_days = Column(Numeric(6, 2), nullable=False, default=0)
    increment_amount = Column(Numeric(5, 2), nullable=False, default=0)  # tenure bonus per period
    increment_period_years = Column(Integer, nullable=False, default=0)  # 0 = no tenure bonus
    max_cap = Column(Numeric(6, 2), nullable=True)
    allows_carry_over = Column(Boolean, nullable=False, default=False)
    carry_over_expiry_months = Column(Integer, nullable=True)
    applicable_gender = Column(String(10), nullable=False, default=ApplicableGender.ALL.value)
    requires_attachment = Column(Boolean, nullable=False, default=False)
    is_paid = Column(Boolean, nullable=False, default=True)
    uses_calendar_days = Column(Boolean, nullable=False, default=False)
    accrues_gradually = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    __table_args__ = (
        UniqueConstraint('company_id', 'code', name='uq_leave_types_company_code'),
    )


class LeaveBalance(Base):
    """
    Leave ledger row: one per (employee_id, leave_type_id, fiscal_year).

    total_entitlement holds the opening balance (allocation plus carry-over).
    Accrual for gradually accruing types is computed on read and never stored;
    remaining days are derived, see ledger_service.view_balance.
    """
    __tablename__ = "leave_balances"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    leave_type_id = Column(Integer, ForeignKey("leave_types.id"), nullable=False, index=True)
    fiscal_year = Column(Integer, nullable=False, index=True)
    total_entitlement = Column(Numeric(6, 2), nullable=False, default=0)
    used_days = Column(Numeric(6, 2), nullable=False, default=0)
    pending_days = Column(Numeric(6, 2), nullable=False, default=0)
    expiry_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    employee = relationship("Employee")
    leave_type = relationship("LeaveType")

    __table_args__ = (
        UniqueConstraint("employee_id", "leave_type_id", "fiscal_year", name="uq_leave_balances_employee_type_year"),
        CheckConstraint("used_days >= 0", name="check_leave_balances_used_non_negative"),
        CheckConstraint("pending_days >= 0", name="check_leave_balances_pending_non_negative"),
    )


class LeaveApplication(Base):
    __tablename__ = "leave_applications"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    leave_type_id = Column(Integer, ForeignKey("leave_types.id"), nullable=False, index=True)
    fiscal_year = Column(Integer, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    return_date = Column(Date, nullable=False)
    requested_days = Column(Numeric(6, 2), nullable=False)  # supports 0.5 days
    reason = Column(Text, nullable=True)
    attachment_url = Column(String(500), nullable=True)
    relief_officer_id = Column(Integer, ForeignKey("employees.id"), nullable=True)
    current_status = Column(
        SQLEnum(ApplicationStatus),
        nullable=False,
        server_default=text("'PENDING_SUPERVISOR'"),
        default=ApplicationStatus.PENDING_SUPERVISOR,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    # Relationships
    employee = relationship("Employee", foreign_keys=[employee_id])
    relief_officer = relationship("Employee", foreign_keys=[relief_officer_id])
    leave_type = relationship("LeaveType")
    approval_logs = relationship(
        "LeaveApprovalLog",
        back_populates="application",
        order_by="LeaveApprovalLog.id",
    )
    recalls = relationship("LeaveRecall", back_populates="application", order_by="LeaveRecall.id")

    __table_args__ = (
        Index('ix_leave_applications_employee_dates', 'employee_id', 'start_date', 'end_date'),
        CheckConstraint('start_date <= end_date', name='check_start_date_le_end_date'),
    )


class LeaveApprovalLog(Base):
    """Append-only: one row per status transition."""
    __tablename__ = "leave_approval_logs"

    id = Column(Integer, primary_key=True, index=True)
    application_id = Column(Integer, ForeignKey("leave_applications.id"), nullable=False, index=True)
    approver_id = Column(Integer, ForeignKey("employees.id"), nullable=False)
    role_at_time = Column(String(20), nullable=False)
    action = Column(SQLEnum(ApprovalAction), nullable=False)
    from_status = Column(SQLEnum(ApplicationStatus), nullable=False)
    to_status = Column(SQLEnum(ApplicationStatus), nullable=False)
    comments = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    application = relationship("LeaveApplication", back_populates="approval_logs")
    approver = relationship("Employee", foreign_keys=[approver_id])


class LeaveRecall(Base):
    __tablename__ = "leave_recalls"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    application_id = Column(Integer, ForeignKey("leave_applications.id"), nullable=False, index=True)
    initiated_by_id = Column(Integer, ForeignKey("employees.id"), nullable=False)
    reason = Column(Text, nullable=False)
    recall_date = Column(Date, nullable=False)
    status = Column(SQLEnum(RecallStatus), nullable=False, default=RecallStatus.PENDING)
    employee_response = Column(Text, nullable=True)
    actual_return_date = Column(Date, nullable=True)
    responded_at = Column(DateTime(timezone=True), nullable=True)
    days_restored = Column(Numeric(6, 2), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    application = relationship("LeaveApplication", back_populates="recalls")
    initiated_by = relationship("Employee", foreign_keys=[initiated_by_id])

    __table_args__ = (
        # At most one PENDING recall per application
        Index(
            'uq_leave_recalls_one_pending',
            'application_id',
            unique=True,
            postgresql_where=text("status = 'PENDING'"),
            sqlite_where=text("status = 'PENDING'"),
        ),
    )


class UnpaidLeaveUsage(Base):
    __tablename__ = "unpaid_leave_usages"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False)
    fiscal_year = Column(Integer, nullable=False)
    usage_count = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    __table_args__ = (
        UniqueConstraint('employee_id', 'company_id', 'fiscal_year', name='uq_unpaid_usage_employee_company_year'),
        CheckConstraint('usage_count <= 2', name='check_unpaid_usage_count_max'),
    )


class LeaveTransaction(Base):
    """Audit trail for the ledger: every reserve, commit, release, refund, adjust."""
    __tablename__ = "leave_transactions"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    balance_id = Column(Integer, ForeignKey("leave_balances.id"), nullable=False, index=True)
    application_id = Column(Integer, ForeignKey("leave_applications.id", ondelete="SET NULL"), nullable=True, index=True)
    action = Column(String(20), nullable=False)
    delta_days = Column(Numeric(6, 2), nullable=False)  # sign follows the affected column
    remarks = Column(Text, nullable=True)
    actor_id = Column(Integer, ForeignKey("employees.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    balance = relationship("LeaveBalance")
