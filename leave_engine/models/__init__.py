"""
Database models
"""
from leave_engine.models.company import Company
from leave_engine.models.employee import Employee, Employment, Role, Gender, EXECUTIVE_ROLES
from leave_engine.models.holiday import PublicHoliday
from leave_engine.models.leave_settings import LeaveSettings, AccrualBasis, EncashmentRounding
from leave_engine.models.leave import (
    LeaveType,
    LeaveBalance,
    LeaveApplication,
    LeaveApprovalLog,
    LeaveRecall,
    UnpaidLeaveUsage,
    LeaveTransaction,
    ApplicableGender,
    ApplicationStatus,
    ApprovalAction,
    RecallStatus,
    LedgerAction,
    PENDING_STATUSES,
    BLOCKING_STATUSES,
    TERMINAL_STATUSES,
)

__all__ = [
    "Company",
    "Employee",
    "Employment",
    "Role",
    "Gender",
    "EXECUTIVE_ROLES",
    "PublicHoliday",
    "LeaveSettings",
    "AccrualBasis",
    "EncashmentRounding",
    "LeaveType",
    "LeaveBalance",
    "LeaveApplication",
    "LeaveApprovalLog",
    "LeaveRecall",
    "UnpaidLeaveUsage",
    "LeaveTransaction",
    "ApplicableGender",
    "ApplicationStatus",
    "ApprovalAction",
    "RecallStatus",
    "LedgerAction",
    "PENDING_STATUSES",
    "BLOCKING_STATUSES",
    "TERMINAL_STATUSES",
]
