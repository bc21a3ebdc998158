"""
Leave application state machine

    (start) --create--> PENDING_SUPERVISOR
    PENDING_SUPERVISOR --approve(manager|admin)--> PENDING_HR
    PENDING_HR --approve(HR|admin)--> PENDING_CEO   (manager-tier employee, CEO approval required)
    PENDING_HR --approve(HR|admin)--> APPROVED      (otherwise)
    PENDING_CEO --approve(executive|admin)--> APPROVED
    PENDING_* --reject--> REJECTED
    PENDING_* / APPROVED (not started) --cancel(owner)--> CANCELLED

Every transition re-reads the status under a row lock and writes the new status
with a compare-and-swap, in the same transaction as the ledger mutation and the
approval log insert. A lost swap is reported as TransientStoreConflict so the
transaction runner retries, and the retry then sees the terminal status.
"""
import logging
from datetime import date, timedelta
from typing import Dict, List, Optional

from sqlalchemy import and_, func, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from leave_engine.core import constants
from leave_engine.core.result import (
    Err,
    Ok,
    Result,
    authorization_error,
    business_rule,
    conflict,
    not_found,
    transient_conflict,
    validation_error,
)
from leave_engine.models.employee import EXECUTIVE_ROLES, Employee, Employment, Role
from leave_engine.models.leave import (
    BLOCKING_STATUSES,
    PENDING_STATUSES,
    ApplicationStatus,
    ApprovalAction,
    LeaveApplication,
    LeaveApprovalLog,
    LeaveType,
    UnpaidLeaveUsage,
)
from leave_engine.models.leave_settings import LeaveSettings
from leave_engine.schemas.leave import LeaveApplicationCreate
from leave_engine.services import employee_directory, ledger_service, leave_type_service
from leave_engine.services.accrual_service import fiscal_year_for
from leave_engine.services.employee_directory import EmployeeProfile
from leave_engine.services.holiday_service import load_calendar
from leave_engine.services.leave_settings_service import resolve_settings
from leave_engine.services.notification_service import queue_notification
from leave_engine.services.working_days import count_leave_days, return_date
from leave_engine.utils.datetime_utils import today_or

logger = logging.getLogger(__name__)

# Calendar loaded past the end date so the return date can skip holidays
_RETURN_DATE_LOOKAHEAD_DAYS = 31


def is_unpaid_type(leave_type: LeaveType) -> bool:
    return leave_type.code == constants.UNPAID_LEAVE_CODE


def get_application(
    db: Session,
    company_id: int,
    application_id: int,
    lock: bool = False,
) -> Result[LeaveApplication]:
    query = db.query(LeaveApplication).filter(
        LeaveApplication.id == application_id,
        LeaveApplication.company_id == company_id,
    )
    if lock:
        db.flush()
        query = query.with_for_update().populate_existing()
    application = query.first()
    if application is None:
        return not_found(f"Leave application with id {application_id} not found", application_id=application_id)
    return Ok(application)


def get_application_for_viewer(
    db: Session,
    company_id: int,
    application_id: int,
    viewer: Employee,
) -> Result[LeaveApplication]:
    """Fetch an application the viewer may see: its owner, the owner's manager, HR or an executive."""
    found = get_application(db, company_id, application_id)
    if isinstance(found, Err):
        return found
    application = found.value
    if application.employee_id == viewer.id:
        return found
    if viewer.role in (Role.HR.value, Role.ADMIN.value) or viewer.role in [r.value for r in EXECUTIVE_ROLES]:
        return found

    profile = employee_directory.get_employee(db, company_id, application.employee_id)
    if isinstance(profile, Ok) and profile.value.manager_id == viewer.id:
        return found
    return authorization_error("You are not allowed to view this leave application")


def find_overlapping(
    db: Session,
    employee_id: int,
    start: date,
    end: date,
    exclude_application_id: Optional[int] = None,
) -> Optional[LeaveApplication]:
    """
    First PENDING_* or APPROVED application of the employee overlapping [start, end].

    Overlap: existing.end_date >= start AND existing.start_date <= end
    """
    query = db.query(LeaveApplication).filter(
        LeaveApplication.employee_id == employee_id,
        LeaveApplication.current_status.in_(BLOCKING_STATUSES),
        LeaveApplication.end_date >= start,
        LeaveApplication.start_date <= end,
    )
    if exclude_application_id:
        query = query.filter(LeaveApplication.id != exclude_application_id)
    return query.order_by(LeaveApplication.start_date).first()


def get_unpaid_usage_count(db: Session, company_id: int, employee_id: int, fiscal_year: int) -> int:
    usage = db.query(UnpaidLeaveUsage).filter(
        UnpaidLeaveUsage.employee_id == employee_id,
        UnpaidLeaveUsage.company_id == company_id,
        UnpaidLeaveUsage.fiscal_year == fiscal_year,
    ).first()
    return usage.usage_count if usage else 0


def _increment_unpaid_usage(db: Session, company_id: int, employee_id: int, fiscal_year: int) -> Result[int]:
    """Count one more approved unpaid leave; refuses to go past the yearly cap."""
    def _locked():
        return db.query(UnpaidLeaveUsage).filter(
            UnpaidLeaveUsage.employee_id == employee_id,
            UnpaidLeaveUsage.company_id == company_id,
            UnpaidLeaveUsage.fiscal_year == fiscal_year,
        ).with_for_update().populate_existing().first()

    usage = _locked()
    if usage is None:
        usage = UnpaidLeaveUsage(
            employee_id=employee_id,
            company_id=company_id,
            fiscal_year=fiscal_year,
            usage_count=0,
        )
        try:
            with db.begin_nested():
                db.add(usage)
                db.flush()
        except IntegrityError:
            usage = _locked()

    if usage.usage_count >= constants.UNPAID_MAX_USES_PER_FISCAL_YEAR:
        return business_rule(
            f"Unpaid leave can be taken at most {constants.UNPAID_MAX_USES_PER_FISCAL_YEAR} times per fiscal year",
            usage_count=usage.usage_count,
            fiscal_year=fiscal_year,
        )
    usage.usage_count += 1
    db.flush()
    return Ok(usage.usage_count)


def create_application(
    db: Session,
    company_id: int,
    employee_id: int,
    request: LeaveApplicationCreate,
    today: Optional[date] = None,
) -> Result[LeaveApplication]:
    """
    Submit a leave application and reserve its days.

    Validation order: dates, leave type and gender, overlap, requested days,
    return date, unpaid caps, balance reservation, attachment, relief officer.
    Any failure rolls the whole unit back, so nothing is reserved on error.

    Args:
        db: Database session (the caller commits)
        company_id: Tenant of the applicant
        employee_id: Applicant
        request: Typed application payload
        today: Evaluation date for accrual; defaults to the current date

    Returns:
        Ok(LeaveApplication) in PENDING_SUPERVISOR, or the first failing rule
    """
    if request.start_date > request.end_date:
        return validation_error(
            "start_date must be on or before end_date",
            start_date=request.start_date.isoformat(),
            end_date=request.end_date.isoformat(),
        )

    profile_result = employee_directory.get_employee(db, company_id, employee_id)
    if isinstance(profile_result, Err):
        return profile_result
    profile = profile_result.value

    type_result = leave_type_service.resolve_leave_type(db, company_id, request.leave_type_id)
    if isinstance(type_result, Err):
        return type_result
    leave_type = type_result.value
    if not leave_type.is_active:
        return business_rule(f"Leave type {leave_type.code} is not active", leave_type=leave_type.code)
    if not leave_type_service.applies_to_gender(leave_type, profile.gender):
        return business_rule(
            f"{leave_type.name} is only available to {leave_type.applicable_gender} employees",
            leave_type=leave_type.code,
            applicable_gender=leave_type.applicable_gender,
        )

    overlapping = find_overlapping(db, employee_id, request.start_date, request.end_date)
    if overlapping:
        return conflict(
            f"Leave application overlaps with existing leave from {overlapping.start_date} to {overlapping.end_date}",
            existing_application_id=overlapping.id,
            existing_status=overlapping.current_status.value,
        )

    calendar = load_calendar(
        db, company_id, request.start_date,
        request.end_date + timedelta(days=_RETURN_DATE_LOOKAHEAD_DAYS),
    )
    requested_days = ledger_service.to_days(
        count_leave_days(leave_type, request.start_date, request.end_date, calendar)
    )
    if requested_days <= 0:
        return validation_error(
            "The selected dates contain no leave days",
            start_date=request.start_date.isoformat(),
            end_date=request.end_date.isoformat(),
        )
    back_on = return_date(request.end_date, calendar)

    settings = resolve_settings(db, company_id)
    fiscal_year = fiscal_year_for(request.start_date, settings.fiscal_year_start_month)

    if is_unpaid_type(leave_type):
        if requested_days > constants.UNPAID_MAX_DAYS_PER_REQUEST:
            return business_rule(
                f"Unpaid leave cannot exceed {constants.UNPAID_MAX_DAYS_PER_REQUEST} consecutive days",
                requested=float(requested_days),
                max_days=float(constants.UNPAID_MAX_DAYS_PER_REQUEST),
            )
        used_count = get_unpaid_usage_count(db, company_id, employee_id, fiscal_year)
        if used_count >= constants.UNPAID_MAX_USES_PER_FISCAL_YEAR:
            return business_rule(
                f"Unpaid leave can be taken at most {constants.UNPAID_MAX_USES_PER_FISCAL_YEAR} times per fiscal year",
                usage_count=used_count,
                fiscal_year=fiscal_year,
            )

    application = LeaveApplication(
        company_id=company_id,
        employee_id=employee_id,
        leave_type_id=leave_type.id,
        fiscal_year=fiscal_year,
        start_date=request.start_date,
        end_date=request.end_date,
        return_date=back_on,
        requested_days=requested_days,
        reason=request.reason,
        attachment_url=request.attachment_url,
        relief_officer_id=request.relief_officer_id,
        current_status=ApplicationStatus.PENDING_SUPERVISOR,
    )
    db.add(application)
    db.flush()

    ensured = ledger_service.ensure_balance(db, company_id, employee_id, leave_type, fiscal_year, today)
    if isinstance(ensured, Err):
        return ensured
    reserved = ledger_service.reserve(
        db, ensured.value, requested_days,
        application_id=application.id, actor_id=employee_id, today=today,
    )
    if isinstance(reserved, Err):
        return reserved

    if leave_type.requires_attachment and not (request.attachment_url or "").strip():
        return business_rule(
            f"{leave_type.name} requires a supporting attachment",
            leave_type=leave_type.code,
        )

    if request.relief_officer_id is not None:
        if request.relief_officer_id == employee_id:
            return validation_error("Relief officer cannot be the applicant")
        if not employee_directory.employee_exists(db, company_id, request.relief_officer_id):
            return not_found("Relief officer not found", relief_officer_id=request.relief_officer_id)

    queue_notification(
        db,
        employee_directory.get_employee_email(db, company_id, profile.manager_id),
        f"Leave application from {profile.full_name}",
        f"{profile.full_name} applied for {ledger_service.format_days(requested_days)} day(s) of {leave_type.name} "
        f"from {request.start_date} to {request.end_date}. Please review it.",
    )
    logger.info(
        "Leave application created: id=%s employee_id=%s type=%s days=%s",
        application.id, employee_id, leave_type.code, requested_days
    )
    return Ok(application)


def can_act_on_stage(
    status: ApplicationStatus,
    actor: Employee,
    profile: EmployeeProfile,
    settings: LeaveSettings,
) -> bool:
    """
    Stage authorization shared by approve and reject.

    PENDING_CEO also admits HR once CEO approval has been switched off, so
    applications already waiting there can be finalised.
    """
    role = actor.role
    if role == Role.ADMIN.value:
        return True
    if status == ApplicationStatus.PENDING_SUPERVISOR:
        return profile.manager_id is not None and actor.id == profile.manager_id
    if status == ApplicationStatus.PENDING_HR:
        return role == Role.HR.value
    if status == ApplicationStatus.PENDING_CEO:
        if role in [r.value for r in EXECUTIVE_ROLES]:
            return True
        return role == Role.HR.value and not settings.require_ceo_approval_for_managers
    return False


def next_status_on_approve(
    status: ApplicationStatus,
    profile: EmployeeProfile,
    settings: LeaveSettings,
) -> ApplicationStatus:
    if status == ApplicationStatus.PENDING_SUPERVISOR:
        return ApplicationStatus.PENDING_HR
    if status == ApplicationStatus.PENDING_HR:
        if profile.is_manager_tier and settings.require_ceo_approval_for_managers:
            return ApplicationStatus.PENDING_CEO
        return ApplicationStatus.APPROVED
    return ApplicationStatus.APPROVED


def _swap_status(
    db: Session,
    application: LeaveApplication,
    expected: ApplicationStatus,
    new_status: ApplicationStatus,
) -> bool:
    """Compare-and-swap on current_status; False when another writer got there first."""
    result = db.execute(
        update(LeaveApplication)
        .where(
            LeaveApplication.id == application.id,
            LeaveApplication.current_status == expected,
        )
        .values(current_status=new_status, updated_at=func.current_timestamp())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return False
    db.expire(application, ["current_status", "updated_at"])
    return True


def _log_action(
    db: Session,
    application: LeaveApplication,
    actor: Employee,
    action: ApprovalAction,
    from_status: ApplicationStatus,
    to_status: ApplicationStatus,
    comments: Optional[str],
) -> None:
    db.add(LeaveApprovalLog(
        application_id=application.id,
        approver_id=actor.id,
        role_at_time=actor.role,
        action=action,
        from_status=from_status,
        to_status=to_status,
        comments=comments,
    ))


def _load_for_transition(
    db: Session,
    company_id: int,
    application_id: int,
    verb: str,
) -> Result[LeaveApplication]:
    found = get_application(db, company_id, application_id, lock=True)
    if isinstance(found, Err):
        return found
    application = found.value
    if application.current_status not in PENDING_STATUSES:
        return conflict(
            f"Cannot {verb} leave application with status {application.current_status.value}",
            status=application.current_status.value,
        )
    return Ok(application)


def approve_application(
    db: Session,
    company_id: int,
    application_id: int,
    approver: Employee,
    comments: Optional[str] = None,
    today: Optional[date] = None,
) -> Result[LeaveApplication]:
    """
    Move an application one approval stage forward.

    On the final stage the reserved days are committed to used days and, for
    unpaid leave, the yearly usage count is incremented. Approving an
    application that is already APPROVED, REJECTED or CANCELLED is a Conflict
    and leaves the ledger untouched.
    """
    loaded = _load_for_transition(db, company_id, application_id, "approve")
    if isinstance(loaded, Err):
        return loaded
    application = loaded.value
    status = application.current_status

    profile_result = employee_directory.get_employee(db, company_id, application.employee_id)
    if isinstance(profile_result, Err):
        return profile_result
    profile = profile_result.value
    settings = resolve_settings(db, company_id)

    if not can_act_on_stage(status, approver, profile, settings):
        return authorization_error(
            f"You are not authorized to approve applications at stage {status.value}",
            status=status.value,
            role=approver.role,
        )

    new_status = next_status_on_approve(status, profile, settings)
    if not _swap_status(db, application, status, new_status):
        return transient_conflict("Application status changed concurrently", application_id=application.id)

    leave_type = application.leave_type
    if new_status == ApplicationStatus.APPROVED:
        balance = ledger_service.find_balance(
            db, company_id, application.employee_id, application.leave_type_id, application.fiscal_year, lock=True
        )
        if balance is None:
            return not_found("Leave balance not found for application", application_id=application.id)
        committed = ledger_service.commit(
            db, balance, application.requested_days,
            application_id=application.id, actor_id=approver.id,
        )
        if isinstance(committed, Err):
            return committed
        if is_unpaid_type(leave_type):
            counted = _increment_unpaid_usage(db, company_id, application.employee_id, application.fiscal_year)
            if isinstance(counted, Err):
                return counted

    _log_action(db, application, approver, ApprovalAction.APPROVED, status, new_status, comments)
    db.flush()

    if new_status == ApplicationStatus.APPROVED:
        queue_notification(
            db, profile.email,
            "Leave application approved",
            f"Your {leave_type.name} from {application.start_date} to {application.end_date} has been approved. "
            f"You are expected back on {application.return_date}.",
        )
    else:
        queue_notification(
            db, profile.email,
            "Leave application forwarded",
            f"Your {leave_type.name} application was approved at {status.value} "
            f"and forwarded to {new_status.value}.",
        )
    logger.info(
        "Leave application %s: %s -> %s by employee_id=%s",
        application.id, status.value, new_status.value, approver.id
    )
    return Ok(application)


def reject_application(
    db: Session,
    company_id: int,
    application_id: int,
    approver: Employee,
    comments: Optional[str] = None,
) -> Result[LeaveApplication]:
    """Reject a pending application and release its reserved days."""
    loaded = _load_for_transition(db, company_id, application_id, "reject")
    if isinstance(loaded, Err):
        return loaded
    application = loaded.value
    status = application.current_status

    profile_result = employee_directory.get_employee(db, company_id, application.employee_id)
    if isinstance(profile_result, Err):
        return profile_result
    profile = profile_result.value
    settings = resolve_settings(db, company_id)

    if not can_act_on_stage(status, approver, profile, settings):
        return authorization_error(
            f"You are not authorized to reject applications at stage {status.value}",
            status=status.value,
            role=approver.role,
        )

    if not _swap_status(db, application, status, ApplicationStatus.REJECTED):
        return transient_conflict("Application status changed concurrently", application_id=application.id)

    balance = ledger_service.find_balance(
        db, company_id, application.employee_id, application.leave_type_id, application.fiscal_year, lock=True
    )
    if balance is None:
        return not_found("Leave balance not found for application", application_id=application.id)
    released = ledger_service.release(
        db, balance, application.requested_days,
        application_id=application.id, actor_id=approver.id,
    )
    if isinstance(released, Err):
        return released

    _log_action(db, application, approver, ApprovalAction.REJECTED, status, ApplicationStatus.REJECTED, comments)
    db.flush()

    queue_notification(
        db, profile.email,
        "Leave application rejected",
        f"Your {application.leave_type.name} from {application.start_date} to {application.end_date} "
        f"was rejected.{' Comments: ' + comments if comments else ''}",
    )
    logger.info("Leave application %s rejected at %s by employee_id=%s", application.id, status.value, approver.id)
    return Ok(application)


def cancel_application(
    db: Session,
    company_id: int,
    application_id: int,
    actor: Employee,
    reason: Optional[str] = None,
    today: Optional[date] = None,
) -> Result[LeaveApplication]:
    """
    Cancel an application on behalf of its owner.

    Pending applications release their reserved days. Approved leave can only be
    cancelled before its start date, and refunds its used days instead.
    """
    found = get_application(db, company_id, application_id, lock=True)
    if isinstance(found, Err):
        return found
    application = found.value
    status = application.current_status

    if application.employee_id != actor.id:
        return authorization_error("Only the applicant can cancel a leave application")
    if status not in BLOCKING_STATUSES:
        return conflict(
            f"Cannot cancel leave application with status {status.value}",
            status=status.value,
        )
    if status == ApplicationStatus.APPROVED and application.start_date <= today_or(today):
        return business_rule(
            "Approved leave can only be cancelled before it starts",
            start_date=application.start_date.isoformat(),
        )

    if not _swap_status(db, application, status, ApplicationStatus.CANCELLED):
        return transient_conflict("Application status changed concurrently", application_id=application.id)

    balance = ledger_service.find_balance(
        db, company_id, application.employee_id, application.leave_type_id, application.fiscal_year, lock=True
    )
    if balance is None:
        return not_found("Leave balance not found for application", application_id=application.id)
    if status == ApplicationStatus.APPROVED:
        undone = ledger_service.refund(
            db, balance, application.requested_days,
            application_id=application.id, actor_id=actor.id, remarks="Approved leave cancelled",
        )
    else:
        undone = ledger_service.release(
            db, balance, application.requested_days,
            application_id=application.id, actor_id=actor.id,
        )
    if isinstance(undone, Err):
        return undone

    _log_action(db, application, actor, ApprovalAction.CANCELLED, status, ApplicationStatus.CANCELLED, reason)
    db.flush()
    logger.info("Leave application %s cancelled from %s", application.id, status.value)
    return Ok(application)


def list_my_applications(
    db: Session,
    company_id: int,
    employee_id: int,
    status: Optional[ApplicationStatus] = None,
) -> List[LeaveApplication]:
    query = db.query(LeaveApplication).filter(
        LeaveApplication.company_id == company_id,
        LeaveApplication.employee_id == employee_id,
    )
    if status is not None:
        query = query.filter(LeaveApplication.current_status == status)
    return query.order_by(LeaveApplication.start_date.desc(), LeaveApplication.id.desc()).all()


def list_pending_for_approver(db: Session, company_id: int, approver: Employee) -> List[LeaveApplication]:
    """
    Applications waiting at a stage this approver may act on.

    Mirrors can_act_on_stage: direct reports at PENDING_SUPERVISOR, HR queue at
    PENDING_HR, executive queue at PENDING_CEO; ADMIN sees every pending stage.
    """
    query = db.query(LeaveApplication).filter(LeaveApplication.company_id == company_id)
    role = approver.role

    if role == Role.ADMIN.value:
        query = query.filter(LeaveApplication.current_status.in_(PENDING_STATUSES))
    else:
        settings = resolve_settings(db, company_id)
        direct_reports = db.query(Employment.employee_id).filter(
            Employment.company_id == company_id,
            Employment.manager_id == approver.id,
            Employment.is_active.is_(True),
        )
        conditions = [and_(
            LeaveApplication.current_status == ApplicationStatus.PENDING_SUPERVISOR,
            LeaveApplication.employee_id.in_(direct_reports),
        )]
        if role == Role.HR.value:
            conditions.append(LeaveApplication.current_status == ApplicationStatus.PENDING_HR)
            if not settings.require_ceo_approval_for_managers:
                conditions.append(LeaveApplication.current_status == ApplicationStatus.PENDING_CEO)
        if role in [r.value for r in EXECUTIVE_ROLES]:
            conditions.append(LeaveApplication.current_status == ApplicationStatus.PENDING_CEO)
        query = query.filter(or_(*conditions))

    return query.order_by(LeaveApplication.created_at, LeaveApplication.id).all()


def list_on_leave(db: Session, company_id: int, today: Optional[date] = None) -> List[Dict]:
    """Employees whose approved leave covers today."""
    on = today_or(today)
    rows = (
        db.query(LeaveApplication, Employee, LeaveType)
        .join(Employee, Employee.id == LeaveApplication.employee_id)
        .join(LeaveType, LeaveType.id == LeaveApplication.leave_type_id)
        .filter(
            LeaveApplication.company_id == company_id,
            LeaveApplication.current_status == ApplicationStatus.APPROVED,
            LeaveApplication.start_date <= on,
            LeaveApplication.end_date >= on,
        )
        .order_by(LeaveApplication.end_date)
        .all()
    )
    return [
        {
            "application_id": application.id,
            "employee_id": employee.id,
            "full_name": employee.full_name,
            "leave_type_code": leave_type.code,
            "start_date": application.start_date,
            "end_date": application.end_date,
            "return_date": application.return_date,
        }
        for application, employee, leave_type in rows
    ]


def leave_stats(
    db: Session,
    company_id: int,
    fiscal_year: Optional[int] = None,
    today: Optional[date] = None,
) -> Dict:
    """Application counts by status and approved days by leave type."""
    base = db.query(LeaveApplication).filter(LeaveApplication.company_id == company_id)
    if fiscal_year is not None:
        base = base.filter(LeaveApplication.fiscal_year == fiscal_year)

    by_status = {s.value: 0 for s in ApplicationStatus}
    for status, count in (
        base.with_entities(LeaveApplication.current_status, func.count(LeaveApplication.id))
        .group_by(LeaveApplication.current_status)
        .all()
    ):
        by_status[status.value] = count

    approved_days = {}
    for code, days in (
        base.join(LeaveType, LeaveType.id == LeaveApplication.leave_type_id)
        .filter(LeaveApplication.current_status == ApplicationStatus.APPROVED)
        .with_entities(LeaveType.code, func.sum(LeaveApplication.requested_days))
        .group_by(LeaveType.code)
        .all()
    ):
        approved_days[code] = ledger_service.to_days(days)

    return {
        "fiscal_year": fiscal_year,
        "total_applications": sum(by_status.values()),
        "by_status": by_status,
        "approved_days_by_type": approved_days,
        "on_leave_today": len(list_on_leave(db, company_id, today)),
    }
