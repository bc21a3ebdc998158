"""
Recall subsystem - bringing an employee back early from approved leave.

An accepted recall refunds the days between the return date and the original
end date to the ledger and truncates the application.
"""
import logging
from datetime import date, timedelta
from typing import Dict, List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from leave_engine.core.result import (
    Err,
    Ok,
    Result,
    authorization_error,
    conflict,
    not_found,
    transient_conflict,
    validation_error,
)
from leave_engine.models.employee import Employee, Role
from leave_engine.models.leave import ApplicationStatus, LeaveApplication, LeaveRecall, RecallStatus
from leave_engine.schemas.recall import RecallCreate, RecallResponse
from leave_engine.services import employee_directory, ledger_service, leave_service
from leave_engine.services.holiday_service import load_calendar
from leave_engine.services.notification_service import queue_notification
from leave_engine.services.working_days import count_leave_days
from leave_engine.utils.datetime_utils import now_utc, today_or

logger = logging.getLogger(__name__)

RECALL_ROLES = (Role.HR.value, Role.ADMIN.value)


def get_recall(db: Session, company_id: int, recall_id: int, lock: bool = False) -> Result[LeaveRecall]:
    query = db.query(LeaveRecall).filter(
        LeaveRecall.id == recall_id,
        LeaveRecall.company_id == company_id,
    )
    if lock:
        db.flush()
        query = query.with_for_update().populate_existing()
    recall = query.first()
    if recall is None:
        return not_found(f"Leave recall with id {recall_id} not found", recall_id=recall_id)
    return Ok(recall)


def find_pending_recall(db: Session, application_id: int) -> Optional[LeaveRecall]:
    return db.query(LeaveRecall).filter(
        LeaveRecall.application_id == application_id,
        LeaveRecall.status == RecallStatus.PENDING,
    ).first()


def create_recall(
    db: Session,
    company_id: int,
    initiator: Employee,
    request: RecallCreate,
    today: Optional[date] = None,
) -> Result[LeaveRecall]:
    """
    Ask an employee on approved leave to come back early.

    Valid only while the leave is in progress (today within [start, end]) and
    for a recall date in (today, end]. One PENDING recall per application.
    The initiator must be the employee's manager, HR or ADMIN.
    """
    found = leave_service.get_application(db, company_id, request.application_id, lock=True)
    if isinstance(found, Err):
        return found
    application = found.value
    on = today_or(today)

    profile = employee_directory.get_employee(db, company_id, application.employee_id)
    if isinstance(profile, Err):
        return profile
    if initiator.role not in RECALL_ROLES and initiator.id != profile.value.manager_id:
        return authorization_error("Only the employee's manager, HR or an administrator can recall leave")

    if application.current_status != ApplicationStatus.APPROVED:
        return conflict(
            f"Only approved leave can be recalled (status {application.current_status.value})",
            status=application.current_status.value,
        )
    if not application.start_date <= on <= application.end_date:
        return validation_error(
            "Leave can only be recalled while it is in progress",
            start_date=application.start_date.isoformat(),
            end_date=application.end_date.isoformat(),
            today=on.isoformat(),
        )
    if not on < request.recall_date <= application.end_date:
        return validation_error(
            "Recall date must be after today and no later than the leave end date",
            recall_date=request.recall_date.isoformat(),
            end_date=application.end_date.isoformat(),
        )

    existing = find_pending_recall(db, application.id)
    if existing:
        return conflict(
            "A pending recall already exists for this leave application",
            recall_id=existing.id,
        )

    recall = LeaveRecall(
        company_id=company_id,
        application_id=application.id,
        initiated_by_id=initiator.id,
        reason=request.reason,
        recall_date=request.recall_date,
        status=RecallStatus.PENDING,
    )
    db.add(recall)
    db.flush()

    queue_notification(
        db, profile.value.email,
        "You have been recalled from leave",
        f"{initiator.full_name} asked you to return from leave on {request.recall_date}. "
        f"Reason: {request.reason}",
    )
    logger.info(
        "Recall created: id=%s application_id=%s recall_date=%s by employee_id=%s",
        recall.id, application.id, request.recall_date, initiator.id
    )
    return Ok(recall)


def _close_recall(db: Session, recall: LeaveRecall, new_status: RecallStatus) -> bool:
    """Compare-and-swap PENDING -> new_status."""
    result = db.execute(
        update(LeaveRecall)
        .where(LeaveRecall.id == recall.id, LeaveRecall.status == RecallStatus.PENDING)
        .values(status=new_status)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        return False
    db.expire(recall, ["status"])
    return True


def respond_to_recall(
    db: Session,
    company_id: int,
    recall_id: int,
    responder: Employee,
    request: RecallResponse,
) -> Result[LeaveRecall]:
    """
    Accept or decline a recall on behalf of the employee on leave.

    ACCEPTED: restored = leave days in [return date, original end date], where
    the return date is actual_return_date or the recall date. When positive,
    the days are refunded and the application's end date, return date and
    requested days are reduced. DECLINED closes the recall with no ledger change.
    """
    found = get_recall(db, company_id, recall_id, lock=True)
    if isinstance(found, Err):
        return found
    recall = found.value
    if recall.status != RecallStatus.PENDING:
        return conflict(f"Recall has already been {recall.status.value.lower()}", status=recall.status.value)

    app_result = leave_service.get_application(db, company_id, recall.application_id, lock=True)
    if isinstance(app_result, Err):
        return app_result
    application = app_result.value
    if application.employee_id != responder.id:
        return authorization_error("Only the employee on leave can respond to this recall")

    if request.decision == RecallStatus.DECLINED.value:
        if not _close_recall(db, recall, RecallStatus.DECLINED):
            return transient_conflict("Recall changed concurrently", recall_id=recall.id)
        recall.employee_response = request.response
        recall.responded_at = now_utc()
        db.flush()
        _notify_initiator(db, company_id, recall, responder, "declined")
        logger.info("Recall %s declined", recall.id)
        return Ok(recall)

    if application.current_status != ApplicationStatus.APPROVED:
        return conflict(
            f"Leave application is no longer approved (status {application.current_status.value})",
            status=application.current_status.value,
        )
    back_on = request.actual_return_date or recall.recall_date
    if back_on < application.start_date:
        return validation_error(
            "Return date cannot be before the leave start date",
            actual_return_date=back_on.isoformat(),
            start_date=application.start_date.isoformat(),
        )

    original_end = application.end_date
    restored = ledger_service.ZERO
    if back_on <= original_end:
        calendar = load_calendar(db, company_id, back_on, original_end + timedelta(days=1))
        restored = ledger_service.to_days(
            count_leave_days(application.leave_type, back_on, original_end, calendar)
        )

    if not _close_recall(db, recall, RecallStatus.ACCEPTED):
        return transient_conflict("Recall changed concurrently", recall_id=recall.id)

    if restored > 0:
        balance = ledger_service.find_balance(
            db, company_id, application.employee_id, application.leave_type_id, application.fiscal_year, lock=True
        )
        if balance is None:
            return not_found("Leave balance not found for application", application_id=application.id)
        refunded = ledger_service.refund(
            db, balance, restored,
            application_id=application.id, actor_id=responder.id,
            remarks=f"Recall {recall.id} accepted",
        )
        if isinstance(refunded, Err):
            return refunded
        application.end_date = back_on
        application.return_date = back_on
        application.requested_days = ledger_service.to_days(application.requested_days) - restored

    recall.actual_return_date = back_on
    recall.days_restored = restored
    recall.employee_response = request.response
    recall.responded_at = now_utc()
    db.flush()

    _notify_initiator(db, company_id, recall, responder, "accepted")
    logger.info(
        "Recall %s accepted: application_id=%s return=%s restored=%s",
        recall.id, application.id, back_on, restored
    )
    return Ok(recall)


def _notify_initiator(db: Session, company_id: int, recall: LeaveRecall, responder: Employee, verb: str) -> None:
    queue_notification(
        db,
        employee_directory.get_employee_email(db, company_id, recall.initiated_by_id),
        f"Leave recall {verb}",
        f"{responder.full_name} has {verb} the recall to return on {recall.recall_date}.",
    )


def cancel_recall(db: Session, company_id: int, recall_id: int, actor: Employee) -> Result[int]:
    """Withdraw a PENDING recall; only its initiator may do so. No ledger effect."""
    found = get_recall(db, company_id, recall_id, lock=True)
    if isinstance(found, Err):
        return found
    recall = found.value
    if recall.initiated_by_id != actor.id:
        return authorization_error("Only the initiator can cancel this recall")
    if recall.status != RecallStatus.PENDING:
        return conflict(
            f"Only pending recalls can be cancelled (status {recall.status.value})",
            status=recall.status.value,
        )

    db.delete(recall)
    db.flush()
    logger.info("Recall %s cancelled by employee_id=%s", recall_id, actor.id)
    return Ok(recall_id)


def list_recalls(db: Session, company_id: int, status: Optional[RecallStatus] = None) -> List[LeaveRecall]:
    query = db.query(LeaveRecall).filter(LeaveRecall.company_id == company_id)
    if status is not None:
        query = query.filter(LeaveRecall.status == status)
    return query.order_by(LeaveRecall.created_at.desc(), LeaveRecall.id.desc()).all()


def list_my_recalls(db: Session, company_id: int, employee_id: int) -> List[LeaveRecall]:
    """Recalls on the employee's own applications."""
    return (
        db.query(LeaveRecall)
        .join(LeaveApplication, LeaveApplication.id == LeaveRecall.application_id)
        .filter(
            LeaveRecall.company_id == company_id,
            LeaveApplication.employee_id == employee_id,
        )
        .order_by(LeaveRecall.created_at.desc(), LeaveRecall.id.desc())
        .all()
    )


def list_recallable(db: Session, company_id: int, today: Optional[date] = None) -> List[Dict]:
    """Employees on leave today whose leave has no pending recall and ends after today."""
    on = today_or(today)
    return [
        row for row in leave_service.list_on_leave(db, company_id, on)
        if row["end_date"] > on and find_pending_recall(db, row["application_id"]) is None
    ]
