"""
Tests for recalling employees from approved leave
"""
from datetime import date
from decimal import Decimal

import pytest

from leave_engine.core.result import ErrorKind, Ok
from leave_engine.db.transaction import run_in_transaction
from leave_engine.models.leave import LeaveRecall, RecallStatus
from leave_engine.schemas.leave import LeaveApplicationCreate
from leave_engine.schemas.recall import RecallCreate, RecallResponse
from leave_engine.services import leave_service, ledger_service, recall_service

FIRST_DAY = date(2026, 10, 1)
LAST_DAY = date(2026, 10, 20)
DAY_TEN = date(2026, 10, 10)
DAY_TWELVE = date(2026, 10, 12)


@pytest.fixture
def sick_leave(db, company, staff_employee, manager_employee, hr_employee, leave_types):
    """Approved sick leave from the 1st to the 20th of October"""
    request = LeaveApplicationCreate(
        leave_type_id=leave_types["SICK"].id, start_date=FIRST_DAY, end_date=LAST_DAY, attachment_url="note.pdf"
    )
    application = run_in_transaction(
        db, leave_service.create_application, company.id, staff_employee.id, request,
        today=date(2026, 9, 20), wait_seconds=0,
    ).value
    for approver in (manager_employee, hr_employee):
        assert isinstance(
            run_in_transaction(db, leave_service.approve_application, company.id, application.id, approver,
                               wait_seconds=0),
            Ok,
        )
    return application


def _recall(db, company, initiator, application, recall_date=DAY_TWELVE, today=DAY_TEN):
    request = RecallCreate(application_id=application.id, recall_date=recall_date, reason="Audit next week")
    return run_in_transaction(
        db, recall_service.create_recall, company.id, initiator, request, today=today, wait_seconds=0
    )


def _respond(db, company, recall, responder, decision="ACCEPTED", actual_return_date=None):
    request = RecallResponse(decision=decision, actual_return_date=actual_return_date)
    return run_in_transaction(
        db, recall_service.respond_to_recall, company.id, recall.id, responder, request, wait_seconds=0
    )


def _balance(db, company, application):
    return ledger_service.find_balance(
        db, company.id, application.employee_id, application.leave_type_id, application.fiscal_year
    )


def test_accepted_recall_restores_remaining_days(db, company, hr_employee, staff_employee, sick_leave):
    # 1st-20th: weekdays plus half Saturdays
    assert sick_leave.requested_days == Decimal("15.5")
    assert _balance(db, company, sick_leave).used_days == Decimal("15.5")

    recall = _recall(db, company, hr_employee, sick_leave).value
    assert recall.status == RecallStatus.PENDING

    accepted = _respond(db, company, recall, staff_employee)

    assert accepted.value.status == RecallStatus.ACCEPTED
    # 12th-20th is 7.5 leave days
    assert recall.days_restored == Decimal("7.5")
    assert recall.actual_return_date == DAY_TWELVE
    db.refresh(sick_leave)
    assert sick_leave.end_date == DAY_TWELVE
    assert sick_leave.return_date == DAY_TWELVE
    assert sick_leave.requested_days == Decimal("8")
    assert _balance(db, company, sick_leave).used_days == Decimal("8")


def test_actual_return_date_overrides_recall_date(db, company, hr_employee, staff_employee, sick_leave):
    recall = _recall(db, company, hr_employee, sick_leave).value

    _respond(db, company, recall, staff_employee, actual_return_date=date(2026, 10, 19))

    # 19th-20th
    assert recall.days_restored == Decimal("2")
    assert _balance(db, company, sick_leave).used_days == Decimal("13.5")


def test_declined_recall_leaves_ledger_alone(db, company, manager_employee, staff_employee, sick_leave):
    recall = _recall(db, company, manager_employee, sick_leave).value

    declined = _respond(db, company, recall, staff_employee, decision="DECLINED")

    assert declined.value.status == RecallStatus.DECLINED
    assert recall.days_restored is None
    assert _balance(db, company, sick_leave).used_days == Decimal("15.5")
    db.refresh(sick_leave)
    assert sick_leave.end_date == LAST_DAY


def test_recall_requires_leave_in_progress(db, company, hr_employee, sick_leave):
    result = _recall(db, company, hr_employee, sick_leave, today=date(2026, 9, 30))

    assert result.error.kind == ErrorKind.VALIDATION


@pytest.mark.parametrize("recall_date", [DAY_TEN, date(2026, 10, 21)])
def test_recall_date_must_fall_after_today_within_leave(db, company, hr_employee, sick_leave, recall_date):
    result = _recall(db, company, hr_employee, sick_leave, recall_date=recall_date)

    assert result.error.kind == ErrorKind.VALIDATION


def test_only_manager_or_hr_may_recall(db, company, other_employee, sick_leave):
    result = _recall(db, company, other_employee, sick_leave)

    assert result.error.kind == ErrorKind.AUTHORIZATION


def test_one_pending_recall_per_application(db, company, hr_employee, manager_employee, sick_leave):
    first = _recall(db, company, hr_employee, sick_leave)
    second = _recall(db, company, manager_employee, sick_leave)

    assert isinstance(first, Ok)
    assert second.error.kind == ErrorKind.CONFLICT
    assert db.query(LeaveRecall).count() == 1


def test_pending_application_cannot_be_recalled(db, company, hr_employee, staff_employee, leave_types):
    request = LeaveApplicationCreate(leave_type_id=leave_types["MOURNING"].id, start_date=DAY_TEN, end_date=DAY_TWELVE)
    application = run_in_transaction(
        db, leave_service.create_application, company.id, staff_employee.id, request,
        today=DAY_TEN, wait_seconds=0,
    ).value

    assert _recall(db, company, hr_employee, application).error.kind == ErrorKind.CONFLICT


def test_only_employee_on_leave_responds(db, company, hr_employee, other_employee, sick_leave):
    recall = _recall(db, company, hr_employee, sick_leave).value

    assert _respond(db, company, recall, other_employee).error.kind == ErrorKind.AUTHORIZATION
    assert _respond(db, company, recall, hr_employee).error.kind == ErrorKind.AUTHORIZATION


def test_responding_twice_is_a_conflict(db, company, hr_employee, staff_employee, sick_leave):
    recall = _recall(db, company, hr_employee, sick_leave).value
    _respond(db, company, recall, staff_employee)

    again = _respond(db, company, recall, staff_employee, decision="DECLINED")

    assert again.error.kind == ErrorKind.CONFLICT
    assert _balance(db, company, sick_leave).used_days == Decimal("8")


def test_initiator_can_withdraw_pending_recall(db, company, hr_employee, manager_employee, sick_leave):
    recall = _recall(db, company, hr_employee, sick_leave).value
    recall_id = recall.id

    refused = run_in_transaction(db, recall_service.cancel_recall, company.id, recall_id, manager_employee,
                                 wait_seconds=0)
    withdrawn = run_in_transaction(db, recall_service.cancel_recall, company.id, recall_id, hr_employee,
                                   wait_seconds=0)

    assert refused.error.kind == ErrorKind.AUTHORIZATION
    assert withdrawn.value == recall_id
    assert db.query(LeaveRecall).count() == 0


def test_recallable_excludes_pending_recalls(db, company, hr_employee, staff_employee, sick_leave):
    rows = recall_service.list_recallable(db, company.id, today=DAY_TEN)
    assert [row["application_id"] for row in rows] == [sick_leave.id]

    _recall(db, company, hr_employee, sick_leave)

    assert recall_service.list_recallable(db, company.id, today=DAY_TEN) == []
    assert recall_service.list_recallable(db, company.id, today=LAST_DAY) == []


def test_recall_listings(db, company, hr_employee, staff_employee, other_employee, sick_leave):
    recall = _recall(db, company, hr_employee, sick_leave).value

    assert [r.id for r in recall_service.list_recalls(db, company.id, RecallStatus.PENDING)] == [recall.id]
    assert recall_service.list_recalls(db, company.id, RecallStatus.ACCEPTED) == []
    assert [r.id for r in recall_service.list_my_recalls(db, company.id, staff_employee.id)] == [recall.id]
    assert recall_service.list_my_recalls(db, company.id, other_employee.id) == []


def test_employee_is_notified_of_recall(db, company, hr_employee, staff_employee, sick_leave, notifier):
    request = RecallCreate(application_id=sick_leave.id, recall_date=DAY_TWELVE, reason="Audit next week")
    run_in_transaction(
        db, recall_service.create_recall, company.id, hr_employee, request,
        today=DAY_TEN, wait_seconds=0, notifier=notifier,
    )

    assert notifier.sent[-1].recipient == staff_employee.email
    assert "Audit next week" in notifier.sent[-1].body
