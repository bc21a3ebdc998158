"""
Tests for the transaction runner and error mapping
"""
import pytest
from fastapi import HTTPException

from leave_engine.core.errors import unwrap
from leave_engine.core.result import Err, ErrorKind, Ok, conflict, transient_conflict
from leave_engine.db.transaction import run_in_transaction
from leave_engine.models import Company
from leave_engine.services.notification_service import queue_notification
from leave_engine.tests.conftest import RecordingNotifier


class FlakyOperation:
    """Loses the store race a fixed number of times before succeeding"""

    def __init__(self, failures: int):
        self.failures = failures
        self.calls = 0

    def __call__(self, db):
        self.calls += 1
        if self.calls <= self.failures:
            return transient_conflict("row changed", attempt=self.calls)
        return Ok(self.calls)


def test_retries_until_success(db):
    operation = FlakyOperation(failures=2)

    result = run_in_transaction(db, operation, max_attempts=3, wait_seconds=0)

    assert result == Ok(3)
    assert operation.calls == 3


def test_gives_up_after_max_attempts(db):
    operation = FlakyOperation(failures=10)

    result = run_in_transaction(db, operation, max_attempts=3, wait_seconds=0)

    assert isinstance(result, Err)
    assert result.error.retryable
    assert operation.calls == 3


def test_non_transient_errors_are_not_retried(db):
    calls = []

    def operation(db):
        calls.append(1)
        return conflict("already approved")

    result = run_in_transaction(db, operation, max_attempts=3, wait_seconds=0)

    assert result.error.kind == ErrorKind.CONFLICT
    assert len(calls) == 1


def test_err_rolls_back_the_unit(db):
    def operation(db):
        db.add(Company(name="Half Written"))
        db.flush()
        return conflict("changed my mind")

    run_in_transaction(db, operation, wait_seconds=0)

    assert db.query(Company).filter(Company.name == "Half Written").count() == 0


def test_ok_commits_the_unit(db):
    def operation(db):
        company = Company(name="Initech")
        db.add(company)
        db.flush()
        return Ok(company.id)

    result = run_in_transaction(db, operation, wait_seconds=0)

    db.expire_all()
    assert db.query(Company).filter(Company.id == result.value).one().name == "Initech"


def test_unique_violation_becomes_transient(db, company):
    calls = []

    def operation(db):
        calls.append(1)
        db.add(Company(name=company.name))
        db.flush()
        return Ok(None)

    result = run_in_transaction(db, operation, max_attempts=2, wait_seconds=0)

    assert result.error.kind == ErrorKind.TRANSIENT_STORE_CONFLICT
    assert len(calls) == 2
    assert db.query(Company).count() == 1


def test_notifications_only_after_commit(db):
    notifier = RecordingNotifier()

    def failing(db):
        queue_notification(db, "someone@acme.test", "Should not arrive", "")
        return conflict("nope")

    def succeeding(db):
        queue_notification(db, "someone@acme.test", "Hello", "")
        queue_notification(db, None, "No address", "")
        return Ok(None)

    run_in_transaction(db, failing, wait_seconds=0, notifier=notifier)
    assert notifier.sent == []

    run_in_transaction(db, succeeding, wait_seconds=0, notifier=notifier)
    assert [n.subject for n in notifier.sent] == ["Hello"]


class BadHeaderNotifier:
    def notify(self, recipient, subject, body):
        raise ValueError("bad header")


def test_notifier_failure_after_commit_does_not_fail_the_operation(db):
    def create_company(db):
        db.add(Company(name="Initech"))
        db.flush()
        queue_notification(db, "someone@acme.test", "Created", "")
        return Ok("created")

    result = run_in_transaction(db, create_company, wait_seconds=0, notifier=BadHeaderNotifier())

    assert result == Ok("created")
    assert db.query(Company).filter(Company.name == "Initech").count() == 1


@pytest.mark.parametrize("error,expected_status", [
    (conflict("x"), 409),
    (transient_conflict("x"), 503),
])
def test_unwrap_maps_kinds_to_status(error, expected_status):
    with pytest.raises(HTTPException) as exc_info:
        unwrap(error)

    assert exc_info.value.status_code == expected_status
    assert exc_info.value.detail["kind"] == error.error.kind.value
    if error.error.retryable:
        assert exc_info.value.headers == {"Retry-After": "1"}


def test_unwrap_returns_value():
    assert unwrap(Ok(42)) == 42
