"""
Transaction runner for leave mutations

Every externally triggered mutation goes through ``run_in_transaction``: the
operation returns a Result, the runner commits on Ok and rolls back on Err.
Only TransientStoreConflict outcomes are retried, a bounded number of times.
"""
import logging
from typing import Any, Callable, Optional

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from tenacity import Retrying, retry_if_result, stop_after_attempt, wait_exponential

from leave_engine.core.result import Err, Result, transient_conflict
from leave_engine.services import notification_service

logger = logging.getLogger(__name__)


def _is_transient(result: Result) -> bool:
    return isinstance(result, Err) and result.error.retryable


def _return_last_result(retry_state) -> Result:
    return retry_state.outcome.result()


def _attempt(db: Session, operation: Callable[..., Result], args, kwargs) -> Result:
    notification_service.clear_queued(db)
    try:
        result = operation(db, *args, **kwargs)
        if isinstance(result, Err):
            db.rollback()
            notification_service.clear_queued(db)
            return result
        db.commit()
        return result
    except (IntegrityError, OperationalError) as e:
        db.rollback()
        notification_service.clear_queued(db)
        logger.warning("Store conflict in %s: %s", getattr(operation, "__name__", operation), e.orig)
        return transient_conflict(
            "The record was changed concurrently, please retry",
            operation=getattr(operation, "__name__", str(operation)),
        )


def run_in_transaction(
    db: Session,
    operation: Callable[..., Result],
    *args: Any,
    max_attempts: int = 3,
    wait_seconds: float = 0.05,
    notifier: Optional[notification_service.Notifier] = None,
    **kwargs: Any,
) -> Result:
    """
    Run ``operation(db, *args, **kwargs)`` as one atomic unit.

    Args:
        db: Session the operation runs in; committed or rolled back here
        operation: Callable returning Ok/Err
        max_attempts: Upper bound on attempts for transient conflicts
        wait_seconds: Base of the exponential wait between attempts
        notifier: When given, notifications queued by the operation are sent after commit

    Returns:
        The operation's Result; the last transient Err when attempts run out
    """
    retrying = Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=wait_seconds, max=max(wait_seconds * 8, wait_seconds)),
        retry=retry_if_result(_is_transient),
        retry_error_callback=_return_last_result,
    )
    result = retrying(_attempt, db, operation, args, kwargs)

    if _is_transient(result):
        logger.error(
            "Giving up on %s after %d attempts",
            getattr(operation, "__name__", operation), max_attempts
        )
    elif not isinstance(result, Err) and notifier is not None:
        notification_service.dispatch_queued(db, notifier)
    return result
