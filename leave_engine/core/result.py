"""
Typed outcomes for leave operations.

Services return ``Ok(value)`` or ``Err(LeaveError)`` instead of raising, so the
transaction runner can decide to commit, roll back or retry without unwinding
the stack mid-transaction.
"""
import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, enum.Enum):
    VALIDATION = "VALIDATION"
    AUTHORIZATION = "AUTHORIZATION"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    BUSINESS_RULE_VIOLATION = "BUSINESS_RULE_VIOLATION"
    TRANSIENT_STORE_CONFLICT = "TRANSIENT_STORE_CONFLICT"


@dataclass(frozen=True)
class LeaveError:
    kind: ErrorKind
    message: str
    context: Dict[str, Any] = field(default_factory=dict)

    @property
    def retryable(self) -> bool:
        return self.kind is ErrorKind.TRANSIENT_STORE_CONFLICT


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    error: LeaveError

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]


def validation_error(message: str, **context: Any) -> Err:
    return Err(LeaveError(ErrorKind.VALIDATION, message, context))


def authorization_error(message: str, **context: Any) -> Err:
    return Err(LeaveError(ErrorKind.AUTHORIZATION, message, context))


def not_found(message: str, **context: Any) -> Err:
    return Err(LeaveError(ErrorKind.NOT_FOUND, message, context))


def conflict(message: str, **context: Any) -> Err:
    return Err(LeaveError(ErrorKind.CONFLICT, message, context))


def business_rule(message: str, **context: Any) -> Err:
    return Err(LeaveError(ErrorKind.BUSINESS_RULE_VIOLATION, message, context))


def transient_conflict(message: str, **context: Any) -> Err:
    return Err(LeaveError(ErrorKind.TRANSIENT_STORE_CONFLICT, message, context))
