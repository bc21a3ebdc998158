"""
Dependencies and guards for FastAPI endpoints
"""
from typing import Generator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from leave_engine.core.config import Settings
from leave_engine.core.errors import unwrap
from leave_engine.core.security import decode_token
from leave_engine.db.transaction import run_in_transaction
from leave_engine.models.employee import Employee, Role
from leave_engine.services.notification_service import Notifier


security = HTTPBearer()


def get_settings_dep(request: Request) -> Settings:
    return request.app.state.settings


def get_db(request: Request) -> Generator:
    """Dependency for getting database session from the app's session factory"""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
) -> Employee:
    """
    Get current authenticated user from JWT token
    """
    token = credentials.credentials

    try:
        payload = decode_token(settings, token)
        sub_value = payload.get("sub")
        if sub_value is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid authentication credentials",
                headers={"WWW-Authenticate": "Bearer"},
            )
        # sub is the employee id as a string
        employee_id: int = int(sub_value)
    except (ValueError, TypeError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if employee is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not employee.active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user"
        )

    return employee


def require_roles(*allowed_roles: Role):
    """
    Dependency factory for role-based access control

    Usage:
        @router.get("/hr-only")
        def hr_endpoint(user: Employee = Depends(require_roles(Role.HR))):
            ...
    """
    allowed = {r.value for r in allowed_roles}

    def role_checker(current_user: Employee = Depends(get_current_user)) -> Employee:
        # ADMIN passes every role check
        if current_user.role == Role.ADMIN.value:
            return current_user

        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required roles: {sorted(allowed)}"
            )
        return current_user
    return role_checker


class TransactionRunner:
    """
    Runs a service operation through run_in_transaction and unwraps its Result.

    Bound per request to the request's session, the configured retry bounds and
    the app's notifier.
    """

    def __init__(self, db: Session, settings: Settings, notifier: Notifier):
        self.db = db
        self.settings = settings
        self.notifier = notifier

    def __call__(self, operation, *args, **kwargs):
        result = run_in_transaction(
            self.db,
            operation,
            *args,
            max_attempts=self.settings.TRANSACTION_MAX_ATTEMPTS,
            wait_seconds=self.settings.TRANSACTION_RETRY_WAIT_SECONDS,
            notifier=self.notifier,
            **kwargs,
        )
        return unwrap(result)


def get_runner(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
    notifier: Notifier = Depends(get_notifier),
) -> TransactionRunner:
    return TransactionRunner(db, settings, notifier)
