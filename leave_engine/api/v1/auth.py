"""
Authentication endpoints
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from leave_engine.core.config import Settings
from leave_engine.core.deps import get_db, get_settings_dep
from leave_engine.core.security import verify_password, create_access_token
from leave_engine.models.employee import Employee
from leave_engine.schemas.auth import LoginRequest, TokenResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
def login(
    login_data: LoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings_dep),
):
    """
    Authenticate user and return JWT token

    Validates email and password, rejects inactive employees.
    """
    employee = db.query(Employee).filter(
        func.lower(Employee.email) == login_data.email.strip().lower()
    ).first()

    if not employee:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    if not employee.active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is inactive"
        )

    if employee.password_hash is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No password set for this account"
        )

    if not verify_password(login_data.password, employee.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )

    # JWT 'sub' claim must be a string
    token_data = {
        "sub": str(employee.id),
        "company_id": employee.company_id,
        "role": employee.role,
    }
    access_token = create_access_token(settings, token_data)
    logger.info("Login succeeded for employee_id=%s", employee.id)

    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        employee_id=employee.id,
        company_id=employee.company_id,
        role=employee.role,
    )
