"""
Employee directory adapter

Read-only view of an employee and their single active employment.
"""
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from leave_engine.core.constants import MANAGER_TIER_LEVELS
from leave_engine.core.result import ErrorKind, LeaveError, Err, Ok, Result, not_found
from leave_engine.models.employee import Employee, Employment, Gender


@dataclass(frozen=True)
class EmployeeProfile:
    id: int
    company_id: int
    full_name: str
    email: Optional[str]
    gender: Optional[Gender]
    role: str
    hire_date: date
    manager_id: Optional[int]
    level: Optional[str]
    monthly_salary: Optional[Decimal]

    @property
    def is_manager_tier(self) -> bool:
        return self.level in MANAGER_TIER_LEVELS


def normalize_gender(value: Optional[str]) -> Optional[Gender]:
    """Map free-form gender strings ("M", "male", "Female") onto Gender."""
    if not value:
        return None
    v = value.strip().lower()
    if v in ("m", "male"):
        return Gender.MALE
    if v in ("f", "female"):
        return Gender.FEMALE
    return None


def get_active_employment(db: Session, company_id: int, employee_id: int) -> Result[Employment]:
    """
    Resolve the employee's active employment.

    Returns NotFound when there is none and an ambiguity Conflict when the
    active predicate matches more than one row.
    """
    rows = (
        db.query(Employment)
        .filter(
            Employment.employee_id == employee_id,
            Employment.company_id == company_id,
            Employment.is_active.is_(True),
        )
        .limit(2)
        .all()
    )
    if not rows:
        return not_found("No active employment for employee", employee_id=employee_id)
    if len(rows) > 1:
        return Err(LeaveError(
            ErrorKind.CONFLICT,
            "Employee has more than one active employment",
            {"employee_id": employee_id, "ambiguous": True},
        ))
    return Ok(rows[0])


def get_employee(db: Session, company_id: int, employee_id: int) -> Result[EmployeeProfile]:
    """Load an employee of the company together with their active employment."""
    employee = db.query(Employee).filter(
        Employee.id == employee_id,
        Employee.company_id == company_id,
    ).first()
    if employee is None:
        return not_found("Employee not found", employee_id=employee_id)

    employment_result = get_active_employment(db, company_id, employee_id)
    if isinstance(employment_result, Err):
        return employment_result
    employment = employment_result.value

    return Ok(EmployeeProfile(
        id=employee.id,
        company_id=employee.company_id,
        full_name=employee.full_name,
        email=employee.email,
        gender=normalize_gender(employee.gender),
        role=employee.role,
        hire_date=employment.start_date,
        manager_id=employment.manager_id,
        level=employment.job_level,
        monthly_salary=employment.monthly_salary,
    ))


def get_employee_email(db: Session, company_id: int, employee_id: Optional[int]) -> Optional[str]:
    if employee_id is None:
        return None
    employee = db.query(Employee).filter(
        Employee.id == employee_id,
        Employee.company_id == company_id,
    ).first()
    return employee.email if employee else None


def employee_exists(db: Session, company_id: int, employee_id: int) -> bool:
    return db.query(Employee.id).filter(
        Employee.id == employee_id,
        Employee.company_id == company_id,
    ).first() is not None
