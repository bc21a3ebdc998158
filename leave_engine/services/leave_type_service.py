"""
Leave type registry - per-company leave categories
"""
import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session

from leave_engine.core.constants import ANNUAL_LEAVE_CODE, UNPAID_LEAVE_CODE
from leave_engine.core.result import Err, Ok, Result, conflict, not_found
from leave_engine.models.employee import Gender
from leave_engine.models.leave import ApplicableGender, LeaveApplication, LeaveBalance, LeaveType
from leave_engine.schemas.leave_type import LeaveTypeCreate, LeaveTypeUpdate
from leave_engine.services import employee_directory

logger = logging.getLogger(__name__)


DEFAULT_LEAVE_TYPES = [
    dict(name="Annual Leave", code=ANNUAL_LEAVE_CODE, default_allowance_days=Decimal("16"),
         increment_amount=Decimal("1"), increment_period_years=2, allows_carry_over=True,
         carry_over_expiry_months=24, accrues_gradually=True),
    dict(name="Marriage Leave", code="MARRIAGE", default_allowance_days=Decimal("3"),
         requires_attachment=True),
    dict(name="Maternity Leave (Pre-natal)", code="MATERNITY_PRE", default_allowance_days=Decimal("30"),
         applicable_gender=ApplicableGender.FEMALE.value, requires_attachment=True, uses_calendar_days=True),
    dict(name="Maternity Leave (Post-natal)", code="MATERNITY_POST", default_allowance_days=Decimal("90"),
         applicable_gender=ApplicableGender.FEMALE.value, requires_attachment=True, uses_calendar_days=True),
    dict(name="Paternity Leave", code="PATERNITY", default_allowance_days=Decimal("3"),
         applicable_gender=ApplicableGender.MALE.value, requires_attachment=True, uses_calendar_days=True),
    dict(name="Mourning/Bereavement Leave", code="MOURNING", default_allowance_days=Decimal("3")),
    dict(name="Sick Leave", code="SICK", default_allowance_days=Decimal("180"), requires_attachment=True),
    dict(name="Unpaid Leave", code=UNPAID_LEAVE_CODE, default_allowance_days=Decimal("5"), is_paid=False),
]


def normalize_code(code: str) -> str:
    return code.strip().upper()


def applies_to_gender(leave_type: LeaveType, gender: Optional[Gender]) -> bool:
    """
    Check whether a leave type may be taken by an employee of this gender.

    Types open to "All" always apply; gender-specific types need a known,
    matching gender.
    """
    applicable = leave_type.applicable_gender or ApplicableGender.ALL.value
    if applicable == ApplicableGender.ALL.value:
        return True
    if gender is None:
        return False
    return applicable == gender.value


def resolve_leave_type(db: Session, company_id: int, leave_type_id: int) -> Result[LeaveType]:
    leave_type = db.query(LeaveType).filter(
        LeaveType.id == leave_type_id,
        LeaveType.company_id == company_id,
    ).first()
    if leave_type is None:
        return not_found("Leave type not found", leave_type_id=leave_type_id)
    return Ok(leave_type)


def resolve_leave_type_by_code(db: Session, company_id: int, code: str) -> Result[LeaveType]:
    leave_type = db.query(LeaveType).filter(
        LeaveType.company_id == company_id,
        LeaveType.code == normalize_code(code),
    ).first()
    if leave_type is None:
        return not_found(f"Leave type {normalize_code(code)} not found", code=normalize_code(code))
    return Ok(leave_type)


def list_leave_types(db: Session, company_id: int, include_inactive: bool = False) -> List[LeaveType]:
    query = db.query(LeaveType).filter(LeaveType.company_id == company_id)
    if not include_inactive:
        query = query.filter(LeaveType.is_active.is_(True))
    return query.order_by(LeaveType.name).all()


def list_applicable_leave_types(db: Session, company_id: int, employee_id: int) -> Result[List[LeaveType]]:
    """Active leave types the employee's gender allows."""
    profile = employee_directory.get_employee(db, company_id, employee_id)
    if isinstance(profile, Err):
        return profile
    gender = profile.value.gender
    return Ok([lt for lt in list_leave_types(db, company_id) if applies_to_gender(lt, gender)])


def _code_taken(db: Session, company_id: int, code: str, exclude_id: Optional[int] = None) -> bool:
    query = db.query(LeaveType.id).filter(
        LeaveType.company_id == company_id,
        LeaveType.code == code,
    )
    if exclude_id is not None:
        query = query.filter(LeaveType.id != exclude_id)
    return query.first() is not None


def create_leave_type(db: Session, company_id: int, request: LeaveTypeCreate) -> Result[LeaveType]:
    code = normalize_code(request.code)
    if _code_taken(db, company_id, code):
        return conflict(f"Leave type with code {code} already exists", code=code)

    data = request.model_dump()
    data["code"] = code
    data["applicable_gender"] = request.applicable_gender.value
    leave_type = LeaveType(company_id=company_id, is_active=True, **data)
    db.add(leave_type)
    db.flush()
    logger.info("Leave type created: company_id=%s code=%s", company_id, code)
    return Ok(leave_type)


def update_leave_type(
    db: Session,
    company_id: int,
    leave_type_id: int,
    request: LeaveTypeUpdate,
) -> Result[LeaveType]:
    found = resolve_leave_type(db, company_id, leave_type_id)
    if isinstance(found, Err):
        return found
    leave_type = found.value

    changes = request.model_dump(exclude_unset=True)
    if changes.get("code") is not None:
        changes["code"] = normalize_code(changes["code"])
        if _code_taken(db, company_id, changes["code"], exclude_id=leave_type.id):
            return conflict(f"Leave type with code {changes['code']} already exists", code=changes["code"])
    if changes.get("applicable_gender") is not None:
        changes["applicable_gender"] = ApplicableGender(changes["applicable_gender"]).value

    for field, value in changes.items():
        setattr(leave_type, field, value)
    db.flush()
    logger.info("Leave type updated: id=%s fields=%s", leave_type.id, sorted(changes))
    return Ok(leave_type)


def delete_leave_type(db: Session, company_id: int, leave_type_id: int) -> Result[int]:
    """Delete a leave type no application or balance refers to."""
    found = resolve_leave_type(db, company_id, leave_type_id)
    if isinstance(found, Err):
        return found
    leave_type = found.value

    applications_count = db.query(LeaveApplication).filter(
        LeaveApplication.leave_type_id == leave_type.id
    ).count()
    if applications_count:
        return conflict(
            f"Cannot delete leave type. {applications_count} leave application(s) are using this type.",
            applications=applications_count,
        )
    balances_count = db.query(LeaveBalance).filter(LeaveBalance.leave_type_id == leave_type.id).count()
    if balances_count:
        return conflict(
            f"Cannot delete leave type. {balances_count} leave balance(s) are using this type.",
            balances=balances_count,
        )

    db.delete(leave_type)
    db.flush()
    logger.info("Leave type deleted: company_id=%s id=%s", company_id, leave_type_id)
    return Ok(leave_type_id)


def seed_default_leave_types(db: Session, company_id: int) -> Result[List[LeaveType]]:
    """Create the default catalogue for a company that has no leave types yet."""
    existing = db.query(LeaveType).filter(LeaveType.company_id == company_id).count()
    if existing:
        return conflict("Leave types already exist for this company", existing=existing)

    created = []
    for defaults in DEFAULT_LEAVE_TYPES:
        leave_type = LeaveType(company_id=company_id, is_active=True, **defaults)
        db.add(leave_type)
        created.append(leave_type)
    db.flush()
    logger.info("Seeded %d default leave types for company_id=%s", len(created), company_id)
    return Ok(created)
