"""
Tests for employee and employment lookups
"""
from datetime import date

import pytest

from leave_engine.core.result import ErrorKind
from leave_engine.models import Employment
from leave_engine.models.employee import Gender
from leave_engine.services import employee_directory


@pytest.mark.parametrize("raw,expected", [
    ("Male", Gender.MALE),
    (" f ", Gender.FEMALE),
    ("FEMALE", Gender.FEMALE),
    ("other", None),
    (None, None),
])
def test_normalize_gender(raw, expected):
    assert employee_directory.normalize_gender(raw) == expected


def test_profile_combines_employee_and_employment(db, company, staff_employee, manager_employee):
    profile = employee_directory.get_employee(db, company.id, staff_employee.id).value

    assert profile.full_name == "Sam Staff"
    assert profile.gender == Gender.MALE
    assert profile.manager_id == manager_employee.id
    assert profile.hire_date == date(2020, 1, 1)
    assert profile.is_manager_tier is False
    assert employee_directory.get_employee(db, company.id, manager_employee.id).value.is_manager_tier is True


def test_ended_employment_is_ignored(db, company, staff_employee):
    employment = db.query(Employment).filter(Employment.employee_id == staff_employee.id).one()
    employment.is_active = False
    employment.end_date = date(2025, 12, 31)
    db.commit()

    result = employee_directory.get_employee(db, company.id, staff_employee.id)

    assert result.error.kind == ErrorKind.NOT_FOUND


def test_two_active_employments_are_ambiguous(db, company, staff_employee):
    db.add(Employment(
        employee_id=staff_employee.id,
        company_id=company.id,
        start_date=date(2024, 1, 1),
        is_active=True,
    ))
    db.commit()

    result = employee_directory.get_active_employment(db, company.id, staff_employee.id)

    assert result.error.kind == ErrorKind.CONFLICT
    assert result.error.context["ambiguous"] is True


def test_lookups_are_scoped_to_company(db, company, staff_employee):
    assert employee_directory.get_employee(db, company.id + 1, staff_employee.id).error.kind == ErrorKind.NOT_FOUND
    assert employee_directory.employee_exists(db, company.id + 1, staff_employee.id) is False
    assert employee_directory.get_employee_email(db, company.id, staff_employee.id) == "staff@acme.test"
    assert employee_directory.get_employee_email(db, company.id, None) is None
