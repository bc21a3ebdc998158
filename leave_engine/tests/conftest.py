"""
Pytest configuration and fixtures
"""
from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from leave_engine.core.config import Settings
from leave_engine.core.deps import get_db
from leave_engine.core.security import create_access_token, hash_password
from leave_engine.db.base import Base
from leave_engine.main import create_app
from leave_engine.models import Company, Employee, Employment, LeaveType, Role
from leave_engine.services.leave_type_service import seed_default_leave_types
from leave_engine.services.notification_service import LoggingNotifier, Notification


TEST_SETTINGS = Settings(
    DATABASE_URL="sqlite:///:memory:",
    JWT_SECRET_KEY="test-secret-key",
    APP_ENV="test",
    LOG_LEVEL="WARNING",
    TRANSACTION_RETRY_WAIT_SECONDS=0,
)

HIRE_DATE = date(2020, 1, 1)


class RecordingNotifier(LoggingNotifier):
    """Logging notifier that also keeps what it sent"""

    def __init__(self):
        self.sent = []

    def notify(self, recipient, subject, body):
        self.sent.append(Notification(recipient, subject, body))
        super().notify(recipient, subject, body)


@pytest.fixture(scope="function")
def app():
    """Fresh application with its own in-memory database per test"""
    application = create_app(TEST_SETTINGS, notifier=RecordingNotifier())
    Base.metadata.create_all(bind=application.state.engine)
    yield application
    Base.metadata.drop_all(bind=application.state.engine)
    application.state.engine.dispose()


@pytest.fixture(scope="function")
def db(app):
    """Session on the application's database"""
    session = app.state.session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(app, db):
    """Test client sharing the test session with the request handlers"""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def notifier(app) -> RecordingNotifier:
    return app.state.notifier


def make_employee(
    db: Session,
    company: Company,
    full_name: str,
    email: str,
    role: Role = Role.EMPLOYEE,
    gender: str = "Male",
    hire_date: date = HIRE_DATE,
    manager: Employee = None,
    job_level: str = "Staff",
    monthly_salary: Decimal = Decimal("3000"),
    password: str = "password123",
) -> Employee:
    employee = Employee(
        company_id=company.id,
        full_name=full_name,
        email=email,
        gender=gender,
        role=role.value,
        password_hash=hash_password(password),
        active=True,
    )
    db.add(employee)
    db.flush()
    db.add(Employment(
        employee_id=employee.id,
        company_id=company.id,
        start_date=hire_date,
        manager_id=manager.id if manager else None,
        job_level=job_level,
        monthly_salary=monthly_salary,
        is_active=True,
    ))
    db.commit()
    db.refresh(employee)
    return employee


def auth_headers(employee: Employee) -> dict:
    token = create_access_token(TEST_SETTINGS, {"sub": str(employee.id)})
    return {"Authorization": f"Bearer {token}"}


def leave_type_by_code(db: Session, company: Company, code: str) -> LeaveType:
    return db.query(LeaveType).filter(LeaveType.company_id == company.id, LeaveType.code == code).one()


@pytest.fixture
def company(db: Session):
    company = Company(name="Acme Ltd")
    db.add(company)
    db.commit()
    db.refresh(company)
    return company


@pytest.fixture
def leave_types(db: Session, company):
    """Default leave catalogue for the company"""
    result = seed_default_leave_types(db, company.id)
    db.commit()
    return {lt.code: lt for lt in result.value}


@pytest.fixture
def hr_employee(db: Session, company):
    return make_employee(db, company, "Hannah HR", "hr@acme.test", role=Role.HR, gender="Female")


@pytest.fixture
def ceo_employee(db: Session, company):
    return make_employee(db, company, "Carl CEO", "ceo@acme.test", role=Role.CEO, job_level="Executive")


@pytest.fixture
def admin_employee(db: Session, company):
    return make_employee(db, company, "Ada Admin", "admin@acme.test", role=Role.ADMIN, gender="Female")


@pytest.fixture
def manager_employee(db: Session, company, ceo_employee):
    return make_employee(
        db, company, "Mona Manager", "manager@acme.test",
        role=Role.MANAGER, gender="Female", manager=ceo_employee, job_level="Manager",
    )


@pytest.fixture
def staff_employee(db: Session, company, manager_employee):
    return make_employee(db, company, "Sam Staff", "staff@acme.test", manager=manager_employee)


@pytest.fixture
def other_employee(db: Session, company, manager_employee):
    return make_employee(db, company, "Olga Other", "other@acme.test", gender="Female", manager=manager_employee)
