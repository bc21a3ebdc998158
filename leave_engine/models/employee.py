"""
Employee and employment models
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Date, ForeignKey, Numeric, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from leave_engine.db.base import Base


class Role(str, enum.Enum):
    EMPLOYEE = "EMPLOYEE"
    MANAGER = "MANAGER"
    HR = "HR"
    CEO = "CEO"
    MD = "MD"
    GM = "GM"
    ADMIN = "ADMIN"


# Roles allowed to sign off the executive approval stage
EXECUTIVE_ROLES = (Role.CEO, Role.MD, Role.GM)


class Gender(str, enum.Enum):
    MALE = "Male"
    FEMALE = "Female"


class Employee(Base):
    __tablename__ = "employees"

    id = Column(Integer, primary_key=True, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    gender = Column(String(20), nullable=True)
    role = Column(String(20), nullable=False, default=Role.EMPLOYEE.value)
    password_hash = Column(String, nullable=True)
    active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)

    # Relationships
    company = relationship("Company")
    employments = relationship(
        "Employment",
        foreign_keys="Employment.employee_id",
        back_populates="employee",
        cascade="all, delete-orphan",
    )


class Employment(Base):
    """
    One employment spell of an employee.

    Hire date, reporting manager, job level and salary live here; exactly one
    row per employee is expected to be active.
    """
    __tablename__ = "employments"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    manager_id = Column(Integer, ForeignKey("employees.id"), nullable=True, index=True)
    job_level = Column(String(50), nullable=True)  # e.g. Staff, Manager, Director
    monthly_salary = Column(Numeric(12, 2), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    employee = relationship("Employee", foreign_keys=[employee_id], back_populates="employments")
    manager = relationship("Employee", foreign_keys=[manager_id])

    __table_args__ = (
        Index('ix_employments_employee_active', 'employee_id', 'is_active'),
    )
