"""
Company (tenant) model
"""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from leave_engine.db.base import Base


class Company(Base):
    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
