"""
Public holiday schemas
"""
from datetime import date as date_type, datetime
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict


class HolidayCreate(BaseModel):
    """Schema for creating a public holiday"""
    date: date_type = Field(..., description="Holiday date")
    name: str = Field(..., min_length=1, max_length=255, description="Holiday name")
    is_recurring: bool = Field(False, description="Repeats on the same day every year")


class HolidayOut(BaseModel):
    id: int
    company_id: int
    date: date_type
    name: str
    is_recurring: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
