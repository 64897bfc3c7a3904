"""Availability schemas."""
from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

from teamhub.models.availability import AvailabilityStatus


class AvailabilityCreate(BaseModel):
    user_id: int
    status: AvailabilityStatus
    start_date: date
    end_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode="after")
    def check_date_range(self):
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        return self


class AvailabilityUpdate(BaseModel):
    """Fields left out keep their current value. The merged range is checked by the route."""
    status: Optional[AvailabilityStatus] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=2000)


class AvailabilityRead(BaseModel):
    availability_id: int
    user_id: int
    status: str
    start_date: date
    end_date: Optional[date] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    user_name: Optional[str] = None
    team_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class AvailabilitySummaryRow(BaseModel):
    status: str
    count: int
