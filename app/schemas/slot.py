from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from app.core.config import settings


class SlotDescriptor(BaseModel):
    """A generated slot that has not been persisted yet."""

    doctor_id: int
    slot_date: date
    slot_time: time
    duration_minutes: int = Field(..., gt=0)

    class Config:
        frozen = True


class SlotCreate(BaseModel):
    doctor_id: int
    slot_date: date
    slot_time: time
    duration_minutes: int = Field(
        settings.DEFAULT_SLOT_DURATION_MINUTES,
        ge=settings.MIN_SLOT_DURATION_MINUTES,
        le=settings.MAX_SLOT_DURATION_MINUTES,
    )


class BulkSlotCreate(BaseModel):
    doctor_id: int
    slot_date: date
    start_time: time
    end_time: time
    duration_minutes: int = Field(
        settings.DEFAULT_SLOT_DURATION_MINUTES,
        ge=settings.MIN_SLOT_DURATION_MINUTES,
        le=settings.MAX_SLOT_DURATION_MINUTES,
    )

    @model_validator(mode="after")
    def validate_time_range(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class SlotFilters(BaseModel):
    doctor_id: Optional[int] = None
    slot_date: Optional[date] = None
    specialization: Optional[str] = None


class Slot(BaseModel):
    id: int
    doctor_id: int
    slot_date: date
    slot_time: time
    duration_minutes: int
    is_available: bool

    # Derived from the doctor at read time
    doctor_name: Optional[str] = None
    specialization: Optional[str] = None

    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
