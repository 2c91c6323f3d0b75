from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

# Import enums from the model to avoid duplication
from app.models.booking import BookingStatus
from app.utils.validation import clean_phone, clean_required_text


class BookingCreate(BaseModel):
    slot_id: int
    patient_name: str = Field(..., min_length=1, max_length=255)
    patient_email: EmailStr
    patient_phone: Optional[str] = Field(None, max_length=50)

    @field_validator("patient_name")
    @classmethod
    def strip_name(cls, v: str):
        return clean_required_text(v, "patient_name")

    @field_validator("patient_phone")
    @classmethod
    def check_phone(cls, v):
        return clean_phone(v)


# Response schemas
class Booking(BaseModel):
    id: int
    slot_id: int
    patient_name: str
    patient_email: str
    patient_phone: Optional[str] = None
    status: BookingStatus
    booking_time: datetime
    confirmed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    failure_reason: Optional[str] = None
    cancelled_at: Optional[datetime] = None

    # Derived from the slot and doctor at read time
    slot_date: Optional[date] = None
    slot_time: Optional[time] = None
    duration_minutes: Optional[int] = None
    doctor_name: Optional[str] = None
    specialization: Optional[str] = None

    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# Filter schemas
class BookingFilters(BaseModel):
    status: Optional[BookingStatus] = None
    patient_email: Optional[str] = None


# Summary and analytics schemas
class BookingStats(BaseModel):
    confirmed: int = Field(0, ge=0)
    pending: int = Field(0, ge=0)
    failed: int = Field(0, ge=0)
    cancelled: int = Field(0, ge=0)
    total: int = Field(0, ge=0)

    @model_validator(mode="after")
    def validate_total(self):
        if self.confirmed + self.pending + self.failed + self.cancelled != self.total:
            raise ValueError("Per-status counts must add up to total")
        return self
