from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.utils.validation import clean_phone, clean_required_text


class DoctorBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    specialization: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=50)

    @field_validator("name", "specialization")
    @classmethod
    def strip_text(cls, v: str, info):
        return clean_required_text(v, info.field_name)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return clean_phone(v)


class DoctorCreate(DoctorBase):
    pass


class DoctorUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    specialization: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)

    @field_validator("name", "specialization")
    @classmethod
    def strip_text(cls, v, info):
        if v is None:
            return v
        return clean_required_text(v, info.field_name)

    @field_validator("phone")
    @classmethod
    def check_phone(cls, v):
        return clean_phone(v)


class Doctor(BaseModel):
    id: int
    name: str
    specialization: str
    email: str
    phone: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
