from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
from datetime import date, datetime
import re

import bleach

from app.models.user import UserRole, UserStatus

PHONE_PATTERN = re.compile(r"^\+?\d{10,15}$")


def _validate_phone(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    phone = value.replace(" ", "").replace("-", "")
    if not PHONE_PATTERN.match(phone):
        raise ValueError("Phone must be 10 to 15 digits, optionally prefixed with +")
    return phone


class UserProfileResponse(BaseModel):
    id: int
    email: str
    first_name: str
    middle_name: Optional[str] = None
    last_name: str
    phone: Optional[str] = None
    dob: Optional[date] = None
    image_url: Optional[str] = None
    role: UserRole
    profile_complete: bool
    created_at: datetime

    class Config:
        from_attributes = True


class CompleteProfileRequest(BaseModel):
    phone: str
    dob: date

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return _validate_phone(v)

    @field_validator("dob")
    @classmethod
    def validate_dob(cls, v):
        if v >= date.today():
            raise ValueError("Date of birth must be in the past")
        return v


class OrganizerCreate(BaseModel):
    external_id: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: Optional[str] = None
    bio: Optional[str] = Field(None, max_length=1000)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()

    @field_validator("first_name", "last_name", "bio")
    @classmethod
    def clean_text(cls, v):
        if v is None:
            return v
        return bleach.clean(v, tags=[], attributes={}, strip=True).strip()

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        return _validate_phone(v)


class OrganizerStatusUpdate(BaseModel):
    status: UserStatus


class OrganizerResponse(BaseModel):
    id: int
    external_id: str
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    bio: Optional[str] = None
    image_url: Optional[str] = None
    status: UserStatus
    created_at: datetime

    class Config:
        from_attributes = True
