from typing import List, Optional
from datetime import datetime

import bleach
from pydantic import BaseModel, Field, field_validator, model_validator

from app.models.event import EventStatus, TierAccess
from app.models.order import TicketTierName
from app.schemas.coupon import _to_naive_utc


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    return bleach.clean(value, tags=[], attributes={}, strip=True).strip()


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: str = Field(..., min_length=1, max_length=100, pattern=r"^[A-Za-z0-9-]+$")
    description: Optional[str] = Field(None, max_length=500)
    image_url: Optional[str] = Field(None, max_length=500)
    is_active: bool = True

    @field_validator("name", "description")
    @classmethod
    def clean_text(cls, value: Optional[str]) -> Optional[str]:
        return _clean_text(value)

    @field_validator("slug")
    @classmethod
    def normalize_slug(cls, value: str) -> str:
        return value.strip().lower()


class CategoryResponse(BaseModel):
    id: int
    name: str
    slug: str
    description: Optional[str] = None
    image_url: Optional[str] = None

    class Config:
        from_attributes = True


class CategorySummary(BaseModel):
    id: int
    name: str
    slug: str

    class Config:
        from_attributes = True


class TicketTierCreate(BaseModel):
    name: TicketTierName
    price: float = Field(..., ge=0)
    total_quantity: int = Field(..., ge=1)
    access: TierAccess = TierAccess.PUBLIC


class TicketTierResponse(BaseModel):
    id: int
    name: str
    price: float
    total_quantity: int
    sold_quantity: int
    access: TierAccess

    class Config:
        from_attributes = True


class EventGuestSchema(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    title: Optional[str] = Field(None, max_length=100)

    @field_validator("name", "title")
    @classmethod
    def clean_text(cls, value: Optional[str]) -> Optional[str]:
        return _clean_text(value)

    class Config:
        from_attributes = True


def _unique_tier_names(tiers: Optional[List[TicketTierCreate]]) -> None:
    if tiers is None:
        return
    names = [tier.name for tier in tiers]
    if len(names) != len(set(names)):
        raise ValueError("Ticket tier names must be unique within an event")


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    image_url: str = Field(..., min_length=1, max_length=500)
    date: datetime
    location: str = Field(..., min_length=1, max_length=255)
    category_id: int = Field(..., gt=0)
    status: EventStatus = EventStatus.UNLEASHED
    ticket_tiers: List[TicketTierCreate] = Field(..., min_length=1)
    guests: List[EventGuestSchema] = Field(default_factory=list)

    @field_validator("title", "description", "location")
    @classmethod
    def clean_text(cls, value: str) -> str:
        cleaned = _clean_text(value)
        if not cleaned:
            raise ValueError("Field cannot be blank")
        return cleaned

    @field_validator("date")
    @classmethod
    def normalize_date(cls, value: datetime) -> datetime:
        return _to_naive_utc(value)

    @model_validator(mode="after")
    def validate_tiers(self):
        _unique_tier_names(self.ticket_tiers)
        return self


class EventUpdate(BaseModel):
    """Partial update; ``ticket_tiers`` and ``guests`` replace the lists when sent."""

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1)
    image_url: Optional[str] = Field(None, min_length=1, max_length=500)
    date: Optional[datetime] = None
    location: Optional[str] = Field(None, min_length=1, max_length=255)
    category_id: Optional[int] = Field(None, gt=0)
    ticket_tiers: Optional[List[TicketTierCreate]] = Field(None, min_length=1)
    guests: Optional[List[EventGuestSchema]] = None

    @field_validator("title", "description", "location")
    @classmethod
    def clean_text(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        cleaned = _clean_text(value)
        if not cleaned:
            raise ValueError("Field cannot be blank")
        return cleaned

    @field_validator("date")
    @classmethod
    def normalize_date(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _to_naive_utc(value)

    @model_validator(mode="after")
    def validate_tiers(self):
        _unique_tier_names(self.ticket_tiers)
        return self


class EventStatusUpdate(BaseModel):
    status: EventStatus


class OrganizerSummary(BaseModel):
    id: int
    first_name: str
    last_name: str
    email: str

    class Config:
        from_attributes = True


class EventListResponse(BaseModel):
    id: int
    title: str
    image_url: str
    date: datetime
    location: str
    status: EventStatus
    category: CategorySummary
    ticket_tiers: List[TicketTierResponse]

    class Config:
        from_attributes = True


class EventDetailResponse(EventListResponse):
    description: str
    organizer_id: int
    guests: List[EventGuestSchema] = []
    created_at: datetime


class EventAdminResponse(EventDetailResponse):
    organizer: OrganizerSummary
