from pydantic import BaseModel, Field, field_validator, model_validator
from typing import List, Optional
from datetime import datetime, timezone

import bleach

from app.models.coupon import CouponUserType, DiscountType, UsageLimit


def _to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    # Stored instants are naive UTC
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _clean_description(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    sanitized = bleach.clean(value, tags=[], attributes={}, strip=True).strip()
    if len(sanitized) > 500:
        raise ValueError("Description too long (max 500 chars)")
    return sanitized or None


class CouponCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    description: Optional[str] = None
    discount_type: DiscountType
    discount_value: float = Field(..., gt=0)
    min_purchase: float = Field(default=0.0, ge=0)
    valid_from: datetime
    valid_to: datetime
    is_active: bool = True
    applicable_event_ids: List[int] = Field(default_factory=list)
    applicable_category_ids: List[int] = Field(default_factory=list)
    usage_limit: UsageLimit = UsageLimit.UNLIMITED
    user_type: CouponUserType = CouponUserType.ALL

    @field_validator("code")
    @classmethod
    def normalize_code(cls, value: str) -> str:
        code = value.strip().upper()
        if not code:
            raise ValueError("Coupon code cannot be blank")
        return code

    @field_validator("description")
    @classmethod
    def validate_description(cls, value: Optional[str]) -> Optional[str]:
        return _clean_description(value)

    @field_validator("valid_from", "valid_to")
    @classmethod
    def normalize_instant(cls, value: datetime) -> datetime:
        return _to_naive_utc(value)

    @model_validator(mode="after")
    def validate_window(self):
        if self.valid_to < self.valid_from:
            raise ValueError("valid_to must not be earlier than valid_from")
        return self


class CouponUpdate(BaseModel):
    description: Optional[str] = None
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[float] = Field(None, gt=0)
    min_purchase: Optional[float] = Field(None, ge=0)
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None
    is_active: Optional[bool] = None
    applicable_event_ids: Optional[List[int]] = None
    applicable_category_ids: Optional[List[int]] = None
    usage_limit: Optional[UsageLimit] = None
    user_type: Optional[CouponUserType] = None

    @field_validator("description")
    @classmethod
    def validate_description(cls, value: Optional[str]) -> Optional[str]:
        return _clean_description(value)

    @field_validator("valid_from", "valid_to")
    @classmethod
    def normalize_instant(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _to_naive_utc(value)


class CouponResponse(BaseModel):
    id: int
    code: str
    description: Optional[str]
    discount_type: DiscountType
    discount_value: float
    min_purchase: float
    valid_from: datetime
    valid_to: datetime
    is_active: bool
    applicable_event_ids: List[int]
    applicable_category_ids: List[int]
    usage_limit: UsageLimit
    user_type: CouponUserType
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ValidateCouponRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    subtotal: float = Field(..., ge=0)
    event_id: int = Field(..., gt=0)


class ValidateCouponResponse(BaseModel):
    coupon: CouponResponse
    discount_amount: float
