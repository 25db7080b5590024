from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime


class SocialLinks(BaseModel):
    facebook: str = ""
    twitter: str = ""
    instagram: str = ""
    linkedin: str = ""


class SocialLinksUpdate(BaseModel):
    facebook: Optional[str] = Field(None, max_length=500)
    twitter: Optional[str] = Field(None, max_length=500)
    instagram: Optional[str] = Field(None, max_length=500)
    linkedin: Optional[str] = Field(None, max_length=500)


class SiteSettingsResponse(BaseModel):
    site_name: str
    contact_email: str
    contact_phone: str
    contact_address: str
    currency: str
    social_links: SocialLinks
    seo_description: str
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class SiteSettingsUpdate(BaseModel):
    """Only the fields sent are changed; ``social_links`` is merged key by key."""

    site_name: Optional[str] = Field(None, min_length=1, max_length=100)
    contact_email: Optional[str] = Field(None, max_length=255)
    contact_phone: Optional[str] = Field(None, max_length=30)
    contact_address: Optional[str] = Field(None, max_length=500)
    currency: Optional[str] = None
    social_links: Optional[SocialLinksUpdate] = None
    seo_description: Optional[str] = Field(None, max_length=1000)

    @field_validator("site_name", "contact_phone", "contact_address", "seo_description")
    @classmethod
    def strip_text(cls, value: Optional[str]) -> Optional[str]:
        return value.strip() if value is not None else value

    @field_validator("contact_email")
    @classmethod
    def normalize_email(cls, value: Optional[str]) -> Optional[str]:
        return value.strip().lower() if value is not None else value

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        currency = value.strip().upper()
        if len(currency) != 3 or not currency.isalpha():
            raise ValueError("Currency must be a 3-letter ISO code")
        return currency
