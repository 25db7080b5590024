from sqlalchemy import Column, Integer, String, DateTime, Text
from datetime import datetime
from app.db.base_class import Base


class SiteSetting(Base):
    """Single-row table of public site details shown in headers and footers."""

    __tablename__ = "site_settings"

    id = Column(Integer, primary_key=True, index=True)
    site_name = Column(String(100), default="Event Booking", nullable=False)
    contact_email = Column(String(255), default="", nullable=False)
    contact_phone = Column(String(30), default="", nullable=False)
    contact_address = Column(String(500), default="", nullable=False)
    currency = Column(String(3), default="INR", nullable=False)

    facebook_url = Column(String(500), default="", nullable=False)
    twitter_url = Column(String(500), default="", nullable=False)
    instagram_url = Column(String(500), default="", nullable=False)
    linkedin_url = Column(String(500), default="", nullable=False)

    seo_description = Column(Text, default="", nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def social_links(self) -> dict:
        return {
            "facebook": self.facebook_url,
            "twitter": self.twitter_url,
            "instagram": self.instagram_url,
            "linkedin": self.linkedin_url,
        }
