from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, Enum, Text
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from app.db.base_class import Base


class EventStatus(str, enum.Enum):
    UNLEASHED = "unleashed"
    PUBLISHED = "published"
    CANCELLED = "cancelled"


class TierAccess(str, enum.Enum):
    PUBLIC = "public"
    ADMIN_ONLY = "admin_only"
    ADMIN_ORGANIZER_ONLY = "admin_organizer_only"


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False, index=True)
    description = Column(Text, nullable=False)
    image_url = Column(String(500), nullable=False)
    date = Column(DateTime, nullable=False, index=True)
    location = Column(String(255), nullable=False)

    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)
    organizer_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    status = Column(Enum(EventStatus), default=EventStatus.UNLEASHED, nullable=False, index=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    category = relationship("Category", back_populates="events")
    organizer = relationship("User", back_populates="organized_events")
    ticket_tiers = relationship(
        "TicketTier",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="TicketTier.id",
    )
    guests = relationship(
        "EventGuest",
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="EventGuest.id",
    )
    orders = relationship("Order", back_populates="event")


class TicketTier(Base):
    __tablename__ = "ticket_tiers"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    name = Column(String(50), nullable=False)
    price = Column(Float, nullable=False)
    total_quantity = Column(Integer, nullable=False)
    sold_quantity = Column(Integer, default=0, nullable=False)
    access = Column(Enum(TierAccess), default=TierAccess.PUBLIC, nullable=False)

    # Relationships
    event = relationship("Event", back_populates="ticket_tiers")


class EventGuest(Base):
    __tablename__ = "event_guests"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    title = Column(String(100), nullable=True)

    # Relationships
    event = relationship("Event", back_populates="guests")
