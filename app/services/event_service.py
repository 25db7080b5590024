from typing import List, Optional, Tuple

import structlog
from fastapi import HTTPException, status
from sqlalchemy.orm import Session, selectinload

from app.core.exceptions import CategoryNotFound, EventNotFound
from app.models.category import Category
from app.models.coupon import Coupon
from app.models.event import Event, EventGuest, EventStatus, TicketTier
from app.models.order import Order
from app.models.user import User, UserRole
from app.schemas.event import EventCreate, EventUpdate, TicketTierCreate

logger = structlog.get_logger()

SORT_OPTIONS = {"date-asc", "date-desc"}


def _like_pattern(value: str) -> str:
    """Substring pattern for ``ilike`` with LIKE wildcards in ``value`` taken literally."""
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _with_relations(db: Session):
    return db.query(Event).options(
        selectinload(Event.category),
        selectinload(Event.ticket_tiers),
        selectinload(Event.guests),
    )


class EventService:

    @staticmethod
    def search_events(
        db: Session,
        page: int = 1,
        limit: int = 9,
        search: Optional[str] = None,
        category: Optional[str] = None,
        location: Optional[str] = None,
        sort_by: Optional[str] = None,
    ) -> Tuple[List[Event], int]:
        """
        Published events filtered by title, location and category slug.

        Returns the requested page and the total number of matches. An unknown
        category slug matches nothing; ``"all"`` disables the category filter.
        """
        query = _with_relations(db).filter(Event.status == EventStatus.PUBLISHED)

        if search:
            query = query.filter(Event.title.ilike(_like_pattern(search), escape="\\"))

        if location:
            query = query.filter(Event.location.ilike(_like_pattern(location), escape="\\"))

        if category and category != "all":
            category_row = db.query(Category).filter(Category.slug == category).first()
            if not category_row:
                return [], 0
            query = query.filter(Event.category_id == category_row.id)

        if sort_by == "date-asc":
            query = query.order_by(Event.date.asc(), Event.id.asc())
        else:
            query = query.order_by(Event.date.desc(), Event.id.desc())

        total = query.count()
        events = query.offset((page - 1) * limit).limit(limit).all()
        return events, total

    @staticmethod
    def get_published_event(db: Session, event_id: int) -> Event:
        event = _with_relations(db).filter(Event.id == event_id).first()
        if not event or event.status != EventStatus.PUBLISHED:
            raise EventNotFound()
        return event

    # Organizer management

    @staticmethod
    def _owned_event(db: Session, event_id: int, user: User) -> Event:
        query = _with_relations(db).filter(Event.id == event_id)
        if user.role != UserRole.ADMIN:
            query = query.filter(Event.organizer_id == user.id)
        event = query.first()
        if not event:
            raise EventNotFound("Event not found or unauthorized.")
        return event

    @staticmethod
    def _check_category(db: Session, category_id: int) -> None:
        if not db.query(Category.id).filter(Category.id == category_id).first():
            raise CategoryNotFound()

    @staticmethod
    def _replace_tiers(event: Event, tiers: List[TicketTierCreate]) -> None:
        """Tiers are matched by name so sold counts survive an edit."""
        existing = {tier.name: tier for tier in event.ticket_tiers}
        requested = {tier_data.name.value: tier_data for tier_data in tiers}

        for name, tier in existing.items():
            if tier.sold_quantity <= 0:
                continue
            if name not in requested:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Cannot remove {name}: tickets have already been sold.",
                )
            if requested[name].total_quantity < tier.sold_quantity:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Total quantity for {name} is below the tickets already sold.",
                )

        updated = []
        for name, tier_data in requested.items():
            tier = existing.get(name) or TicketTier(name=name, sold_quantity=0)
            tier.price = tier_data.price
            tier.total_quantity = tier_data.total_quantity
            tier.access = tier_data.access
            updated.append(tier)
        event.ticket_tiers = updated

    @staticmethod
    def create_event(db: Session, organizer: User, event_data: EventCreate) -> Event:
        EventService._check_category(db, event_data.category_id)

        event = Event(
            title=event_data.title,
            description=event_data.description,
            image_url=event_data.image_url,
            date=event_data.date,
            location=event_data.location,
            category_id=event_data.category_id,
            organizer_id=organizer.id,
            status=event_data.status,
            ticket_tiers=[
                TicketTier(
                    name=tier.name.value,
                    price=tier.price,
                    total_quantity=tier.total_quantity,
                    access=tier.access,
                )
                for tier in event_data.ticket_tiers
            ],
            guests=[EventGuest(name=guest.name, title=guest.title) for guest in event_data.guests],
        )
        db.add(event)
        db.commit()
        db.refresh(event)
        logger.info("event_created", event_id=event.id, organizer_id=organizer.id, status=event.status.value)
        return event

    @staticmethod
    def update_event(db: Session, event_id: int, user: User, event_data: EventUpdate) -> Event:
        event = EventService._owned_event(db, event_id, user)
        update_data = event_data.model_dump(exclude_unset=True, exclude={"ticket_tiers", "guests"})

        if update_data.get("category_id") is not None:
            EventService._check_category(db, update_data["category_id"])

        if event_data.ticket_tiers is not None:
            EventService._replace_tiers(event, event_data.ticket_tiers)

        for field, value in update_data.items():
            if value is not None:
                setattr(event, field, value)

        if event_data.guests is not None:
            event.guests = [EventGuest(name=guest.name, title=guest.title) for guest in event_data.guests]

        db.commit()
        db.refresh(event)
        logger.info("event_updated", event_id=event.id, fields=sorted(event_data.model_fields_set))
        return event

    @staticmethod
    def update_status(db: Session, event_id: int, user: User, new_status: EventStatus) -> Event:
        event = EventService._owned_event(db, event_id, user)
        old_status = event.status
        event.status = new_status
        db.commit()
        db.refresh(event)
        logger.info(
            "event_status_changed",
            event_id=event.id,
            old_status=old_status.value,
            new_status=new_status.value,
        )
        return event

    @staticmethod
    def delete_event(db: Session, event_id: int, user: User) -> None:
        """Remove an event that nobody has ordered from; ordered events can only be cancelled."""
        event = EventService._owned_event(db, event_id, user)

        if db.query(Order.id).filter(Order.event_id == event.id).first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Event has orders and cannot be deleted. Cancel it instead.",
            )

        coupons = db.query(Coupon).filter(Coupon.applicable_events.any(Event.id == event.id)).all()
        for coupon in coupons:
            coupon.applicable_events.remove(event)

        db.delete(event)
        db.commit()
        logger.info("event_deleted", event_id=event_id, deleted_by=user.id)

    @staticmethod
    def list_organizer_events(db: Session, organizer: User) -> List[Event]:
        return (
            _with_relations(db)
            .filter(Event.organizer_id == organizer.id)
            .order_by(Event.created_at.desc(), Event.id.desc())
            .all()
        )

    @staticmethod
    def get_organizer_event(db: Session, event_id: int, user: User) -> Event:
        return EventService._owned_event(db, event_id, user)

    @staticmethod
    def list_all_events(db: Session) -> List[Event]:
        """Every event in any status, newest first (admin view)."""
        return (
            _with_relations(db)
            .options(selectinload(Event.organizer))
            .order_by(Event.created_at.desc(), Event.id.desc())
            .all()
        )
