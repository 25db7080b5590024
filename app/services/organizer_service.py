from typing import List

from fastapi import HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session
import structlog

from app.core.exceptions import OrganizerNotFound
from app.models.event import Event
from app.models.order import Order
from app.models.user import User, UserRole, UserStatus
from app.schemas.user import OrganizerCreate

logger = structlog.get_logger()


def _get_organizer(db: Session, organizer_id: int) -> User:
    organizer = (
        db.query(User)
        .filter(User.id == organizer_id, User.role == UserRole.ORGANIZER)
        .first()
    )
    if not organizer:
        raise OrganizerNotFound()
    return organizer


def list_organizers(db: Session) -> List[User]:
    return (
        db.query(User)
        .filter(User.role == UserRole.ORGANIZER)
        .order_by(User.created_at.desc(), User.id.desc())
        .all()
    )


def create_organizer(db: Session, organizer_data: OrganizerCreate) -> User:
    existing = (
        db.query(User)
        .filter(or_(User.email == organizer_data.email, User.external_id == organizer_data.external_id))
        .first()
    )
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="An account with this email or identity already exists.",
        )

    organizer = User(
        **organizer_data.model_dump(),
        role=UserRole.ORGANIZER,
        status=UserStatus.ACTIVE,
    )
    db.add(organizer)
    db.commit()
    db.refresh(organizer)
    logger.info("organizer_created", organizer_id=organizer.id)
    return organizer


def set_status(db: Session, organizer_id: int, new_status: UserStatus) -> User:
    organizer = _get_organizer(db, organizer_id)
    organizer.status = new_status
    db.commit()
    db.refresh(organizer)
    logger.info("organizer_status_changed", organizer_id=organizer.id, status=new_status.value)
    return organizer


def delete_organizer(db: Session, organizer_id: int) -> bool:
    """Delete an organizer; one that owns events or orders is deactivated instead.

    Returns True when the row was removed.
    """
    organizer = _get_organizer(db, organizer_id)

    has_history = (
        db.query(Event.id).filter(Event.organizer_id == organizer.id).first()
        or db.query(Order.id).filter(Order.buyer_id == organizer.id).first()
    )
    if has_history:
        organizer.status = UserStatus.INACTIVE
        db.commit()
        logger.info("organizer_deactivated", organizer_id=organizer_id)
        return False

    db.delete(organizer)
    db.commit()
    logger.info("organizer_deleted", organizer_id=organizer_id)
    return True
