from fastapi import HTTPException, status
from sqlalchemy.orm import Session
import structlog

from app.models.user import User, UserRole
from app.schemas.user import CompleteProfileRequest

logger = structlog.get_logger()


def get_or_create_profile(db: Session, external_id: str, claims: dict) -> User:
    """
    Local profile for an identity-provider subject.

    First sight of a subject creates an attendee from the token's claims; the
    email claim is required, names default to "New User".
    """
    user = db.query(User).filter(User.external_id == external_id).first()
    if user:
        return user

    email = (claims.get("email") or "").strip().lower()
    if not email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Identity token has no email claim.",
        )
    if db.query(User.id).filter(User.email == email).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered to another account.",
        )

    user = User(
        external_id=external_id,
        email=email,
        first_name=claims.get("first_name") or claims.get("given_name") or "New",
        last_name=claims.get("last_name") or claims.get("family_name") or "User",
        image_url=claims.get("image_url") or claims.get("picture"),
        role=UserRole.ATTENDEE,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("user_profile_created", user_id=user.id)
    return user


def complete_profile(db: Session, user: User, details: CompleteProfileRequest) -> User:
    user.phone = details.phone
    user.dob = details.dob
    user.profile_complete = True
    db.commit()
    db.refresh(user)
    logger.info("user_profile_completed", user_id=user.id)
    return user
