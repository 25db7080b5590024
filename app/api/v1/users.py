from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_token_claims
from app.core.rate_limiter import limiter
from app.db.session import get_db
from app.models.user import User
from app.schemas.user import CompleteProfileRequest, UserProfileResponse
from app.services import user_service
from app.utils.response import success

router = APIRouter()


@router.get("/me", response_model=dict)
@limiter.limit("60/minute")
def get_current_user_profile(
    request: Request,
    claims: dict = Depends(get_token_claims),
    db: Session = Depends(get_db),
):
    """Get current user profile, creating it on first sign-in"""
    user = user_service.get_or_create_profile(db, claims["sub"], claims)
    return success(data=UserProfileResponse.model_validate(user), message="User profile retrieved")


@router.post("/complete-profile", response_model=dict)
@limiter.limit("20/minute")
def complete_profile(
    request: Request,
    payload: CompleteProfileRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user = user_service.complete_profile(db, current_user, payload)
    return success(data=UserProfileResponse.model_validate(user), message="Profile completed successfully.")
