from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from app.api.deps import require_admin
from app.core.rate_limiter import limiter
from app.db.session import get_db
from app.models.user import User
from app.schemas.user import OrganizerCreate, OrganizerResponse, OrganizerStatusUpdate
from app.services import organizer_service
from app.utils.response import success

router = APIRouter()


@router.get("", response_model=dict)
@router.get("/", response_model=dict)
@limiter.limit("60/minute")
def list_organizers(
    request: Request,
    current_admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Admin: List organizers, newest first"""
    organizers = organizer_service.list_organizers(db)
    return success(
        data=[OrganizerResponse.model_validate(o) for o in organizers],
        message="Organizers retrieved",
    )


@router.post("", response_model=dict, status_code=status.HTTP_201_CREATED)
@router.post("/", response_model=dict, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_organizer(
    request: Request,
    organizer_data: OrganizerCreate,
    current_admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    organizer = organizer_service.create_organizer(db, organizer_data)
    return success(
        data=OrganizerResponse.model_validate(organizer),
        message="New organizer created successfully.",
    )


@router.patch("/{organizer_id}/status", response_model=dict)
@limiter.limit("30/minute")
def update_organizer_status(
    request: Request,
    organizer_id: int,
    payload: OrganizerStatusUpdate,
    current_admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    organizer = organizer_service.set_status(db, organizer_id, payload.status)
    return success(
        data=OrganizerResponse.model_validate(organizer),
        message=f"Organizer marked as {payload.status.value}",
    )


@router.delete("/{organizer_id}", response_model=dict)
@limiter.limit("20/minute")
def delete_organizer(
    request: Request,
    organizer_id: int,
    current_admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Admin: Delete an organizer, or deactivate one with events or orders"""
    deleted = organizer_service.delete_organizer(db, organizer_id)
    if not deleted:
        return success(data={"deleted": False}, message="Organizer has event or order history and was deactivated instead.")
    return success(data={"deleted": True}, message="Organizer deleted successfully.")
