from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session
from typing import Optional

from app.api.deps import require_admin, require_organizer
from app.core.rate_limiter import limiter
from app.db.session import get_db
from app.models.user import User
from app.schemas.event import (
    EventAdminResponse,
    EventCreate,
    EventDetailResponse,
    EventListResponse,
    EventStatusUpdate,
    EventUpdate,
)
from app.services.event_service import EventService
from app.utils.response import paginated_response, success

router = APIRouter()


@router.get("", response_model=dict)
@router.get("/", response_model=dict)
@limiter.limit("100/minute")
def list_events(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(9, ge=1, le=100),
    search: Optional[str] = Query(None, max_length=100),
    category: Optional[str] = Query(None, max_length=100),
    location: Optional[str] = Query(None, max_length=100),
    sort_by: str = Query("date-desc", pattern="^(date-asc|date-desc)$"),
    db: Session = Depends(get_db),
):
    """Browse published events"""
    events, total = EventService.search_events(
        db,
        page=page,
        limit=limit,
        search=search,
        category=category,
        location=location,
        sort_by=sort_by,
    )
    return paginated_response(
        items=[EventListResponse.model_validate(e) for e in events],
        total=total,
        page=page,
        limit=limit,
        message="Events retrieved",
    )


# Organizer management

@router.post("", response_model=dict, status_code=status.HTTP_201_CREATED)
@router.post("/", response_model=dict, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_event(
    request: Request,
    event_data: EventCreate,
    current_user: User = Depends(require_organizer),
    db: Session = Depends(get_db),
):
    event = EventService.create_event(db, current_user, event_data)
    return success(data=EventDetailResponse.model_validate(event), message="Event created successfully")


@router.get("/my-events", response_model=dict)
@limiter.limit("60/minute")
def get_my_events(
    request: Request,
    current_user: User = Depends(require_organizer),
    db: Session = Depends(get_db),
):
    """Events the current organizer owns, newest first, in any status."""
    events = EventService.list_organizer_events(db, current_user)
    return success(
        data=[EventDetailResponse.model_validate(e) for e in events],
        message="Events retrieved",
    )


@router.get("/all", response_model=dict)
@limiter.limit("60/minute")
def get_all_events(
    request: Request,
    current_admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Admin: every event with its organizer"""
    events = EventService.list_all_events(db)
    return success(
        data=[EventAdminResponse.model_validate(e) for e in events],
        message="Events retrieved",
    )


@router.get("/{event_id}/organizer", response_model=dict)
@limiter.limit("60/minute")
def get_event_for_organizer(
    request: Request,
    event_id: int,
    current_user: User = Depends(require_organizer),
    db: Session = Depends(get_db),
):
    event = EventService.get_organizer_event(db, event_id, current_user)
    return success(data=EventDetailResponse.model_validate(event), message="Event retrieved")


@router.patch("/{event_id}/status", response_model=dict)
@limiter.limit("30/minute")
def update_event_status(
    request: Request,
    event_id: int,
    payload: EventStatusUpdate,
    current_user: User = Depends(require_organizer),
    db: Session = Depends(get_db),
):
    event = EventService.update_status(db, event_id, current_user, payload.status)
    return success(data=EventDetailResponse.model_validate(event), message="Event status updated")


@router.put("/{event_id}", response_model=dict)
@limiter.limit("30/minute")
def update_event(
    request: Request,
    event_id: int,
    event_data: EventUpdate,
    current_user: User = Depends(require_organizer),
    db: Session = Depends(get_db),
):
    event = EventService.update_event(db, event_id, current_user, event_data)
    return success(data=EventDetailResponse.model_validate(event), message="Event updated successfully")


@router.delete("/{event_id}", response_model=dict)
@limiter.limit("20/minute")
def delete_event(
    request: Request,
    event_id: int,
    current_user: User = Depends(require_organizer),
    db: Session = Depends(get_db),
):
    EventService.delete_event(db, event_id, current_user)
    return success(message="Event deleted successfully")


# Must stay after the fixed paths above

@router.get("/{event_id}", response_model=dict)
@limiter.limit("100/minute")
def get_event(
    request: Request,
    event_id: int,
    db: Session = Depends(get_db),
):
    event = EventService.get_published_event(db, event_id)
    return success(data=EventDetailResponse.model_validate(event), message="Event retrieved")
