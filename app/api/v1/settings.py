from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.api.deps import require_admin
from app.core.rate_limiter import limiter
from app.db.session import get_db
from app.models.user import User
from app.schemas.setting import SiteSettingsResponse, SiteSettingsUpdate
from app.services import setting_service
from app.utils.response import success

router = APIRouter()


@router.get("", response_model=dict)
@router.get("/", response_model=dict)
@limiter.limit("100/minute")
def get_site_settings(
    request: Request,
    db: Session = Depends(get_db),
):
    """Public: site name, contact details and social links"""
    settings_row = setting_service.get_settings(db)
    return success(data=SiteSettingsResponse.model_validate(settings_row), message="Settings retrieved")


@router.put("", response_model=dict)
@router.put("/", response_model=dict)
@limiter.limit("30/minute")
def update_site_settings(
    request: Request,
    payload: SiteSettingsUpdate,
    current_admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    settings_row = setting_service.update_settings(db, payload)
    return success(data=SiteSettingsResponse.model_validate(settings_row), message="Settings updated successfully")
