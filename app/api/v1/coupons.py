from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session
from typing import Optional

from app.db.session import get_db
from app.api.deps import get_current_user, require_admin
from app.core.rate_limiter import limiter
from app.models.user import User
from app.services.coupon_service import CouponService
from app.schemas.coupon import (
    CouponCreate,
    CouponResponse,
    CouponUpdate,
    ValidateCouponRequest,
    ValidateCouponResponse,
)
from app.utils.response import success

router = APIRouter()


@router.get("/available", response_model=dict)
@limiter.limit("60/minute")
def get_available_coupons(
    request: Request,
    event_id: Optional[int] = Query(None, gt=0),
    category_id: Optional[int] = Query(None, gt=0),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Coupons a buyer may pick from at checkout for an event."""
    coupons = CouponService.list_available(db, event_id, category_id)
    data = [CouponResponse.model_validate(coupon) for coupon in coupons]
    if not data:
        return success(data=[], message="No coupons are available for this event right now.")
    return success(data=data, message="Coupons retrieved")


@router.post("/validate", response_model=dict)
@limiter.limit("30/minute")
def validate_coupon(
    request: Request,
    payload: ValidateCouponRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Validate a coupon code for a purchase and preview its discount."""
    coupon = CouponService.validate_coupon(
        db, payload.code, payload.subtotal, payload.event_id, current_user
    )
    result = ValidateCouponResponse(
        coupon=CouponResponse.model_validate(coupon),
        discount_amount=CouponService.calculate_discount(coupon, payload.subtotal),
    )
    return success(data=result, message="Coupon applied successfully")


# Administration

@router.post("/", response_model=dict, status_code=status.HTTP_201_CREATED)
def create_coupon(
    coupon_data: CouponCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Create a new coupon (admin only)."""
    coupon = CouponService.create_coupon(db, coupon_data)
    return success(data=CouponResponse.model_validate(coupon), message="Coupon created successfully")


@router.get("/", response_model=dict)
def list_coupons(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """List all coupons (admin only)."""
    coupons = CouponService.list_coupons(db, skip, limit)
    return success(
        data=[CouponResponse.model_validate(c) for c in coupons],
        message="Coupons retrieved successfully",
    )


@router.get("/{coupon_id}", response_model=dict)
def get_coupon(
    coupon_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Get a coupon by ID (admin only)."""
    coupon = CouponService.get_coupon(db, coupon_id)
    return success(data=CouponResponse.model_validate(coupon), message="Coupon retrieved successfully")


@router.put("/{coupon_id}", response_model=dict)
def update_coupon(
    coupon_id: int,
    coupon_data: CouponUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Update a coupon (admin only)."""
    coupon = CouponService.update_coupon(db, coupon_id, coupon_data)
    return success(data=CouponResponse.model_validate(coupon), message="Coupon updated successfully")


@router.delete("/{coupon_id}", response_model=dict)
def delete_coupon(
    coupon_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Delete a coupon (admin only); coupons already used on orders are deactivated."""
    CouponService.delete_coupon(db, coupon_id)
    return success(message="Coupon deleted successfully")
