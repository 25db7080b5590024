from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.api.deps import get_current_user
from app.core.rate_limiter import limiter
from app.db.session import get_db
from app.models.user import User
from app.schemas.order import OrderResponse
from app.services import order_service
from app.utils.response import success

router = APIRouter()


@router.get("/my-orders", response_model=dict)
@limiter.limit("30/minute")
def get_my_orders(
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get the buyer's order history"""
    orders = order_service.list_buyer_orders(db, current_user)
    return success(
        data=[OrderResponse.model_validate(order) for order in orders],
        message="Orders retrieved",
    )


@router.get("/payment/{payment_id}", response_model=dict)
@limiter.limit("30/minute")
def get_order_by_payment(
    request: Request,
    payment_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Look up an order by its Razorpay payment id, e.g. on the checkout success page"""
    order = order_service.get_order_by_payment_id(db, current_user, payment_id)
    return success(data=OrderResponse.model_validate(order), message="Order retrieved")


@router.get("/{order_id}", response_model=dict)
@limiter.limit("30/minute")
def get_order_detail(
    request: Request,
    order_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    order = order_service.get_buyer_order(db, current_user, order_id)
    return success(data=OrderResponse.model_validate(order), message="Order retrieved")
