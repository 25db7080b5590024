from fastapi import APIRouter, Depends, HTTPException, Request, status
import structlog

from app.api.deps import get_current_user, get_order_manager
from app.core.rate_limiter import limiter
from app.models.order import OrderStatus
from app.models.user import User
from app.schemas.order import (
    CreateOrderRequest,
    OrderResponse,
    PaymentFailureRequest,
    VerifyPaymentRequest,
)
from app.services.payment_service import OrderLifecycleManager
from app.utils.response import success

router = APIRouter()

logger = structlog.get_logger()


@router.post(
    "/create-order",
    summary="Create a pending ticket order",
    description="""
Opens a Razorpay checkout order for the selected tickets.

Process:
1. Re-derives subtotal, processing fee, discount and total
2. Creates the Razorpay order in minor units (paise for INR)
3. Persists the order as pending
4. Returns the gateway payload and public key id required by the checkout
""",
    responses={
        200: {"description": "Order created successfully"},
        400: {"description": "Payment details do not add up"},
        401: {"description": "Authentication required"},
        404: {"description": "Buyer, event or coupon not found"},
        502: {"description": "Payment gateway unavailable"},
    },
    tags=["Payments"],
)
@limiter.limit("20/minute")
def create_order(
    request: Request,
    payload: CreateOrderRequest,
    current_user: User = Depends(get_current_user),
    manager: OrderLifecycleManager = Depends(get_order_manager),
):
    """Create a Razorpay order and the pending order that tracks it"""
    razorpay_order, order = manager.create_order(
        buyer=current_user,
        event_id=payload.event_id,
        tickets=payload.tickets,
        payment_details=payload.payment_details,
        coupon_id=payload.coupon_id,
    )
    return success(
        data={
            "razorpay_order": razorpay_order,
            "order": OrderResponse.model_validate(order),
            "key_id": manager.gateway.key_id,
        },
        message="Order created successfully",
    )


@router.post(
    "/verify-payment",
    responses={
        200: {"description": "Payment verified"},
        400: {"description": "Signature did not match; order marked failed"},
        404: {"description": "Order not found"},
    },
    tags=["Payments"],
)
@limiter.limit("20/minute")
def verify_payment(
    request: Request,
    payload: VerifyPaymentRequest,
    current_user: User = Depends(get_current_user),
    manager: OrderLifecycleManager = Depends(get_order_manager),
):
    """Verify the checkout callback signature and settle the order"""
    order = manager.verify_payment(
        razorpay_order_id=payload.razorpay_order_id,
        razorpay_payment_id=payload.razorpay_payment_id,
        razorpay_signature=payload.razorpay_signature,
        order_id=payload.order_id,
        buyer=current_user,
    )
    if order.status != OrderStatus.SUCCESSFUL:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": "Payment verification failed.",
                "errors": [{"code": "PAYMENT_VERIFICATION_FAILED"}],
            },
        )

    return success(
        data={"order_id": order.id, "status": order.status.value},
        message="Payment verified successfully.",
    )


@router.post("/payment-failure", tags=["Payments"])
@limiter.limit("20/minute")
def payment_failure(
    request: Request,
    payload: PaymentFailureRequest,
    current_user: User = Depends(get_current_user),
    manager: OrderLifecycleManager = Depends(get_order_manager),
):
    """Record a payment the buyer abandoned or the checkout reported as failed"""
    order = manager.mark_failed(payload.order_id, buyer=current_user)
    return success(
        data={"order_id": order.id, "status": order.status.value},
        message="Payment failure recorded.",
    )


@router.post("/razorpay-webhook", tags=["Payments"])
@limiter.limit("120/minute")
async def razorpay_webhook(
    request: Request,
    manager: OrderLifecycleManager = Depends(get_order_manager),
):
    """Handle Razorpay webhooks"""
    # Signature covers the exact bytes Razorpay sent
    raw_body = await request.body()
    signature = request.headers.get("X-Razorpay-Signature")
    order = manager.handle_webhook(raw_body, signature)
    return success(
        data={"status": "ok", "order_id": order.id if order else None},
        message="Webhook processed",
    )
