from typing import List, Optional
from datetime import datetime

from pydantic import AliasChoices, BaseModel, Field

from app.models.order import OrderStatus, TicketTierName


class TicketLine(BaseModel):
    tier_name: TicketTierName
    quantity: int = Field(..., ge=1, le=100)
    # Clients send either the tier's `price` or an explicit `price_per_ticket`
    price_per_ticket: float = Field(
        ...,
        ge=0,
        validation_alias=AliasChoices("price_per_ticket", "price"),
    )

    @property
    def line_total(self) -> float:
        return self.quantity * self.price_per_ticket


class PaymentDetails(BaseModel):
    subtotal: float = Field(..., ge=0)
    processing_fee: float = Field(..., ge=0)
    discount_amount: float = Field(default=0.0, ge=0)
    total_amount: float = Field(..., ge=0)


class CreateOrderRequest(BaseModel):
    event_id: int = Field(..., gt=0)
    tickets: List[TicketLine] = Field(..., min_length=1, max_length=10)
    payment_details: PaymentDetails
    coupon_id: Optional[int] = Field(None, gt=0)


class VerifyPaymentRequest(BaseModel):
    razorpay_order_id: str = Field(..., min_length=1, max_length=100)
    razorpay_payment_id: str = Field(..., min_length=1, max_length=100)
    razorpay_signature: str = Field(..., min_length=1, max_length=200)
    order_id: int = Field(..., gt=0)


class PaymentFailureRequest(BaseModel):
    order_id: int = Field(..., gt=0)


class OrderTicketResponse(BaseModel):
    tier_name: TicketTierName
    quantity: int
    price_per_ticket: float

    class Config:
        from_attributes = True


class GatewayRefResponse(BaseModel):
    order_id: str
    payment_id: Optional[str] = None


class OrderEventSummary(BaseModel):
    id: int
    title: str
    date: datetime
    location: str
    image_url: str

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: int
    event_id: int
    buyer_id: int
    coupon_id: Optional[int] = None
    status: OrderStatus
    tickets: List[OrderTicketResponse]
    payment_details: PaymentDetails
    gateway_ref: GatewayRefResponse
    event: Optional[OrderEventSummary] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
