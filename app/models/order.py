from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, Enum, Index
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from app.db.base_class import Base


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    SUCCESSFUL = "successful"
    FAILED = "failed"


class TicketTierName(str, enum.Enum):
    GENERAL = "General"
    PREMIUM = "Premium"
    VIP = "VIP"
    EARLY_BIRD = "Early Bird"


ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.SUCCESSFUL, OrderStatus.FAILED}),
    OrderStatus.SUCCESSFUL: frozenset(),
    OrderStatus.FAILED: frozenset(),
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    """Return True if an order may move from ``current`` to ``target``.

    Re-applying the state an order is already in is always allowed so that
    retried verifications and duplicate webhooks stay harmless.
    """
    if current == target:
        return True
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        Index("ix_orders_buyer_coupon_status", "buyer_id", "coupon_id", "status"),
    )

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id"), nullable=False, index=True)
    buyer_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    coupon_id = Column(Integer, ForeignKey("coupons.id"), nullable=True)

    # Pricing, fixed at creation
    subtotal = Column(Float, nullable=False)
    processing_fee = Column(Float, nullable=False)
    discount_amount = Column(Float, default=0.0, nullable=False)
    total_amount = Column(Float, nullable=False)

    status = Column(Enum(OrderStatus), default=OrderStatus.PENDING, nullable=False, index=True)

    # Gateway reference
    razorpay_order_id = Column(String(100), nullable=False, unique=True, index=True)
    razorpay_payment_id = Column(String(100), nullable=True, index=True)
    razorpay_signature = Column(String(200), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    event = relationship("Event", back_populates="orders")
    buyer = relationship("User", back_populates="orders")
    coupon = relationship("Coupon", back_populates="orders")
    tickets = relationship(
        "OrderTicket",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderTicket.position",
    )

    @property
    def payment_details(self) -> dict:
        return {
            "subtotal": self.subtotal,
            "processing_fee": self.processing_fee,
            "discount_amount": self.discount_amount,
            "total_amount": self.total_amount,
        }

    @property
    def gateway_ref(self) -> dict:
        return {
            "order_id": self.razorpay_order_id,
            "payment_id": self.razorpay_payment_id,
        }


class OrderTicket(Base):
    __tablename__ = "order_tickets"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)  # Preserves submitted line order

    tier_name = Column(Enum(TicketTierName), nullable=False)
    quantity = Column(Integer, nullable=False)
    price_per_ticket = Column(Float, nullable=False)  # Snapshot at booking time

    # Relationships
    order = relationship("Order", back_populates="tickets")
