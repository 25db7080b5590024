import hashlib
import hmac
import json
import math
from dataclasses import dataclass
from typing import List, Optional, Protocol

import structlog
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.core.exceptions import (
    CouponNotFound,
    EventNotFound,
    InvalidPaymentDetails,
    InvalidSignature,
    OrderNotFound,
)
from app.models.coupon import Coupon
from app.models.event import Event
from app.models.order import Order, OrderStatus, OrderTicket, can_transition
from app.models.user import User
from app.schemas.order import PaymentDetails, TicketLine
from app.services.coupon_service import CouponService

logger = structlog.get_logger()

ORDER_PAID_EVENT = "order.paid"
# Amounts are compared to one minor unit
AMOUNT_TOLERANCE = 0.01


class PaymentGateway(Protocol):
    key_id: str

    def create_order(self, amount_minor: int, currency: str) -> dict: ...


@dataclass(frozen=True)
class PaymentConfig:
    key_secret: str
    webhook_secret: str
    currency: str = "INR"
    processing_fee_percent: float = 2.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "PaymentConfig":
        return cls(
            key_secret=settings.RAZORPAY_KEY_SECRET,
            webhook_secret=settings.RAZORPAY_WEBHOOK_SECRET,
            currency=settings.PAYMENT_CURRENCY,
            processing_fee_percent=settings.PROCESSING_FEE_PERCENT,
        )


def hmac_sha256_hex(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def payment_signature(secret: str, razorpay_order_id: str, razorpay_payment_id: str) -> str:
    """Signature Razorpay returns to the checkout client for a captured payment."""
    return hmac_sha256_hex(secret, f"{razorpay_order_id}|{razorpay_payment_id}".encode())


def to_minor_units(amount: float) -> int:
    # Half-up rounding, matching the checkout client
    return int(math.floor(amount * 100 + 0.5))


def _amounts_match(expected: float, actual: float) -> bool:
    return abs(expected - actual) <= AMOUNT_TOLERANCE + 1e-9


def _malformed_webhook(body_length: int) -> HTTPException:
    logger.warning("webhook_payload_malformed", body_length=body_length)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Malformed webhook payload.")


def _entity_id(payload: dict, key: str, body_length: int) -> Optional[str]:
    """``payload[key].entity.id``; absent levels give None, wrongly typed ones are malformed."""
    wrapper = payload.get(key, {})
    if not isinstance(wrapper, dict):
        raise _malformed_webhook(body_length)
    entity = wrapper.get("entity", {})
    if not isinstance(entity, dict):
        raise _malformed_webhook(body_length)
    entity_id = entity.get("id")
    if entity_id is not None and not isinstance(entity_id, str):
        raise _malformed_webhook(body_length)
    return entity_id


class OrderLifecycleManager:
    """Creates pending orders and moves them to successful or failed.

    Writes are single-row updates with no state guard: a retried call with the
    same inputs lands on the same state, and conflicting terminal writes are
    applied last-write-wins and logged as ``order_status_conflict``.
    """

    def __init__(self, db: Session, gateway: PaymentGateway, config: PaymentConfig):
        self.db = db
        self.gateway = gateway
        self.config = config

    # Creation

    def create_order(
        self,
        buyer: User,
        event_id: int,
        tickets: List[TicketLine],
        payment_details: PaymentDetails,
        coupon_id: Optional[int] = None,
    ) -> tuple[dict, Order]:
        event = self.db.query(Event).filter(Event.id == event_id).first()
        if not event:
            raise EventNotFound()

        coupon = None
        if coupon_id is not None:
            coupon = self.db.query(Coupon).filter(Coupon.id == coupon_id).first()
            if not coupon:
                raise CouponNotFound()
            # Same rules as the validate endpoint, against the server-side subtotal
            CouponService.validate_coupon(
                self.db,
                coupon.code,
                sum(line.line_total for line in tickets),
                event.id,
                buyer,
            )

        self._check_payment_details(tickets, payment_details, coupon)

        # Gateway first: if it fails nothing has been written
        razorpay_order = self.gateway.create_order(
            to_minor_units(payment_details.total_amount),
            self.config.currency,
        )

        order = Order(
            event_id=event.id,
            buyer_id=buyer.id,
            coupon_id=coupon.id if coupon else None,
            subtotal=payment_details.subtotal,
            processing_fee=payment_details.processing_fee,
            discount_amount=payment_details.discount_amount,
            total_amount=payment_details.total_amount,
            status=OrderStatus.PENDING,
            razorpay_order_id=razorpay_order["id"],
            razorpay_payment_id=None,
            razorpay_signature=None,
            tickets=[
                OrderTicket(
                    position=position,
                    tier_name=line.tier_name,
                    quantity=line.quantity,
                    price_per_ticket=line.price_per_ticket,
                )
                for position, line in enumerate(tickets)
            ],
        )
        try:
            self.db.add(order)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception(
                "order_persist_failed",
                buyer_id=buyer.id,
                event_id=event.id,
                razorpay_order_id=razorpay_order["id"],
            )
            raise
        self.db.refresh(order)

        logger.info(
            "order_created",
            order_id=order.id,
            buyer_id=buyer.id,
            event_id=event.id,
            coupon_id=order.coupon_id,
            total_amount=order.total_amount,
            razorpay_order_id=order.razorpay_order_id,
        )
        return razorpay_order, order

    def _check_payment_details(
        self,
        tickets: List[TicketLine],
        details: PaymentDetails,
        coupon: Optional[Coupon],
    ) -> None:
        subtotal = sum(line.line_total for line in tickets)
        if not _amounts_match(subtotal, details.subtotal):
            raise InvalidPaymentDetails("Subtotal does not match the selected tickets.")

        fee = round(subtotal * self.config.processing_fee_percent / 100, 2)
        if not _amounts_match(fee, details.processing_fee):
            raise InvalidPaymentDetails("Processing fee does not match the configured rate.")

        discount = CouponService.calculate_discount(coupon, subtotal) if coupon else 0.0
        if not _amounts_match(discount, details.discount_amount):
            raise InvalidPaymentDetails("Discount does not match the applied coupon.")

        total = subtotal + fee - discount
        if not _amounts_match(total, details.total_amount):
            raise InvalidPaymentDetails("Total amount does not add up.")

    # Transitions

    def _get_order(self, order_id: int, buyer: Optional[User] = None) -> Order:
        query = self.db.query(Order).filter(Order.id == order_id)
        if buyer is not None:
            query = query.filter(Order.buyer_id == buyer.id)
        order = query.first()
        if not order:
            raise OrderNotFound()
        return order

    def _apply_status(self, order: Order, target: OrderStatus, source: str) -> None:
        if not can_transition(order.status, target):
            logger.warning(
                "order_status_conflict",
                order_id=order.id,
                current_status=order.status.value,
                new_status=target.value,
                source=source,
            )
        order.status = target

    def verify_payment(
        self,
        razorpay_order_id: str,
        razorpay_payment_id: str,
        razorpay_signature: str,
        order_id: int,
        buyer: Optional[User] = None,
    ) -> Order:
        """Settle an order from the checkout client's signed payment callback.

        A matching signature marks the order successful; any mismatch marks it
        failed.
        """
        order = self._get_order(order_id, buyer)
        expected_signature = payment_signature(
            self.config.key_secret, razorpay_order_id, razorpay_payment_id
        )

        try:
            if hmac.compare_digest(expected_signature.encode(), razorpay_signature.encode()):
                self._apply_status(order, OrderStatus.SUCCESSFUL, "verify")
                order.razorpay_payment_id = razorpay_payment_id
                order.razorpay_signature = razorpay_signature
            else:
                self._apply_status(order, OrderStatus.FAILED, "verify")
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("payment_verification_commit_failed", order_id=order_id)
            raise
        self.db.refresh(order)

        if order.status == OrderStatus.SUCCESSFUL:
            logger.info(
                "payment_verified",
                order_id=order.id,
                razorpay_order_id=razorpay_order_id,
                razorpay_payment_id=razorpay_payment_id,
            )
        else:
            logger.warning(
                "payment_signature_mismatch",
                order_id=order.id,
                razorpay_order_id=razorpay_order_id,
                razorpay_payment_id=razorpay_payment_id,
            )
        return order

    def mark_failed(self, order_id: int, buyer: Optional[User] = None) -> Order:
        order = self._get_order(order_id, buyer)
        self._apply_status(order, OrderStatus.FAILED, "client_failure")
        self.db.commit()
        self.db.refresh(order)
        logger.info("payment_failure_recorded", order_id=order.id)
        return order

    def handle_webhook(self, raw_body: bytes, signature_header: Optional[str]) -> Optional[Order]:
        """Apply a Razorpay webhook; returns the updated order, if any."""
        digest = hmac_sha256_hex(self.config.webhook_secret, raw_body)
        if not signature_header or not hmac.compare_digest(digest.encode(), signature_header.encode()):
            logger.warning("webhook_signature_invalid", body_length=len(raw_body))
            raise InvalidSignature()

        try:
            event = json.loads(raw_body)
        except ValueError:
            event = None
        if not isinstance(event, dict):
            raise _malformed_webhook(len(raw_body))

        event_type = event.get("event")
        logger.info("webhook_received", webhook_event=event_type)
        if event_type != ORDER_PAID_EVENT:
            return None

        payload = event.get("payload", {})
        if not isinstance(payload, dict):
            raise _malformed_webhook(len(raw_body))
        razorpay_order_id = _entity_id(payload, "order", len(raw_body))
        razorpay_payment_id = _entity_id(payload, "payment", len(raw_body))
        if not razorpay_order_id:
            logger.warning("webhook_order_reference_missing", webhook_event=event_type)
            return None

        order = self.db.query(Order).filter(Order.razorpay_order_id == razorpay_order_id).first()
        if not order:
            logger.info("webhook_order_unknown", razorpay_order_id=razorpay_order_id)
            return None

        try:
            self._apply_status(order, OrderStatus.SUCCESSFUL, "webhook")
            if razorpay_payment_id:
                order.razorpay_payment_id = razorpay_payment_id
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception("webhook_payment_processing_failed", razorpay_order_id=razorpay_order_id)
            raise
        self.db.refresh(order)

        logger.info(
            "webhook_payment_success",
            order_id=order.id,
            razorpay_order_id=razorpay_order_id,
            razorpay_payment_id=razorpay_payment_id,
        )
        return order
