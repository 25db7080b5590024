from fastapi import HTTPException, status
from typing import Optional


class DomainError(HTTPException):
    """HTTPException carrying a stable machine-readable error code."""

    code = "ERROR"
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Request failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.message
        super().__init__(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "errors": [{"code": self.code}],
            },
        )


# Not found

class CouponNotFound(DomainError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    message = "Invalid coupon code."


class EventNotFound(DomainError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    message = "Event not found."


class UserNotFound(DomainError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    message = "User not found."


class OrderNotFound(DomainError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    message = "Order not found."


class CategoryNotFound(DomainError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    message = "Category not found."


class OrganizerNotFound(DomainError):
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    message = "Organizer not found."


# Coupon rejections

class CouponRejected(DomainError):
    """Base for recoverable coupon validation failures."""


class CouponExpired(CouponRejected):
    code = "EXPIRED"
    message = "Coupon is expired or not yet active."


class BelowMinimumPurchase(CouponRejected):
    code = "BELOW_MINIMUM"

    def __init__(self, min_purchase: float):
        super().__init__(f"Minimum purchase of ₹{min_purchase:g} required.")


class NotApplicableToEvent(CouponRejected):
    code = "NOT_APPLICABLE_TO_EVENT"
    message = "This coupon is not valid for this specific event."


class NotApplicableToCategory(CouponRejected):
    code = "NOT_APPLICABLE_TO_CATEGORY"
    message = "This coupon is not valid for this event category."


class CouponNotEligible(CouponRejected):
    code = "NOT_ELIGIBLE"
    message = "You are not eligible to use this coupon."


# Payments

class InvalidSignature(DomainError):
    code = "INVALID_SIGNATURE"
    message = "Invalid Signature"


class InvalidPaymentDetails(DomainError):
    code = "INVALID_PAYMENT_DETAILS"
    message = "Payment details do not match the selected tickets."


class GatewayUnavailable(DomainError):
    code = "GATEWAY_UNAVAILABLE"
    status_code = status.HTTP_502_BAD_GATEWAY
    message = "Could not initiate payment."

