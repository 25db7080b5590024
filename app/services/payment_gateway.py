import secrets

import razorpay
import structlog

from app.core.config import settings
from app.core.exceptions import GatewayUnavailable

logger = structlog.get_logger()


class RazorpayGateway:
    """Thin wrapper over the Razorpay client used to open checkout orders."""

    def __init__(self, key_id: str, key_secret: str):
        self.key_id = key_id
        self._client = razorpay.Client(auth=(key_id, key_secret))

    def create_order(self, amount_minor: int, currency: str) -> dict:
        """Create a gateway order for ``amount_minor`` (paise for INR)."""
        receipt = f"rcpt_{secrets.token_hex(8)}"
        try:
            razorpay_order = self._client.order.create(
                {
                    "amount": amount_minor,
                    "currency": currency,
                    "receipt": receipt,
                }
            )
        except Exception as exc:
            logger.error(
                "gateway_order_failed",
                amount=amount_minor,
                currency=currency,
                receipt=receipt,
                error=str(exc),
            )
            raise GatewayUnavailable() from exc

        logger.info(
            "gateway_order_created",
            razorpay_order_id=razorpay_order.get("id"),
            amount=amount_minor,
            currency=currency,
        )
        return razorpay_order


_gateway = None


def get_payment_gateway() -> RazorpayGateway:
    """FastAPI dependency returning the process-wide gateway client."""
    global _gateway
    if _gateway is None:
        _gateway = RazorpayGateway(settings.RAZORPAY_KEY_ID, settings.RAZORPAY_KEY_SECRET)
    return _gateway
