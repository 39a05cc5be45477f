# app/core/payment_gateway.py
"""
Razorpay payment gateway adapter.

Responsibilities:
  - Create remote payment orders over the gateway's REST API.
  - Verify checkout signatures: hex(HMAC-SHA256(key_secret, "<order_id>|<payment_id>")).
  - Verify webhook signatures: hex(HMAC-SHA256(webhook_secret, raw_body)).

The client is built lazily once per process and reused across requests.
"""

import hashlib
import hmac
import logging
from functools import lru_cache
from typing import Any

import requests

from app.core.config import get_settings
from app.core.errors import GatewayUnavailableError, PaymentGatewayError

logger = logging.getLogger(__name__)


def to_subunits(amount: float) -> int:
    """Convert rupees to paise (the gateway's smallest currency unit)."""
    return int(round(amount * 100))


def from_subunits(amount: int) -> float:
    """Convert paise back to rupees."""
    return amount / 100


def compute_signature(secret: str, message: str | bytes) -> str:
    if isinstance(message, str):
        message = message.encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def signatures_match(expected: str, received: str) -> bool:
    # Constant-time compare; both sides are ASCII hex digests
    return hmac.compare_digest(expected.encode("utf-8"), received.encode("utf-8"))


def verify_webhook_signature(secret: str, body: bytes, signature: str) -> bool:
    return signatures_match(compute_signature(secret, body), signature)


class RazorpayGateway:
    """
    Thin client for the parts of the Razorpay API the checkout uses.
    """

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        api_base: str = "https://api.razorpay.com/v1",
        timeout: float = 10.0,
        webhook_secret: str | None = None,
    ):
        self.key_id = key_id
        self.key_secret = key_secret
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.webhook_secret = webhook_secret
        self._http = requests.Session()
        self._http.auth = (key_id, key_secret)

    def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """
        Create a gateway order.

        Args:
            amount: amount in sub-units (paise).

        Returns:
            The gateway's order entity (id, amount, currency, ...).

        Raises:
            PaymentGatewayError: on network failure or non-2xx response.
        """
        payload = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": notes or {},
        }
        try:
            response = self._http.post(
                f"{self.api_base}/orders",
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error("Gateway order creation failed: %s", e)
            raise PaymentGatewayError("Payment gateway unreachable") from e

        if response.status_code >= 400:
            logger.error(
                "Gateway order creation rejected (%s): %s",
                response.status_code,
                response.text,
            )
            raise PaymentGatewayError("Failed to create payment order")

        return response.json()

    def sign(self, order_id: str, payment_id: str) -> str:
        return compute_signature(self.key_secret, f"{order_id}|{payment_id}")

    def verify_payment_signature(
        self,
        order_id: str,
        payment_id: str,
        signature: str,
    ) -> bool:
        return signatures_match(self.sign(order_id, payment_id), signature)

    def verify_webhook(self, body: bytes, signature: str) -> bool:
        if not self.webhook_secret:
            return False
        return verify_webhook_signature(self.webhook_secret, body, signature)


@lru_cache
def _gateway_client() -> RazorpayGateway | None:
    settings = get_settings()
    if not settings.payments_enabled:
        return None
    logger.info("Initializing payment gateway client (key %s)", settings.RAZORPAY_KEY_ID)
    return RazorpayGateway(
        key_id=settings.RAZORPAY_KEY_ID,
        key_secret=settings.RAZORPAY_KEY_SECRET,
        api_base=settings.RAZORPAY_API_BASE,
        timeout=settings.GATEWAY_TIMEOUT_SECONDS,
        webhook_secret=settings.RAZORPAY_WEBHOOK_SECRET,
    )


def get_payment_gateway() -> RazorpayGateway:
    """
    FastAPI dependency returning the shared gateway client.

    Raises:
        GatewayUnavailableError(503): if credentials are not configured.
    """
    gateway = _gateway_client()
    if gateway is None:
        raise GatewayUnavailableError()
    return gateway
