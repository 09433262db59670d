"""Razorpay order creation and signature checks."""

import hashlib
import hmac
import logging
import secrets
import time
from typing import Any

import httpx

from synapsewrite.errors import ConfigurationError, UpstreamUnavailable

logger = logging.getLogger(__name__)

RAZORPAY_ORDERS_URL = "https://api.razorpay.com/v1/orders"

# Plan pricing in rupees
PLANS: dict[str, dict[str, Any]] = {
    "pro-monthly": {
        "amount": 499,
        "description": "SynapseWrite Pro - Monthly",
        "notes": {"plan": "pro-monthly"},
    },
    "pro-yearly": {
        "amount": 3999,
        "description": "SynapseWrite Pro - Yearly",
        "notes": {"plan": "pro-yearly"},
    },
}


def in_paise(amount_in_rupees: float) -> int:
    return round(amount_in_rupees * 100)


def _receipt() -> str:
    return f"rcpt_{int(time.time() * 1000)}"


def hmac_sha256_hex(secret: str, message: str | bytes) -> str:
    if isinstance(message, str):
        message = message.encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def verify_payment_signature(order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    """Checkout signature is HMAC-SHA256 of ``order_id|payment_id`` under the key secret."""
    expected = hmac_sha256_hex(secret, f"{order_id}|{payment_id}")
    return hmac.compare_digest(expected.encode(), signature.encode())


def verify_webhook_signature(body: bytes, signature: str, secret: str) -> bool:
    """Webhook signature is HMAC-SHA256 of the raw request body under the webhook secret."""
    expected = hmac_sha256_hex(secret, body)
    return hmac.compare_digest(expected.encode(), signature.encode())


class RazorpayClient:
    """Create orders against the Razorpay REST API, or fake them in mock mode."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        key_id: str | None,
        key_secret: str | None,
        mock: bool = False,
    ):
        self._http = http
        self._key_id = key_id
        self._key_secret = key_secret
        self.mock = mock

    async def create_order(self, plan_id: str) -> dict[str, Any]:
        """
        Create an order for ``plan_id``.

        In mock mode a fake order usable for opening Checkout is returned and
        no charge can be made against it.

        Raises:
            KeyError: unknown plan id
            ConfigurationError: live mode without credentials
            UpstreamUnavailable: Razorpay rejected the request or was unreachable
        """
        plan = PLANS[plan_id]
        amount = in_paise(plan["amount"])

        if self.mock:
            return {
                "id": f"order_MOCK_{secrets.token_hex(6)}",
                "amount": amount,
                "currency": "INR",
                "receipt": _receipt(),
                "notes": plan["notes"],
            }

        if not self._key_id or not self._key_secret:
            raise ConfigurationError("Razorpay keys missing")

        try:
            response = await self._http.post(
                RAZORPAY_ORDERS_URL,
                json={
                    "amount": amount,
                    "currency": "INR",
                    "receipt": _receipt(),
                    "notes": plan["notes"],
                    "payment_capture": 1,
                },
                auth=(self._key_id, self._key_secret),
            )
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable("Order creation failed", detail=str(exc) or type(exc).__name__) from exc

        if not response.is_success:
            logger.error("Razorpay order error %s: %s", response.status_code, response.text[:500])
            raise UpstreamUnavailable("Order creation failed", upstream_status=response.status_code)
        return response.json()
