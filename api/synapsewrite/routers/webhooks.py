"""Webhooks router for payment gateway callbacks."""

import json
from typing import Any

from fastapi import APIRouter, Depends, Header, Request, status

from synapsewrite.dependencies import Services, get_services
from synapsewrite.errors import ConfigurationError, MalformedClientRequest
from synapsewrite.services.razorpay import verify_webhook_signature

router = APIRouter(prefix="/api/v1/webhooks", tags=["Webhooks"])


def _dig(data: dict[str, Any], *keys: str) -> dict[str, Any]:
    """Follow nested keys, yielding an empty dict where the shape differs."""
    for key in keys:
        value = data.get(key)
        data = value if isinstance(value, dict) else {}
    return data


@router.post("/razorpay", status_code=status.HTTP_200_OK)
async def razorpay_webhook(
    request: Request,
    x_razorpay_signature: str = Header(default=""),
    services: Services = Depends(get_services),
) -> dict[str, str]:
    """
    Receive a Razorpay webhook.

    The raw body is authenticated with the webhook secret before it is
    parsed. Events are only logged; nothing is persisted.
    """
    secret = services.settings.razorpay_webhook_secret
    if not secret:
        raise ConfigurationError("Missing RAZORPAY_WEBHOOK_SECRET")

    raw_body = await request.body()
    if not verify_webhook_signature(raw_body, x_razorpay_signature, secret):
        raise MalformedClientRequest("Invalid signature")

    try:
        event = json.loads(raw_body)
    except ValueError as exc:
        raise MalformedClientRequest("Bad payload") from exc
    if not isinstance(event, dict):
        raise MalformedClientRequest("Bad payload")

    if event.get("event") == "payment.captured":
        payment = _dig(event, "payload", "payment", "entity")
        await services.events.send(
            "payment.captured",
            payment_id=payment.get("id"),
            order_id=payment.get("order_id"),
        )
    else:
        await services.events.send("payment.webhook", type=event.get("event"))

    return {"status": "ok"}
