"""Payments router for Razorpay checkout orders and payment verification."""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from synapsewrite.config import settings
from synapsewrite.dependencies import Services, get_services
from synapsewrite.errors import ConfigurationError, MalformedClientRequest
from synapsewrite.middleware.rate_limit import limiter
from synapsewrite.schemas.payments import (
    CreateOrderRequest,
    CreateOrderResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from synapsewrite.services.razorpay import PLANS, verify_payment_signature

router = APIRouter(prefix="/api/v1/payments", tags=["Payments"])


@router.post(
    "/orders",
    response_model=CreateOrderResponse,
    status_code=status.HTTP_200_OK,
)
@limiter.limit(settings.payment_rate_limit)
async def create_order(
    request: Request,
    data: CreateOrderRequest,
    services: Services = Depends(get_services),
) -> CreateOrderResponse:
    """
    Create a Razorpay order for a subscription plan.

    In mock mode the order is fabricated locally and cannot be charged.
    """
    if data.plan_id not in PLANS:
        raise MalformedClientRequest("Invalid planId")

    order = await services.razorpay.create_order(data.plan_id)
    await services.events.send(
        "payment.order_created",
        plan_id=data.plan_id,
        order_id=order.get("id"),
        mock=services.razorpay.mock,
    )
    return CreateOrderResponse(order=order)


@router.post(
    "/verify",
    response_model=VerifyPaymentResponse,
    status_code=status.HTTP_200_OK,
    responses={400: {"description": "Signature mismatch"}},
)
async def verify_payment(
    data: VerifyPaymentRequest,
    services: Services = Depends(get_services),
) -> VerifyPaymentResponse | JSONResponse:
    """
    Verify the signature Razorpay Checkout returns after a payment.

    Returns ``{"ok": true}`` when the signature matches, otherwise 400 with
    ``{"ok": false}``.
    """
    secret = services.settings.razorpay_key_secret
    if not secret:
        raise ConfigurationError("Missing RAZORPAY_KEY_SECRET")

    valid = verify_payment_signature(
        data.razorpay_order_id,
        data.razorpay_payment_id,
        data.razorpay_signature,
        secret,
    )
    if not valid:
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"ok": False})
    return VerifyPaymentResponse(ok=True)
