"""Payment schemas."""

from typing import Any

from pydantic import BaseModel, field_validator


class CreateOrderRequest(BaseModel):
    """Request to create a checkout order for a plan."""

    plan_id: str


class CreateOrderResponse(BaseModel):
    """Order to hand to the Razorpay Checkout widget."""

    ok: bool = True
    order: dict[str, Any]


class VerifyPaymentRequest(BaseModel):
    """Values returned by Razorpay Checkout after a payment."""

    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str

    @field_validator("razorpay_order_id", "razorpay_payment_id", "razorpay_signature")
    @classmethod
    def validate_present(cls, v: str) -> str:
        """Reject empty values."""
        if not v:
            raise ValueError("Missing fields")
        return v


class VerifyPaymentResponse(BaseModel):
    ok: bool
