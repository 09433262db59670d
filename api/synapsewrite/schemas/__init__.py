"""Pydantic schemas for request/response validation."""

from synapsewrite.schemas.export import WordPressExportRequest, WordPressExportResponse
from synapsewrite.schemas.generate import GenerateResponse, GenerateSource, Verification
from synapsewrite.schemas.payments import (
    CreateOrderRequest,
    CreateOrderResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from synapsewrite.schemas.refresh import RefreshResponse, SourceItem
from synapsewrite.schemas.stream import StreamRequest

__all__ = [
    "StreamRequest",
    "RefreshResponse",
    "SourceItem",
    "GenerateResponse",
    "GenerateSource",
    "Verification",
    "WordPressExportRequest",
    "WordPressExportResponse",
    "CreateOrderRequest",
    "CreateOrderResponse",
    "VerifyPaymentRequest",
    "VerifyPaymentResponse",
]
