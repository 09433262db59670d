"""Services for SynapseWrite API."""

from synapsewrite.services.completion import CompletionClient, CompletionRequest
from synapsewrite.services.events import EventLogger
from synapsewrite.services.rate_limiter import (
    LocalCounterStore,
    RateLimiter,
    SharedCounterStore,
)
from synapsewrite.services.relay import StreamRelay

__all__ = [
    "CompletionClient",
    "CompletionRequest",
    "EventLogger",
    "LocalCounterStore",
    "RateLimiter",
    "SharedCounterStore",
    "StreamRelay",
]
