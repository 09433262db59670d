"""Rate limiting middleware using slowapi."""

from slowapi import Limiter
from starlette.requests import Request

from synapsewrite.config import settings


def client_ip(request: Request) -> str:
    """
    Best-effort client address.

    Prefers the first hop of X-Forwarded-For, then X-Real-IP, then the socket
    peer, since the API normally runs behind a proxy.
    """
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


# Decorator-based per-IP limits for the payment and export routes. The stream
# relay counts requests through its own RateLimiter instead.
limiter = Limiter(
    key_func=client_ip,
    storage_uri=settings.rate_limit_storage_url.removeprefix("async+")
    if settings.rate_limit_storage_url
    else "memory://",
)


def reset_limiter() -> None:
    """Reset the limiter storage. Used in tests to clear rate limit state."""
    limiter.reset()
