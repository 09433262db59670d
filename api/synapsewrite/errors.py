"""Error taxonomy shared by the relay and the pass-through routes.

Each error carries the HTTP status it maps to and a client-facing message.
The exception handler in ``synapsewrite.main`` turns them into the
``{"error": ..., "detail": ...}`` envelope.
"""

from typing import Any

from fastapi import status


class SynapseWriteError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, detail: Any = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_content(self) -> dict[str, Any]:
        content: dict[str, Any] = {"error": self.message}
        if self.detail is not None:
            content["detail"] = self.detail
        return content


class MalformedClientRequest(SynapseWriteError):
    """The request body is missing a required field or is invalid."""

    status_code = status.HTTP_400_BAD_REQUEST


class RateLimited(SynapseWriteError):
    """The client exceeded its request budget for the current window."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS

    def __init__(self, retry_after: int, message: str = "Rate limit exceeded"):
        super().__init__(message)
        self.retry_after = retry_after

    def to_content(self) -> dict[str, Any]:
        content = super().to_content()
        content["retryAfter"] = self.retry_after
        return content


class ConfigurationError(SynapseWriteError):
    """Required credentials or settings are absent. Fatal, never retried."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class UpstreamUnavailable(SynapseWriteError):
    """A third-party service returned non-success or could not be reached."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, message: str, detail: Any = None, upstream_status: int | None = None):
        super().__init__(message, detail)
        self.upstream_status = upstream_status
