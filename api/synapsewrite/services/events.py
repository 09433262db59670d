"""Structured event logging with optional Logflare forwarding."""

import json
import logging
from datetime import datetime, timezone
from typing import Any

import httpx

logger = logging.getLogger(__name__)

LOGFLARE_URL = "https://api.logflare.app/logs"


class EventLogger:
    """
    Write one JSON line per event and forward it to Logflare when configured.

    Forwarding is best effort: failures are logged and never raised to the
    caller.
    """

    def __init__(
        self,
        http: httpx.AsyncClient | None = None,
        *,
        source_id: str | None = None,
        api_key: str | None = None,
    ):
        self._http = http
        self._source_id = source_id
        self._api_key = api_key
        self.sent: int = 0

    @property
    def forwarding(self) -> bool:
        return bool(self._http and self._source_id and self._api_key)

    async def send(self, event: str, **fields: Any) -> dict[str, Any]:
        """Log ``event`` with ``fields`` and return the payload."""
        payload = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "event": event,
            **fields,
        }
        logger.info(json.dumps(payload, default=str))

        if self.forwarding:
            try:
                response = await self._http.post(
                    LOGFLARE_URL,
                    params={"api_key": self._api_key, "source": self._source_id},
                    json=[payload],
                )
                response.raise_for_status()
                self.sent += 1
            except httpx.HTTPError as exc:
                logger.warning("Log forward failed: %s", exc)
        return payload
