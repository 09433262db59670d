"""In-process cache with a TTL per entry."""

import logging
import time
from typing import Any

logger = logging.getLogger(__name__)


class TTLCache:
    """
    Dict-backed cache where each entry carries its own expiry.

    Expired entries are dropped when read, and at most every
    ``sweep_interval`` seconds a write also drops every expired entry, so
    keys that are never read again do not accumulate.
    """

    def __init__(self, default_ttl: int, *, sweep_interval: float = 60.0):
        self.default_ttl = default_ttl
        self.sweep_interval = sweep_interval
        self._entries: dict[str, tuple[float, Any]] = {}
        self._next_sweep = 0.0

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if expires_at < time.time():
            del self._entries[key]
            logger.debug("cache expired: %s", key)
            return None
        logger.debug("cache hit: %s", key)
        return value

    def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        ttl = self.default_ttl if ttl is None else ttl
        now = time.time()
        if now >= self._next_sweep:
            self._sweep(now)
        self._entries[key] = (now + ttl, value)
        logger.debug("cache set: %s ttl=%ss", key, ttl)

    def _sweep(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._entries.items() if expires_at < now]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("cache swept %d expired entries", len(expired))
        self._next_sweep = now + self.sweep_interval

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
