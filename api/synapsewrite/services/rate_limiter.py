"""Fixed-window request counting per client key.

Two counter stores sit behind one interface:

- ``SharedCounterStore`` wraps a ``limits`` async storage (Redis, Memcached,
  MongoDB, ...) so the limit holds across every relay instance pointed at it.
- ``LocalCounterStore`` keeps the counters in a dict owned by the instance.

``RateLimiter`` answers from the local fallback store when the shared store
fails. That mode limits per instance only and every degraded answer is
flagged on the decision and logged.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Protocol

from limits.aio.storage import Storage
from limits.errors import StorageError
from limits.storage import storage_from_string

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitRecord:
    """Counter state for one client key in its active window."""

    client_key: str
    count: int
    window_expires_at: float


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a single ``RateLimiter.check`` call."""

    allowed: bool
    remaining: int
    current_count: int
    degraded: bool = False


class CounterStore(Protocol):
    """Atomic increment-and-expire counter keyed by client."""

    async def hit(self, client_key: str, window: int) -> RateLimitRecord:
        """Count one request for ``client_key`` and return the updated record."""
        ...


class LocalCounterStore:
    """
    Process-local counters. Only limits requests seen by this process.

    Records of expired windows are swept at most every ``sweep_interval``
    seconds, so clients that stop sending do not keep a record alive.
    """

    def __init__(self, *, sweep_interval: float = 60.0) -> None:
        self.sweep_interval = sweep_interval
        self._records: dict[str, RateLimitRecord] = {}
        self._lock = asyncio.Lock()
        self._next_sweep = 0.0

    def __len__(self) -> int:
        return len(self._records)

    def _sweep(self, now: float) -> None:
        expired = [key for key, record in self._records.items() if now > record.window_expires_at]
        for key in expired:
            del self._records[key]
        self._next_sweep = now + self.sweep_interval

    async def hit(self, client_key: str, window: int) -> RateLimitRecord:
        async with self._lock:
            now = time.time()
            if now >= self._next_sweep:
                self._sweep(now)
            record = self._records.get(client_key)
            if record is None or now > record.window_expires_at:
                record = RateLimitRecord(client_key, 1, now + window)
            else:
                record = RateLimitRecord(client_key, record.count + 1, record.window_expires_at)
            self._records[client_key] = record
            return record

    def reset(self) -> None:
        """Drop every counter."""
        self._records.clear()


class SharedCounterStore:
    """Counters kept in a ``limits`` storage backend shared between instances."""

    def __init__(self, storage: Storage):
        self._storage = storage

    @classmethod
    def from_url(cls, url: str) -> "SharedCounterStore":
        """Build a store from a ``limits`` storage URI such as ``async+redis://host``."""
        storage = storage_from_string(url, wrap_exceptions=True)
        if not isinstance(storage, Storage):
            raise ValueError(f"Rate limit storage URL must use an async scheme: {url}")
        return cls(storage)

    async def hit(self, client_key: str, window: int) -> RateLimitRecord:
        # The backend sets the expiry only when the key is created, so the
        # window lasts exactly ``window`` seconds from its first request.
        count = await self._storage.incr(client_key, window)
        expires_at = await self._storage.get_expiry(client_key)
        return RateLimitRecord(client_key, count, expires_at)

    async def reset(self) -> None:
        await self._storage.reset()


class RateLimiter:
    """Admit up to ``max_requests`` per ``window`` seconds for each client key."""

    def __init__(
        self,
        store: CounterStore,
        max_requests: int,
        window: int,
        *,
        key_prefix: str = "",
        fallback: CounterStore | None = None,
    ):
        self.store = store
        self.fallback = fallback
        self.max_requests = max_requests
        self.window = window
        self.key_prefix = key_prefix

    async def check(self, client_key: str) -> RateLimitDecision:
        """
        Count a request for ``client_key`` and decide whether it is admitted.

        The counter is incremented even when the request is rejected.
        """
        key = f"{self.key_prefix}{client_key}"
        degraded = False
        try:
            record = await self.store.hit(key, self.window)
        except (StorageError, ConnectionError, TimeoutError) as exc:
            if self.fallback is None:
                raise
            logger.warning(
                "Shared rate limit store unavailable, limiting per instance: %s", exc
            )
            record = await self.fallback.hit(key, self.window)
            degraded = True

        return RateLimitDecision(
            allowed=record.count <= self.max_requests,
            remaining=max(0, self.max_requests - record.count),
            current_count=record.count,
            degraded=degraded,
        )


def build_counter_store(storage_url: str | None) -> CounterStore:
    """Select the counter store from configuration."""
    if storage_url:
        return SharedCounterStore.from_url(storage_url)
    return LocalCounterStore()
