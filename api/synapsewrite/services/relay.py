"""Relay a provider token stream to the client with a blocking fallback.

The relay forwards text as soon as the provider produces it. When the stream
cannot be opened, breaks, or ends without any text, a single non-streaming
completion is requested instead. That fallback is the entire recovery
strategy: nothing is retried mid-stream.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import aclosing

from synapsewrite.errors import RateLimited, UpstreamUnavailable
from synapsewrite.services.completion import (
    CompletionClient,
    CompletionRequest,
    ContentDelta,
    StreamEnd,
    Unparseable,
)
from synapsewrite.services.extractor import RelayResult, extract
from synapsewrite.services.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

EMPTY_RESULT_SENTINEL = "[No assistant text returned]"

# Emitted between already-forwarded partial text and the fallback's full text
RESTART_SEPARATOR = "\n\n"


class RelayRun:
    """
    One relay invocation.

    ``chunks()`` is a lazy, finite sequence of text chunks and can be consumed
    once. After it is exhausted, ``result`` holds the final text split by the
    trailing-block extractor, and ``used_fallback`` tells whether the blocking
    completion supplied it.

    ``UpstreamUnavailable`` escapes ``chunks()`` only when both paths failed
    before any text was produced, so callers can still answer with 502.
    """

    def __init__(
        self,
        client: CompletionClient,
        request: CompletionRequest,
        *,
        fallback_on_empty: bool = True,
    ):
        self._client = client
        self._request = request
        self._fallback_on_empty = fallback_on_empty
        self._consumed = False
        self.result: RelayResult | None = None
        self.used_fallback = False
        self.stream_error: UpstreamUnavailable | None = None

    async def chunks(self) -> AsyncIterator[str]:
        if self._consumed:
            raise RuntimeError("Relay output has already been consumed")
        self._consumed = True

        buffer: list[str] = []
        try:
            async with aclosing(self._client.complete_streaming(self._request)) as events:
                async for event in events:
                    if isinstance(event, ContentDelta):
                        buffer.append(event.text)
                        yield event.text
                    elif isinstance(event, StreamEnd):
                        break
                    elif isinstance(event, Unparseable):
                        logger.debug("Skipping unparseable stream payload: %.200s", event.raw)
        except UpstreamUnavailable as exc:
            logger.warning("Provider stream failed after %d chunks: %s", len(buffer), exc.message)
            self.stream_error = exc

        if buffer and self.stream_error is None:
            self._finish("".join(buffer))
            return

        if not buffer and self.stream_error is None and not self._fallback_on_empty:
            self._finish("")
            yield EMPTY_RESULT_SENTINEL
            return

        self.used_fallback = True
        try:
            text = await self._client.complete_blocking(self._request.blocking())
        except UpstreamUnavailable as exc:
            if not buffer:
                raise
            # Partial text is already on the wire and the status is committed.
            logger.error("Fallback completion failed after a broken stream: %s", exc.message)
            self._finish("".join(buffer))
            return

        self._finish(text)
        if not text:
            if not buffer:
                yield EMPTY_RESULT_SENTINEL
            return
        if buffer:
            yield RESTART_SEPARATOR
        yield text

    def _finish(self, text: str) -> None:
        self.result = extract(text or EMPTY_RESULT_SENTINEL)


class StreamRelay:
    """Admit a request through the rate limiter and start a relay run."""

    def __init__(
        self,
        client: CompletionClient,
        limiter: RateLimiter,
        *,
        fallback_on_empty: bool = True,
    ):
        self.client = client
        self.limiter = limiter
        self.fallback_on_empty = fallback_on_empty

    async def open(self, client_key: str, request: CompletionRequest) -> RelayRun:
        """
        Check the rate limit for ``client_key`` and return a relay run.

        Raises:
            RateLimited: the client exhausted its window budget
        """
        decision = await self.limiter.check(client_key)
        if not decision.allowed:
            raise RateLimited(retry_after=self.limiter.window)
        return RelayRun(self.client, request, fallback_on_empty=self.fallback_on_empty)
