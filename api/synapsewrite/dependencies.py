"""Service wiring and FastAPI dependencies.

Everything with state (HTTP client, rate limit stores, caches) lives on one
``Services`` container built at startup and stored on ``app.state``.
"""

from dataclasses import dataclass

import httpx
from fastapi import Request

from synapsewrite.config import Settings
from synapsewrite.services.cache import TTLCache
from synapsewrite.services.completion import CompletionClient
from synapsewrite.services.events import EventLogger
from synapsewrite.services.rate_limiter import (
    LocalCounterStore,
    RateLimiter,
    SharedCounterStore,
    build_counter_store,
)
from synapsewrite.services.razorpay import RazorpayClient
from synapsewrite.services.relay import StreamRelay
from synapsewrite.services.sources import SearchClient
from synapsewrite.services.wordpress import WordPressClient


@dataclass
class Services:
    """Process-wide service objects shared by all requests."""

    settings: Settings
    http: httpx.AsyncClient
    events: EventLogger
    completion: CompletionClient
    relay: StreamRelay
    refresh_limiter: RateLimiter
    search: SearchClient
    sources_cache: TTLCache
    wordpress: WordPressClient
    razorpay: RazorpayClient

    async def aclose(self) -> None:
        await self.http.aclose()


def build_services(
    settings: Settings, transport: httpx.AsyncBaseTransport | None = None
) -> Services:
    """
    Create the service container from configuration.

    ``transport`` replaces the network transport of the shared HTTP client.
    """
    http = httpx.AsyncClient(
        transport=transport,
        timeout=httpx.Timeout(
            settings.upstream_read_timeout, connect=settings.upstream_connect_timeout
        ),
    )

    store = build_counter_store(settings.rate_limit_storage_url)
    # Only the shared store can fail; the local fallback keeps answering then.
    fallback = LocalCounterStore() if isinstance(store, SharedCounterStore) else None

    stream_limiter = RateLimiter(
        store,
        settings.stream_rate_limit_max,
        settings.stream_rate_limit_window,
        key_prefix="rl_stream:",
        fallback=fallback,
    )
    refresh_limiter = RateLimiter(
        store,
        settings.refresh_rate_limit_max,
        settings.refresh_rate_limit_window,
        key_prefix="rl_refresh:",
        fallback=fallback,
    )

    completion = CompletionClient(
        http,
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        system_prompt=settings.system_prompt,
    )

    return Services(
        settings=settings,
        http=http,
        events=EventLogger(
            http,
            source_id=settings.logflare_source_id,
            api_key=settings.logflare_api_key,
        ),
        completion=completion,
        relay=StreamRelay(
            completion,
            stream_limiter,
            fallback_on_empty=settings.fallback_on_empty_stream,
        ),
        refresh_limiter=refresh_limiter,
        search=SearchClient(http, settings.serpapi_key),
        sources_cache=TTLCache(settings.cache_ttl),
        wordpress=WordPressClient(
            http,
            site=settings.wp_site,
            user=settings.wp_user,
            app_password=settings.wp_app_password,
        ),
        razorpay=RazorpayClient(
            http,
            key_id=settings.razorpay_key_id,
            key_secret=settings.razorpay_key_secret,
            mock=settings.razorpay_mock,
        ),
    )


def get_services(request: Request) -> Services:
    """Dependency that provides the service container."""
    return request.app.state.services


async def json_body(request: Request) -> dict:
    """
    Dependency that reads the request body as a JSON object.

    Unparseable bodies and non-object JSON are treated as an empty object so
    the route can report the missing field itself.
    """
    try:
        payload = await request.json()
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}
