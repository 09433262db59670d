"""
Shared test fixtures for SynapseWrite API tests.

Provides a fake upstream that stands in for every third-party API, the
service container built on top of it, and an HTTP client for the app.
"""

import json
from collections.abc import AsyncGenerator, Callable
from typing import Any

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from synapsewrite.config import Settings
from synapsewrite.dependencies import Services, build_services
from synapsewrite.main import app
from synapsewrite.middleware.rate_limit import reset_limiter

from factories import completion_body, sse_body

OPENAI_URL = "https://api.openai.test/v1/chat/completions"

Handler = Callable[[httpx.Request], httpx.Response]


class FakeUpstream:
    """
    Route outbound requests to handlers by URL prefix and record them.

    Chat completions are split by the ``stream`` flag of the request body
    into ``stream_handler`` and ``blocking_handler``.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.routes: dict[str, Handler] = {}
        self.stream_handler: Handler = lambda request: httpx.Response(
            200,
            content=sse_body("Hello", " world"),
            headers={"content-type": "text/event-stream"},
        )
        self.blocking_handler: Handler = lambda request: httpx.Response(
            200, json=completion_body("Fallback text")
        )

    def route(self, url_prefix: str, handler: Handler) -> None:
        self.routes[url_prefix] = handler

    def calls(self, url_prefix: str) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url).startswith(url_prefix)]

    def completion_calls(self, *, stream: bool) -> list[dict[str, Any]]:
        """Decoded bodies of chat completion calls with the given stream flag."""
        bodies = [json.loads(r.content) for r in self.calls(OPENAI_URL)]
        return [b for b in bodies if b.get("stream") is stream]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        if url.startswith(OPENAI_URL):
            body = json.loads(request.content)
            handler = self.stream_handler if body.get("stream") else self.blocking_handler
            return handler(request)
        for prefix, handler in self.routes.items():
            if url.startswith(prefix):
                return handler(request)
        return httpx.Response(404, json={"error": f"no fake route for {url}"})


# --- Rate Limiter Reset Fixture ---


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    """Reset the slowapi limiter before each test to ensure test isolation."""
    reset_limiter()
    yield


# --- Service Fixtures ---


@pytest.fixture
def settings_overrides() -> dict[str, Any]:
    """Per-test settings changes. Override in a test class to customize."""
    return {}


@pytest.fixture
def settings(settings_overrides: dict[str, Any]) -> Settings:
    """Settings isolated from the developer's environment and .env file."""
    values: dict[str, Any] = {
        "openai_api_key": "sk-test",
        "openai_base_url": "https://api.openai.test/v1",
        "openai_model": "gpt-4o-mini",
        "rate_limit_storage_url": None,
        "serpapi_key": "serp-test",
        "logflare_source_id": None,
        "logflare_api_key": None,
        "wp_site": "https://blog.example.com/",
        "wp_user": "editor",
        "wp_app_password": "abcd efgh ijkl",
        "razorpay_key_id": "rzp_test_key",
        "razorpay_key_secret": "rzp_test_secret",
        "razorpay_webhook_secret": "whsec_test",
        "razorpay_mock": False,
    }
    values.update(settings_overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def upstream() -> FakeUpstream:
    """Fake third-party APIs."""
    return FakeUpstream()


@pytest_asyncio.fixture
async def services(settings: Settings, upstream: FakeUpstream) -> AsyncGenerator[Services, None]:
    """Service container wired to the fake upstream."""
    container = build_services(settings, transport=httpx.MockTransport(upstream))
    yield container
    await container.aclose()


@pytest_asyncio.fixture
async def async_client(services: Services) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client configured for testing.

    ASGITransport does not run the lifespan, so the test container is
    installed on the app state directly.
    """
    app.state.services = services

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        follow_redirects=True,
    ) as client:
        yield client

    del app.state.services


# --- Utility Fixtures ---


@pytest.fixture
def client_headers():
    """Factory fixture for headers identifying a client by forwarded IP."""

    def _client_headers(ip: str) -> dict[str, str]:
        return {"X-Forwarded-For": ip}

    return _client_headers


@pytest.fixture
def frozen_time():
    """
    Fixture for time-based testing using freezegun.

    Usage:
        with frozen_time("2026-02-01 12:00:00") as frozen:
            frozen.tick(61)
    """
    from freezegun import freeze_time

    def _frozen_time(when: str):
        # Leave asyncio's monotonic clock alone so the event loop keeps working
        return freeze_time(when, real_asyncio=True)

    return _frozen_time
