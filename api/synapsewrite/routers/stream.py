"""Stream router: relay a language-model completion to the client as it is generated."""

import logging
from collections.abc import AsyncIterator
from contextlib import aclosing

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import StreamingResponse
from pydantic import ValidationError
from starlette.background import BackgroundTask

from synapsewrite.dependencies import Services, get_services, json_body
from synapsewrite.errors import MalformedClientRequest, RateLimited, UpstreamUnavailable
from synapsewrite.middleware.rate_limit import client_ip
from synapsewrite.schemas.stream import StreamRequest
from synapsewrite.services.completion import CompletionRequest
from synapsewrite.services.events import EventLogger
from synapsewrite.services.extractor import result_metrics
from synapsewrite.services.relay import RelayRun

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/stream", tags=["Stream"])


async def _prepend(first: str, rest: AsyncIterator[str]) -> AsyncIterator[str]:
    # Closing ``rest`` on client disconnect also closes the provider stream.
    async with aclosing(rest):
        yield first
        async for chunk in rest:
            yield chunk


async def _log_result(events: EventLogger, run: RelayRun, ip: str, prompt: str) -> None:
    """Record the outcome of a relay run once the response has been sent."""
    if run.used_fallback:
        reason = run.stream_error.message if run.stream_error else "empty stream"
        await events.send("stream.fallback", ip=ip, reason=reason)

    if run.result is None:
        # Client went away before the relay finished.
        await events.send("stream.aborted", ip=ip, prompt_snippet=prompt[:120])
        return

    await events.send(
        "stream.result",
        ip=ip,
        prompt_snippet=prompt[:120],
        used_fallback=run.used_fallback,
        **result_metrics(run.result),
    )


@router.post(
    "",
    response_class=StreamingResponse,
    status_code=status.HTTP_200_OK,
    responses={
        400: {"description": "Missing prompt"},
        429: {"description": "Rate limit exceeded"},
        500: {"description": "Server misconfigured"},
        502: {"description": "Provider failed and the fallback produced nothing"},
    },
)
async def stream_article(
    request: Request,
    payload: dict = Depends(json_body),
    services: Services = Depends(get_services),
) -> StreamingResponse:
    """
    Stream generated text for a prompt as plain text.

    Text is forwarded as the provider produces it. If the provider stream
    fails or is empty, a single blocking completion supplies the text instead.
    """
    events = services.events
    settings = services.settings

    try:
        data = StreamRequest.model_validate(payload)
    except ValidationError as exc:
        await events.send("stream.bad_request")
        raise MalformedClientRequest(
            "Invalid request body", detail=exc.errors(include_url=False, include_context=False)
        ) from exc

    prompt = data.prompt.strip()
    if not prompt:
        await events.send("stream.bad_request")
        raise MalformedClientRequest("Missing prompt")

    ip = client_ip(request)
    completion_request = CompletionRequest(
        prompt=prompt,
        max_tokens=data.max_tokens or settings.default_max_tokens,
        model_id=settings.openai_model,
    )

    try:
        run = await services.relay.open(ip, completion_request)
    except RateLimited:
        await events.send("stream.rate_limited", ip=ip)
        raise

    # Pull the first chunk before committing to a 200 so that a total upstream
    # failure can still be reported as 502.
    chunks = run.chunks()
    try:
        first = await anext(chunks)
    except UpstreamUnavailable as exc:
        await events.send("stream.error", ip=ip, error=exc.message, prompt_snippet=prompt[:120])
        raise
    except StopAsyncIteration:
        first = ""

    return StreamingResponse(
        _prepend(first, chunks),
        media_type="text/plain; charset=utf-8",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        background=BackgroundTask(_log_result, events, run, ip, prompt),
    )
