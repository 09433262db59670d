"""Refresh router: gather web-search evidence for a prompt."""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from synapsewrite.dependencies import Services, get_services, json_body
from synapsewrite.errors import MalformedClientRequest, RateLimited, UpstreamUnavailable
from synapsewrite.middleware.rate_limit import client_ip
from synapsewrite.schemas.refresh import RefreshResponse
from synapsewrite.services.sources import (
    build_query,
    cache_key_for_prompt,
    compute_confidence,
    normalize_results,
    summarize,
)

router = APIRouter(prefix="/api/v1/stream", tags=["Stream"])

# Short TTL for answers that should be retried soon
NEGATIVE_CACHE_TTL = 30


@router.post(
    "/refresh",
    response_model=RefreshResponse,
    status_code=status.HTTP_200_OK,
)
async def refresh_sources(
    request: Request,
    payload: dict = Depends(json_body),
    services: Services = Depends(get_services),
) -> RefreshResponse | JSONResponse:
    """
    Search the web for evidence about a prompt.

    Results are cached per normalized prompt. Returns the sources, a
    heuristic confidence score and a short evidence summary.
    """
    events = services.events
    prompt = payload.get("prompt")
    prompt = prompt.strip() if isinstance(prompt, str) else ""
    if not prompt:
        await events.send("refresh.bad_request")
        raise MalformedClientRequest("Missing prompt")

    ip = client_ip(request)
    decision = await services.refresh_limiter.check(ip)
    if not decision.allowed:
        await events.send("refresh.rate_limited", ip=ip, current=decision.current_count)
        raise RateLimited(retry_after=services.refresh_limiter.window)

    cache = services.sources_cache
    key = cache_key_for_prompt(prompt)
    cached = cache.get(key)
    if cached is not None:
        await events.send("refresh.cache_hit", prompt_snippet=prompt[:120], ip=ip)
        return cached

    if not services.search.api_key:
        result = RefreshResponse(
            evidence_summary="SERPAPI_KEY not configured on the server. Live searches are disabled.",
            warning="SERPAPI_KEY_MISSING",
        )
        cache.set(key, result, NEGATIVE_CACHE_TTL)
        await events.send("refresh.no_serp_key", prompt_snippet=prompt[:120], ip=ip)
        return result

    try:
        data = await services.search.search(build_query(prompt))
    except UpstreamUnavailable as exc:
        message = exc.message if exc.detail is None else f"{exc.message}: {exc.detail}"
        result = RefreshResponse(
            evidence_summary=f"Search failed: {message}",
            error=message,
        )
        cache.set(key, result, NEGATIVE_CACHE_TTL)
        await events.send("refresh.error", error=message, prompt_snippet=prompt[:120], ip=ip)
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content=result.model_dump(mode="json", by_alias=True),
        )

    sources = normalize_results(data)
    result = RefreshResponse(
        sources=sources,
        confidence=compute_confidence(sources),
        evidence_summary=summarize(sources),
    )
    cache.set(key, result)
    await events.send(
        "refresh.result",
        prompt_snippet=prompt[:120],
        sourcesCount=len(sources),
        confidence=result.confidence,
        ip=ip,
    )
    return result
