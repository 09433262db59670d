"""Generate router: a complete article written from live search evidence."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request, status

from synapsewrite.config import settings
from synapsewrite.dependencies import Services, get_services, json_body
from synapsewrite.errors import ConfigurationError, MalformedClientRequest
from synapsewrite.middleware.rate_limit import limiter
from synapsewrite.schemas.generate import GenerateResponse
from synapsewrite.services.completion import CompletionRequest
from synapsewrite.services.generate import (
    build_system_prompt,
    build_user_prompt,
    gather_sources,
    verify,
)

router = APIRouter(prefix="/api/v1/generate", tags=["Generate"])


@router.post(
    "",
    response_model=GenerateResponse,
    status_code=status.HTTP_200_OK,
)
@limiter.limit(settings.generate_rate_limit)
async def generate_article(
    request: Request,
    payload: dict = Depends(json_body),
    services: Services = Depends(get_services),
) -> GenerateResponse:
    """
    Write an article about a topic in one blocking completion.

    Search results are collected first and the model is told to rely on them
    only. The response lists those sources and whether any came from an
    official or trusted site.
    """
    events = services.events
    config = services.settings

    topic = payload.get("topic")
    topic = str(topic).strip() if topic is not None else ""
    if not topic:
        await events.send("generate.bad_request")
        raise MalformedClientRequest("Missing 'topic' in request body.")

    if not config.openai_api_key:
        raise ConfigurationError("OPENAI_API_KEY not set")

    sources, note = await gather_sources(services.search, topic)
    today = datetime.now(timezone.utc).date()
    content = await services.completion.complete_blocking(
        CompletionRequest(
            prompt=build_user_prompt(topic, sources),
            max_tokens=config.generate_max_tokens,
            model_id=config.openai_model,
            streaming=False,
            system_prompt=build_system_prompt(today),
            temperature=config.generate_temperature,
        )
    )

    verification = verify(sources, note)
    await events.send(
        "generate.result",
        topic_snippet=topic[:120],
        sourcesCount=verification.sources_count,
        verifiedBySearch=verification.verified_by_search,
        word_count=len(content.split()),
    )
    return GenerateResponse(content=content, sources=sources, verification=verification)
