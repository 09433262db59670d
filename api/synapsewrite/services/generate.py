"""Search-grounded article generation.

The topic is searched first, favouring retailer and review sites, and the
hits are handed to the model with instructions to use nothing else.
"""

import logging
from datetime import date
from typing import Any

from synapsewrite.errors import UpstreamUnavailable
from synapsewrite.schemas.generate import GenerateSource, Verification
from synapsewrite.services.sources import MAX_SOURCES, SearchClient

logger = logging.getLogger(__name__)

# Sites the focused query is restricted to
FOCUS_SITES = ("apple.com", "flipkart.com", "amazon.in", "gsmarena.com", "91mobiles.com")

# A source on one of these counts as verification by search
OFFICIAL_DOMAINS = FOCUS_SITES + ("ndtv.com", "theverge.com", "techradar.com")

NOTE_NO_SEARCH_KEY = (
    "SERPAPI_KEY not set. Generation will run without live web verification."
)
NOTE_NO_HITS = (
    "No web sources found for this topic (search returned no hits). "
    "Generation will proceed without live verification."
)

SYSTEM_PROMPT_TEMPLATE = """\
You are a careful, factual article writer for a public-facing blog. You must only use the provided web snippets and links when producing factual claims.
- If the required fact (e.g., release date, availability) is not present in the provided sources, explicitly say "I could not verify this fact" rather than inventing it.
- At the end include a "Sources" section listing the exact URLs used.
- Produce a clear, neutral, buyer-friendly article for the topic below.
- If no sources are provided, say so and provide a cautious general answer, marking uncertain claims with "I could not verify".
- Output should be plain text (Markdown is fine).
Current date: {today}.
"""

REQUIREMENTS = """\
Requirements:
- Start with a 2-3 sentence summary.
- If the topic is about products (phones), list recommended models in India and for each include release month & year if found in sources, short pros/cons, and the specific link(s) you used as evidence.
- Include a "Sources" section with the clickable URLs.
- If you cannot verify a fact, write "I could not verify this" for that fact.
- Tone: factual, neutral."""


def focused_query(topic: str) -> str:
    return f"{topic} " + " OR ".join(f"site:{site}" for site in FOCUS_SITES)


def _snippet(result: dict[str, Any]) -> str:
    if result.get("snippet"):
        return result["snippet"]
    rich = result.get("rich_snippet")
    top = rich.get("top") if isinstance(rich, dict) else None
    extensions = top.get("extensions") if isinstance(top, dict) else None
    if isinstance(extensions, list):
        return " ".join(str(e) for e in extensions)
    return ""


def unique_hits(data: dict[str, Any], limit: int = MAX_SOURCES) -> list[GenerateSource]:
    """Organic results with a link, first occurrence of each link only."""
    organic = data.get("organic_results")
    if not isinstance(organic, list):
        return []

    hits: list[GenerateSource] = []
    seen: set[str] = set()
    for result in organic:
        if not isinstance(result, dict):
            continue
        link = result.get("link") or result.get("displayed_link") or ""
        if not link or link in seen:
            continue
        seen.add(link)
        hits.append(
            GenerateSource(
                title=result.get("title") or link,
                link=link,
                snippet=_snippet(result),
            )
        )
        if len(hits) >= limit:
            break
    return hits


async def _search_hits(search: SearchClient, query: str) -> list[GenerateSource]:
    try:
        data = await search.search(query)
    except UpstreamUnavailable as exc:
        logger.warning("Search for generation failed: %s", exc.message)
        return []
    return unique_hits(data)


async def gather_sources(search: SearchClient, topic: str) -> tuple[list[GenerateSource], str]:
    """
    Collect evidence for ``topic`` and a note explaining any gap.

    The focused query runs first; a plain query is tried when it finds
    nothing. Search failures leave the article ungrounded rather than
    failing the request.
    """
    if not search.api_key:
        return [], NOTE_NO_SEARCH_KEY

    sources = await _search_hits(search, focused_query(topic))
    if not sources:
        sources = await _search_hits(search, topic)
    return sources, ("" if sources else NOTE_NO_HITS)


def is_official(link: str) -> bool:
    link = link.lower()
    return any(domain in link for domain in OFFICIAL_DOMAINS)


def verify(sources: list[GenerateSource], note: str) -> Verification:
    return Verification(
        verified_by_search=any(is_official(s.link) for s in sources),
        sources_count=len(sources),
        note=note,
    )


def build_system_prompt(today: date) -> str:
    return SYSTEM_PROMPT_TEMPLATE.format(today=today.isoformat())


def build_user_prompt(topic: str, sources: list[GenerateSource]) -> str:
    sources_text = "\n\n".join(
        f"{i}. {s.title}\n{s.link}\n{s.snippet}" for i, s in enumerate(sources, start=1)
    )
    parts = [
        f"Topic: {topic}",
        "",
        "Context: The following web search results (titles, links, snippets) were "
        "collected for this topic (India-focused). Use them to verify claims and write "
        "the article. Do NOT use external facts beyond these snippets unless you "
        "explicitly state you could not verify.",
        "",
        f"Sources:\n\n{sources_text}" if sources_text else "No web snippets provided.",
        "",
        REQUIREMENTS,
    ]
    return "\n".join(parts)
