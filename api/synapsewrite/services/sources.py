"""Web-search evidence lookup for the sources refresh endpoint."""

import re
from typing import Any

import httpx

from synapsewrite.errors import UpstreamUnavailable
from synapsewrite.schemas.refresh import SourceItem

SERPAPI_URL = "https://serpapi.com/search.json"

MARKETPLACE_DOMAINS = ("flipkart.com", "amazon.in", "gsmarena.com", "91mobiles.com")

MAX_SOURCES = 6

_YEAR_RE = re.compile(r"(20\d{2})")
_WHITESPACE_RE = re.compile(r"\s+")


def cache_key_for_prompt(prompt: str) -> str:
    """Normalize a prompt into a cache key."""
    return "refresh:" + _WHITESPACE_RE.sub(" ", prompt.lower()).strip()[:500]


def build_query(prompt: str) -> str:
    """Bias the search toward India and the current year unless the prompt says otherwise."""
    query = prompt
    if not re.search(r"india", prompt, re.IGNORECASE):
        query += " India"
    if not _YEAR_RE.search(prompt):
        query += " 2025"
    return query


def published_year(snippet: str) -> int | None:
    match = _YEAR_RE.search(snippet or "")
    return int(match.group(1)) if match else None


def compute_confidence(sources: list[SourceItem]) -> float | None:
    """
    Heuristic confidence in [0, 0.95] for a set of search results.

    More results, marketplace domains and recent years in snippets all raise
    the score. Returns None when there are no results.
    """
    if not sources:
        return None

    score = 0.25 + 0.12 * min(len(sources), MAX_SOURCES)

    domain_boost = sum(
        0.08 for s in sources if any(d in s.url.lower() for d in MARKETPLACE_DOMAINS)
    )
    score += min(0.25, domain_boost)

    years = [y for y in (published_year(s.snippet) for s in sources) if y]
    if years:
        recent = sum(1 for y in years if y >= 2024)
        score += min(0.25, 0.08 * recent)

    score = max(0.0, min(0.95, score))
    return round(score, 2)


def summarize(sources: list[SourceItem]) -> str:
    if not sources:
        return "No relevant results found."
    parts = []
    for source in sources[:3]:
        title = source.label or source.url
        snippet = _WHITESPACE_RE.sub(" ", source.snippet).strip()
        parts.append(f"{title}: {snippet}" if snippet else title)
    return " - ".join(p for p in parts if p)


def normalize_results(data: dict[str, Any]) -> list[SourceItem]:
    """Map SerpAPI organic results to source items, dropping those without a URL."""
    organic = data.get("organic_results")
    if not isinstance(organic, list):
        return []

    sources = []
    for result in organic[:MAX_SOURCES]:
        if not isinstance(result, dict):
            continue
        url = result.get("link") or result.get("url") or result.get("displayed_link") or ""
        if not url:
            continue
        sources.append(
            SourceItem(
                url=url,
                label=result.get("title") or result.get("displayed_link") or url,
                snippet=result.get("snippet") or result.get("snippet_highlighted") or "",
            )
        )
    return sources


class SearchClient:
    """Thin SerpAPI client."""

    def __init__(self, http: httpx.AsyncClient, api_key: str | None):
        self._http = http
        self.api_key = api_key

    async def search(self, query: str, *, num: int = MAX_SOURCES) -> dict[str, Any]:
        """
        Run a Google search through SerpAPI.

        Raises:
            UpstreamUnavailable: transport failure or non-success status
        """
        params = {
            "engine": "google",
            "q": query,
            "hl": "en",
            "gl": "in",
            "num": str(num),
            "api_key": self.api_key or "",
        }
        try:
            response = await self._http.get(SERPAPI_URL, params=params)
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable("Search failed", detail=str(exc) or type(exc).__name__) from exc

        if not response.is_success:
            raise UpstreamUnavailable(
                f"SerpAPI error {response.status_code}",
                detail=response.text[:500],
                upstream_status=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamUnavailable("SerpAPI returned invalid JSON") from exc
        return data if isinstance(data, dict) else {}
