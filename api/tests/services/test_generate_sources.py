"""
Tests for the evidence helpers behind search-grounded generation.
"""

from datetime import date

import httpx

from factories import serp_body, serp_result
from synapsewrite.schemas.generate import GenerateSource
from synapsewrite.services.generate import (
    NOTE_NO_HITS,
    NOTE_NO_SEARCH_KEY,
    build_system_prompt,
    build_user_prompt,
    focused_query,
    gather_sources,
    unique_hits,
    verify,
)
from synapsewrite.services.sources import SearchClient


def search_client(handler, api_key: str | None = "serp-key") -> SearchClient:
    return SearchClient(httpx.AsyncClient(transport=httpx.MockTransport(handler)), api_key)


class TestUniqueHits:
    """Mapping organic results to generation sources."""

    def test_drops_duplicate_links(self):
        data = serp_body(
            serp_result("https://a.com/x", "First"),
            serp_result("https://a.com/x", "Again"),
            serp_result("https://b.com/y", "Other"),
        )
        hits = unique_hits(data)
        assert [(h.title, h.link) for h in hits] == [
            ("First", "https://a.com/x"),
            ("Other", "https://b.com/y"),
        ]

    def test_limit_counts_unique_links(self):
        results = [serp_result("https://a.com/dup")] * 4
        results += [serp_result(f"https://b.com/{i}") for i in range(10)]
        hits = unique_hits(serp_body(*results), limit=6)
        assert len(hits) == 6
        assert hits[0].link == "https://a.com/dup"
        assert hits[1].link == "https://b.com/0"

    def test_rich_snippet_extensions_as_snippet(self):
        result = {"link": "https://a.com", "rich_snippet": {"top": {"extensions": ["4.5 stars", "Rs 79,900"]}}}
        hits = unique_hits(serp_body(result))
        assert hits[0].snippet == "4.5 stars Rs 79,900"
        assert hits[0].title == "https://a.com"

    def test_results_without_link_are_skipped(self):
        assert unique_hits(serp_body({"title": "no link"})) == []


class TestPrompts:
    """Query and prompt construction."""

    def test_focused_query_lists_sites(self):
        query = focused_query("iPhone 16 price")
        assert query.startswith("iPhone 16 price site:apple.com OR site:flipkart.com")
        assert query.endswith("site:91mobiles.com")

    def test_user_prompt_numbers_sources(self):
        sources = [
            GenerateSource(title="A", link="https://a.com", snippet="alpha"),
            GenerateSource(title="B", link="https://b.com"),
        ]
        prompt = build_user_prompt("phones", sources)
        assert prompt.startswith("Topic: phones")
        assert "Sources:\n\n1. A\nhttps://a.com\nalpha\n\n2. B\nhttps://b.com\n" in prompt

    def test_user_prompt_without_sources(self):
        assert "No web snippets provided." in build_user_prompt("phones", [])

    def test_system_prompt_carries_date(self):
        assert "Current date: 2026-02-01." in build_system_prompt(date(2026, 2, 1))


class TestVerify:
    def test_official_domain_verifies(self):
        sources = [GenerateSource(title="T", link="https://www.TechRadar.com/review")]
        result = verify(sources, "")
        assert result.verified_by_search is True
        assert result.sources_count == 1

    def test_other_domains_do_not_verify(self):
        sources = [GenerateSource(title="T", link="https://blog.example.com/")]
        assert verify(sources, "").verified_by_search is False


class TestGatherSources:
    """Focused search with a plain fallback."""

    async def test_focused_hits_are_used(self):
        queries = []

        def handler(request):
            queries.append(request.url.params["q"])
            return httpx.Response(200, json=serp_body(serp_result("https://flipkart.com/p")))

        sources, note = await gather_sources(search_client(handler), "phones")
        assert [s.link for s in sources] == ["https://flipkart.com/p"]
        assert note == ""
        assert queries == [focused_query("phones")]

    async def test_plain_query_when_focused_is_empty(self):
        queries = []

        def handler(request):
            queries.append(request.url.params["q"])
            if "site:" in request.url.params["q"]:
                return httpx.Response(200, json=serp_body())
            return httpx.Response(200, json=serp_body(serp_result("https://example.com")))

        sources, _ = await gather_sources(search_client(handler), "phones")
        assert queries == [focused_query("phones"), "phones"]
        assert [s.link for s in sources] == ["https://example.com"]

    async def test_search_failures_leave_no_sources(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500, text="boom")

        sources, note = await gather_sources(search_client(handler), "phones")
        assert sources == []
        assert note == NOTE_NO_HITS
        assert len(calls) == 2

    async def test_without_key_skips_search(self):
        calls = []
        client = search_client(lambda r: calls.append(r) or httpx.Response(200), api_key=None)
        sources, note = await gather_sources(client, "phones")
        assert sources == []
        assert note == NOTE_NO_SEARCH_KEY
        assert calls == []
