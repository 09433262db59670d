"""Split generated text into a readable body and a trailing JSON block.

Models are asked to append a metadata object (title, confidence, sources)
after the article. The split is best effort and only feeds log metrics.
"""

import json
from dataclasses import dataclass
from typing import Any

_DECODER = json.JSONDecoder()


@dataclass(frozen=True)
class RelayResult:
    """Final text of a relay run, with the trailing metadata block removed."""

    body: str
    structured_block: dict[str, Any] | None = None


def extract(text: str) -> RelayResult:
    """
    Find the last brace-delimited span reaching the end of ``text``.

    Candidate spans are tried from the right-most ``{`` leftwards, so the
    first one that decodes to a JSON object ending exactly at the close of
    the text is the outermost such object. Each candidate is decoded in
    place and decoding stops at the end of its object, so brace-heavy text
    is not re-parsed tail by tail.
    """
    stripped = text.rstrip()
    if not stripped.endswith("}"):
        return RelayResult(body=text.strip())

    end_of_text = len(stripped)
    start = stripped.rfind("{")
    while start != -1:
        try:
            parsed, end = _DECODER.raw_decode(stripped, start)
        except ValueError:
            parsed, end = None, start
        if end == end_of_text and isinstance(parsed, dict):
            return RelayResult(body=stripped[:start].strip(), structured_block=parsed)
        start = stripped.rfind("{", 0, start)

    return RelayResult(body=text.strip())


def result_metrics(result: RelayResult) -> dict[str, Any]:
    """Diagnostic numbers for the event log."""
    block = result.structured_block or {}
    sources = block.get("sources")
    metrics: dict[str, Any] = {
        "word_count": len(result.body.split()),
        "has_structured_block": result.structured_block is not None,
        "sources_count": len(sources) if isinstance(sources, list) else 0,
    }
    if isinstance(block.get("title"), str):
        metrics["title"] = block["title"][:120]
    if isinstance(block.get("confidence"), int | float):
        metrics["confidence"] = block["confidence"]
    return metrics
