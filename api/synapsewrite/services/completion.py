"""Client for the language-model provider's chat-completion endpoint."""

import json
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, replace
from typing import Any

import httpx

from synapsewrite.errors import ConfigurationError, UpstreamUnavailable

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"

# Top-level keys some providers and proxies use for a bare text payload
_TEXT_KEYS = ("text", "content", "output", "completion")


@dataclass(frozen=True)
class CompletionRequest:
    """A single completion request, built once per inbound request."""

    prompt: str
    max_tokens: int
    model_id: str
    streaming: bool = True
    # Overrides the client-wide system prompt when set
    system_prompt: str | None = None
    temperature: float | None = None

    def blocking(self) -> "CompletionRequest":
        """Same parameters, non-streaming."""
        return replace(self, streaming=False)


@dataclass(frozen=True)
class ContentDelta:
    text: str


@dataclass(frozen=True)
class StreamEnd:
    pass


@dataclass(frozen=True)
class Unparseable:
    raw: str


StreamEvent = ContentDelta | StreamEnd | Unparseable


def _message_text(content: Any) -> str | None:
    """Text from a ``message.content`` value: a string or ``{"parts": [...]}``."""
    if isinstance(content, str):
        return content
    if isinstance(content, dict) and isinstance(content.get("parts"), list):
        return "".join(p for p in content["parts"] if isinstance(p, str))
    return None


def extract_text(parsed: Any) -> str | None:
    """
    Pull the text out of one decoded provider payload.

    Accepts the OpenAI chat chunk shape (``choices[].delta.content``), the
    legacy completion shape (``choices[].text``), ``message.content`` with
    optional ``parts``, a handful of flat ``text``-like keys, and bare scalars.
    Returns None when the payload carries no text.
    """
    if parsed is None:
        return None
    if isinstance(parsed, str):
        return parsed
    if isinstance(parsed, bool | int | float):
        return str(parsed)
    if not isinstance(parsed, dict):
        return None

    for key in _TEXT_KEYS:
        if isinstance(parsed.get(key), str):
            return parsed[key]

    choices = parsed.get("choices")
    if isinstance(choices, list):
        for choice in choices:
            if not isinstance(choice, dict):
                continue
            delta = choice.get("delta")
            if isinstance(delta, dict):
                if isinstance(delta.get("content"), str) and delta["content"]:
                    return delta["content"]
                message = delta.get("message")
                if isinstance(message, dict):
                    text = _message_text(message.get("content"))
                    if text:
                        return text
            message = choice.get("message")
            if isinstance(message, dict):
                text = _message_text(message.get("content"))
                if text:
                    return text
            if isinstance(choice.get("text"), str) and choice["text"]:
                return choice["text"]

    message = parsed.get("message")
    if isinstance(message, dict):
        return _message_text(message.get("content"))

    return None


def decode_stream_line(line: str) -> StreamEvent | None:
    """
    Decode one line of a provider event stream.

    Returns None for lines that carry no event (blank lines, SSE comments,
    ``event:``/``id:``/``retry:`` fields).

    Raises:
        UpstreamUnavailable: the provider sent an error object mid-stream
    """
    line = line.strip()
    if not line.startswith("data:"):
        return None

    payload = line[len("data:"):].strip()
    if payload == DONE_SENTINEL:
        return StreamEnd()
    if not payload:
        return None

    try:
        parsed = json.loads(payload)
    except ValueError:
        return Unparseable(payload)

    if isinstance(parsed, dict) and "error" in parsed and "choices" not in parsed:
        error = parsed["error"]
        message = error.get("message") if isinstance(error, dict) else str(error)
        raise UpstreamUnavailable("Provider stream reported an error", detail=message)

    text = extract_text(parsed)
    if not text:
        return Unparseable(payload)
    return ContentDelta(text)


class CompletionClient:
    """
    Issue streaming and blocking chat completions.

    No retries happen here; the relay owns the fallback policy.
    """

    def __init__(
        self,
        http: httpx.AsyncClient,
        *,
        api_key: str | None,
        base_url: str,
        system_prompt: str | None = None,
    ):
        self._http = http
        self._api_key = api_key
        self._url = f"{base_url.rstrip('/')}/chat/completions"
        self._system_prompt = system_prompt

    def _headers(self) -> dict[str, str]:
        if not self._api_key:
            raise ConfigurationError("OPENAI_API_KEY not set")
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    def _payload(self, request: CompletionRequest) -> dict[str, Any]:
        messages = []
        system_prompt = request.system_prompt or self._system_prompt
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": request.prompt})
        payload: dict[str, Any] = {
            "model": request.model_id,
            "messages": messages,
            "max_tokens": request.max_tokens,
            "stream": request.streaming,
        }
        if request.temperature is not None:
            payload["temperature"] = request.temperature
        return payload

    async def complete_streaming(self, request: CompletionRequest) -> AsyncIterator[StreamEvent]:
        """
        Yield decoded stream events in arrival order, ending after ``StreamEnd``.

        Raises:
            ConfigurationError: no API key configured
            UpstreamUnavailable: non-success status, transport failure or read timeout
        """
        headers = self._headers()
        payload = self._payload(request)
        try:
            async with self._http.stream("POST", self._url, json=payload, headers=headers) as response:
                if not response.is_success:
                    body = (await response.aread()).decode("utf-8", errors="replace")
                    raise UpstreamUnavailable(
                        f"Provider returned {response.status_code}",
                        detail=body[:500],
                        upstream_status=response.status_code,
                    )
                async for line in response.aiter_lines():
                    event = decode_stream_line(line)
                    if event is None:
                        continue
                    yield event
                    if isinstance(event, StreamEnd):
                        return
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable("Provider stream failed", detail=str(exc) or type(exc).__name__) from exc

    async def complete_blocking(self, request: CompletionRequest) -> str:
        """
        Return the full completion text in one call.

        Multiple choices are joined with blank lines.

        Raises:
            ConfigurationError: no API key configured
            UpstreamUnavailable: non-success status, transport failure or bad body
        """
        headers = self._headers()
        payload = self._payload(request.blocking())
        try:
            response = await self._http.post(self._url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable("Provider request failed", detail=str(exc) or type(exc).__name__) from exc

        if not response.is_success:
            raise UpstreamUnavailable(
                f"Provider returned {response.status_code}",
                detail=response.text[:500],
                upstream_status=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamUnavailable("Provider returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise UpstreamUnavailable("Provider returned an unexpected body")

        outputs = []
        for choice in data.get("choices") or []:
            text = extract_text({"choices": [choice]})
            if text:
                outputs.append(text)
        return "\n\n".join(outputs)
