import codecs
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator
from typing import Any

import httpx

from app.core.providers import LLMProviderConfig

logger = logging.getLogger(__name__)

SSE_DATA_PREFIX = "data:"


class UpstreamUnavailableError(RuntimeError):
    """Gemini could not be reached or refused the request before any output was sent."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


def _first_item(value: Any) -> Any:
    if isinstance(value, list) and value:
        return value[0]
    return None


def extract_candidate_text(record: Any) -> str:
    """Return ``candidates[0].content.parts[0].text`` or "" when any level is missing."""
    if not isinstance(record, dict):
        return ""
    candidate = _first_item(record.get("candidates"))
    if not isinstance(candidate, dict):
        return ""
    content = candidate.get("content")
    if not isinstance(content, dict):
        return ""
    part = _first_item(content.get("parts"))
    if not isinstance(part, dict):
        return ""
    text = part.get("text")
    return text if isinstance(text, str) else ""


def parse_stream_line(line: str) -> str:
    chunk = line.strip()
    if chunk.startswith(SSE_DATA_PREFIX):
        chunk = chunk[len(SSE_DATA_PREFIX) :].strip()
    if not chunk:
        return ""
    try:
        record = json.loads(chunk)
    except json.JSONDecodeError:
        logger.debug("Skipping non-JSON Gemini line: %.80s", chunk)
        return ""
    return extract_candidate_text(record)


async def iter_text_fragments(chunks: AsyncIterable[bytes]) -> AsyncIterator[bytes]:
    """Turn a newline-delimited JSON byte stream into the generated text it carries.

    Reads may split lines and multi-byte characters anywhere; the decoder and the
    carry buffer hold the incomplete tail until the next read. Lines that do not
    parse, or that have no text, are skipped. A trailing line with no terminator
    is dropped when the source ends. Errors raised by the source propagate.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""
    async for chunk in chunks:
        if not chunk:
            continue
        text = decoder.decode(chunk)
        if "\n" not in text:
            buffer += text
            continue
        head, *lines, tail = text.split("\n")
        lines.insert(0, buffer + head)
        buffer = tail
        for line in lines:
            fragment = parse_stream_line(line)
            if fragment:
                yield fragment.encode("utf-8")


class UpstreamStream:
    """An open Gemini response. Owns the connection until the body is exhausted or closed."""

    def __init__(self, response: httpx.Response):
        self._response = response

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def is_closed(self) -> bool:
        return self._response.is_closed

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        try:
            async for fragment in iter_text_fragments(self._response.aiter_bytes()):
                yield fragment
        except Exception:
            logger.exception(
                "Gemini stream failed after streaming began",
                extra={"event": "upstream_stream_error"},
            )
            raise
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        if not self._response.is_closed:
            await self._response.aclose()


class GeminiClient:
    def __init__(
        self,
        config: LLMProviderConfig,
        http_client: httpx.AsyncClient,
        api_key: str | None = None,
    ):
        self.config = config
        self._http_client = http_client
        self._api_key = api_key.strip() if api_key else None
        self.fallback_count = 0

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def open_stream(self, payload: dict[str, Any]) -> UpstreamStream:
        """Send the generation request and return once the status line is known.

        Nothing has been forwarded to the caller's client yet, so every failure
        here is an :class:`UpstreamUnavailableError` the caller may recover from.
        """
        if not self._api_key:
            raise UpstreamUnavailableError("Gemini API key is not configured.")

        request = self._http_client.build_request(
            "POST",
            self._build_url(),
            params={"key": self._api_key, "alt": "sse"},
            json=payload,
            timeout=self.config.timeout_sec,
        )
        try:
            response = await self._http_client.send(request, stream=True)
        except httpx.HTTPError as exc:
            self.fallback_count += 1
            raise UpstreamUnavailableError(f"Gemini request failed: {exc}") from exc

        if not response.is_success:
            self.fallback_count += 1
            await response.aclose()
            raise UpstreamUnavailableError(
                f"Gemini API error: {response.status_code}",
                status_code=response.status_code,
            )
        return UpstreamStream(response)

    def _build_url(self) -> str:
        base = self.config.endpoint.rstrip("/")
        return f"{base}/models/{self.config.model}:streamGenerateContent"
