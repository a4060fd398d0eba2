import logging
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from typing import Literal

from app.providers.llm import GeminiClient, UpstreamUnavailableError
from app.schemas.chat import ChatRequest
from app.services.fallback import DEFAULT_TOKEN_DELAY_MS, pace_tokens, select_fallback_answer
from app.services.prompt_builder import build_generation_payload

logger = logging.getLogger(__name__)

StreamSource = Literal["gemini", "fallback"]


@dataclass(frozen=True)
class RelayStream:
    chunks: AsyncIterator[bytes]
    source: StreamSource
    close: Callable[[], Awaitable[None]] | None = None


class ChatRelayService:
    """Chooses between the live Gemini stream and the paced fallback answer.

    The choice is final once :meth:`open_stream` returns: a failure after that
    point surfaces as an error inside the stream, never as a second answer.
    """

    def __init__(
        self, llm_client: GeminiClient, token_delay_ms: float = DEFAULT_TOKEN_DELAY_MS
    ):
        self._llm_client = llm_client
        self._token_delay_ms = token_delay_ms

    async def open_stream(self, request: ChatRequest) -> RelayStream:
        if not self._llm_client.is_configured:
            return self.fallback_stream(request, reason="no_credential")

        payload = build_generation_payload(request, self._llm_client.config)
        start = time.monotonic()
        try:
            upstream = await self._llm_client.open_stream(payload)
        except UpstreamUnavailableError as exc:
            logger.warning(
                "Gemini unavailable, serving fallback answer: %s",
                exc,
                extra={"fallback": True, "status_code": exc.status_code},
            )
            return self.fallback_stream(request, reason="upstream_unavailable")
        except Exception as exc:  # noqa: BLE001
            logger.exception(
                "Gemini request raised unexpectedly, serving fallback answer: %s",
                exc,
                extra={"fallback": True},
            )
            return self.fallback_stream(request, reason="upstream_error")

        logger.info(
            "Relaying Gemini stream",
            extra={
                "event": "chat_stream_open",
                "search_type": request.search_type,
                "status_code": upstream.status_code,
                "latency_ms": round((time.monotonic() - start) * 1000, 1),
            },
        )
        return RelayStream(chunks=upstream.iter_bytes(), source="gemini", close=upstream.aclose)

    def fallback_stream(self, request: ChatRequest, reason: str) -> RelayStream:
        text = select_fallback_answer(request.message, request.search_type)
        logger.info(
            "Streaming fallback answer (%s)",
            reason,
            extra={"event": "chat_fallback", "fallback": True, "search_type": request.search_type},
        )
        return RelayStream(
            chunks=pace_tokens(text, delay_ms=self._token_delay_ms), source="fallback"
        )
