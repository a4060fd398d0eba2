from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Any
from uuid import uuid4

_request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

# Gemini takes the API key as a query parameter, so URLs must never reach a log line verbatim.
_API_KEY_PATTERN = re.compile(r"([?&]key=)[^&\s\"']+")

_EXTRA_KEYS = ("event", "fallback", "search_type", "provider", "status_code")


def redact_api_key(text: str) -> str:
    return _API_KEY_PATTERN.sub(r"\1***", text)


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - logging glue
        if not hasattr(record, "request_id"):
            record.request_id = _request_id_ctx.get()
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": redact_api_key(record.getMessage()),
        }
        request_id = getattr(record, "request_id", None) or _request_id_ctx.get()
        if request_id:
            payload["request_id"] = request_id

        for key in _EXTRA_KEYS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value

        latency = getattr(record, "latency_ms", None)
        if latency is not None:
            payload["latency_ms"] = latency

        if record.exc_info:
            payload["exc_info"] = redact_api_key(self.formatException(record.exc_info))

        return json.dumps(payload, ensure_ascii=False)


def configure_logging(level: int = logging.INFO) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    handler.addFilter(RequestIdFilter())

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(level)
    root.addHandler(handler)
    logging.captureWarnings(True)
    # httpx logs every request URL at INFO, including the key query parameter.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def generate_request_id() -> str:
    return uuid4().hex


def set_request_id(request_id: str) -> Token[str | None]:
    return _request_id_ctx.set(request_id)


def reset_request_id(token: Token[str | None]) -> None:
    _request_id_ctx.reset(token)


@contextmanager
def request_id_context(request_id: str | None = None) -> Iterator[str]:
    value = request_id or generate_request_id()
    token = set_request_id(value)
    try:
        yield value
    finally:
        reset_request_id(token)
