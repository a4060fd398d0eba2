import json
from collections.abc import AsyncIterable, AsyncIterator, Iterable

import httpx


async def aiter_chunks(chunks: Iterable[bytes]) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


async def collect(stream: AsyncIterable[bytes]) -> list[bytes]:
    return [chunk async for chunk in stream]


def split_every(data: bytes, size: int) -> list[bytes]:
    return [data[i : i + size] for i in range(0, len(data), size)]


def gemini_line(text: str) -> str:
    record = {"candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}]}
    return json.dumps(record, ensure_ascii=False)


class BrokenAfterFirstLine(httpx.AsyncByteStream):
    """Upstream body that sends one complete record and then drops the connection."""

    def __init__(self, text: str = "x"):
        self.text = text
        self.closed = False

    async def __aiter__(self) -> AsyncIterator[bytes]:
        yield (gemini_line(self.text) + "\n").encode("utf-8")
        raise httpx.ReadError("connection reset by peer")

    async def aclose(self) -> None:
        self.closed = True
