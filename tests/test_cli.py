import io

import httpx
import pytest

from app.cli.ask import GENERATING_INDICATOR, parse_args, stream_answer


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_stream_answer_prints_and_returns_text() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, content="Bone loss 🚀".encode("utf-8"))

    out = io.StringIO()
    with _client(handler) as client:
        text = stream_answer(client, "http://relay.test/api/chat", "bone?", "web", out=out)

    assert text == "Bone loss 🚀"
    assert out.getvalue().endswith("Bone loss 🚀\n")
    assert GENERATING_INDICATOR in out.getvalue()
    assert seen[0].url.path == "/api/chat"
    assert b'"searchType"' in seen[0].content


def test_stream_answer_raises_on_client_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "Invalid message format"})

    with _client(handler) as client, pytest.raises(httpx.HTTPStatusError):
        stream_answer(client, "http://relay.test/api/chat", "", out=io.StringIO())


def test_parse_args() -> None:
    args = parse_args(["What about muscles?", "--web", "--url", "http://x.test/api/chat"])
    assert args.message == "What about muscles?"
    assert args.web is True
    assert args.url == "http://x.test/api/chat"
