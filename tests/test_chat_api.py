import json

import httpx
import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import get_chat_relay
from app.api.routes.chat import APOLOGY_TEXT, INVALID_MESSAGE_ERROR
from app.core.providers import LLMProviderConfig
from app.main import app
from app.providers.llm import GeminiClient
from app.schemas.chat import ChatRequest
from app.services import chat_relay
from app.services.chat_relay import ChatRelayService
from app.services.fallback import GENERAL_OVERVIEW, select_fallback_answer
from helpers import BrokenAfterFirstLine, gemini_line


def _use_upstream(handler) -> list[httpx.Request]:
    seen: list[httpx.Request] = []

    def recording_handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(recording_handler))
    llm = GeminiClient(LLMProviderConfig(), http_client, api_key="test-key")
    app.dependency_overrides[get_chat_relay] = lambda: ChatRelayService(llm, token_delay_ms=0)
    return seen


@pytest.mark.parametrize(
    "body",
    [
        {},
        {"searchType": "rag"},
        {"message": 42},
        {"message": None},
        {"message": ["bone"]},
        {"message": ""},
    ],
)
def test_invalid_message_is_rejected(client: TestClient, body: dict) -> None:
    resp = client.post("/api/chat", json=body)
    assert resp.status_code == 400
    assert resp.json() == {"error": INVALID_MESSAGE_ERROR}


@pytest.mark.parametrize("raw", [b"", b"not json", b"[1, 2]", b'"bone"'])
def test_non_object_body_is_rejected(client: TestClient, raw: bytes) -> None:
    resp = client.post("/api/chat", content=raw, headers={"Content-Type": "application/json"})
    assert resp.status_code == 400
    assert resp.json()["error"] == INVALID_MESSAGE_ERROR


def test_bone_question_without_key_streams_bone_answer(client: TestClient) -> None:
    resp = client.post(
        "/api/chat", json={"message": "What about bone loss?", "searchType": "rag"}
    )
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "text/plain; charset=utf-8"
    assert resp.headers["cache-control"] == "no-cache"
    assert "content-length" not in resp.headers
    assert resp.text.startswith("**Bone Loss in Microgravity**")


@pytest.mark.parametrize(
    ("body", "search_type"),
    [
        ({"message": "How do plants grow in orbit?"}, "rag"),
        ({"message": "Latest news on Artemis", "searchType": "web"}, "web"),
        ({"message": "Latest news on Artemis", "searchType": "images"}, "rag"),
        ({"message": "Latest news on Artemis", "searchType": None}, "rag"),
    ],
)
def test_without_key_body_matches_fallback_answer(
    client: TestClient, body: dict, search_type: str
) -> None:
    resp = client.post("/api/chat", json=body)
    assert resp.status_code == 200
    assert resp.text == select_fallback_answer(body["message"], search_type)


def test_upstream_stream_is_relayed(client: TestClient) -> None:
    lines = [gemini_line("Microgravity "), "garbage", gemini_line("unloads bone.")]
    body = ("\n".join(lines) + "\n").encode("utf-8")
    seen = _use_upstream(lambda request: httpx.Response(200, content=body))

    resp = client.post("/api/chat", json={"message": "bone?", "searchType": "web"})

    assert resp.status_code == 200
    assert resp.text == "Microgravity unloads bone."
    assert resp.headers["content-type"] == "text/plain; charset=utf-8"
    assert seen[0].url.params["key"] == "test-key"
    payload = json.loads(seen[0].content)
    assert payload["generationConfig"] == {"temperature": 0.8, "maxOutputTokens": 1000}
    assert payload["contents"][0]["parts"][0]["text"].endswith("User question: bone?")


@pytest.mark.parametrize("status_code", [400, 403, 429, 500, 503])
def test_upstream_error_status_falls_back(client: TestClient, status_code: int) -> None:
    _use_upstream(lambda request: httpx.Response(status_code, json={"error": {}}))

    resp = client.post("/api/chat", json={"message": "Tell me about Mars"})

    assert resp.status_code == 200
    assert resp.text == GENERAL_OVERVIEW


def test_upstream_connect_error_falls_back(client: TestClient) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    _use_upstream(handler)
    resp = client.post("/api/chat", json={"message": "heart health", "searchType": "web"})

    assert resp.status_code == 200
    assert resp.text == select_fallback_answer("heart health", "web")


def test_failing_fallback_returns_apology(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    def broken(message: str, search_type: str = "rag") -> str:
        raise RuntimeError("corrupted answers")

    monkeypatch.setattr(chat_relay, "select_fallback_answer", broken)
    resp = client.post("/api/chat", json={"message": "bone"})

    assert resp.status_code == 200
    assert resp.text == APOLOGY_TEXT
    assert resp.headers["content-type"].startswith("text/plain")


def test_request_id_is_echoed(client: TestClient) -> None:
    resp = client.post(
        "/api/chat", json={"message": "immune"}, headers={"X-Request-ID": "abc123"}
    )
    assert resp.headers["X-Request-ID"] == "abc123"


def test_health_reports_fallback_mode(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["providers"] == {"llm": "gemini"}
    llm = data["status"]["llm"]
    assert llm["credential_configured"] is False
    assert llm["degraded"] is True
    assert llm["fallback_count"] == 0


async def test_relay_keeps_upstream_after_commit_when_it_breaks() -> None:
    upstream_body = BrokenAfterFirstLine("x")
    http_client = httpx.AsyncClient(
        transport=httpx.MockTransport(lambda request: httpx.Response(200, stream=upstream_body))
    )
    relay = ChatRelayService(
        GeminiClient(LLMProviderConfig(), http_client, api_key="test-key"), token_delay_ms=0
    )

    stream = await relay.open_stream(ChatRequest(message="bone loss"))
    assert stream.source == "gemini"

    received: list[bytes] = []
    with pytest.raises(httpx.ReadError):
        async for chunk in stream.chunks:
            received.append(chunk)

    assert received == [b"x"]
    assert upstream_body.closed


def test_upstream_break_after_commit_errors_the_response(client: TestClient) -> None:
    upstream_body = BrokenAfterFirstLine("x")
    _use_upstream(lambda request: httpx.Response(200, stream=upstream_body))

    received: list[bytes] = []
    with pytest.raises(httpx.ReadError):
        with client.stream("POST", "/api/chat", json={"message": "bone loss"}) as resp:
            for chunk in resp.iter_bytes():
                received.append(chunk)

    body = b"".join(received).decode("utf-8")
    assert "Bone Loss in Microgravity" not in body
    assert body in ("", "x")
    assert upstream_body.closed
