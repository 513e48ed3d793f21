"""
tests/unit/test_gateway.py — HTTP/SSE Gateway Tests

Covers:
  - SSE framing: event/data lines, "type" echoed in data, parse errors
  - turn_events ordering: tokens → action → navigate → done
  - StreamAccumulator: same reply however the bytes are chunked
  - FastAPI app: /api/stream, /api/agent, /api/tools, /api/health,
    400 / 413 request errors, identity headers
  - AgentStreamClient over httpx.MockTransport, including HTTP failures
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import httpx
import pytest
from fastapi.testclient import TestClient

from netden.agent.coordinator import TurnCoordinator
from netden.agent.pending_actions import InMemoryPendingActionStore
from netden.agent.types import Intent, IntentType, Language, TurnResult
from netden.brain.types import CompletionConfig, CompletionMessage, ToolCall
from netden.config.settings import Settings
from netden.exceptions import StreamProtocolError
from netden.gateway.client import AgentStreamClient, StreamAccumulator
from netden.gateway.protocol import (
    StreamEvent,
    StreamEventType,
    parse_sse_packet,
    stream_text_chunks,
    turn_events,
)
from netden.gateway.server import create_app
from netden.tools.builtin import build_default_registry
from netden.tools.dispatcher import ToolDispatcher
from netden.workspace.store import InMemoryWorkspaceStore


def _kinds(body: str) -> list[str]:
    return [
        line[len("event: "):]
        for line in body.split("\n")
        if line.startswith("event: ")
    ]


# ── Protocol ─────────────────────────────────────────────────────────────────

class TestProtocol:
    def test_encode(self):
        assert StreamEvent.token("Привет").encode() == (
            'event: token\ndata: {"type": "token", "text": "Привет"}\n\n'
        )

    def test_parse_drops_type_echo(self):
        event = parse_sse_packet(StreamEvent.navigate("/notes").encode().strip())
        assert event.type == StreamEventType.NAVIGATE
        assert event.data == {"payload": {"path": "/notes"}}

    def test_parse_incomplete_block(self):
        assert parse_sse_packet("event: token") is None
        assert parse_sse_packet(": keep-alive") is None

    @pytest.mark.parametrize("packet", [
        "event: token\ndata: {broken",
        "event: token\ndata: [1, 2]",
        "event: bogus\ndata: {}",
    ])
    def test_parse_errors(self, packet):
        with pytest.raises(StreamProtocolError):
            parse_sse_packet(packet)

    def test_chunks(self):
        events = stream_text_chunks("abcdefg", chunk_size=3)
        assert [e.data["text"] for e in events] == ["abc", "def", "g"]
        assert [e.data["text"] for e in stream_text_chunks("   ")] == [""]

    def test_turn_event_order(self):
        result = TurnResult(
            text="Opening section /notes.",
            language=Language.EN,
            intent=Intent(type=IntentType.NAVIGATE, confidence=0.85, navigate_to="/notes"),
            navigate_to="/notes",
        )
        kinds = [e.type for e in turn_events(result, chunk_size=10)]
        assert kinds == [
            StreamEventType.TOKEN, StreamEventType.TOKEN, StreamEventType.TOKEN,
            StreamEventType.NAVIGATE, StreamEventType.DONE,
        ]


# ── Accumulator ──────────────────────────────────────────────────────────────

_STREAM = "".join([
    StreamEvent.token("Hello, ").encode(),
    StreamEvent.token("мир!").encode(),
    StreamEvent.action({"id": "a1", "toolName": "notes_create", "summary": "s"}).encode(),
    StreamEvent.navigate("/notes").encode(),
    StreamEvent.done().encode(),
])


class TestAccumulator:
    @pytest.mark.parametrize("size", [1, 2, 7, 64, len(_STREAM)])
    def test_chunking_does_not_change_the_reply(self, size):
        tokens: list[str] = []
        acc = StreamAccumulator(on_token=tokens.append)
        for i in range(0, len(_STREAM), size):
            acc.feed(_STREAM[i:i + size])
        reply = acc.close()

        assert reply.text == "Hello, мир!"
        assert "".join(tokens) == "Hello, мир!"
        assert reply.pending_action["id"] == "a1"
        assert reply.navigate_to == "/notes"
        assert reply.completed is True
        assert reply.errors == []

    def test_error_event_is_appended_to_text(self):
        acc = StreamAccumulator()
        acc.feed(StreamEvent.token("partial ").encode())
        acc.feed(StreamEvent.error("Agent turn failed").encode())
        reply = acc.close()
        assert reply.text == "partial Agent turn failed"
        assert reply.errors == ["Agent turn failed"]

    def test_bad_packet_is_skipped(self):
        acc = StreamAccumulator()
        acc.feed("event: token\ndata: {oops\n\n" + StreamEvent.token("ok").encode())
        assert acc.close().text == "ok"

    def test_trailing_partial_block_dropped(self):
        acc = StreamAccumulator()
        acc.feed(StreamEvent.token("a").encode() + 'event: token\ndata: {"text": "b"}')
        reply = acc.close()
        assert reply.text == "a"
        assert reply.completed is False


# ── FastAPI app ──────────────────────────────────────────────────────────────

@pytest.fixture
def llm():
    c = AsyncMock()
    c.complete.return_value = CompletionMessage(content="All clear for today.")
    return c


@pytest.fixture
def settings():
    return Settings(server={"max_body_kb": 1}, agent={"stream_chunk_size": 8})


@pytest.fixture
def coordinator(llm):
    registry = build_default_registry()
    return TurnCoordinator(
        completion_client=llm,
        completion_config=CompletionConfig(model="test/model"),
        registry=registry,
        dispatcher=ToolDispatcher(registry),
        pending_store=InMemoryPendingActionStore(),
        workspace=InMemoryWorkspaceStore(),
    )


@pytest.fixture
def http(settings, coordinator):
    with TestClient(create_app(settings, coordinator)) as c:
        yield c


class TestServer:
    def test_health(self, http):
        assert http.get("/api/health").json() == {"status": "ok"}

    def test_tool_catalog(self, http):
        tools = http.get("/api/tools").json()["tools"]
        by_name = {t["name"]: t for t in tools}
        assert by_name["notes_create"]["mutating"] is True
        assert by_name["daily_overview"]["module"] == "daily"

    def test_stream_text_reply(self, http):
        response = http.post("/api/stream", json={"sessionId": "s1", "message": "hello"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache, no-transform"
        assert response.headers["x-accel-buffering"] == "no"
        kinds = _kinds(response.text)
        assert kinds[-1] == "done"
        assert set(kinds[:-1]) == {"token"}

        acc = StreamAccumulator()
        acc.feed(response.text)
        assert acc.close().text == "All clear for today."

    def test_stream_navigation(self, http, llm):
        response = http.post("/api/stream", json={"sessionId": "s1", "message": "open notes"})
        assert _kinds(response.text)[-2:] == ["navigate", "done"]
        llm.complete.assert_not_awaited()

    def test_stream_proposal_then_decision(self, http, llm):
        llm.complete.return_value = CompletionMessage(tool_calls=[
            ToolCall(id="c1", name="notes_create", raw_arguments='{"title": "Trip"}'),
        ])
        response = http.post("/api/stream", json={"sessionId": "s1", "message": "add a note"})
        assert _kinds(response.text)[-2:] == ["action", "done"]

        acc = StreamAccumulator()
        acc.feed(response.text)
        action = acc.close().pending_action
        assert action["toolName"] == "notes_create"
        assert "ownerId" not in action

        decided = http.post("/api/stream", json={
            "sessionId": "s1",
            "actionDecision": {"actionId": action["id"], "approved": True},
        })
        acc = StreamAccumulator()
        acc.feed(decided.text)
        assert acc.close().text == "Done. Action completed successfully."

    def test_decision_scoped_to_user_header(self, http, llm):
        llm.complete.return_value = CompletionMessage(tool_calls=[
            ToolCall(id="c1", name="notes_create", raw_arguments='{"title": "Trip"}'),
        ])
        proposed = http.post("/api/agent", json={"sessionId": "s1", "message": "add a note"},
                             headers={"x-netden-user": "alice"}).json()
        action_id = proposed["pendingAction"]["id"]

        stolen = http.post("/api/agent", headers={"x-netden-user": "mallory"}, json={
            "sessionId": "s1", "actionDecision": {"actionId": action_id, "approved": True},
        }).json()
        assert stolen["intent"]["type"] == "clarify"

    def test_agent_json(self, http):
        body = http.post("/api/agent", json={"sessionId": "s1", "message": "hello"}).json()
        assert body["text"] == "All clear for today."
        assert body["language"] == "en"
        assert body["intent"]["type"] == "unknown"
        assert "pendingAction" not in body

    def test_empty_body(self, http):
        response = http.post("/api/stream", content=b"")
        assert response.status_code == 400
        assert response.json() == {"error": "Request body is required"}

    def test_invalid_payload(self, http):
        response = http.post("/api/stream", json={"message": "no session"})
        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid payload: sessionId")

    def test_malformed_json(self, http):
        response = http.post("/api/agent", content=b"{not json",
                             headers={"content-type": "application/json"})
        assert response.status_code == 400

    def test_payload_too_large(self, http):
        response = http.post("/api/stream", json={"sessionId": "s1", "message": "x" * 2048})
        assert response.status_code == 413

    def test_turn_failure_still_closes_stream(self, settings, coordinator):
        coordinator.run_turn = AsyncMock(side_effect=RuntimeError("boom"))
        with TestClient(create_app(settings, coordinator)) as http:
            response = http.post("/api/stream", json={"sessionId": "s1", "message": "hi"})
        assert _kinds(response.text) == ["error", "done"]


# ── Stream client ────────────────────────────────────────────────────────────

def _transport(status: int, body: str, seen: list | None = None) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return httpx.Response(status, text=body,
                              headers={"content-type": "text/event-stream"})
    return httpx.MockTransport(handler)


class TestStreamClient:
    @pytest.mark.asyncio
    async def test_stream_turn(self):
        seen: list[httpx.Request] = []
        async with AgentStreamClient("http://agent", user_id="u1",
                                     transport=_transport(200, _STREAM, seen)) as client:
            reply = await client.stream_turn({"sessionId": "s1", "message": "hi"})

        assert reply.text == "Hello, мир!"
        assert reply.completed is True
        assert seen[0].url.path == "/api/stream"
        assert seen[0].headers["x-netden-user"] == "u1"

    @pytest.mark.asyncio
    async def test_decide_payload(self):
        seen: list[httpx.Request] = []
        async with AgentStreamClient("http://agent",
                                     transport=_transport(200, _STREAM, seen)) as client:
            await client.decide("s1", "a1", approved=False)
        assert json.loads(seen[0].content) == {
            "sessionId": "s1", "actionDecision": {"actionId": "a1", "approved": False},
        }

    @pytest.mark.asyncio
    async def test_http_error_becomes_text(self):
        async with AgentStreamClient("http://agent",
                                     transport=_transport(502, "bad gateway")) as client:
            reply = await client.stream_turn({"sessionId": "s1", "message": "hi"})
        assert reply.text == "Agent stream failed (HTTP 502)"
        assert reply.errors == ["Agent stream failed (HTTP 502)"]

    @pytest.mark.asyncio
    async def test_transport_error_becomes_text(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with AgentStreamClient("http://agent",
                                     transport=httpx.MockTransport(handler)) as client:
            reply = await client.stream_turn({"sessionId": "s1", "message": "hi"})
        assert reply.text == "connection refused"
        assert reply.completed is False
