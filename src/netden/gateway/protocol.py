"""
gateway/protocol.py — Agent Stream Protocol

Server-sent events carrying one turn's result to the client.

Every block is

    event: <kind>
    data: <json>
    <blank line>

and the JSON always repeats the kind under "type". Kinds:

    token     {"text": "..."}                 a slice of the reply text
    action    {"payload": <ActionProposal>}   a pending action to confirm
    navigate  {"payload": {"path": "/..."}}   a client-side route change
    error     {"message": "..."}              a failure after headers were sent
    done      {}                              the turn is complete
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Optional

from netden.agent.types import TurnResult
from netden.exceptions import StreamProtocolError

DEFAULT_CHUNK_SIZE = 36

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}
SSE_MEDIA_TYPE = "text/event-stream; charset=utf-8"


class StreamEventType(str, Enum):
    TOKEN = "token"
    ACTION = "action"
    NAVIGATE = "navigate"
    ERROR = "error"
    DONE = "done"


@dataclass
class StreamEvent:
    type: StreamEventType
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def token(cls, text: str) -> "StreamEvent":
        return cls(StreamEventType.TOKEN, {"text": text})

    @classmethod
    def action(cls, payload: dict[str, Any]) -> "StreamEvent":
        return cls(StreamEventType.ACTION, {"payload": payload})

    @classmethod
    def navigate(cls, path: str) -> "StreamEvent":
        return cls(StreamEventType.NAVIGATE, {"payload": {"path": path}})

    @classmethod
    def error(cls, message: str) -> "StreamEvent":
        return cls(StreamEventType.ERROR, {"message": message})

    @classmethod
    def done(cls) -> "StreamEvent":
        return cls(StreamEventType.DONE)

    def encode(self) -> str:
        body = json.dumps({"type": self.type.value, **self.data}, ensure_ascii=False)
        return f"event: {self.type.value}\ndata: {body}\n\n"


def stream_text_chunks(text: str, chunk_size: int = DEFAULT_CHUNK_SIZE) -> list[StreamEvent]:
    """Split text into token events; blank text yields one empty token."""
    if not text.strip():
        return [StreamEvent.token("")]
    return [
        StreamEvent.token(text[i:i + chunk_size])
        for i in range(0, len(text), chunk_size)
    ]


def turn_events(result: TurnResult, chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[StreamEvent]:
    """Tokens, then action, then navigate, then done."""
    yield from stream_text_chunks(result.text, chunk_size)
    if result.pending_action is not None:
        yield StreamEvent.action(result.pending_action.to_wire())
    if result.navigate_to:
        yield StreamEvent.navigate(result.navigate_to)
    yield StreamEvent.done()


def parse_sse_packet(packet: str) -> Optional[StreamEvent]:
    """
    Parse one blank-line-delimited block.

    Returns None when the block has no event or data line. Raises
    StreamProtocolError when the data line is not a JSON object.
    """
    lines = packet.split("\n")
    event_line = next((ln for ln in lines if ln.startswith("event:")), None)
    data_line = next((ln for ln in lines if ln.startswith("data:")), None)
    if event_line is None or data_line is None:
        return None

    kind = event_line[len("event:"):].strip()
    raw = data_line[len("data:"):].strip()
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise StreamProtocolError(f"Malformed data for '{kind}' event: {e}") from e
    if not isinstance(data, dict):
        raise StreamProtocolError(f"Data for '{kind}' event is not an object")

    try:
        event_type = StreamEventType(kind)
    except ValueError:
        raise StreamProtocolError(f"Unknown stream event '{kind}'") from None
    data.pop("type", None)
    return StreamEvent(event_type, data)
