"""
gateway/client.py — Agent Stream Client

Consumes /api/stream and rebuilds the assistant message.

StreamAccumulator is transport-agnostic: feed() it raw text chunks split at
arbitrary points and it reassembles complete SSE blocks, so the final text
is the same however the bytes were chunked on the wire.

AgentStreamClient does the HTTP side with httpx. Transport failures and
non-2xx answers are appended to the message as text rather than raised.

Usage:
    async with AgentStreamClient("http://127.0.0.1:8787", user_id="u1") as client:
        reply = await client.stream_turn({"sessionId": "s1", "message": "hi"},
                                         on_token=print)
        if reply.pending_action:
            ...
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import httpx

from netden.exceptions import StreamProtocolError
from netden.gateway.protocol import StreamEventType, parse_sse_packet
from netden.observability.logger import get_logger

log = get_logger(__name__)

_SEPARATOR = "\n\n"


@dataclass
class StreamedReply:
    """Everything one streamed turn produced."""
    text: str = ""
    pending_action: Optional[dict[str, Any]] = None
    navigate_to: Optional[str] = None
    errors: list[str] = field(default_factory=list)
    completed: bool = False      # a done event arrived


class StreamAccumulator:
    """
    Incremental SSE consumer.

    Args:
        on_token:    Called with each token text as it arrives.
        on_navigate: Called with the path of each navigate event.
    """

    def __init__(
        self,
        on_token: Optional[Callable[[str], None]] = None,
        on_navigate: Optional[Callable[[str], None]] = None,
    ) -> None:
        self._buffer = ""
        self._parts: list[str] = []
        self._on_token = on_token
        self._on_navigate = on_navigate
        self.reply = StreamedReply()

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def append_text(self, text: str) -> None:
        if not text:
            return
        self._parts.append(text)
        self.reply.text = self.text
        if self._on_token:
            self._on_token(text)

    def feed(self, chunk: str) -> None:
        """Buffer a chunk and handle every block it completes."""
        self._buffer += chunk
        index = self._buffer.find(_SEPARATOR)
        while index >= 0:
            packet = self._buffer[:index]
            self._buffer = self._buffer[index + len(_SEPARATOR):]
            self._handle_packet(packet)
            index = self._buffer.find(_SEPARATOR)

    def close(self) -> StreamedReply:
        """Finish the stream; a trailing incomplete block is dropped."""
        if self._buffer.strip():
            log.debug("stream_client.trailing_data", chars=len(self._buffer))
        self._buffer = ""
        self.reply.text = self.text
        return self.reply

    def _handle_packet(self, packet: str) -> None:
        try:
            event = parse_sse_packet(packet)
        except StreamProtocolError as e:
            log.warning("stream_client.bad_packet", error=str(e))
            return
        if event is None:
            return

        data = event.data
        if event.type == StreamEventType.TOKEN:
            text = data.get("text")
            self.append_text(text if isinstance(text, str) else "")
        elif event.type == StreamEventType.ACTION:
            if data.get("payload"):
                self.reply.pending_action = data["payload"]
        elif event.type == StreamEventType.NAVIGATE:
            payload = data.get("payload")
            path = payload.get("path") if isinstance(payload, dict) else None
            if isinstance(path, str) and path:
                self.reply.navigate_to = path
                if self._on_navigate:
                    self._on_navigate(path)
        elif event.type == StreamEventType.ERROR:
            message = data.get("message")
            message = message if isinstance(message, str) else "Agent stream error"
            self.reply.errors.append(message)
            self.append_text(message)
        elif event.type == StreamEventType.DONE:
            self.reply.completed = True


class AgentStreamClient:
    """httpx client for the NetDen gateway."""

    def __init__(
        self,
        base_url: str,
        user_id: Optional[str] = None,
        user_name: Optional[str] = None,
        timezone: str = "UTC",
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        headers = {"x-netden-timezone": timezone}
        if user_id:
            headers["x-netden-user"] = user_id
        if user_name:
            headers["x-netden-user-name"] = user_name
        self._http = httpx.AsyncClient(
            base_url=base_url, headers=headers, timeout=timeout, transport=transport,
        )

    async def __aenter__(self) -> "AgentStreamClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    async def stream_turn(
        self,
        payload: dict[str, Any],
        on_token: Optional[Callable[[str], None]] = None,
        on_navigate: Optional[Callable[[str], None]] = None,
    ) -> StreamedReply:
        acc = StreamAccumulator(on_token=on_token, on_navigate=on_navigate)
        try:
            async with self._http.stream("POST", "/api/stream", json=payload) as response:
                if response.status_code >= 300:
                    await response.aread()
                    message = f"Agent stream failed (HTTP {response.status_code})"
                    log.warning("stream_client.http_error", status=response.status_code)
                    acc.reply.errors.append(message)
                    acc.append_text(message)
                    return acc.close()
                async for chunk in response.aiter_text():
                    acc.feed(chunk)
        except httpx.HTTPError as e:
            message = str(e) or "Unexpected streaming error"
            log.warning("stream_client.transport_error", error=message,
                        error_type=type(e).__name__)
            acc.reply.errors.append(message)
            acc.append_text(message)
        return acc.close()

    async def decide(
        self, session_id: str, action_id: str, approved: bool, **callbacks: Any
    ) -> StreamedReply:
        """Approve or reject a pending action."""
        return await self.stream_turn(
            {"sessionId": session_id, "actionDecision": {"actionId": action_id, "approved": approved}},
            **callbacks,
        )
