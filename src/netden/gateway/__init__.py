"""
gateway/ — HTTP + SSE Gateway

The FastAPI server streams turn results as server-sent events; the client
side rebuilds them into a StreamedReply.
"""

from netden.gateway.client import AgentStreamClient, StreamAccumulator, StreamedReply
from netden.gateway.protocol import (
    StreamEvent,
    StreamEventType,
    parse_sse_packet,
    stream_text_chunks,
    turn_events,
)
from netden.gateway.server import create_app

__all__ = [
    "AgentStreamClient",
    "StreamAccumulator",
    "StreamedReply",
    "StreamEvent",
    "StreamEventType",
    "parse_sse_packet",
    "stream_text_chunks",
    "turn_events",
    "create_app",
]
