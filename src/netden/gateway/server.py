"""
gateway/server.py — NetDen HTTP Gateway

FastAPI app exposing the agent over HTTP:

    POST /api/stream   turn → text/event-stream (token… action? navigate? done)
    POST /api/agent    turn → JSON TurnResult
    GET  /api/tools    tool catalog
    GET  /api/health   liveness

Identity is ambient: the upstream proxy sets x-netden-user (and optionally
x-netden-user-name, x-netden-timezone). Requests without it act as the
configured default user.

Usage:
    app = create_app(settings)
    uvicorn.run(app, host=settings.server.host, port=settings.server.port)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import ValidationError

from netden.agent.coordinator import TurnCoordinator
from netden.agent.types import TurnInput, UserContext
from netden.config.settings import Settings
from netden.gateway.protocol import (
    SSE_HEADERS,
    SSE_MEDIA_TYPE,
    StreamEvent,
    turn_events,
)
from netden.observability.logger import get_logger

log = get_logger(__name__)


class RequestError(Exception):
    """A client error rendered as {"error": ...} with the given status."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _first_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    where = ".".join(str(p) for p in err.get("loc", ()))
    return f"{where}: {err.get('msg', 'invalid value')}" if where else err.get("msg", "invalid")


def create_app(
    settings: Settings,
    coordinator: Optional[TurnCoordinator] = None,
) -> FastAPI:
    coordinator = coordinator or TurnCoordinator.from_settings(settings)
    max_body_bytes = settings.server.max_body_kb * 1024
    chunk_size = settings.agent.stream_chunk_size

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await coordinator.pending_store.init()
        log.info("gateway.started", pending_store=type(coordinator.pending_store).__name__)
        try:
            yield
        finally:
            await coordinator.pending_store.close()
            log.info("gateway.stopped")

    app = FastAPI(title="NetDen Agent", version="1.0.0", lifespan=lifespan)
    app.state.coordinator = coordinator

    @app.exception_handler(RequestError)
    async def _request_error(request: Request, exc: RequestError) -> JSONResponse:
        log.info("gateway.request_rejected", path=request.url.path,
                 status=exc.status_code, error=exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    # ── Request parsing ──────────────────────────────────────────────────────

    async def read_turn(request: Request) -> TurnInput:
        raw = await request.body()
        if len(raw) > max_body_bytes:
            raise RequestError(413, f"Payload too large (max {settings.server.max_body_kb} KB)")
        if not raw.strip():
            raise RequestError(400, "Request body is required")
        try:
            return TurnInput.model_validate_json(raw)
        except ValidationError as e:
            raise RequestError(400, f"Invalid payload: {_first_error(e)}") from e

    def user_context(request: Request, turn: TurnInput) -> UserContext:
        headers = request.headers
        return UserContext(
            user_id=(headers.get("x-netden-user") or "").strip() or settings.agent.default_user_id,
            user_name=(headers.get("x-netden-user-name") or "").strip()
            or settings.agent.default_user_name,
            timezone=(headers.get("x-netden-timezone") or "").strip() or "UTC",
            now_iso=_now_iso(),
            user_role=turn.settings.role,
        )

    # ── Routes ───────────────────────────────────────────────────────────────

    @app.post("/api/stream")
    async def stream_turn(request: Request) -> StreamingResponse:
        turn = await read_turn(request)
        user = user_context(request, turn)

        async def events() -> AsyncIterator[str]:
            try:
                result = await coordinator.run_turn(turn, user)
            except Exception as e:
                log.error("gateway.stream_failed", error=str(e), exc_info=True)
                yield StreamEvent.error("Agent turn failed").encode()
                yield StreamEvent.done().encode()
                return
            for event in turn_events(result, chunk_size):
                yield event.encode()

        return StreamingResponse(events(), media_type=SSE_MEDIA_TYPE, headers=SSE_HEADERS)

    @app.post("/api/agent")
    async def agent_turn(request: Request) -> JSONResponse:
        turn = await read_turn(request)
        result = await coordinator.run_turn(turn, user_context(request, turn))
        return JSONResponse(content=result.to_wire())

    @app.get("/api/tools")
    async def list_tools() -> dict:
        return {"tools": [d.to_catalog_entry() for d in coordinator.registry.catalog()]}

    @app.get("/api/health")
    async def health() -> dict:
        return {"status": "ok"}

    return app
