"""
tools/dispatcher.py — Tool Dispatcher

Sits between the turn coordinator and tool execution. Every call the
provider requests, and every approved pending action, is routed through here.

Flow:
  call → ToolDispatcher.execute()
    → Registry lookup (is the tool registered?)
    → Argument validation (JSON Schema, Draft 7)
    → Handler execution (async, with timeout)
    → ToolResult {ok, data, error}

execute() never raises: unknown tools, rejected arguments, handler
exceptions and timeouts all come back as ok=False results. Cancellation is
the one thing that propagates.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Iterable

from jsonschema import Draft7Validator

from netden.exceptions import ToolNotFoundError, ToolTimeoutError
from netden.observability.logger import get_logger
from netden.tools.registry import ToolRegistry
from netden.tools.types import (
    RejectedArgs,
    TaggedToolResult,
    ToolContext,
    ToolInvocation,
    ToolResult,
    ValidArgs,
    ValidationVerdict,
)

log = get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15.0


class ToolDispatcher:
    """
    Validates and executes registered tools.

    Usage:
        dispatcher = ToolDispatcher(registry, timeout_seconds=15)
        result = await dispatcher.execute("notes_search", {"q": "plan"}, ctx)
    """

    def __init__(
        self,
        registry: ToolRegistry,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.registry = registry
        self.timeout_seconds = timeout_seconds
        self._validators: dict[str, Draft7Validator] = {}

    # ── Validation ────────────────────────────────────────────────────────────

    def _validator(self, name: str) -> Draft7Validator:
        validator = self._validators.get(name)
        if validator is None:
            descriptor = self.registry.get(name)
            if descriptor is None:
                raise ToolNotFoundError(name)
            validator = Draft7Validator(descriptor.parameters)
            self._validators[name] = validator
        return validator

    def validate(self, name: str, arguments: dict[str, Any]) -> ValidationVerdict:
        """
        Check arguments against the tool's JSON Schema.

        Returns ValidArgs or RejectedArgs listing every violation, path first.
        Raises ToolNotFoundError for unregistered names.
        """
        validator = self._validator(name)
        errors = sorted(validator.iter_errors(arguments), key=lambda e: list(e.path))
        if not errors:
            return ValidArgs(arguments=arguments)
        messages = []
        for err in errors:
            where = ".".join(str(p) for p in err.path)
            messages.append(f"{where}: {err.message}" if where else err.message)
        return RejectedArgs(errors=tuple(messages))

    # ── Execution ─────────────────────────────────────────────────────────────

    async def execute(
        self, name: str, arguments: dict[str, Any], ctx: ToolContext
    ) -> ToolResult:
        start_ms = time.monotonic() * 1000
        descriptor = self.registry.get(name)
        if descriptor is None:
            log.warning("dispatcher.unknown_tool", tool=name)
            return ToolResult.failure(str(ToolNotFoundError(name)))

        verdict = self.validate(name, arguments)
        if isinstance(verdict, RejectedArgs):
            log.info("dispatcher.rejected_args", tool=name, errors=list(verdict.errors))
            return ToolResult.failure(verdict.message)

        try:
            data = await asyncio.wait_for(
                descriptor.execute(ctx, **verdict.arguments),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            err = ToolTimeoutError(
                f"Tool '{name}' timed out after {self.timeout_seconds}s"
            )
            log.error("dispatcher.tool_timeout", tool=name,
                      timeout_seconds=self.timeout_seconds)
            return ToolResult.failure(str(err))
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.warning("dispatcher.tool_failed", tool=name,
                        error=str(e), error_type=type(e).__name__)
            return ToolResult.failure(str(e) or type(e).__name__)

        log.debug("dispatcher.tool_ok", tool=name,
                  duration_ms=round(time.monotonic() * 1000 - start_ms, 1))
        return ToolResult.success(data)

    async def execute_parallel(
        self, calls: Iterable[ToolInvocation], ctx: ToolContext
    ) -> list[TaggedToolResult]:
        """
        Run all calls concurrently. Results keep the input order and carry
        each call's tool_call_id; one failure never affects its siblings.
        """
        calls = list(calls)
        results = await asyncio.gather(
            *(self.execute(c.tool_name, c.arguments, ctx) for c in calls)
        )
        return [
            TaggedToolResult(tool_call_id=c.tool_call_id, tool_name=c.tool_name, result=r)
            for c, r in zip(calls, results)
        ]

    def __repr__(self) -> str:
        return f"<ToolDispatcher tools={len(self.registry)} timeout={self.timeout_seconds}s>"
