"""
agent/coordinator.py — Turn Coordinator

The heart of NetDen. Runs one conversational turn end to end.

Decision turns (actionDecision present):
    consume the pending action → cancel it, or execute it and sync linked
    entities after calendar changes

Message turns:
    1. Detect language, classify intent
    2. Navigation requests answer immediately, no provider call
    3. Select modules, build the workspace context snapshot
    4. Completion ↔ tool loop, bounded by max_steps:
         no tool calls     → final text
         any mutating call → park the first one as a pending action and stop
                             (nothing from that batch runs)
         read-only calls   → execute concurrently, feed results back, loop

run_turn() never raises. Provider outages resolve to a localized fallback
text; any unexpected exception is logged and resolves the same way.

Usage:
    coordinator = TurnCoordinator.from_settings(settings)
    result = await coordinator.run_turn(turn_input, user_context)
"""

from __future__ import annotations

import asyncio
import json
import time
from typing import Optional

from netden.agent.context_builder import ContextSnapshotBuilder
from netden.agent.intent import classify_intent, select_relevant_modules
from netden.agent.language import resolve_turn_language
from netden.agent.pending_actions import PendingActionStore, build_pending_store
from netden.agent.prompts import (
    build_system_prompt,
    compose_user_message,
    message,
    proposal_summary,
)
from netden.agent.sync import affected_event_id, sync_linked_entities
from netden.agent.types import (
    ALL_MODULES,
    ActionDecision,
    ActionKind,
    HistoryMessage,
    Intent,
    IntentType,
    Language,
    Module,
    TurnInput,
    TurnResult,
    UserContext,
)
from netden.brain.completion_client import BaseCompletionClient, OpenRouterCompletionClient
from netden.brain.types import ChatMessage, CompletionConfig, Role
from netden.exceptions import NetDenError
from netden.observability.logger import bind_turn, clear_turn, get_logger
from netden.tools.builtin import build_default_registry
from netden.tools.dispatcher import ToolDispatcher
from netden.tools.registry import ToolRegistry
from netden.tools.types import ToolContext, ToolInvocation
from netden.workspace.store import InMemoryWorkspaceStore, WorkspaceStore

log = get_logger(__name__)

# Max completion ↔ tool iterations per message turn
DEFAULT_MAX_STEPS = 4

# History entries carried into the transcript
DEFAULT_HISTORY_WINDOW = 8


def _history_to_transcript(history: list[HistoryMessage]) -> list[ChatMessage]:
    return [
        ChatMessage(
            role=Role(entry.role.value),
            content=entry.content,
            name=entry.name,
            tool_call_id=entry.tool_call_id,
        )
        for entry in history
    ]


class TurnCoordinator:
    """
    Composes the completion client, tool dispatcher, pending-action store and
    context builder into one turn.

    Inject all dependencies via constructor; use from_settings() when wiring
    up the application.
    """

    def __init__(
        self,
        completion_client: BaseCompletionClient,
        completion_config: CompletionConfig,
        registry: ToolRegistry,
        dispatcher: ToolDispatcher,
        pending_store: PendingActionStore,
        workspace: WorkspaceStore,
        max_steps: int = DEFAULT_MAX_STEPS,
        history_window: int = DEFAULT_HISTORY_WINDOW,
        context_builder: Optional[ContextSnapshotBuilder] = None,
        assistant_name: str = "Nova",
    ) -> None:
        self._client = completion_client
        self._config = completion_config
        self._registry = registry
        self._dispatcher = dispatcher
        self._pending = pending_store
        self._workspace = workspace
        self._max_steps = max_steps
        self._history_window = history_window
        self._context = context_builder or ContextSnapshotBuilder(dispatcher)
        self._assistant_name = assistant_name

    @property
    def pending_store(self) -> PendingActionStore:
        return self._pending

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    # ─────────────────────────────────────────────────────────────────────────
    # Public
    # ─────────────────────────────────────────────────────────────────────────

    async def run_turn(self, turn: TurnInput, user: UserContext) -> TurnResult:
        bind_turn(turn.session_id, user.user_id)
        language = resolve_turn_language(turn.message, turn.history)
        text = (turn.message or "").strip()
        t0 = time.monotonic()

        log.info("coordinator.turn_start", language=language.value,
                 decision=turn.action_decision is not None, message=text[:120])
        try:
            if turn.action_decision is not None:
                result = await self._resolve_decision(turn.action_decision, user, language)
            else:
                result = await self._handle_message(turn, user, text, language)
            log.info("coordinator.turn_done", intent=result.intent.type.value,
                     pending=result.pending_action is not None,
                     ms=round((time.monotonic() - t0) * 1000))
            return result
        except asyncio.CancelledError:
            log.info("coordinator.turn_cancelled")
            raise
        except Exception as e:
            log.error("coordinator.turn_error", error=str(e),
                      error_type=type(e).__name__, exc_info=True)
            return TurnResult(
                text=message("llm_unavailable", language, message=text),
                language=language,
                intent=classify_intent(text),
                used_modules=[],
            )
        finally:
            clear_turn()

    # ─────────────────────────────────────────────────────────────────────────
    # Decision path
    # ─────────────────────────────────────────────────────────────────────────

    async def _resolve_decision(
        self, decision: ActionDecision, user: UserContext, language: Language
    ) -> TurnResult:
        proposal = await self._pending.consume(decision.action_id, user.user_id)
        if proposal is None:
            log.info("coordinator.action_not_found", action_id=decision.action_id)
            return TurnResult(
                text=message("action_not_found", language),
                language=language,
                intent=Intent(type=IntentType.CLARIFY, confidence=0.6),
                used_modules=[],
            )

        if not decision.approved:
            log.info("coordinator.action_rejected", action_id=proposal.id,
                     tool=proposal.tool_name)
            return TurnResult(
                text=message("action_canceled", language),
                language=language,
                intent=Intent(type=IntentType.ACTION, action_kind=ActionKind.DELETE,
                              confidence=0.9),
                used_modules=[],
            )

        ctx = self._tool_context(user)
        outcome = await self._dispatcher.execute(proposal.tool_name, proposal.arguments, ctx)
        log.info("coordinator.action_executed", action_id=proposal.id,
                 tool=proposal.tool_name, ok=outcome.ok)

        if outcome.ok:
            sync = ""
            if proposal.tool_name.startswith("calendar_"):
                sync = await self._sync_after_calendar_change(
                    affected_event_id(outcome.data, proposal.arguments), user, language,
                )
            text = message("action_done", language, sync=sync)
        else:
            text = message("action_failed", language, error=outcome.error or "unknown")

        return TurnResult(
            text=text,
            language=language,
            intent=Intent(type=IntentType.ACTION, action_kind=ActionKind.UPDATE, confidence=0.9),
            used_modules=list(ALL_MODULES),
        )

    async def _sync_after_calendar_change(
        self, event_id: Optional[str], user: UserContext, language: Language
    ) -> str:
        if not event_id:
            return ""
        try:
            report = await sync_linked_entities(self._workspace, user.user_id, event_id)
        except NetDenError as e:
            log.warning("coordinator.sync_failed", event_id=event_id, error=str(e))
            return ""
        return message("action_sync", language, cards=report.cards, notes=report.notes)

    # ─────────────────────────────────────────────────────────────────────────
    # Message path
    # ─────────────────────────────────────────────────────────────────────────

    async def _handle_message(
        self, turn: TurnInput, user: UserContext, text: str, language: Language
    ) -> TurnResult:
        intent = classify_intent(text)
        if intent.type == IntentType.NAVIGATE and intent.navigate_to:
            return TurnResult(
                text=message("navigate", language, route=intent.navigate_to),
                language=language,
                intent=intent,
                navigate_to=intent.navigate_to,
                used_modules=[],
            )

        modules = select_relevant_modules(text)
        ctx = self._tool_context(user)
        context = await self._context.build(text, modules, ctx)

        transcript: list[ChatMessage] = [
            ChatMessage.system(build_system_prompt(
                language, turn.settings, user, turn.memory, self._assistant_name,
            )),
            *_history_to_transcript(turn.history[-self._history_window:]),
            ChatMessage.user(compose_user_message(text, context.prompt_fragment)),
        ]
        return await self._completion_loop(transcript, text, intent, modules, language, user, ctx)

    async def _completion_loop(
        self,
        transcript: list[ChatMessage],
        text: str,
        intent: Intent,
        modules: list[Module],
        language: Language,
        user: UserContext,
        ctx: ToolContext,
    ) -> TurnResult:
        tools = self._registry.provider_tools(modules)

        def result(reply: str, **extra) -> TurnResult:
            return TurnResult(text=reply, language=language, intent=intent,
                              used_modules=modules, **extra)

        for step in range(self._max_steps):
            response = await self._client.complete(transcript, tools, self._config)
            if response is None:
                log.warning("coordinator.llm_unavailable", step=step)
                return result(message("llm_unavailable", language, message=text))

            if not response.has_tool_calls:
                if not response.text:
                    log.warning("coordinator.empty_reply", step=step)
                    return result(message("llm_unavailable", language, message=text))
                return result(response.text)

            transcript.append(ChatMessage.assistant_tool_calls(response.content, response.tool_calls))
            calls = [
                ToolInvocation(tool_call_id=tc.id, tool_name=tc.name,
                               arguments=tc.parsed_arguments())
                for tc in response.tool_calls
            ]
            log.info("coordinator.tool_calls", step=step, tools=[c.tool_name for c in calls])

            mutating = next((c for c in calls if self._registry.is_mutating(c.tool_name)), None)
            if mutating is not None:
                proposal = await self._pending.create(
                    user.user_id,
                    mutating.tool_name,
                    mutating.arguments,
                    proposal_summary(mutating.tool_name, mutating.arguments, language),
                )
                log.info("coordinator.action_proposed", action_id=proposal.id,
                         tool=proposal.tool_name, skipped=len(calls) - 1)
                return result(message("proposal_text", language, summary=proposal.summary),
                              pending_action=proposal)

            for tagged in await self._dispatcher.execute_parallel(calls, ctx):
                transcript.append(ChatMessage.tool(
                    tagged.tool_call_id,
                    json.dumps(tagged.result.envelope(), ensure_ascii=False, default=str),
                ))

        log.warning("coordinator.step_limit", max_steps=self._max_steps)
        return result(message("too_broad", language))

    # ─────────────────────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────────────────────

    def _tool_context(self, user: UserContext) -> ToolContext:
        return ToolContext(user_id=user.user_id, now_iso=user.now_iso, store=self._workspace)

    @classmethod
    def from_settings(
        cls,
        settings,
        completion_client: Optional[BaseCompletionClient] = None,
        workspace: Optional[WorkspaceStore] = None,
        pending_store: Optional[PendingActionStore] = None,
    ) -> "TurnCoordinator":
        """Create a TurnCoordinator from the NetDen Settings object."""
        registry = build_default_registry()
        dispatcher = ToolDispatcher(registry, timeout_seconds=settings.tools.timeout_seconds)
        client = completion_client or OpenRouterCompletionClient(
            api_key=settings.openrouter_api_key,
            base_url=settings.openrouter_base_url,
            http_referer=settings.openrouter_http_referer,
            app_title=settings.openrouter_app_title,
        )
        return cls(
            completion_client=client,
            completion_config=CompletionConfig(
                model=settings.effective_model,
                temperature=settings.llm.temperature,
                timeout_seconds=settings.llm.timeout_seconds,
            ),
            registry=registry,
            dispatcher=dispatcher,
            pending_store=pending_store or build_pending_store(settings),
            workspace=workspace or InMemoryWorkspaceStore(),
            max_steps=settings.agent.max_steps,
            history_window=settings.agent.history_window,
            context_builder=ContextSnapshotBuilder(
                dispatcher,
                max_chars=settings.agent.context_max_chars,
                lookahead_days=settings.agent.context_lookahead_days,
            ),
            assistant_name=settings.agent.assistant_name,
        )
