"""
agent/ — NetDen Agent Core

Component overview:
    types                  Turn input/result contracts (camelCase on the wire)
    language / intent      Keyword heuristics run before any provider call
    prompts                System prompt + localized turn messages
    pending_actions        Single-use, owner-scoped action proposals
    context_builder        Concurrent module reads → unified prompt fragment
    sync                   Linked card/note sync after calendar changes
    coordinator            TurnCoordinator: the bounded completion ↔ tool loop

The coordinator pulls in the tool system, which itself depends on
agent.types, so import it from netden.agent.coordinator directly.
"""

from netden.agent.types import (
    ActionDecision,
    ActionProposal,
    Intent,
    IntentType,
    Language,
    Module,
    TurnInput,
    TurnResult,
    UserContext,
)
from netden.agent.intent import classify_intent, select_relevant_modules
from netden.agent.language import detect_language

__all__ = [
    "ActionDecision",
    "ActionProposal",
    "Intent",
    "IntentType",
    "Language",
    "Module",
    "TurnInput",
    "TurnResult",
    "UserContext",
    "classify_intent",
    "detect_language",
    "select_relevant_modules",
]
