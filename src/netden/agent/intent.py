"""
agent/intent.py — Intent Classifier & Module Selector

Keyword heuristics run before any provider call:

  classify_intent()          navigate / action / query / clarify / unknown
  select_relevant_modules()  which data modules to read for context

English keywords match whole words. Russian keywords are stems and match
as word prefixes, so "календарь" and "заметки" hit "календар" and "заметк".
"""

from __future__ import annotations

import re

from netden.agent.types import ActionKind, Intent, IntentType, Module


def _words(en: str, ru: str = "") -> re.Pattern[str]:
    """English alternatives as whole words, Russian stems as word prefixes."""
    parts = [rf"\b(?:{en})\b"]
    if ru:
        parts.append(rf"\b(?:{ru})")
    return re.compile("|".join(parts), re.IGNORECASE)


# Checked in this order; the first hit decides the action kind.
_ACTION_PATTERNS: list[tuple[ActionKind, re.Pattern[str]]] = [
    (ActionKind.CREATE, re.compile(r"\b(?:create|add|new)\b|сделай|создай|добавь", re.I)),
    (ActionKind.UPDATE, re.compile(r"\b(?:update|edit|rename)\b|измени|обнови|переименуй", re.I)),
    (ActionKind.DELETE, re.compile(r"\b(?:delete|remove)\b|удали|убери", re.I)),
    (ActionKind.MOVE, re.compile(r"\b(?:move|transfer)\b|перемести|перенеси", re.I)),
    (ActionKind.GENERATE, re.compile(r"\b(?:generate|draft|write)\b|сгенерируй|напиши", re.I)),
]

_NAVIGATION_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("/calendar", _words("calendar", "календар")),
    ("/kanban", _words("kanban|board", "доска|канбан")),
    ("/notes", _words("notes?", "заметк")),
    ("/home", _words("home|dashboard", "главн")),
    ("/settings", _words("settings?", "настройк")),
]

_NAVIGATION_VERB = re.compile(r"\b(?:open|show|перейди|открой|покажи)\b", re.IGNORECASE)

_QUESTION_WORD = re.compile(
    r"\b(?:какие|какой|что|when|what|show|list|покажи|найди)\b", re.IGNORECASE
)

_MODULE_PATTERNS: list[tuple[Module, re.Pattern[str]]] = [
    (Module.CALENDAR, _words("calendar|event|meeting|deadline", "календар|событи|расписан")),
    (Module.KANBAN, _words("kanban|board|card|column", "канбан|доск|карточк|статус")),
    (Module.NOTES, _words("note|notes|wiki", "заметк|конспект")),
    (Module.DAILY, _words("daily|planner|routine|today|tomorrow", "ежедне|сегодня|завтра")),
]

_FALLBACK_MODULES = [Module.DAILY, Module.CALENDAR, Module.KANBAN, Module.NOTES]


def classify_intent(message: str | None) -> Intent:
    text = (message or "").strip()
    if not text:
        return Intent(type=IntentType.CLARIFY, confidence=0.2)

    if _NAVIGATION_VERB.search(text):
        for route, pattern in _NAVIGATION_PATTERNS:
            if pattern.search(text):
                return Intent(type=IntentType.NAVIGATE, confidence=0.85, navigate_to=route)

    for kind, pattern in _ACTION_PATTERNS:
        if pattern.search(text):
            return Intent(
                type=IntentType.ACTION,
                action_kind=kind,
                confidence=0.8,
                requires_confirmation=True,
            )

    if text.endswith("?") or _QUESTION_WORD.search(text):
        return Intent(type=IntentType.QUERY, confidence=0.72)

    return Intent(type=IntentType.UNKNOWN, confidence=0.4)


def select_relevant_modules(message: str | None) -> list[Module]:
    text = (message or "").strip()
    if not text:
        return [Module.DAILY]

    selected = [module for module, pattern in _MODULE_PATTERNS if pattern.search(text)]
    return selected or list(_FALLBACK_MODULES)
