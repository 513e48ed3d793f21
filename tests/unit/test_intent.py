"""
tests/unit/test_intent.py — Intent, Module Selection & Language Tests

Covers:
  - classify_intent: navigate / action / query / clarify / unknown
  - action kind precedence (create before update before delete …)
  - Russian stems match inflected forms
  - select_relevant_modules: keyword hits, fallback order, empty message
  - detect_language / resolve_turn_language
"""

from __future__ import annotations

import pytest

from netden.agent.intent import classify_intent, select_relevant_modules
from netden.agent.language import detect_language, resolve_turn_language
from netden.agent.types import (
    ActionKind,
    HistoryMessage,
    IntentType,
    Language,
    MessageRole,
    Module,
)


# ── classify_intent ──────────────────────────────────────────────────────────

class TestClassifyIntent:
    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_blank_is_clarify(self, text):
        intent = classify_intent(text)
        assert intent.type == IntentType.CLARIFY
        assert intent.confidence == pytest.approx(0.2)

    @pytest.mark.parametrize("text,route", [
        ("open the calendar", "/calendar"),
        ("show my kanban board", "/kanban"),
        ("open notes", "/notes"),
        ("open dashboard", "/home"),
        ("open settings", "/settings"),
        ("открой календарь", "/calendar"),
        ("покажи заметки", "/notes"),
    ])
    def test_navigation(self, text, route):
        intent = classify_intent(text)
        assert intent.type == IntentType.NAVIGATE
        assert intent.navigate_to == route
        assert intent.confidence == pytest.approx(0.85)

    def test_navigation_needs_a_verb(self):
        intent = classify_intent("calendar")
        assert intent.type != IntentType.NAVIGATE

    def test_navigation_verb_without_route_falls_through(self):
        intent = classify_intent("show me something nice")
        assert intent.type == IntentType.QUERY

    @pytest.mark.parametrize("text,kind", [
        ("add a meeting tomorrow at 10", ActionKind.CREATE),
        ("rename the card Release", ActionKind.UPDATE),
        ("delete the note about taxes", ActionKind.DELETE),
        ("move the card to done", ActionKind.MOVE),
        ("draft a summary of the week", ActionKind.GENERATE),
        ("создай заметку про отпуск", ActionKind.CREATE),
        ("удали событие", ActionKind.DELETE),
        ("перенеси встречу на пятницу", ActionKind.MOVE),
    ])
    def test_actions(self, text, kind):
        intent = classify_intent(text)
        assert intent.type == IntentType.ACTION
        assert intent.action_kind == kind
        assert intent.requires_confirmation is True
        assert intent.confidence == pytest.approx(0.8)

    def test_first_action_pattern_wins(self):
        # "add" (create) is checked before "remove" (delete)
        intent = classify_intent("remove the old card and add a new one")
        assert intent.action_kind == ActionKind.CREATE

    def test_english_keywords_are_whole_words(self):
        # "address" must not count as "add"
        intent = classify_intent("my address book")
        assert intent.type == IntentType.UNKNOWN

    @pytest.mark.parametrize("text", [
        "what is due tomorrow",
        "anything planned for Friday?",
        "какие задачи на сегодня",
    ])
    def test_queries(self, text):
        intent = classify_intent(text)
        assert intent.type == IntentType.QUERY
        assert intent.confidence == pytest.approx(0.72)

    def test_unknown(self):
        intent = classify_intent("hello there")
        assert intent.type == IntentType.UNKNOWN
        assert intent.confidence == pytest.approx(0.4)
        assert intent.requires_confirmation is False


# ── select_relevant_modules ──────────────────────────────────────────────────

class TestSelectRelevantModules:
    def test_blank_is_daily_only(self):
        assert select_relevant_modules("") == [Module.DAILY]
        assert select_relevant_modules(None) == [Module.DAILY]

    def test_fallback_order(self):
        assert select_relevant_modules("hello") == [
            Module.DAILY, Module.CALENDAR, Module.KANBAN, Module.NOTES,
        ]

    def test_single_module(self):
        assert select_relevant_modules("find my wiki page") == [Module.NOTES]

    def test_multiple_modules_keep_canonical_order(self):
        modules = select_relevant_modules("which card is due tomorrow after the meeting")
        assert modules == [Module.CALENDAR, Module.KANBAN, Module.DAILY]

    def test_russian_stems(self):
        modules = select_relevant_modules("что в календаре на завтра")
        assert modules == [Module.CALENDAR, Module.DAILY]

    def test_russian_stem_is_a_prefix_match(self):
        assert select_relevant_modules("покажи карточки") == [Module.KANBAN]


# ── language ─────────────────────────────────────────────────────────────────

def _history(*texts: str) -> list[HistoryMessage]:
    return [HistoryMessage(role=MessageRole.USER, content=t) for t in texts]


class TestLanguage:
    def test_latin_is_english(self):
        assert detect_language("plan my day") == Language.EN

    def test_any_cyrillic_is_russian(self):
        assert detect_language("plan my день") == Language.RU

    def test_none_is_english(self):
        assert detect_language(None) == Language.EN

    def test_message_wins_over_history(self):
        lang = resolve_turn_language("hello", _history("привет"))
        assert lang == Language.EN

    def test_blank_message_uses_last_history_entry(self):
        lang = resolve_turn_language("  ", _history("hello", "привет"))
        assert lang == Language.RU

    def test_no_message_no_history(self):
        assert resolve_turn_language(None, []) == Language.EN
