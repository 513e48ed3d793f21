"""
tests/unit/test_prompts.py — System Prompt & Localized Message Tests
"""

from __future__ import annotations

import pytest

from netden.agent.prompts import (
    build_system_prompt,
    compose_user_message,
    message,
    proposal_summary,
    render_memory,
)
from netden.agent.types import (
    AgentProfile,
    AgentSettings,
    Language,
    MemoryItem,
    ProfileStyle,
    UserContext,
)


@pytest.fixture
def user():
    return UserContext(user_id="u1", user_name="Ada", timezone="Europe/Berlin",
                       now_iso="2026-03-01T09:00:00.000Z", user_role="admin")


def test_prompt_header(user):
    prompt = build_system_prompt(Language.EN, AgentSettings(), user, [], assistant_name="Vega")
    lines = prompt.splitlines()
    assert lines[0] == "You are Vega, AI assistant for NetDen workspace."
    assert lines[1] == "Current time: 2026-03-01T09:00:00.000Z (Europe/Berlin)."
    assert lines[2] == "User: Ada. Role: admin."
    assert "Use balanced professional style." in lines
    assert lines[-1] == "No saved memory items."


def test_profile_and_turn_role_win(user):
    settings = AgentSettings(
        profile=AgentProfile(name="Nova", style=ProfileStyle.FORMAL), role="owner",
    )
    prompt = build_system_prompt(Language.RU, settings, user, [])
    assert prompt.startswith("You are Nova,")
    assert "User: Ada. Role: owner." in prompt
    assert "Use concise and formal style." in prompt
    assert "Отвечай на русском языке." in prompt


def test_role_defaults_to_member(user):
    prompt = build_system_prompt(Language.EN, AgentSettings(),
                                 user.model_copy(update={"user_role": None}), [])
    assert "Role: member." in prompt


def test_memory_prefers_pinned_and_caps():
    items = [MemoryItem(id=str(i), value=f"fact {i}") for i in range(20)]
    assert render_memory(items).count("\n") == 11

    items[3] = MemoryItem(id="p", value="likes tea", pinned=True)
    assert render_memory(items) == "- likes tea"


def test_user_message_layout():
    assert compose_user_message("hi", "- [note:n1] A (notes)") == (
        "hi\n\nRelevant workspace context:\n- [note:n1] A (notes)\n\n"
        "Use tools when needed. For mutating actions propose one action and wait for confirmation."
    )


def test_localized_messages():
    assert message("action_sync", Language.EN, cards=2, notes=0) == " Synced: cards 2, notes 0."
    assert message("navigate", Language.RU, route="/kanban") == "Открываю раздел /kanban."
    assert proposal_summary("notes_create", {"title": "Отпуск"}, Language.RU) == (
        'Подтвердите действие notes_create с параметрами {"title":"Отпуск"}'
    )
    with pytest.raises(KeyError):
        message("nope", Language.EN)
