"""
agent/prompts.py — System Prompt & Localized Turn Messages

Every user-facing string the coordinator emits lives here, in English and
Russian. build_system_prompt() renders the per-turn system message.
"""

from __future__ import annotations

import json
from typing import Any, Sequence

from netden.agent.types import (
    AgentSettings,
    Language,
    MemoryItem,
    ProfileStyle,
    UserContext,
)

MAX_MEMORY_ITEMS = 12

_MESSAGES: dict[str, dict[Language, str]] = {
    "action_not_found": {
        Language.EN: "Requested action was not found or has expired.",
        Language.RU: "Запрошенное действие не найдено или уже истекло.",
    },
    "action_canceled": {
        Language.EN: "Understood, action was canceled.",
        Language.RU: "Понял, действие отменено.",
    },
    "action_done": {
        Language.EN: "Done. Action completed successfully.{sync}",
        Language.RU: "Готово. Действие выполнено успешно.{sync}",
    },
    "action_sync": {
        Language.EN: " Synced: cards {cards}, notes {notes}.",
        Language.RU: " Синхронизировано: карточек {cards}, заметок {notes}.",
    },
    "action_failed": {
        Language.EN: "Could not execute action: {error}",
        Language.RU: "Не удалось выполнить действие: {error}",
    },
    "navigate": {
        Language.EN: "Opening section {route}.",
        Language.RU: "Открываю раздел {route}.",
    },
    "llm_unavailable": {
        Language.EN: "LLM is temporarily unavailable. Quick summary for your request: {message}",
        Language.RU: "Не удалось обратиться к LLM. Вот кратко по запросу: {message}",
    },
    "proposal_summary": {
        Language.EN: "Please confirm action {tool} with args {args}",
        Language.RU: "Подтвердите действие {tool} с параметрами {args}",
    },
    "proposal_text": {
        Language.EN: "I suggest this action: {summary}",
        Language.RU: "Предлагаю действие: {summary}",
    },
    "too_broad": {
        Language.EN: "This request is too broad for one pass. Please clarify what to prioritize.",
        Language.RU: "Запрос слишком сложный для одного прохода. Уточните, что важно в первую очередь.",
    },
}

_LANGUAGE_INSTRUCTIONS = {
    Language.RU: "Отвечай на русском языке. Если пользователь пишет на английском, переходи на английский.",
    Language.EN: "Answer in English. If the user writes in Russian, switch to Russian.",
}

_STYLE_LINES = {
    ProfileStyle.FORMAL: "Use concise and formal style.",
    ProfileStyle.FRIENDLY: "Use warm and friendly style with practical tone.",
    ProfileStyle.BALANCED: "Use balanced professional style.",
}

_RULES = (
    "You can read/write calendar, kanban, notes, and daily planner via tools.",
    "Never execute mutating actions without explicit user confirmation.",
    "If a request is ambiguous, provide 2-3 interpretation options and ask user to confirm.",
    "When user asks to open a section, include navigation intent in response context.",
    "Prefer using relevant data slices; avoid dumping full user content.",
)

USER_INSTRUCTION = (
    "Use tools when needed. For mutating actions propose one action and wait for confirmation."
)


def message(key: str, language: Language, **values: Any) -> str:
    """Localized turn message; raises KeyError for unknown keys."""
    return _MESSAGES[key][language].format(**values)


def proposal_summary(tool_name: str, arguments: dict[str, Any], language: Language) -> str:
    args = json.dumps(arguments, ensure_ascii=False, separators=(",", ":"))
    return message("proposal_summary", language, tool=tool_name, args=args)


def render_memory(memory: Sequence[MemoryItem]) -> str:
    """Pinned items if any are pinned, else everything; capped at 12."""
    pinned = [item for item in memory if item.pinned]
    items = list(pinned or memory)[:MAX_MEMORY_ITEMS]
    if not items:
        return "No saved memory items."
    return "\n".join(f"- {item.value}" for item in items)


def build_system_prompt(
    language: Language,
    settings: AgentSettings,
    user: UserContext,
    memory: Sequence[MemoryItem],
    assistant_name: str = "Nova",
) -> str:
    user_role = settings.role or user.user_role
    role_line = f"Role: {user_role}." if user_role else "Role: member."
    profile = settings.profile

    return "\n".join([
        f"You are {profile.name or assistant_name}, AI assistant for NetDen workspace.",
        f"Current time: {user.now_iso} ({user.timezone}).",
        f"User: {user.user_name}. {role_line}",
        _LANGUAGE_INSTRUCTIONS[language],
        _STYLE_LINES.get(profile.style, _STYLE_LINES[ProfileStyle.BALANCED]),
        *_RULES,
        "Saved memory:",
        render_memory(memory),
    ])


def compose_user_message(text: str, context_fragment: str) -> str:
    return "\n".join([
        text,
        "",
        "Relevant workspace context:",
        context_fragment,
        "",
        USER_INSTRUCTION,
    ])
