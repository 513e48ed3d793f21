"""
agent/language.py — Reply Language Detection

The agent answers in Russian when the user writes any Cyrillic, otherwise
in English.
"""

from __future__ import annotations

import re
from typing import Optional, Sequence

from netden.agent.types import HistoryMessage, Language

_CYRILLIC = re.compile(r"[Ѐ-ӿ]")


def detect_language(text: Optional[str]) -> Language:
    if text and _CYRILLIC.search(text):
        return Language.RU
    return Language.EN


def resolve_turn_language(
    message: Optional[str], history: Sequence[HistoryMessage]
) -> Language:
    """Language of the message, else of the most recent history entry."""
    if message and message.strip():
        return detect_language(message)
    if history:
        return detect_language(history[-1].content)
    return Language.EN
