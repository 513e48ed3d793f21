"""Argument coercion shared by the module tool sets."""

from __future__ import annotations

from typing import Any, Optional


def opt_str(args: dict[str, Any], key: str) -> Optional[str]:
    """Trimmed string value, or None when missing/blank/not a string."""
    value = args.get(key)
    if not isinstance(value, str):
        return None
    return value.strip() or None


def opt_int(args: dict[str, Any], key: str) -> Optional[int]:
    value = args.get(key)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str) and value.strip():
        try:
            return int(float(value))
        except ValueError:
            return None
    return None


def str_list(args: dict[str, Any], key: str) -> Optional[list[str]]:
    value = args.get(key)
    if not isinstance(value, list):
        return None
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def clamp(value: Optional[int], low: int, high: int, default: int) -> int:
    if value is None:
        return default
    return max(low, min(high, value))


def compact(**fields: Any) -> dict[str, Any]:
    """Drop None values so partial updates leave existing fields alone."""
    return {k: v for k, v in fields.items() if v is not None}
