"""Shortening of tool names to the upstream's 64-byte limit, and its reverse."""

from __future__ import annotations

import json
from itertools import count

NAME_LIMIT = 64
_MCP_PREFIX = "mcp__"


def _byte_len(text: str) -> int:
    return len(text.encode("utf-8"))


def _truncate(text: str, limit: int) -> str:
    """Cut ``text`` to at most ``limit`` UTF-8 bytes without splitting a character."""
    raw = text.encode("utf-8")
    if len(raw) <= limit:
        return text
    return raw[:limit].decode("utf-8", errors="ignore")


def shorten_name_if_needed(name: str) -> str:
    """Shorten a tool name longer than 64 bytes.

    ``mcp__<server>__<tool>`` names keep the prefix and the last segment;
    anything else is truncated.
    """
    if _byte_len(name) <= NAME_LIMIT:
        return name
    if name.startswith(_MCP_PREFIX):
        rest = name[len(_MCP_PREFIX):]
        idx = rest.rfind("__")
        if idx != -1:
            return _truncate(_MCP_PREFIX + rest[idx + 2:], NAME_LIMIT)
    return _truncate(name, NAME_LIMIT)


def _make_unique(candidate: str, used: set[str]) -> str:
    if candidate not in used:
        return candidate
    for i in count(1):
        suffix = f"_{i}"
        allowed = max(NAME_LIMIT - len(suffix), 0)
        trimmed = _truncate(candidate, allowed) + suffix
        if trimmed not in used:
            return trimmed
    raise AssertionError("unreachable")


def build_short_name_map(names) -> dict[str, str]:
    """Map each original name to a short name; collisions get ``_1``, ``_2``… suffixes."""
    used: set[str] = set()
    mapping: dict[str, str] = {}
    for name in names:
        unique = _make_unique(shorten_name_if_needed(name), used)
        used.add(unique)
        mapping[name] = unique
    return mapping


def _function_tool_names(body) -> list[str]:
    if not isinstance(body, dict):
        return []
    tools = body.get("tools")
    if not isinstance(tools, list):
        return []
    names = []
    for tool in tools:
        if not isinstance(tool, dict) or tool.get("type") != "function":
            continue
        function = tool.get("function")
        if isinstance(function, dict) and isinstance(function.get("name"), str):
            names.append(function["name"])
    return names


def build_reverse_map_from_openai(original_body) -> dict[str, str]:
    """Build the short-name → original-name map from an OpenAI request body."""
    try:
        body = json.loads(original_body)
    except (ValueError, TypeError):
        return {}
    names = _function_tool_names(body)
    if not names:
        return {}
    return {short: orig for orig, short in build_short_name_map(names).items()}