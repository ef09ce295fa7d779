"""Translation of OpenAI ChatCompletion request bodies into upstream ``/responses`` bodies."""

from __future__ import annotations

import copy
import json
from typing import Any

from .tool_names import build_short_name_map, shorten_name_if_needed

_MISSING = object()


def _lookup(value: Any, key: str) -> Any:
    """``value[key]`` if ``value`` is an object holding ``key`` (even as null), else _MISSING."""
    if isinstance(value, dict) and key in value:
        return value[key]
    return _MISSING


def _str_field(value: Any, key: str, default: str = "") -> str:
    found = _lookup(value, key)
    return found if isinstance(found, str) else default


def _parse_body(openai_body) -> dict[str, Any]:
    try:
        raw = json.loads(openai_body)
    except (ValueError, TypeError):
        return {}
    return raw if isinstance(raw, dict) else {}


def _function_tool_names(tools: Any) -> list[str]:
    if not isinstance(tools, list):
        return []
    names = []
    for tool in tools:
        if _lookup(tool, "type") != "function":
            continue
        name = _lookup(_lookup(tool, "function"), "name")
        if isinstance(name, str):
            names.append(name)
    return names


class _NameMapper:
    def __init__(self, short_map: dict[str, str]) -> None:
        self._short_map = short_map

    def __call__(self, name: str) -> str:
        mapped = self._short_map.get(name)
        return mapped if mapped is not None else shorten_name_if_needed(name)


def _translate_tools(tools: list, map_name: _NameMapper) -> list[Any]:
    translated = []
    for tool in tools:
        tool_type = _str_field(tool, "type")
        if tool_type and tool_type != "function" and isinstance(tool, dict):
            # Built-in tools such as web_search pass through untouched.
            translated.append(copy.deepcopy(tool))
            continue
        if tool_type != "function":
            continue
        item: dict[str, Any] = {"type": "function"}
        function = _lookup(tool, "function")
        if isinstance(function, dict):
            name = function.get("name")
            if isinstance(name, str):
                item["name"] = map_name(name)
            for key in ("description", "parameters", "strict"):
                if key in function:
                    item[key] = copy.deepcopy(function[key])
        translated.append(item)
    return translated


def _translate_tool_choice(choice: Any, map_name: _NameMapper) -> Any:
    if isinstance(choice, str):
        return choice
    if not isinstance(choice, dict):
        return _MISSING
    choice_type = _str_field(choice, "type")
    if choice_type == "function":
        name = _str_field(_lookup(choice, "function"), "name")
        out: dict[str, Any] = {"type": "function"}
        if name:
            out["name"] = map_name(name)
        return out
    if choice_type:
        return copy.deepcopy(choice)
    return _MISSING


def _stringify_tool_output(content: Any) -> str:
    """Tool output must be a plain string: join text parts, else serialise the JSON."""
    if content is _MISSING:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        texts = [
            item["text"]
            for item in content
            if _lookup(item, "type") == "text" and isinstance(_lookup(item, "text"), str)
        ]
        return "\n".join(texts)
    return json.dumps(content, separators=(",", ":"), ensure_ascii=False, sort_keys=True)


def _content_part(item: Any, role: str, part_type: str) -> dict[str, Any] | None:
    item_type = _str_field(item, "type")
    if item_type == "text":
        return {"type": part_type, "text": _str_field(item, "text")}
    if item_type == "image_url" and role == "user":
        image = _lookup(item, "image_url")
        url = _str_field(image, "url")
        if not url:
            return None
        part: dict[str, Any] = {"type": "input_image", "image_url": url}
        detail = _str_field(image, "detail")
        if detail:
            part["detail"] = detail
        return part
    if item_type == "file" and role == "user":
        file_obj = _lookup(item, "file")
        file_data = _str_field(file_obj, "file_data")
        if not file_data:
            return None
        part = {"type": "input_file", "file_data": file_data}
        filename = _str_field(file_obj, "filename")
        if filename:
            part["filename"] = filename
        return part
    return None


def _message_content(content: Any, role: str) -> list[dict[str, Any]]:
    part_type = "output_text" if role == "assistant" else "input_text"
    if isinstance(content, str):
        return [{"type": part_type, "text": content}] if content else []
    if isinstance(content, list):
        parts = (_content_part(item, role, part_type) for item in content)
        return [part for part in parts if part is not None]
    return []


def _assistant_function_calls(message: Any, map_name: _NameMapper) -> list[dict[str, Any]]:
    tool_calls = _lookup(message, "tool_calls")
    if not isinstance(tool_calls, list):
        return []
    calls = []
    for call in tool_calls:
        if _lookup(call, "type") != "function":
            continue
        function = _lookup(call, "function")
        calls.append(
            {
                "type": "function_call",
                "call_id": _str_field(call, "id"),
                "name": map_name(_str_field(function, "name")),
                "arguments": _str_field(function, "arguments"),
            }
        )
    return calls


def _translate_messages(messages: Any, map_name: _NameMapper) -> list[dict[str, Any]]:
    if not isinstance(messages, list):
        return []
    items: list[dict[str, Any]] = []
    for message in messages:
        role = _str_field(message, "role")
        if role == "tool":
            items.append(
                {
                    "type": "function_call_output",
                    "call_id": _str_field(message, "tool_call_id"),
                    "output": _stringify_tool_output(_lookup(message, "content")),
                }
            )
            continue
        content = _message_content(_lookup(message, "content"), role)
        # An assistant turn with only tool calls becomes bare function_call items.
        if role != "assistant" or content:
            items.append(
                {
                    "type": "message",
                    "role": "developer" if role == "system" else role,
                    "content": content,
                }
            )
        if role == "assistant":
            items.extend(_assistant_function_calls(message, map_name))
    return items


def _text_format(response_format: Any) -> dict[str, Any]:
    fmt_type = _str_field(response_format, "type")
    if fmt_type == "text":
        return {"type": "text"}
    if fmt_type == "json_object":
        return {"type": "json_object"}
    if fmt_type == "json_schema":
        schema = _lookup(response_format, "json_schema")
        if schema is _MISSING:
            return {}
        out: dict[str, Any] = {"type": "json_schema"}
        for key in ("name", "strict", "schema"):
            value = _lookup(schema, key)
            if value is not _MISSING:
                out[key] = copy.deepcopy(value)
        return out
    return {}


def _verbosity(raw: dict[str, Any]) -> Any:
    value = _lookup(_lookup(raw, "text"), "verbosity")
    return _MISSING if value is None else value


def translate_request(model: str, openai_body, stream: bool) -> dict[str, Any]:
    """Translate an OpenAI ChatCompletion body into an upstream ``/responses`` body.

    ``model`` overrides the body's own model; ``stream`` sets upstream streaming.
    A body that is not a JSON object is treated as empty.
    """
    raw = _parse_body(openai_body)

    effort = _str_field(raw, "reasoning_effort", "medium")
    out: dict[str, Any] = {
        "model": model,
        "instructions": "",
        "stream": stream,
        "include": ["reasoning.encrypted_content"],
        "parallel_tool_calls": True,
        "store": False,
        "reasoning": {"effort": effort, "summary": "auto"},
    }

    tools = _lookup(raw, "tools")
    names = _function_tool_names(tools)
    map_name = _NameMapper(build_short_name_map(names) if names else {})

    if isinstance(tools, list):
        out["tools"] = _translate_tools(tools, map_name)

    choice = _lookup(raw, "tool_choice")
    if choice is not _MISSING:
        translated_choice = _translate_tool_choice(choice, map_name)
        if translated_choice is not _MISSING:
            out["tool_choice"] = translated_choice

    out["input"] = _translate_messages(_lookup(raw, "messages"), map_name)

    response_format = _lookup(raw, "response_format")
    verbosity = _verbosity(raw)
    text_obj: dict[str, Any] = {}
    if response_format is not _MISSING:
        fmt = _text_format(response_format)
        if fmt:
            text_obj["format"] = fmt
    if verbosity is not _MISSING:
        text_obj["verbosity"] = copy.deepcopy(verbosity)
    if text_obj:
        out["text"] = text_obj

    return out