"""Non-streaming aggregation of upstream ``/responses`` events into one chat.completion."""

from __future__ import annotations

import copy
import hashlib
from dataclasses import dataclass
from typing import Any

from .response_stream import mapped_usage, mime_from_codex_format
from .tool_names import build_reverse_map_from_openai

_MISSING = object()


def _get(value: Any, key: str) -> Any:
    if isinstance(value, dict) and key in value:
        return value[key]
    return _MISSING


def _str(value: Any, key: str, default: str = "") -> str:
    found = _get(value, key)
    return found if isinstance(found, str) else default


def _int(value: Any, key: str) -> int | None:
    found = _get(value, key)
    if isinstance(found, int) and not isinstance(found, bool):
        return found
    return None


@dataclass
class _ToolCall:
    id: str
    name: str
    arguments: str = ""
    has_delta: bool = False


class Aggregator:
    """Collects upstream events and builds a single OpenAI ``chat.completion`` object."""

    def __init__(self, default_model: str, original_openai_body) -> None:
        self._response_id = ""
        self._created_at = 0
        self._model = default_model
        self._text: list[str] = []
        self._reasoning: list[str] = []
        self._tool_calls: list[_ToolCall] = []
        self._short_name_to_orig = build_reverse_map_from_openai(original_openai_body)
        self._last_usage: Any = _MISSING
        self._completed = False
        self._seen_images: dict[str, bytes] = {}
        self._images: list[dict[str, Any]] = []

    def push(self, codex_event: Any) -> None:
        """Feed one upstream event."""
        event_type = _str(codex_event, "type")

        if event_type == "response.created":
            response = _get(codex_event, "response")
            if response is not _MISSING:
                response_id = _get(response, "id")
                if isinstance(response_id, str):
                    self._response_id = response_id
                created = _int(response, "created_at")
                if created is not None:
                    self._created_at = created
                model = _get(response, "model")
                if isinstance(model, str):
                    self._model = model
            return

        usage = _get(_get(codex_event, "response"), "usage")
        if usage is _MISSING:
            usage = _get(codex_event, "usage")
        if usage is not _MISSING:
            self._last_usage = copy.deepcopy(usage)

        model = _get(codex_event, "model")
        if isinstance(model, str):
            self._model = model

        if event_type == "response.output_text.delta":
            delta = _get(codex_event, "delta")
            if isinstance(delta, str):
                self._text.append(delta)
        elif event_type == "response.reasoning_summary_text.delta":
            delta = _get(codex_event, "delta")
            if isinstance(delta, str):
                self._reasoning.append(delta)
        elif event_type == "response.reasoning_summary_text.done":
            self._reasoning.append("\n\n")
        elif event_type == "response.output_item.added":
            self._on_item_added(_get(codex_event, "item"))
        elif event_type == "response.function_call_arguments.delta":
            delta = _get(codex_event, "delta")
            if isinstance(delta, str) and self._tool_calls:
                current = self._tool_calls[-1]
                current.arguments += delta
                current.has_delta = True
        elif event_type == "response.function_call_arguments.done":
            if self._tool_calls:
                current = self._tool_calls[-1]
                arguments = _get(codex_event, "arguments")
                if not current.has_delta and isinstance(arguments, str):
                    current.arguments += arguments
        elif event_type == "response.image_generation_call.partial_image":
            self._add_image(
                _str(codex_event, "item_id"),
                _str(codex_event, "partial_image_b64"),
                _str(codex_event, "output_format"),
            )
        elif event_type == "response.output_item.done":
            item = _get(codex_event, "item")
            if _str(item, "type") == "image_generation_call":
                self._add_image(
                    _str(item, "id"), _str(item, "result"), _str(item, "output_format")
                )
        elif event_type == "response.completed":
            self._completed = True

    def _on_item_added(self, item: Any) -> None:
        if _get(item, "type") != "function_call":
            return
        name_short = _str(item, "name")
        self._tool_calls.append(
            _ToolCall(
                id=_str(item, "call_id"),
                name=self._short_name_to_orig.get(name_short, name_short),
            )
        )

    def _add_image(self, item_id: str, b64: str, fmt: str) -> None:
        if not b64:
            return
        if item_id and self._image_seen(item_id, b64):
            return
        url = f"data:{mime_from_codex_format(fmt)};base64,{b64}"
        self._images.append({"type": "image_url", "image_url": {"url": url}})

    def _image_seen(self, item_id: str, b64: str) -> bool:
        digest = hashlib.sha256(b64.encode("utf-8")).digest()
        if self._seen_images.get(item_id) == digest:
            return True
        self._seen_images[item_id] = digest
        return False

    def finalize(self) -> dict[str, Any]:
        """Build the chat.completion object; usable even if the stream was cut short."""
        text = "".join(self._text)
        reasoning = "".join(self._reasoning)
        finish_reason = "tool_calls" if self._tool_calls else "stop"

        content = None if not text and self._tool_calls else text
        tool_calls = (
            [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": call.arguments},
                }
                for call in self._tool_calls
            ]
            if self._tool_calls
            else None
        )

        out: dict[str, Any] = {
            "id": self._response_id,
            "object": "chat.completion",
            "created": self._created_at,
            "model": self._model,
            "choices": [
                {
                    "index": 0,
                    "message": {
                        "role": "assistant",
                        "content": content,
                        "reasoning_content": reasoning or None,
                        "tool_calls": tool_calls,
                        "images": copy.deepcopy(self._images) or None,
                    },
                    "finish_reason": finish_reason,
                    "native_finish_reason": finish_reason,
                }
            ],
        }
        if self._last_usage is not _MISSING:
            out["usage"] = mapped_usage(self._last_usage)
        return out

    def is_completed(self) -> bool:
        """Whether a ``response.completed`` event was seen."""
        return self._completed