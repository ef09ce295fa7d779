"""Streaming translation of upstream ``/responses`` events into chat.completion.chunk objects."""

from __future__ import annotations

import copy
import hashlib
from typing import Any

from .tool_names import build_reverse_map_from_openai

_MISSING = object()

_MIME_BY_FORMAT = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "webp": "image/webp",
    "gif": "image/gif",
}


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


def mime_from_codex_format(fmt: str) -> str:
    """Map an upstream ``output_format`` to a MIME type; empty or unknown gives PNG."""
    if not fmt:
        return "image/png"
    if "/" in fmt:
        return fmt
    return _MIME_BY_FORMAT.get(fmt.lower(), "image/png")


def mapped_usage(codex_usage: Any) -> dict[str, Any]:
    """Convert an upstream usage object into the OpenAI usage shape."""
    out: dict[str, Any] = {}
    for src, dst in (
        ("input_tokens", "prompt_tokens"),
        ("output_tokens", "completion_tokens"),
        ("total_tokens", "total_tokens"),
    ):
        value = _int(codex_usage, src)
        if value is not None:
            out[dst] = value
    cached = _int(_get(codex_usage, "input_tokens_details"), "cached_tokens")
    if cached is not None:
        out["prompt_tokens_details"] = {"cached_tokens": cached}
    reasoning = _int(_get(codex_usage, "output_tokens_details"), "reasoning_tokens")
    if reasoning is not None:
        out["completion_tokens_details"] = {"reasoning_tokens": reasoning}
    return out


def _event_usage(event: Any) -> Any:
    usage = _get(_get(event, "response"), "usage")
    if usage is _MISSING:
        usage = _get(event, "usage")
    return usage


class StreamTranslator:
    """Turns upstream events, one at a time, into OpenAI chat.completion.chunk objects.

    ``push`` returns the chunks to send; SSE framing is left to the caller.
    """

    def __init__(self, default_model: str, original_openai_body) -> None:
        self._response_id = ""
        self._created_at = 0
        self._model = default_model
        self._function_call_index = -1
        self._has_received_args_delta = False
        self._short_name_to_orig = build_reverse_map_from_openai(original_openai_body)
        self._last_usage: Any = _MISSING
        self._seen_images: dict[str, bytes] = {}

    @property
    def response_id(self) -> str:
        return self._response_id

    @property
    def last_usage(self) -> Any:
        """The most recent upstream usage object, or ``None`` if none was seen."""
        return None if self._last_usage is _MISSING else self._last_usage

    def push(self, codex_event: Any) -> list[dict[str, Any]]:
        """Feed one upstream event and return the chunks it produces."""
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
            return []

        usage = _event_usage(codex_event)
        if usage is not _MISSING:
            self._last_usage = copy.deepcopy(usage)

        model = _get(codex_event, "model")
        if isinstance(model, str):
            self._model = model

        handler = self._handlers.get(event_type)
        return handler(self, codex_event) if handler else []

    def _chunk(self, delta: dict[str, Any]) -> dict[str, Any]:
        return {
            "id": self._response_id,
            "object": "chat.completion.chunk",
            "created": self._created_at,
            "model": self._model,
            "choices": [
                {
                    "index": 0,
                    "delta": delta,
                    "finish_reason": None,
                    "native_finish_reason": None,
                }
            ],
        }

    def _on_text_delta(self, event: Any) -> list[dict[str, Any]]:
        return [self._chunk({"role": "assistant", "content": _str(event, "delta")})]

    def _on_reasoning_delta(self, event: Any) -> list[dict[str, Any]]:
        return [self._chunk({"role": "assistant", "reasoning_content": _str(event, "delta")})]

    def _on_reasoning_done(self, event: Any) -> list[dict[str, Any]]:
        return [self._chunk({"role": "assistant", "reasoning_content": "\n\n"})]

    def _on_item_added(self, event: Any) -> list[dict[str, Any]]:
        item = _get(event, "item")
        if _get(item, "type") != "function_call":
            return []
        self._function_call_index += 1
        self._has_received_args_delta = False
        name_short = _str(item, "name")
        name = self._short_name_to_orig.get(name_short, name_short)
        return [
            self._chunk(
                {
                    "role": "assistant",
                    "tool_calls": [
                        {
                            "index": self._function_call_index,
                            "id": _str(item, "call_id"),
                            "type": "function",
                            "function": {"name": name, "arguments": ""},
                        }
                    ],
                }
            )
        ]

    def _arguments_chunk(self, arguments: str) -> dict[str, Any]:
        return self._chunk(
            {
                "tool_calls": [
                    {
                        "index": self._function_call_index,
                        "function": {"arguments": arguments},
                    }
                ]
            }
        )

    def _on_args_delta(self, event: Any) -> list[dict[str, Any]]:
        self._has_received_args_delta = True
        return [self._arguments_chunk(_str(event, "delta"))]

    def _on_args_done(self, event: Any) -> list[dict[str, Any]]:
        if self._has_received_args_delta:
            return []
        return [self._arguments_chunk(_str(event, "arguments"))]

    def _image_chunks(self, item_id: str, b64: str, fmt: str) -> list[dict[str, Any]]:
        if not b64:
            return []
        if item_id and self._seen(item_id, b64):
            return []
        url = f"data:{mime_from_codex_format(fmt)};base64,{b64}"
        return [
            self._chunk(
                {
                    "role": "assistant",
                    "images": [{"type": "image_url", "image_url": {"url": url}, "index": 0}],
                }
            )
        ]

    def _on_partial_image(self, event: Any) -> list[dict[str, Any]]:
        return self._image_chunks(
            _str(event, "item_id"),
            _str(event, "partial_image_b64"),
            _str(event, "output_format"),
        )

    def _on_item_done(self, event: Any) -> list[dict[str, Any]]:
        item = _get(event, "item")
        if _str(item, "type") != "image_generation_call":
            return []
        return self._image_chunks(
            _str(item, "id"), _str(item, "result"), _str(item, "output_format")
        )

    def _on_completed(self, event: Any) -> list[dict[str, Any]]:
        finish = "tool_calls" if self._function_call_index != -1 else "stop"
        chunk = self._chunk({})
        chunk["choices"][0]["finish_reason"] = finish
        chunk["choices"][0]["native_finish_reason"] = finish
        if self._last_usage is not _MISSING:
            chunk["usage"] = mapped_usage(self._last_usage)
        return [chunk]

    def _seen(self, item_id: str, b64: str) -> bool:
        """True when ``item_id`` repeats the image it carried last time."""
        digest = hashlib.sha256(b64.encode("utf-8")).digest()
        if self._seen_images.get(item_id) == digest:
            return True
        self._seen_images[item_id] = digest
        return False

    _handlers = {
        "response.output_text.delta": _on_text_delta,
        "response.reasoning_summary_text.delta": _on_reasoning_delta,
        "response.reasoning_summary_text.done": _on_reasoning_done,
        "response.output_item.added": _on_item_added,
        "response.function_call_arguments.delta": _on_args_delta,
        "response.function_call_arguments.done": _on_args_done,
        "response.image_generation_call.partial_image": _on_partial_image,
        "response.output_item.done": _on_item_done,
        "response.completed": _on_completed,
    }