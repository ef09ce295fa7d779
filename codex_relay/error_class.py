"""Semantic classification of upstream failures and quota backoff."""

from __future__ import annotations

from datetime import timedelta
from enum import Enum

_QUOTA_BACKOFF_CAP_SECS = 30 * 60
_QUOTA_BACKOFF_MAX_SHIFT = 20

_MODEL_SPECIFIC_MARKERS = (
    "model",
    "not supported",
    "not_supported",
    "unsupported",
    "does not exist",
    "invalid_model",
    "does_not_exist",
)


class ErrorKind(Enum):
    """How an upstream error affects account bookkeeping and retries."""

    AUTH = "auth"
    """The access token is no longer valid: refresh it and switch account."""
    QUOTA = "quota"
    """Rate limited: honour Retry-After, otherwise back off exponentially."""
    NOT_FOUND = "not_found"
    """The upstream does not support the requested model."""
    TRANSIENT = "transient"
    """5xx / 408 / 425: temporary hiccup."""
    NETWORK = "network"
    """DNS, TLS, connect or timeout failure before a status was received."""
    CLIENT = "client"
    """Any other 4xx: the caller's own mistake, returned as is."""

    def label(self) -> str:
        """Short lower-case name used in logs and the database."""
        return self.value


def classify(status: int | None) -> ErrorKind:
    """Classify an upstream status code; ``None`` means a request-level failure."""
    if status is None:
        return ErrorKind.NETWORK
    if status in (401, 402, 403):
        return ErrorKind.AUTH
    if status == 404:
        return ErrorKind.NOT_FOUND
    if status == 429:
        return ErrorKind.QUOTA
    if status in (408, 425, 500, 502, 503, 504):
        return ErrorKind.TRANSIENT
    return ErrorKind.CLIENT


def classify_with_body(status: int | None, body_snippet: str) -> ErrorKind:
    """Classify using the error body to tell a model 404 from a gateway 404.

    A 404 whose body mentions the model (or "not supported" and the like) stays
    ``NOT_FOUND``; a generic 404 is downgraded to ``TRANSIENT``.
    """
    kind = classify(status)
    if kind is not ErrorKind.NOT_FOUND:
        return kind
    lower = body_snippet.lower()
    if any(marker in lower for marker in _MODEL_SPECIFIC_MARKERS):
        return ErrorKind.NOT_FOUND
    return ErrorKind.TRANSIENT


def quota_backoff(prev_level: int) -> tuple[timedelta, int]:
    """Return ``(cooldown, next_level)``: 1s doubling per level, capped at 30 minutes."""
    level = max(prev_level, 0)
    raw = 1 << min(level, _QUOTA_BACKOFF_MAX_SHIFT)
    secs = min(raw, _QUOTA_BACKOFF_CAP_SECS)
    next_level = level if secs >= _QUOTA_BACKOFF_CAP_SECS else level + 1
    return timedelta(seconds=secs), next_level