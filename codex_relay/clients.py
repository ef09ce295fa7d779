"""HTTP clients cached per outbound proxy so each proxy reuses its connection pool."""

from __future__ import annotations

import threading

import httpx

_REQUEST_TIMEOUT_SECS = 600.0
_POOL_IDLE_TIMEOUT_SECS = 90.0


def build_client(proxy_url: str | None) -> httpx.Client:
    """Build a client routed through ``proxy_url``, or a direct one for ``None``.

    Environment proxy settings are never used: no proxy means a direct connection.
    """
    limits = httpx.Limits(keepalive_expiry=_POOL_IDLE_TIMEOUT_SECS)
    timeout = httpx.Timeout(_REQUEST_TIMEOUT_SECS)
    try:
        return httpx.Client(
            proxy=proxy_url,
            trust_env=False,
            timeout=timeout,
            limits=limits,
        )
    except (ValueError, ImportError, httpx.InvalidURL) as exc:
        raise ValueError(f"parse proxy url: {proxy_url}") from exc


class ProxiedClients:
    """A thread-safe cache of clients keyed by proxy URL; the empty key is direct."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._clients: dict[str, httpx.Client] = {"": build_client(None)}

    def get(self, proxy_url: str) -> httpx.Client:
        """Return the cached client for ``proxy_url``, building it on first use."""
        key = proxy_url.strip()
        with self._lock:
            client = self._clients.get(key)
        if client is not None:
            return client
        built = build_client(key or None)
        with self._lock:
            existing = self._clients.setdefault(key, built)
        if existing is not built:
            built.close()
        return existing

    def invalidate(self, proxy_url: str) -> None:
        """Forget the client for a proxy that was removed or edited."""
        key = proxy_url.strip()
        if not key:
            return
        with self._lock:
            self._clients.pop(key, None)

    def close(self) -> None:
        """Close every cached client."""
        with self._lock:
            clients = list(self._clients.values())
            self._clients.clear()
        for client in clients:
            client.close()