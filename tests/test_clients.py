import httpx
import pytest

from codex_relay.clients import ProxiedClients, build_client

PROXY = "http://proxy.example.com:8080"


@pytest.fixture
def clients():
    cache = ProxiedClients()
    yield cache
    cache.close()


def test_direct_client_is_shared_and_whitespace_trimmed(clients):
    direct = clients.get("")
    assert clients.get("   ") is direct


def test_proxy_client_is_cached(clients):
    first = clients.get(PROXY)
    assert clients.get(f"  {PROXY} ") is first
    assert first is not clients.get("")


def test_invalidate_drops_cached_proxy_client(clients):
    first = clients.get(PROXY)
    clients.invalidate(PROXY)
    assert clients.get(PROXY) is not first


def test_invalidate_empty_keeps_direct_client(clients):
    direct = clients.get("")
    clients.invalidate("")
    assert clients.get("") is direct


def test_build_client_ignores_environment_and_sets_timeout():
    client = build_client(None)
    try:
        assert client.trust_env is False
        assert client.timeout == httpx.Timeout(600.0)
    finally:
        client.close()


def test_unsupported_scheme_raises_value_error(clients):
    with pytest.raises(ValueError, match="parse proxy url"):
        clients.get("ftp://proxy.example.com")


def test_close_closes_clients():
    cache = ProxiedClients()
    direct = cache.get("")
    cache.close()
    assert direct.is_closed is True