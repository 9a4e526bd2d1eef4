"""Tests for utils/cache.py — TTL cache with scope invalidation."""
import time
from unittest.mock import patch

from estoque_client.utils.cache import QueryCache


# ── make_key ─────────────────────────────────────────────────────────

def test_same_input_same_key():
    cache = QueryCache()
    k1 = cache.make_key("notifications", "/notificacoes", {"limite": "5"})
    k2 = cache.make_key("notifications", "/notificacoes", {"limite": "5"})
    assert k1 == k2


def test_different_scope_different_key():
    cache = QueryCache()
    k1 = cache.make_key("notifications", "/notificacoes", {})
    k2 = cache.make_key("itens", "/notificacoes", {})
    assert k1 != k2


def test_different_params_different_key():
    cache = QueryCache()
    k1 = cache.make_key("notifications", "/notificacoes", {"page": "1"})
    k2 = cache.make_key("notifications", "/notificacoes", {"page": "2"})
    assert k1 != k2


def test_param_order_irrelevant():
    cache = QueryCache()
    k1 = cache.make_key("s", "/path", {"a": 1, "b": 2})
    k2 = cache.make_key("s", "/path", {"b": 2, "a": 1})
    assert k1 == k2


def test_none_params():
    cache = QueryCache()
    assert cache.make_key("s", "/path", None) == cache.make_key("s", "/path")


# ── get / put ────────────────────────────────────────────────────────

def test_put_then_get():
    cache = QueryCache(ttl=60)
    cache.put("key1", {"data": "value"}, "notifications")
    assert cache.get("key1") == {"data": "value"}


def test_miss_returns_none():
    assert QueryCache(ttl=60).get("nonexistent") is None


def test_expired_returns_none():
    cache = QueryCache(ttl=1)
    cache.put("key1", {"data": "value"}, "notifications")
    with patch("estoque_client.utils.cache.time.time", return_value=time.time() + 2):
        assert cache.get("key1") is None
    assert cache.size == 0


def test_disabled_cache_returns_none():
    cache = QueryCache(enabled=False)
    cache.put("key1", {"data": "value"}, "notifications")
    assert cache.get("key1") is None
    assert cache.enabled is False


def test_size_property():
    cache = QueryCache()
    assert cache.size == 0
    cache.put("k1", "v1", "notifications")
    cache.put("k2", "v2", "notifications")
    assert cache.size == 2


# ── invalidation ─────────────────────────────────────────────────────

def test_invalidate_scope():
    cache = QueryCache()
    cache.put("k1", "v1", "notifications")
    cache.put("k2", "v2", "notifications")
    cache.put("k3", "v3", "itens")
    assert cache.invalidate_scope("notifications") == 2
    assert cache.get("k1") is None
    assert cache.get("k2") is None
    assert cache.get("k3") == "v3"


def test_invalidate_all():
    cache = QueryCache()
    cache.put("k1", "v1", "notifications")
    cache.put("k2", "v2", "itens")
    assert cache.invalidate_all() == 2
    assert cache.size == 0


def test_invalidate_empty_scope():
    assert QueryCache().invalidate_scope("notifications") == 0
