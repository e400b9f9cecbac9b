from datetime import timedelta

import pytest

from resync.services.cache import TTLCache


@pytest.fixture
def cache(clock):
    return TTLCache(ttl=timedelta(minutes=5), clock=clock)


def test_get_missing_key(cache):
    assert cache.get("positions") is None
    assert cache.get_stats().misses == 1


def test_value_served_until_ttl(cache, clock):
    cache.set("positions", ["manager", "analyst"])
    clock.advance(300 - 0.001)
    assert cache.get("positions") == ["manager", "analyst"]


def test_value_expires_after_ttl(cache, clock):
    cache.set("positions", ["manager"])
    clock.advance(300 + 0.001)
    assert cache.get("positions") is None
    assert cache.get_stats().expired == 1


def test_value_expires_exactly_at_ttl(cache, clock):
    cache.set("positions", ["manager"])
    clock.advance(300)
    assert cache.get("positions") is None


def test_expired_entry_is_kept_until_replaced(cache, clock):
    cache.set("users", [1])
    clock.advance(600)
    assert cache.get("users") is None
    assert len(cache) == 1
    assert cache.get_entry("users").value == [1]


def test_set_replaces_wholesale_and_restarts_ttl(cache, clock):
    cache.set("work_locations", [{"id": 1}, {"id": 2}])
    clock.advance(299)
    cache.set("work_locations", [{"id": 3}])
    clock.advance(299)
    assert cache.get("work_locations") == [{"id": 3}]


def test_invalidate_and_clear(cache):
    cache.set("a", 1)
    cache.set("b", 2)
    assert cache.invalidate("a") is True
    assert cache.invalidate("a") is False
    assert "a" not in cache
    assert "b" in cache
    cache.clear()
    assert len(cache) == 0


def test_falsy_values_are_cached(cache):
    cache.set("empty", [])
    assert cache.get("empty") == []
    assert "empty" in cache


def test_stats(cache):
    cache.set("a", 1)
    cache.get("a")
    cache.get("b")
    stats = cache.get_stats().to_dict()
    assert stats["hits"] == 1
    assert stats["misses"] == 1
    assert stats["size"] == 1
    assert stats["hit_rate"] == "50.00%"


def test_ttl_must_be_positive():
    with pytest.raises(ValueError):
        TTLCache(ttl=0)


def test_ttl_accepts_seconds(clock):
    cache = TTLCache(ttl=10, clock=clock)
    assert cache.ttl == 10.0
    cache.set("k", "v")
    clock.advance(9.9)
    assert cache.get("k") == "v"
