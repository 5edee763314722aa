import pytest

from learning_timeline.common.ttl_cache import TTLCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_value_expires_after_ttl():
    clock = FakeClock()
    cache = TTLCache(clock=clock)
    cache.set("a", "url", ttl=60)

    clock.now += 59
    assert cache.get("a") == "url"
    clock.now += 1
    assert cache.get("a") is None
    assert len(cache) == 0


def test_full_cache_evicts_expired_before_oldest():
    clock = FakeClock()
    cache = TTLCache(maxsize=2, clock=clock)
    cache.set("old", 1, ttl=5)
    cache.set("young", 2, ttl=100)
    clock.now += 10

    cache.set("new", 3, ttl=100)

    assert "young" in cache
    assert "new" in cache
    assert "old" not in cache


def test_full_cache_drops_first_inserted():
    cache = TTLCache(maxsize=2, clock=FakeClock())
    cache.set("a", 1, ttl=100)
    cache.set("b", 2, ttl=100)
    cache.set("c", 3, ttl=100)

    assert cache.get("a") is None
    assert cache.get("b") == 2
    assert cache.get("c") == 3


def test_invalidate_and_clear():
    cache = TTLCache(clock=FakeClock())
    cache.set("a", 1, ttl=100)
    cache.set("b", 2, ttl=100)
    cache.invalidate("a")
    assert cache.get("a") is None
    cache.clear()
    assert len(cache) == 0


def test_maxsize_must_be_positive():
    with pytest.raises(ValueError):
        TTLCache(maxsize=0)
