"""Tests for the in-process query cache."""

from app.core.query_cache import QueryCache


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ── get / set ───────────────────────────────────────────────────────


class TestGetSet:
    def test_miss_on_unknown_key(self):
        cache = QueryCache(default_ttl=60, clock=FakeClock())
        assert cache.get("products:all") is None

    def test_hit_within_ttl(self):
        clock = FakeClock()
        cache = QueryCache(default_ttl=60, clock=clock)
        cache.set("products:all", [1, 2, 3])
        clock.advance(59)
        assert cache.get("products:all") == [1, 2, 3]

    def test_expired_at_ttl(self):
        clock = FakeClock()
        cache = QueryCache(default_ttl=60, clock=clock)
        cache.set("products:all", [1])
        clock.advance(60)
        assert cache.get("products:all") is None

    def test_expired_entry_is_not_removed(self):
        clock = FakeClock()
        cache = QueryCache(default_ttl=60, clock=clock)
        cache.set("products:all", [1])
        clock.advance(120)
        assert cache.get("products:all") is None
        assert "products:all" in cache
        assert len(cache) == 1

    def test_per_read_ttl_overrides_default(self):
        clock = FakeClock()
        cache = QueryCache(default_ttl=60, clock=clock)
        cache.set("experts:all", ["a"])
        clock.advance(30)
        assert cache.get("experts:all", ttl=10) is None
        assert cache.get("experts:all", ttl=300) == ["a"]

    def test_set_replaces_and_restamps(self):
        clock = FakeClock()
        cache = QueryCache(default_ttl=60, clock=clock)
        cache.set("k", ["old"])
        clock.advance(50)
        cache.set("k", ["new"])
        clock.advance(50)
        assert cache.get("k") == ["new"]

    def test_set_copies_rows(self):
        cache = QueryCache(clock=FakeClock())
        rows = [1, 2]
        cache.set("k", rows)
        rows.append(3)
        assert cache.get("k") == [1, 2]


# ── Invalidation ────────────────────────────────────────────────────


class TestInvalidation:
    def test_invalidate_single_key(self):
        cache = QueryCache(clock=FakeClock())
        cache.set("a", [1])
        cache.set("b", [2])
        assert cache.invalidate("a") is True
        assert cache.get("a") is None
        assert cache.get("b") == [2]

    def test_invalidate_missing_key(self):
        cache = QueryCache(clock=FakeClock())
        assert cache.invalidate("nope") is False

    def test_invalidate_prefix_only_matching(self):
        cache = QueryCache(clock=FakeClock())
        cache.set("products:all", [1])
        cache.set("products:crystals", [2])
        cache.set("experts:all", [3])
        removed = cache.invalidate_prefix("products:")
        assert removed == 2
        assert "products:all" not in cache
        assert "products:crystals" not in cache
        assert cache.get("experts:all") == [3]

    def test_invalidate_prefix_no_match(self):
        cache = QueryCache(clock=FakeClock())
        cache.set("experts:all", [3])
        assert cache.invalidate_prefix("orders-") == 0
        assert len(cache) == 1

    def test_clear(self):
        cache = QueryCache(clock=FakeClock())
        cache.set("a", [1])
        cache.set("b", [2])
        cache.clear()
        assert len(cache) == 0
