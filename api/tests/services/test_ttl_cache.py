"""
Tests for the per-entry TTL cache.
"""

from synapsewrite.services.cache import TTLCache


class TestTTLCache:
    """TTLCache get/set/expiry."""

    def test_returns_value_within_ttl(self, frozen_time):
        cache = TTLCache(default_ttl=600)
        with frozen_time("2026-02-01 12:00:00") as frozen:
            cache.set("k", {"v": 1})
            frozen.tick(599)
            assert cache.get("k") == {"v": 1}

    def test_expires_after_default_ttl(self, frozen_time):
        cache = TTLCache(default_ttl=600)
        with frozen_time("2026-02-01 12:00:00") as frozen:
            cache.set("k", "v")
            frozen.tick(601)
            assert cache.get("k") is None
            assert len(cache) == 0

    def test_per_entry_ttl(self, frozen_time):
        cache = TTLCache(default_ttl=600)
        with frozen_time("2026-02-01 12:00:00") as frozen:
            cache.set("short", "s", ttl=30)
            cache.set("long", "l")
            frozen.tick(31)
            assert cache.get("short") is None
            assert cache.get("long") == "l"

    def test_unread_expired_entries_are_swept(self, frozen_time):
        """Entries nobody reads again are dropped by later writes."""
        cache = TTLCache(default_ttl=600)
        with frozen_time("2026-02-01 12:00:00") as frozen:
            for i in range(1000):
                cache.set(f"refresh:prompt {i}", i)
            assert len(cache) == 1000
            frozen.tick(3600)
            cache.set("refresh:fresh", "v")
        assert len(cache) == 1

    def test_sweep_keeps_live_entries(self, frozen_time):
        cache = TTLCache(default_ttl=600, sweep_interval=10)
        with frozen_time("2026-02-01 12:00:00") as frozen:
            cache.set("short", "s", ttl=30)
            cache.set("long", "l")
            frozen.tick(31)
            cache.set("other", "o")
            assert len(cache) == 2
            assert cache.get("long") == "l"

    def test_missing_key(self):
        assert TTLCache(default_ttl=10).get("absent") is None
