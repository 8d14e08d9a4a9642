"""
Unit tests for the TTL rule cache.
"""

import pytest

from accessgate.cache import RuleCache


def test_get_missing_key(clock):
    assert RuleCache(clock=clock).get("/x") is None


def test_set_then_get_within_ttl(clock):
    cache = RuleCache(ttl_seconds=300, clock=clock)
    cache.set("/admin", "payload")
    clock.advance(299)
    assert cache.get("/admin") == "payload"


def test_entry_expires_after_ttl(clock):
    cache = RuleCache(ttl_seconds=300, clock=clock)
    cache.set("/admin", "payload")
    clock.advance(300)
    assert cache.get("/admin") is None
    assert len(cache) == 0


def test_per_entry_ttl_override(clock):
    cache = RuleCache(ttl_seconds=300, clock=clock)
    cache.set("/short", "a", ttl=10)
    cache.set("/long", "b")
    clock.advance(11)
    assert cache.get("/short") is None
    assert cache.get("/long") == "b"


def test_invalidate_one_and_all(clock):
    cache = RuleCache(clock=clock)
    cache.set("/a", "1")
    cache.set("/b", "2")
    cache.invalidate("/a")
    assert cache.get("/a") is None
    assert cache.get("/b") == "2"
    cache.invalidate()
    assert len(cache) == 0


def test_invalidate_unknown_key_is_noop(clock):
    cache = RuleCache(clock=clock)
    cache.invalidate("/nothing")
    assert len(cache) == 0


def test_repeated_set_converges(clock):
    cache = RuleCache(clock=clock)
    cache.set("/a", "same")
    cache.set("/a", "same")
    assert cache.get("/a") == "same"
    assert len(cache) == 1


# ── Tests: size bound ────────────────────────────────────────────────

def test_size_never_exceeds_max_entries(clock):
    cache = RuleCache(ttl_seconds=300, clock=clock, max_entries=100)
    for i in range(5000):
        cache.set(f"/junk/{i}", "null")
    assert len(cache) == 100
    # Oldest writes are evicted first.
    assert cache.get("/junk/0") is None
    assert cache.get("/junk/4999") == "null"


def test_expired_entries_are_swept_when_full(clock):
    cache = RuleCache(ttl_seconds=300, clock=clock, max_entries=100)
    for i in range(100):
        cache.set(f"/junk/{i}", "null")
    clock.advance(10_000)
    cache.set("/fresh", "null")
    assert len(cache) == 1
    assert cache.get("/fresh") == "null"


def test_live_entries_survive_sweep_of_expired_ones(clock):
    cache = RuleCache(ttl_seconds=300, clock=clock, max_entries=3)
    cache.set("/short", "a", ttl=10)
    cache.set("/long-1", "b")
    cache.set("/long-2", "c")
    clock.advance(11)
    cache.set("/new", "d")
    assert cache.get("/short") is None
    assert [cache.get(k) for k in ("/long-1", "/long-2", "/new")] == ["b", "c", "d"]


def test_rejects_non_positive_max_entries(clock):
    with pytest.raises(ValueError):
        RuleCache(clock=clock, max_entries=0)
