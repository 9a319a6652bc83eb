import sqlite3

import pytest

from profile_scorer.services.cache_service import CacheStore, MemoryTier, SqliteCacheBackend, generate_key

from conftest import FakeClock


class BrokenBackend:
    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise sqlite3.OperationalError("storage unavailable")

        return fail


def test_generate_key_sorts_structured_params() -> None:
    assert generate_key("github", "profile", "octocat") == "github_profile_octocat"
    assert generate_key("svc", "m", {"b": 1, "a": 2}) == generate_key("svc", "m", {"a": 2, "b": 1})


def test_empty_store_misses_then_hits_after_set(cache) -> None:
    assert cache.get("github", "profile", "octocat") is None
    cache.set("github", "profile", "octocat", {"login": "octocat", "followers": 5000}, 6 * 60 * 60)
    assert cache.get("github", "profile", "octocat") == {"login": "octocat", "followers": 5000}


def test_get_returns_a_deep_copy(cache) -> None:
    data = {"repos": [{"name": "a"}]}
    cache.set("github", "repositories", "octocat_100", data)
    first = cache.get("github", "repositories", "octocat_100")
    first["repos"][0]["name"] = "mutated"
    data["repos"].append({"name": "b"})
    assert cache.get("github", "repositories", "octocat_100") == {"repos": [{"name": "a"}]}


def test_none_payload_is_not_stored(cache, capsys) -> None:
    cache.set("github", "profile", "ghost", None)
    assert cache.get("github", "profile", "ghost") is None
    assert "skipping cache storage" in capsys.readouterr().err


def test_falsy_payloads_are_still_cached(cache) -> None:
    cache.set("github", "activity", "quiet_10", [])
    assert cache.get("github", "activity", "quiet_10") == []


def test_ttl_boundary_on_both_tiers(cache, clock) -> None:
    cache.set("github", "profile", "octocat", {"login": "octocat"}, ttl=10)
    clock.advance(10 - 0.001)
    assert cache.get("github", "profile", "octocat") == {"login": "octocat"}
    clock.advance(0.002)
    assert cache.get("github", "profile", "octocat") is None
    assert cache.persistent_stats()["total"] == 0


def test_persistent_hit_is_promoted_into_memory(clock) -> None:
    backend = SqliteCacheBackend()
    writer = CacheStore(backend, clock=clock)
    writer.set("leetcode", "profile", "leeter", {"username": "leeter"}, ttl=100)

    reader = CacheStore(backend, clock=clock)
    assert len(reader.memory) == 0
    assert reader.get("leetcode", "profile", "leeter") == {"username": "leeter"}
    assert len(reader.memory) == 1

    # promoted copy keeps the persistent expiry rather than a fresh default TTL
    backend.delete_all()
    clock.advance(101)
    assert reader.get("leetcode", "profile", "leeter") is None


def test_memory_tier_never_exceeds_cap_and_evicts_oldest_insert() -> None:
    clock = FakeClock()
    tier = MemoryTier(max_entries=3, clock=clock)
    for index in range(3):
        tier.set(f"k{index}", index, ttl=60)
    tier.get("k0")
    tier.set("k3", 3, ttl=60)

    assert len(tier) == 3
    assert tier.get("k0") is None
    assert [tier.get(key) for key in ("k1", "k2", "k3")] == [1, 2, 3]


def test_resetting_existing_key_does_not_evict() -> None:
    tier = MemoryTier(max_entries=2, clock=FakeClock())
    tier.set("a", 1, ttl=60)
    tier.set("b", 2, ttl=60)
    tier.set("a", 10, ttl=60)
    assert len(tier) == 2
    assert tier.get("b") == 2


def test_store_memory_population_is_capped(clock) -> None:
    store = CacheStore(SqliteCacheBackend(), max_memory_entries=100, clock=clock)
    for index in range(150):
        store.set("github", "profile", f"user{index}", {"index": index})
        assert len(store.memory) <= 100
    assert len(store.memory) == 100


def test_invalidate_removes_both_tiers(cache) -> None:
    cache.set("github", "profile", "octocat", {"login": "octocat"})
    cache.invalidate("github", "profile", "octocat")
    assert cache.get("github", "profile", "octocat") is None
    assert cache.persistent_stats()["total"] == 0


def test_invalidate_pattern_clears_one_user_everywhere(cache) -> None:
    cache.set("github", "profile", "octocat", {"login": "octocat"})
    cache.set("github", "repositories", "octocat_100", [{"name": "hello"}])
    cache.set("github", "profile", "hubot", {"login": "hubot"})
    cache.memory.clear()
    cache.set("github", "languages", "octocat", [])

    cache.invalidate_pattern("octocat")

    assert cache.get("github", "profile", "octocat") is None
    assert cache.get("github", "repositories", "octocat_100") is None
    assert cache.get("github", "languages", "octocat") is None
    assert cache.get("github", "profile", "hubot") == {"login": "hubot"}


def test_invalidate_pattern_treats_like_wildcards_literally(cache) -> None:
    cache.set("github", "profile", "a_b", {"login": "a_b"})
    cache.set("github", "profile", "axb", {"login": "axb"})
    cache.memory.clear()
    cache.invalidate_pattern("a_b")
    assert cache.get("github", "profile", "axb") == {"login": "axb"}


def test_clear_all_and_stats(cache, clock) -> None:
    cache.set("github", "profile", "octocat", {"login": "octocat"}, ttl=5)
    cache.set("github", "profile", "hubot", {"login": "hubot"}, ttl=50)
    cache.get("github", "profile", "octocat")
    cache.get("github", "profile", "nobody")
    clock.advance(10)

    stats = cache.memory_stats()
    assert stats["total"] == 2 and stats["valid"] == 1 and stats["expired"] == 1
    assert stats["hits"] == 1 and stats["misses"] == 1 and stats["hit_rate"] == 0.5
    assert cache.cleanup_memory() == 1
    assert cache.cleanup_persistent() == 1

    cache.clear_all()
    assert cache.memory_stats()["total"] == 0
    assert cache.persistent_stats() == {"total": 0, "valid": 0, "expired": 0}


def test_backend_failures_degrade_to_misses(clock, capsys) -> None:
    store = CacheStore(BrokenBackend(), clock=clock)
    store.set("github", "profile", "octocat", {"login": "octocat"})
    assert store.get("github", "profile", "octocat") == {"login": "octocat"}

    store.memory.clear()
    assert store.get("github", "profile", "octocat") is None
    store.invalidate_pattern("octocat")
    store.clear_all()
    assert store.cleanup_persistent() == 0
    assert store.persistent_stats()["total"] == 0
    assert "persistent cache" in capsys.readouterr().err


def test_preload_lists_only_uncached_lookups(cache) -> None:
    cache.set("github", "profile", "octocat", {"login": "octocat"})
    pending = cache.preload_user_data("octocat", "leeter")
    assert ("github", "profile", "octocat") not in pending
    assert ("leetcode", "profile", "leeter") in pending
    assert len(pending) == 5


def test_file_backed_store_survives_reopen(tmp_path, clock) -> None:
    path = str(tmp_path / "nested" / "cache.sqlite3")
    first = CacheStore(SqliteCacheBackend(path), clock=clock)
    first.set("github", "profile", "octocat", {"login": "octocat"})
    first.backend.close()

    second = CacheStore(SqliteCacheBackend(path), clock=clock)
    assert second.get("github", "profile", "octocat") == {"login": "octocat"}
    second.backend.close()


@pytest.mark.parametrize("value", [0, "", False, {}])
def test_falsy_non_none_values_round_trip(cache, value) -> None:
    cache.set("svc", "method", "p", value)
    assert cache.get("svc", "method", "p") == value
