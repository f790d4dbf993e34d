import pytest

from votewatch.utils.cache import CacheStatus, TTLCache


class Counter:
    def __init__(self, value="value") -> None:
        self.calls = 0
        self.value = value

    async def __call__(self):
        self.calls += 1
        return self.value


async def _boom():
    raise RuntimeError("database unavailable")


@pytest.mark.asyncio
async def test_second_lookup_is_served_from_cache(clock) -> None:
    cache = TTLCache(max_size=10, ttl_seconds=60, clock=clock)
    compute = Counter()

    first = await cache.get_or_compute_with_status("db_stats", compute)
    second = await cache.get_or_compute_with_status("db_stats", compute)

    assert first.status == CacheStatus.MISS
    assert second.status == CacheStatus.HIT
    assert second.value == "value"
    assert compute.calls == 1


@pytest.mark.asyncio
async def test_entry_is_recomputed_after_ttl(clock) -> None:
    cache = TTLCache(max_size=10, ttl_seconds=60, clock=clock)
    compute = Counter()

    await cache.get_or_compute("k", compute)
    clock.advance(59)
    await cache.get_or_compute("k", compute)
    assert compute.calls == 1

    clock.advance(2)
    await cache.get_or_compute("k", compute)
    assert compute.calls == 2


@pytest.mark.asyncio
async def test_least_recently_used_entry_is_evicted(clock) -> None:
    cache = TTLCache(max_size=2, ttl_seconds=60, clock=clock)
    cache.set("a", 1)
    cache.set("b", 2)

    assert cache.get("a") == 1  # refreshes recency of "a"
    cache.set("c", 3)

    assert "b" not in cache
    assert cache.get("a") == 1
    assert cache.get("c") == 3


@pytest.mark.asyncio
async def test_stale_value_served_when_compute_fails(clock) -> None:
    cache = TTLCache(max_size=10, ttl_seconds=60, clock=clock)
    await cache.get_or_compute("db_stats", Counter({"total_votes": 10}))

    clock.advance(120)
    lookup = await cache.get_or_compute_with_status("db_stats", _boom)

    assert lookup.status == CacheStatus.STALE
    assert lookup.value == {"total_votes": 10}
    assert cache.stats()["stale_hits"] == 1


@pytest.mark.asyncio
async def test_stale_value_survives_lru_eviction(clock) -> None:
    cache = TTLCache(max_size=1, ttl_seconds=60, clock=clock)
    cache.set("a", "old")
    cache.set("b", "other")

    assert await cache.get_or_compute("a", _boom) == "old"


@pytest.mark.asyncio
async def test_compute_failure_without_stale_value_propagates(clock) -> None:
    cache = TTLCache(max_size=10, ttl_seconds=60, clock=clock)

    with pytest.raises(RuntimeError, match="database unavailable"):
        await cache.get_or_compute("db_stats", _boom)


@pytest.mark.asyncio
async def test_listed_error_types_bypass_stale_value(clock) -> None:
    cache = TTLCache(max_size=10, ttl_seconds=60, clock=clock)
    await cache.get_or_compute("tweets_1_10", Counter(["old"]))
    clock.advance(120)

    with pytest.raises(RuntimeError, match="database unavailable"):
        await cache.get_or_compute("tweets_1_10", _boom, propagate=(RuntimeError,))

    # Unlisted errors still fall back
    lookup = await cache.get_or_compute_with_status("tweets_1_10", _boom, propagate=(KeyError,))
    assert lookup.status == CacheStatus.STALE
    assert lookup.value == ["old"]
    assert cache.stats()["stale_hits"] == 1


@pytest.mark.asyncio
async def test_invalidate_drops_stale_value_too(clock) -> None:
    cache = TTLCache(max_size=10, ttl_seconds=60, clock=clock)
    cache.set("db_stats", 1)

    assert cache.invalidate(["db_stats", "missing"]) == 1
    with pytest.raises(RuntimeError):
        await cache.get_or_compute("db_stats", _boom)


@pytest.mark.asyncio
async def test_none_is_cached(clock) -> None:
    cache = TTLCache(max_size=10, ttl_seconds=60, clock=clock)
    compute = Counter(None)

    assert await cache.get_or_compute("twitter_user_ghost", compute) is None
    assert await cache.get_or_compute("twitter_user_ghost", compute) is None
    assert compute.calls == 1


def test_invalidate_prefix_and_stats(clock) -> None:
    cache = TTLCache(max_size=10, ttl_seconds=60, clock=clock)
    cache.set("recent_tweets:10", [])
    cache.set("recent_tweets:20", [])
    cache.set("db_stats", {})

    assert cache.invalidate_prefix("recent_tweets:") == 2

    stats = cache.stats()
    assert stats["size"] == 1
    assert stats["max_size"] == 10
    assert stats["keys"] == ["db_stats"]


def test_clear_all_empties_cache(clock) -> None:
    cache = TTLCache(max_size=10, ttl_seconds=60, clock=clock)
    cache.set("a", 1)
    cache.clear_all()

    assert cache.stats()["size"] == 0
    assert "a" not in cache


def test_invalid_configuration_rejected() -> None:
    with pytest.raises(ValueError):
        TTLCache(max_size=0)
    with pytest.raises(ValueError):
        TTLCache(ttl_seconds=0)
