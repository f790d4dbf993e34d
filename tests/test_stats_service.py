from datetime import datetime

import pytest

from votewatch.exceptions import PoliticianNotFoundError
from votewatch.services import StatisticsService
from votewatch.utils.cache import CacheStatus, TTLCache

ROLL_CALL = [
    ("Petr Fiala", "ODS", "A"),
    ("Marek Benda", "ODS", "N"),
    ("Andrej Babiš", "ANO", "A"),
]


@pytest.fixture
async def populated(ingestion, add_politician, make_session, make_tweets):
    await ingestion.ingest_sessions([
        make_session("100", ROLL_CALL, date=datetime(2024, 3, 5, 10, 15), title="Older motion"),
        make_session("101", ROLL_CALL[:2], date=datetime(2024, 3, 6, 9, 0), title="Newer motion"),
    ])
    fiala = await add_politician("Petr Fiala", "P_Fiala")
    await ingestion.save_tweets(fiala, make_tweets("1", "2", "3", username="P_Fiala"))
    return fiala


@pytest.mark.asyncio
async def test_stats_counts_every_table(stats, populated) -> None:
    snapshot = await stats.get_stats()

    assert snapshot.total_parties == 2
    assert snapshot.total_politicians == 3
    assert snapshot.total_sessions == 2
    assert snapshot.total_votes == 5
    assert snapshot.total_tweets == 3
    assert snapshot.politicians_with_votes == 3
    assert snapshot.politicians_with_tweets == 1
    assert snapshot.latest_session == datetime(2024, 3, 6, 9, 0)
    assert snapshot.total_logs == 1


@pytest.mark.asyncio
async def test_stats_are_served_from_cache_until_invalidated(
    stats, cache, populated, add_politician
) -> None:
    first = await stats.get_stats()
    await add_politician("Someone New")

    assert (await stats.get_stats()).total_politicians == first.total_politicians

    assert stats.invalidate_cache(["db_stats"]) == 1
    assert (await stats.get_stats()).total_politicians == first.total_politicians + 1


@pytest.mark.asyncio
async def test_recent_sessions_newest_first(stats, populated) -> None:
    sessions = await stats.get_recent_sessions(limit=10)

    assert [s.title for s in sessions] == ["Newer motion", "Older motion"]
    assert sessions[0].vote_count == 2
    assert sessions[1].result_summary == {"yes": 2, "no": 1, "total": 3}


@pytest.mark.asyncio
async def test_recent_tweets_carry_author(stats, populated) -> None:
    tweets = await stats.get_recent_tweets(limit=2)

    assert [t.external_id for t in tweets] == ["3", "2"]
    assert tweets[0].politician_name == "Petr Fiala"
    assert tweets[0].party_name == "ODS"
    assert tweets[0].twitter_handle == "P_Fiala"


@pytest.mark.asyncio
async def test_tweet_stats(stats, populated) -> None:
    tweet_stats = await stats.get_tweet_stats()

    assert tweet_stats.total_tweets == 3
    assert tweet_stats.politicians_with_tweets == 1
    assert tweet_stats.total_politicians == 3


@pytest.mark.asyncio
async def test_politician_data(stats, populated) -> None:
    data = await stats.get_politician_data(populated)

    assert data.politician.name == "Petr Fiala"
    assert data.politician.party_name == "ODS"
    assert data.total_votes == 2
    assert data.vote_stats == {"yes": 2}
    assert [v.session_title for v in data.recent_votes] == ["Newer motion", "Older motion"]
    assert data.total_tweets == 3
    assert len(data.recent_tweets) == 3


@pytest.mark.asyncio
async def test_callers_cannot_alter_cached_reads(stats, cache, populated) -> None:
    snapshot = await stats.get_stats()
    snapshot.total_votes = -1
    sessions = await stats.get_recent_sessions(limit=10)
    sessions.clear()
    data = await stats.get_politician_data(populated)
    data.vote_stats["no"] = 99
    data.recent_votes.pop()

    assert (await stats.get_stats()).total_votes == 5
    assert len(await stats.get_recent_sessions(limit=10)) == 2
    again = await stats.get_politician_data(populated)
    assert again.vote_stats == {"yes": 2}
    assert len(again.recent_votes) == 2
    assert cache.stats()["hits"] == 3


@pytest.mark.asyncio
async def test_politicians_with_twitter(stats, populated) -> None:
    politicians = await stats.get_politicians_with_twitter()

    assert [(p.name, p.twitter_handle) for p in politicians] == [("Petr Fiala", "P_Fiala")]


@pytest.mark.asyncio
async def test_unknown_politician(stats) -> None:
    with pytest.raises(PoliticianNotFoundError):
        await stats.get_politician_data(999)


@pytest.mark.asyncio
async def test_stale_value_served_when_store_fails(database, clock, populated, monkeypatch) -> None:
    cache = TTLCache(max_size=10, ttl_seconds=60, clock=clock)
    service = StatisticsService(database, cache)
    first = await service.get_stats()
    clock.advance(61)

    async def broken():
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(service, "_compute_stats", broken)

    lookup = await cache.get_or_compute_with_status("db_stats", service._compute_stats)
    assert lookup.status == CacheStatus.STALE
    assert lookup.value == first
    assert await service.get_stats() == first
    assert cache.stats()["stale_hits"] == 2


@pytest.mark.asyncio
async def test_recent_logs_are_not_cached(stats, cache, populated) -> None:
    logs = await stats.get_recent_logs(limit=5)

    assert [log.type for log in logs] == ["vote_scrape"]
    assert all(not key.startswith("logs") for key in stats.get_cache_stats().keys)


@pytest.mark.asyncio
async def test_clear_cache(stats, populated) -> None:
    await stats.get_stats()
    await stats.get_recent_sessions()

    assert stats.get_cache_stats().size == 2
    stats.clear_cache()
    report = stats.get_cache_stats()
    assert report.size == 0
    assert report.misses == 2
