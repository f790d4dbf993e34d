from typing import Dict, List, Optional

import pytest
from prefect.testing.utilities import prefect_test_harness
from sqlalchemy import select

from votewatch.config import IngestionConfig, Settings, TwitterConfig
from votewatch.context import AppContext
from votewatch.db.models import PoliticianModel
from votewatch.db.session import Database
from votewatch.exceptions import ConfigurationError
from votewatch.flows import ingestion_flows
from votewatch.flows.ingestion_flows import (
    fetch_tweets_flow,
    fetch_votes_flow,
    fix_handles_task,
    flow_context,
)
from votewatch.models.adapter_models import ScrapedSession


@pytest.fixture(autouse=True, scope="module")
def prefect_backend():
    with prefect_test_harness():
        yield


class FakeTwitter:
    def __init__(self, make_tweets) -> None:
        self.make_tweets = make_tweets
        self.calls: List[str] = []
        self.closed = False

    async def fetch_user_tweets(self, handle: str, max_results: int = 10):
        self.calls.append(handle)
        return self.make_tweets(str(len(self.calls)), username=handle)

    async def close(self) -> None:
        self.closed = True


class FakeScraper:
    def __init__(self, sessions: Dict[str, ScrapedSession]) -> None:
        self.sessions = sessions
        self.closed = False

    async def fetch_session(self, external_id: str) -> Optional[ScrapedSession]:
        return self.sessions.get(external_id)

    async def close(self) -> None:
        self.closed = True


class ContextRecorder:
    """Builds flow contexts on the test database and remembers each one."""

    def __init__(self, database: Database, cache) -> None:
        self.database = database
        self.cache = cache
        self.services: Dict[str, object] = {}
        self.opened: List[AppContext] = []

    def __call__(self) -> AppContext:
        ctx = AppContext(
            settings=Settings(
                twitter=TwitterConfig(api_key=None),
                ingestion=IngestionConfig(max_concurrency=1),
            ),
            database=Database(self.database.config),
            cache=self.cache,
            **self.services,
        )
        self.opened.append(ctx)
        return ctx


@pytest.fixture
def contexts(monkeypatch, database, cache) -> ContextRecorder:
    recorder = ContextRecorder(database, cache)
    monkeypatch.setattr(ingestion_flows, "AppContext", recorder)
    return recorder


@pytest.mark.asyncio
async def test_tweet_flow_shares_one_context(contexts, database, add_politician, make_tweets) -> None:
    await add_politician("Alice Adams", "@alice")
    await add_politician("Bob Brown", "https://x.com/bob")
    twitter = FakeTwitter(make_tweets)
    contexts.services["twitter"] = twitter

    report = await fetch_tweets_flow()

    assert len(contexts.opened) == 1
    # Handles were fixed before the fetch ran
    assert twitter.calls == ["alice", "bob"]
    assert report["new_posts"] == 2
    assert report["processed"] == 2
    assert twitter.closed is True
    assert ingestion_flows._context is None

    async with database.session() as session:
        result = await session.execute(select(PoliticianModel.twitter_handle).order_by(PoliticianModel.name))
        assert list(result.scalars().all()) == ["alice", "bob"]


@pytest.mark.asyncio
async def test_vote_flow_reports_counts(contexts, make_session) -> None:
    scraper = FakeScraper({"100": make_session("100", [("Petr Fiala", "ODS", "A")])})
    contexts.services["scraper"] = scraper

    result = await fetch_votes_flow(100, 101)

    assert len(contexts.opened) == 1
    assert result["status"] == "success"
    assert result["sessions_upserted"] == 1
    assert result["votes_upserted"] == 1
    assert scraper.closed is True


@pytest.mark.asyncio
async def test_nested_flow_context_is_reused(contexts) -> None:
    async with flow_context() as outer:
        async with flow_context() as inner:
            assert inner is outer
        assert ingestion_flows._context is outer

    assert ingestion_flows._context is None
    assert len(contexts.opened) == 1


@pytest.mark.asyncio
async def test_task_outside_flow_context_fails() -> None:
    with pytest.raises(ConfigurationError):
        await fix_handles_task.fn()
