"""Shared fixtures: file-backed SQLite database, cache, services and fakes."""

from collections.abc import AsyncGenerator
from datetime import datetime
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

import pytest

from votewatch.adapters.psp_votes import map_vote_symbol
from votewatch.config import DatabaseConfig, IngestionConfig
from votewatch.db.repositories import PartyRepository, PoliticianRepository
from votewatch.db.session import Database
from votewatch.models.adapter_models import FetchedTweet, ScrapedSession, ScrapedVote
from votewatch.services import IngestionService, StatisticsService
from votewatch.utils.cache import TTLCache


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def database(tmp_path) -> AsyncGenerator[Database, None]:
    """Fresh SQLite database file per test."""
    db = Database(DatabaseConfig(database_url=f"sqlite+aiosqlite:///{tmp_path / 'votewatch.db'}"))
    await db.initialize()
    await db.create_tables()
    yield db
    await db.close()


@pytest.fixture
def cache() -> TTLCache:
    return TTLCache(max_size=100, ttl_seconds=600)


@pytest.fixture
def ingestion_config() -> IngestionConfig:
    # One writer at a time keeps SQLite free of lock contention
    return IngestionConfig(max_concurrency=1, max_tweets_per_politician=10)


@pytest.fixture
def ingestion(database: Database, cache: TTLCache, ingestion_config: IngestionConfig) -> IngestionService:
    return IngestionService(database, cache, config=ingestion_config)


@pytest.fixture
def stats(database: Database, cache: TTLCache) -> StatisticsService:
    return StatisticsService(database, cache)


@pytest.fixture
def make_session() -> Callable[..., ScrapedSession]:
    """Build a ScrapedSession from (name, party, symbol) triples."""

    def factory(
        external_id: str,
        votes: Sequence[Tuple[str, Optional[str], str]],
        date: Optional[datetime] = datetime(2024, 3, 5, 10, 15),
        title: str = "Vládní návrh zákona o státním rozpočtu",
    ) -> ScrapedSession:
        return ScrapedSession(
            external_id=external_id,
            title=title,
            date=date,
            source_url=f"https://www.psp.cz/sqw/hlasy.sqw?g={external_id}",
            votes=[
                ScrapedVote(
                    politician_name=name,
                    party_name=party,
                    vote_symbol=symbol,
                    vote=map_vote_symbol(symbol),
                )
                for name, party, symbol in votes
            ],
        )

    return factory


@pytest.fixture
def make_tweets() -> Callable[..., List[FetchedTweet]]:
    def factory(*ids: str, username: str = "someone") -> List[FetchedTweet]:
        return [
            FetchedTweet(
                external_id=tweet_id,
                text=f"Post {tweet_id}",
                created_at=datetime(2024, 3, 1, 12, 0, int(tweet_id) % 60),
                url=f"https://twitter.com/{username}/status/{tweet_id}",
            )
            for tweet_id in ids
        ]

    return factory


@pytest.fixture
def add_politician(database: Database) -> Callable[..., Awaitable[int]]:
    """Insert a politician directly and return its id."""

    async def factory(name: str, twitter_handle: Optional[str] = None, party: Optional[str] = None) -> int:
        async with database.session() as session:
            party_id = None
            if party:
                party_model, _ = await PartyRepository(session).get_or_create(party)
                party_id = party_model.id
            politician, _ = await PoliticianRepository(session).upsert_by_name(
                name, party_id=party_id, twitter_handle=twitter_handle
            )
            return politician.id

    return factory
