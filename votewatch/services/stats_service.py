"""
Statistics and query facade.

Read-side counterpart of the ingestion service: aggregate counts and
short listings, each memoized in the shared cache under a fixed key so
dashboards and API clients can poll cheaply. Writers invalidate the keys
they affect.

Responsibility: Cache-backed read models over the store
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional, TypeVar, Union

from pydantic import BaseModel

from ..db.repositories import (
    PartyRepository,
    PoliticianRepository,
    SystemLogRepository,
    TweetRepository,
    VoteRepository,
    VotingSessionRepository,
)
from ..db.session import Database
from ..exceptions import PoliticianNotFoundError
from ..models.reports import (
    CacheStatsReport,
    PoliticianData,
    PoliticianSummary,
    PoliticianTweet,
    PoliticianVote,
    RecentSession,
    RecentTweet,
    StatsSnapshot,
    SystemLogEntry,
    TweetStats,
)
from ..utils.cache import TTLCache

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _detached(value: Union[M, List[M]]) -> Union[M, List[M]]:
    """Deep copy of a cached read model (or list of them) for one caller."""
    if isinstance(value, list):
        return [item.model_copy(deep=True) for item in value]
    return value.model_copy(deep=True)


class StatisticsService:
    """
    Cache-backed statistics over the store.
    
    Example:
        stats = StatisticsService(db, cache)
        snapshot = await stats.get_stats()
    """
    
    def __init__(self, database: Database, cache: TTLCache):
        self.database = database
        self.cache = cache
        self.system_logs = SystemLogRepository(database)
    
    async def get_stats(self) -> StatsSnapshot:
        """Aggregate counts per entity (cached as ``db_stats``)."""
        return _detached(await self.cache.get_or_compute("db_stats", self._compute_stats))
    
    async def _compute_stats(self) -> StatsSnapshot:
        async with self.database.session() as session:
            politicians = PoliticianRepository(session)
            tweets = TweetRepository(session)
            sessions = VotingSessionRepository(session)
            snapshot = StatsSnapshot(
                total_parties=await PartyRepository(session).count(),
                total_politicians=await politicians.count(),
                total_sessions=await sessions.count(),
                total_votes=await VoteRepository(session).count(),
                total_tweets=await tweets.count(),
                politicians_with_votes=await politicians.count_with_votes(),
                politicians_with_tweets=await tweets.count_politicians_with_tweets(),
                latest_session=await sessions.latest_date(),
                latest_tweet=await tweets.latest_posted_at(),
                generated_at=datetime.utcnow(),
            )
        snapshot.total_logs = await self.system_logs.count()
        return snapshot
    
    async def get_tweet_stats(self) -> TweetStats:
        """Post-related counts (cached as ``tweet_stats``)."""
        return _detached(await self.cache.get_or_compute("tweet_stats", self._compute_tweet_stats))
    
    async def _compute_tweet_stats(self) -> TweetStats:
        async with self.database.session() as session:
            tweets = TweetRepository(session)
            return TweetStats(
                total_tweets=await tweets.count(),
                politicians_with_tweets=await tweets.count_politicians_with_tweets(),
                total_politicians=await PoliticianRepository(session).count(),
                total_parties=await PartyRepository(session).count(),
                latest_tweet=await tweets.latest_posted_at(),
            )
    
    async def get_recent_tweets(self, limit: int = 10) -> List[RecentTweet]:
        """Newest posts with author and party (cached per limit)."""
        async def compute() -> List[RecentTweet]:
            async with self.database.session() as session:
                rows = await TweetRepository(session).list_recent(limit)
            return [
                RecentTweet(
                    id=tweet.id,
                    external_id=tweet.external_id,
                    content=tweet.content,
                    url=tweet.url,
                    posted_at=tweet.posted_at,
                    politician_id=politician.id,
                    politician_name=politician.name,
                    twitter_handle=politician.twitter_handle,
                    party_name=party.name if party else None,
                )
                for tweet, politician, party in rows
            ]
        
        return _detached(await self.cache.get_or_compute(f"recent_tweets:{limit}", compute))
    
    async def get_recent_sessions(self, limit: int = 10) -> List[RecentSession]:
        """Most recent roll-call sessions (cached per limit)."""
        async def compute() -> List[RecentSession]:
            async with self.database.session() as session:
                rows = await VotingSessionRepository(session).list_recent(limit)
            return [
                RecentSession(
                    id=row.id,
                    external_id=row.external_id,
                    title=row.title,
                    date=row.date,
                    vote_count=row.vote_count,
                    result_summary=row.result_summary,
                    source_url=row.source_url,
                )
                for row in rows
            ]
        
        return _detached(await self.cache.get_or_compute(f"recent_sessions:{limit}", compute))
    
    async def get_politicians_with_twitter(self) -> List[PoliticianSummary]:
        async def compute() -> List[PoliticianSummary]:
            async with self.database.session() as session:
                rows = await PoliticianRepository(session).list_with_handles()
                return [
                    PoliticianSummary(
                        id=row.id,
                        name=row.name,
                        twitter_handle=row.twitter_handle,
                        party_name=row.party.name if row.party else None,
                        last_twitter_sync=row.last_twitter_sync,
                    )
                    for row in rows
                ]
        
        return _detached(await self.cache.get_or_compute("politicians_with_twitter", compute))
    
    async def get_politician_data(self, politician_id: int) -> PoliticianData:
        """
        Detail view of one politician: vote totals, recent votes and posts.
        
        Raises:
            PoliticianNotFoundError: If no politician has this id
        """
        async def compute() -> PoliticianData:
            async with self.database.session() as session:
                politician = await PoliticianRepository(session).get_by_id(politician_id)
                if politician is None:
                    raise PoliticianNotFoundError(politician_id)
                votes = VoteRepository(session)
                recent_votes = await votes.list_recent_for_politician(politician_id, limit=10)
                tweets = TweetRepository(session)
                recent_tweets = await tweets.list_recent_for_politician(politician_id, limit=5)
                return PoliticianData(
                    politician=PoliticianSummary(
                        id=politician.id,
                        name=politician.name,
                        twitter_handle=politician.twitter_handle,
                        party_name=politician.party.name if politician.party else None,
                        last_twitter_sync=politician.last_twitter_sync,
                    ),
                    total_votes=await votes.count_by_politician(politician_id),
                    total_tweets=await tweets.count_for_politician(politician_id),
                    vote_stats=await votes.tally_by_politician(politician_id),
                    recent_votes=[
                        PoliticianVote(
                            session_id=voting_session.id,
                            session_title=voting_session.title,
                            session_date=voting_session.date,
                            vote=vote.vote,
                        )
                        for vote, voting_session in recent_votes
                    ],
                    recent_tweets=[
                        PoliticianTweet(
                            id=tweet.id,
                            content=tweet.content,
                            url=tweet.url,
                            posted_at=tweet.posted_at,
                        )
                        for tweet in recent_tweets
                    ],
                )
        
        return _detached(await self.cache.get_or_compute(f"politician:{politician_id}", compute))
    
    async def get_recent_logs(self, limit: int = 20, log_type: Optional[str] = None) -> List[SystemLogEntry]:
        """Latest audit log entries (never cached)."""
        rows = await self.system_logs.get_recent_logs(limit=limit, log_type=log_type)
        return [
            SystemLogEntry(
                id=row.id,
                type=row.type,
                status=row.status,
                message=row.message,
                details=row.details,
                created_at=row.created_at,
            )
            for row in rows
        ]
    
    # MARK: Cache management ---
    
    def invalidate_cache(self, keys: Iterable[str]) -> int:
        keys = list(keys)
        removed = self.cache.invalidate(keys)
        logger.info(f"Invalidated {removed} cache entries: {keys}")
        return removed
    
    def clear_cache(self) -> None:
        self.cache.clear_all()
    
    def get_cache_stats(self) -> CacheStatsReport:
        return CacheStatsReport(**self.cache.stats())
