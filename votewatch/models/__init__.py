"""
Models package for VoteWatch.

Pydantic models and dataclasses for:
- Scraped and fetched records
- Service reports and read models
"""

from .adapter_models import (
    JSONValue,
    VoteValue,
    ScrapedVote,
    ScrapedSession,
    FetchedTweet,
)
from .reports import (
    IngestionError,
    VoteIngestionReport,
    PoliticianFetchDetail,
    TweetFetchReport,
    SaveTweetsResult,
    HandleFixDetail,
    HandleFixReport,
    CacheStatsReport,
    StatsSnapshot,
    TweetStats,
    RecentTweet,
    RecentSession,
    PoliticianSummary,
    PoliticianVote,
    PoliticianTweet,
    PoliticianData,
    SystemLogEntry,
)

__all__ = [
    "JSONValue",
    "VoteValue",
    "ScrapedVote",
    "ScrapedSession",
    "FetchedTweet",
    "IngestionError",
    "VoteIngestionReport",
    "PoliticianFetchDetail",
    "TweetFetchReport",
    "SaveTweetsResult",
    "HandleFixDetail",
    "HandleFixReport",
    "CacheStatsReport",
    "StatsSnapshot",
    "TweetStats",
    "RecentTweet",
    "RecentSession",
    "PoliticianSummary",
    "PoliticianVote",
    "PoliticianTweet",
    "PoliticianData",
    "SystemLogEntry",
]
