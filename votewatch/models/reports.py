"""
Report and read-model schemas returned by services.

Batch operations never raise for per-record problems; they return one of
these reports instead. The HTTP API serializes them as-is.

Responsibility: Pydantic result models for ingestion and statistics
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class IngestionError(BaseModel):
    """A single record or unit that could not be ingested."""
    unit: str = Field(description="Unit of work (session, politician, handle)")
    record_id: Optional[str] = Field(default=None, description="Offending record identifier")
    field: Optional[str] = Field(default=None, description="Field that failed validation")
    error_type: str = Field(description="Exception class name or error category")
    message: str = Field(description="Human-readable error message")


class VoteIngestionReport(BaseModel):
    """Result of ingesting a range of roll-call sessions."""
    sessions_upserted: int = 0
    votes_upserted: int = 0
    sessions_created: int = 0
    sessions_missing: int = 0
    votes_created: int = 0
    votes_updated: int = 0
    votes_skipped: int = 0
    politicians_created: int = 0
    errors: List[IngestionError] = Field(default_factory=list)


class PoliticianFetchDetail(BaseModel):
    """Per-politician outcome of a post fetch run."""
    politician_id: int
    name: str
    handle: str
    new_posts: int = 0
    skipped_posts: int = 0
    error: Optional[str] = None


class TweetFetchReport(BaseModel):
    """Result of fetching posts for every politician with a handle."""
    total_politicians: int = 0
    processed: int = 0
    new_posts: int = 0
    skipped_posts: int = 0
    rate_limited: bool = False
    details: List[PoliticianFetchDetail] = Field(default_factory=list)


class SaveTweetsResult(BaseModel):
    """Result of saving one politician's batch of posts."""
    inserted: int = 0
    skipped: int = 0


class HandleFixDetail(BaseModel):
    id: int
    name: str
    original: str
    fixed: str


class HandleFixReport(BaseModel):
    """Result of normalizing stored social-media handles."""
    total: int = 0
    fixed: int = 0
    unchanged: int = 0
    details: List[HandleFixDetail] = Field(default_factory=list)
    errors: List[IngestionError] = Field(default_factory=list)


class CacheStatsReport(BaseModel):
    size: int
    max_size: int
    keys: List[str]
    hits: int = 0
    misses: int = 0
    stale_hits: int = 0


class StatsSnapshot(BaseModel):
    """Aggregate counts across the store."""
    total_parties: int = 0
    total_politicians: int = 0
    total_sessions: int = 0
    total_votes: int = 0
    total_tweets: int = 0
    total_logs: int = 0
    politicians_with_votes: int = 0
    politicians_with_tweets: int = 0
    latest_session: Optional[datetime] = None
    latest_tweet: Optional[datetime] = None
    generated_at: datetime = Field(default_factory=datetime.utcnow)


class TweetStats(BaseModel):
    total_tweets: int = 0
    politicians_with_tweets: int = 0
    total_politicians: int = 0
    total_parties: int = 0
    latest_tweet: Optional[datetime] = None


class RecentTweet(BaseModel):
    id: int
    external_id: str
    content: str
    url: Optional[str] = None
    posted_at: datetime
    politician_id: int
    politician_name: str
    twitter_handle: Optional[str] = None
    party_name: Optional[str] = None


class RecentSession(BaseModel):
    id: int
    external_id: str
    title: str
    date: datetime
    vote_count: int
    result_summary: Optional[Dict[str, Any]] = None
    source_url: Optional[str] = None


class PoliticianSummary(BaseModel):
    id: int
    name: str
    twitter_handle: Optional[str] = None
    party_name: Optional[str] = None
    last_twitter_sync: Optional[datetime] = None


class PoliticianVote(BaseModel):
    session_id: int
    session_title: str
    session_date: datetime
    vote: str


class PoliticianTweet(BaseModel):
    id: int
    content: str
    url: Optional[str] = None
    posted_at: datetime


class PoliticianData(BaseModel):
    """Detail view of one politician."""
    politician: PoliticianSummary
    total_votes: int = 0
    total_tweets: int = 0
    vote_stats: Dict[str, int] = Field(default_factory=dict)
    recent_votes: List[PoliticianVote] = Field(default_factory=list)
    recent_tweets: List[PoliticianTweet] = Field(default_factory=list)


class SystemLogEntry(BaseModel):
    id: int
    type: str
    status: str
    message: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    created_at: datetime
