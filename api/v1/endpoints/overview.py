"""Overview endpoints for aggregate statistics, recent activity and politicians."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_ingestion_service, get_stats_service
from api.v1.schemas import HandleUpdateRequest
from votewatch.models.reports import (
    PoliticianData,
    PoliticianSummary,
    RecentSession,
    RecentTweet,
    StatsSnapshot,
    SystemLogEntry,
    TweetStats,
)
from votewatch.services import IngestionService, StatisticsService


router = APIRouter()


# MARK: Routes ---------------------------------------------------------------

@router.get(
    "/stats",
    response_model=StatsSnapshot,
    summary="Get aggregate counts for dashboard",
)
async def get_stats(stats: StatisticsService = Depends(get_stats_service)) -> StatsSnapshot:
    """Return cached aggregate counts."""
    return await stats.get_stats()


@router.get("/tweets/stats", response_model=TweetStats)
async def get_tweet_stats(stats: StatisticsService = Depends(get_stats_service)) -> TweetStats:
    return await stats.get_tweet_stats()


@router.get("/tweets/recent", response_model=List[RecentTweet])
async def get_recent_tweets(
    limit: int = Query(10, ge=1, le=100),
    stats: StatisticsService = Depends(get_stats_service),
) -> List[RecentTweet]:
    """Newest posts with author and party."""
    return await stats.get_recent_tweets(limit)


@router.get("/sessions/recent", response_model=List[RecentSession])
async def get_recent_sessions(
    limit: int = Query(10, ge=1, le=100),
    stats: StatisticsService = Depends(get_stats_service),
) -> List[RecentSession]:
    return await stats.get_recent_sessions(limit)


@router.get("/politicians/twitter", response_model=List[PoliticianSummary])
async def get_politicians_with_twitter(
    stats: StatisticsService = Depends(get_stats_service),
) -> List[PoliticianSummary]:
    return await stats.get_politicians_with_twitter()


@router.get("/politicians/{politician_id}", response_model=PoliticianData)
async def get_politician(
    politician_id: int,
    stats: StatisticsService = Depends(get_stats_service),
) -> PoliticianData:
    """Vote totals, recent votes and recent posts of one politician."""
    return await stats.get_politician_data(politician_id)


@router.put("/politicians/{politician_id}/handle", response_model=PoliticianSummary)
async def update_politician_handle(
    politician_id: int,
    body: HandleUpdateRequest,
    ingestion: IngestionService = Depends(get_ingestion_service),
) -> PoliticianSummary:
    """Set or clear one politician's social-media handle."""
    return await ingestion.set_handle(politician_id, body.twitter_handle)


@router.get("/logs", response_model=List[SystemLogEntry])
async def get_logs(
    limit: int = Query(20, ge=1, le=200),
    log_type: Optional[str] = Query(None, alias="type"),
    stats: StatisticsService = Depends(get_stats_service),
) -> List[SystemLogEntry]:
    return await stats.get_recent_logs(limit=limit, log_type=log_type)
