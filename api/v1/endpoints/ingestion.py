"""Endpoints that trigger ingestion runs."""

from fastapi import APIRouter, Depends

from api.dependencies import get_ingestion_service
from api.v1.schemas import TweetIngestRequest, VoteIngestRequest
from votewatch.models.reports import HandleFixReport, TweetFetchReport, VoteIngestionReport
from votewatch.services import IngestionService


router = APIRouter()


@router.post("/votes", response_model=VoteIngestionReport)
async def ingest_votes(
    body: VoteIngestRequest,
    ingestion: IngestionService = Depends(get_ingestion_service),
) -> VoteIngestionReport:
    """Scrape and store an inclusive range of roll-call sessions."""
    return await ingestion.ingest_votes(body.start, body.end)


@router.post("/tweets", response_model=TweetFetchReport)
async def ingest_tweets(
    body: TweetIngestRequest,
    ingestion: IngestionService = Depends(get_ingestion_service),
) -> TweetFetchReport:
    """Fetch recent posts for every politician with a handle."""
    return await ingestion.ingest_posts_for_all_politicians(body.max_per_politician)


@router.post("/fix-handles", response_model=HandleFixReport)
async def fix_handles(
    ingestion: IngestionService = Depends(get_ingestion_service),
) -> HandleFixReport:
    return await ingestion.fix_handles()
