"""Cache inspection and invalidation endpoints."""

from typing import Dict

from fastapi import APIRouter, Depends

from api.dependencies import get_stats_service
from api.v1.schemas import CacheInvalidateRequest
from votewatch.models.reports import CacheStatsReport
from votewatch.services import StatisticsService


router = APIRouter()


@router.get("/stats", response_model=CacheStatsReport)
async def get_cache_stats(stats: StatisticsService = Depends(get_stats_service)) -> CacheStatsReport:
    return stats.get_cache_stats()


@router.post("/clear")
async def clear_cache(stats: StatisticsService = Depends(get_stats_service)) -> Dict[str, str]:
    stats.clear_cache()
    return {"status": "cleared"}


@router.post("/invalidate")
async def invalidate_cache(
    body: CacheInvalidateRequest,
    stats: StatisticsService = Depends(get_stats_service),
) -> Dict[str, int]:
    """Drop exact keys and/or every key under the given prefixes."""
    removed = stats.invalidate_cache(body.keys)
    for prefix in body.prefixes:
        removed += stats.cache.invalidate_prefix(prefix)
    return {"removed": removed}
