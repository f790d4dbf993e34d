"""
Services package for VoteWatch.

Coordinates adapters, repositories and the cache.
"""

from .ingestion_service import IngestionService
from .stats_service import StatisticsService
from .admin_service import AdminService

__all__ = [
    "IngestionService",
    "StatisticsService",
    "AdminService",
]
