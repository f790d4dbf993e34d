"""
FastAPI dependencies.

The AppContext is created once on start-up and stored on ``app.state``.
"""

from fastapi import Request

from votewatch.context import AppContext
from votewatch.services import AdminService, IngestionService, StatisticsService


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_stats_service(request: Request) -> StatisticsService:
    return get_context(request).stats


def get_ingestion_service(request: Request) -> IngestionService:
    return get_context(request).ingestion


def get_admin_service(request: Request) -> AdminService:
    return get_context(request).admin
