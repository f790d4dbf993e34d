"""Request schemas for the v1 API."""

from .requests import (
    VoteIngestRequest,
    TweetIngestRequest,
    CacheInvalidateRequest,
    EraseRequest,
    HandleUpdateRequest,
)

__all__ = [
    "VoteIngestRequest",
    "TweetIngestRequest",
    "CacheInvalidateRequest",
    "EraseRequest",
    "HandleUpdateRequest",
]
