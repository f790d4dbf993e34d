"""
Request bodies for ingestion, cache and admin endpoints.
"""

from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


class VoteIngestRequest(BaseModel):
    """Inclusive range of roll-call ids to scrape."""
    start: int = Field(..., ge=1, description="First roll-call id (g)")
    end: int = Field(..., ge=1, description="Last roll-call id (g)")
    
    @model_validator(mode="after")
    def check_range(self) -> "VoteIngestRequest":
        if self.end < self.start:
            raise ValueError("end must be greater than or equal to start")
        return self


class TweetIngestRequest(BaseModel):
    max_per_politician: Optional[int] = Field(
        default=None,
        ge=5,
        le=100,
        description="Posts to request per politician"
    )


class CacheInvalidateRequest(BaseModel):
    keys: List[str] = Field(default_factory=list, description="Exact cache keys to drop")
    prefixes: List[str] = Field(default_factory=list, description="Drop every key with these prefixes")


class EraseRequest(BaseModel):
    confirm: bool = Field(..., description="Must be true to erase all data")


class HandleUpdateRequest(BaseModel):
    twitter_handle: Optional[str] = Field(
        default=None,
        max_length=255,
        description="Username, @username or profile URL; blank clears the handle"
    )
