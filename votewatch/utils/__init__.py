"""
Utilities package for VoteWatch.

Reusable helpers for:
- Caching with stale fallback
- Rate limiting and quota bookkeeping
- Backoff calculation
- Handle normalization and batch deduplication
"""

from .cache import TTLCache, CacheStatus, CacheLookup
from .rate_limiter import RateLimiter, QuotaTracker
from .retry import calculate_backoff, parse_retry_after
from .handles import normalize_handle
from .dedupe import dedupe_by_key

__all__ = [
    "TTLCache",
    "CacheStatus",
    "CacheLookup",
    "RateLimiter",
    "QuotaTracker",
    "calculate_backoff",
    "parse_retry_after",
    "normalize_handle",
    "dedupe_by_key",
]
