"""
Base adapter interface for scraped data sources.

Defines the contract that page-scraping adapters implement: request
pacing, per-source logging, and normalization of one raw page into a
record.

Responsibility: Abstract base class defining adapter contract
"""

from abc import ABC, abstractmethod
from typing import Generic, TypeVar, Any
import logging

from ..utils.rate_limiter import RateLimiter


# Generic type for normalized records
T = TypeVar('T')


class BaseAdapter(ABC, Generic[T]):
    """
    Abstract base class for data source adapters.

    Every adapter MUST:
    1. Implement normalize() to convert one raw page/payload to a record
    2. Pace requests with self.rate_limiter
    3. Raise ScraperError for pages that cannot be fetched or parsed
    """

    def __init__(
        self,
        source_name: str,
        rate_limit_per_second: float = 0.5,
        max_retries: int = 3,
        timeout_seconds: int = 30
    ):
        """
        Initialize base adapter.

        Args:
            source_name: Identifier for this adapter (e.g., "psp_votes")
            rate_limit_per_second: Maximum requests per second
            max_retries: Maximum retry attempts for retryable errors
            timeout_seconds: Request timeout in seconds
        """
        self.source_name = source_name
        self.rate_limit_per_second = rate_limit_per_second
        self.max_retries = max_retries
        self.timeout_seconds = timeout_seconds

        # burst=1 means strict pacing, no bursting
        self.rate_limiter = RateLimiter(
            rate=rate_limit_per_second,
            burst=1
        )

        self.logger = logging.getLogger(f"adapter.{source_name}")

    @abstractmethod
    def normalize(self, raw_data: Any) -> T:
        """
        Normalize raw source data into a record.

        Raises:
            ValueError: If raw_data cannot be normalized
        """
        pass
