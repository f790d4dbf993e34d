"""
Exception hierarchy for VoteWatch.

Errors raised by the fetch client, the scraper and the reconciler all
derive from VoteWatchError so batch operations and the HTTP layer can tell
pipeline failures apart from programming errors.

Responsibility: Typed errors shared across adapters, services and API
"""

from typing import Any, Dict, Optional


class VoteWatchError(Exception):
    """Base class for all pipeline errors"""


class ConfigurationError(VoteWatchError):
    """Raised when required configuration is missing or invalid"""


class TwitterError(VoteWatchError):
    """Base class for social-media API failures"""


class TwitterAPIError(TwitterError):
    """
    Non-success response from the social-media API.
    
    Carries the HTTP status code and the structured error payload
    returned by the API (if any).
    """
    
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        payload: Optional[Any] = None
    ):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class TwitterAuthError(TwitterAPIError):
    """Credentials were rejected (HTTP 401/403)"""


class RateLimitExceededError(TwitterAPIError):
    """Still rate limited after exhausting all retries"""
    
    def __init__(
        self,
        message: str,
        retries: int,
        payload: Optional[Any] = None
    ):
        super().__init__(message, status_code=429, payload=payload)
        self.retries = retries


class TwitterUserNotFoundError(TwitterError):
    """The requested handle does not resolve to a user"""
    
    def __init__(self, handle: str):
        super().__init__(f"Twitter user not found: {handle}")
        self.handle = handle


class ScraperError(VoteWatchError):
    """Roll-call page could not be fetched or parsed"""


class RecordValidationError(VoteWatchError):
    """
    A scraped record is missing a required field or has an unparseable value.
    
    Such records are skipped and reported; they never abort a batch.
    """
    
    def __init__(self, message: str, record_id: Optional[str] = None, field: Optional[str] = None):
        super().__init__(message)
        self.record_id = record_id
        self.field = field
    
    @property
    def context(self) -> Dict[str, Any]:
        return {"record_id": self.record_id, "field": self.field}


class PoliticianNotFoundError(VoteWatchError):
    """Lookup by politician id found nothing"""
    
    def __init__(self, politician_id: int):
        super().__init__(f"Politician not found: {politician_id}")
        self.politician_id = politician_id
