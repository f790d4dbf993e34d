"""
Twitter API v2 client with quota bookkeeping and 429 backoff.

Every request first waits out an exhausted quota window, then refreshes the
shared QuotaTracker from the response headers. HTTP 429 responses are
retried a bounded number of times, honouring ``Retry-After`` when present
and otherwise doubling the delay from the configured initial value.
User-id lookups and timelines are memoized through the shared TTLCache.

Responsibility: Rate-limited, retry-aware access to the social-media API
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from ..config import TwitterConfig
from ..exceptions import (
    ConfigurationError,
    RateLimitExceededError,
    TwitterAPIError,
    TwitterAuthError,
    TwitterUserNotFoundError,
)
from ..models.adapter_models import FetchedTweet
from ..utils.cache import TTLCache
from ..utils.handles import normalize_handle
from ..utils.rate_limiter import QuotaTracker
from ..utils.retry import calculate_backoff, parse_retry_after

logger = logging.getLogger(__name__)

MIN_TWEET_RESULTS = 5
MAX_TWEET_RESULTS = 100
# Upper bound for a computed (not server-advertised) backoff delay
MAX_BACKOFF_SECONDS = 900.0
# Never masked by a stale cache entry; the ingestion loop stops on these
CALLER_VISIBLE_ERRORS = (RateLimitExceededError, TwitterAuthError)


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO8601 API timestamp into a naive UTC datetime."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug(f"Unable to parse timestamp {value}")
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _is_not_found_payload(payload: Dict[str, Any]) -> bool:
    if payload.get("data"):
        return False
    for error in payload.get("errors") or []:
        title = str(error.get("title", ""))
        detail = str(error.get("detail", ""))
        if "not found" in title.lower() or "could not find" in detail.lower():
            return True
    return False


class TwitterClient:
    """
    Async client for the Twitter API v2.
    
    Example:
        client = TwitterClient(settings.twitter, cache, quota)
        tweets = await client.fetch_user_tweets("@JohnDoe", max_results=20)
        await client.close()
    """
    
    def __init__(
        self,
        config: TwitterConfig,
        cache: TTLCache,
        quota: QuotaTracker,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """
        Initialize client.
        
        Args:
            config: API credentials and retry settings
            cache: Shared cache for user ids and timelines
            quota: Shared quota state for this API
            http_client: Pre-built client (tests inject a mock transport)
            sleep: Sleep coroutine used for every wait
        
        Raises:
            ConfigurationError: If no bearer token is configured
        """
        if not config.api_key:
            raise ConfigurationError("TWITTER_API_KEY is not configured")
        
        self.config = config
        self.cache = cache
        self.quota = quota
        self._sleep = sleep
        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient(
            timeout=config.timeout_seconds,
            headers={"User-Agent": "VoteWatch/1.0"},
        )
        self._headers = {"Authorization": f"Bearer {config.api_key}"}
        self.retry_count = 0
    
    async def _request(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Perform a GET request under quota and retry control.
        
        Args:
            path: Path relative to the API base (e.g. ``/users/123/tweets``)
            params: Query parameters
        
        Returns:
            Parsed JSON payload
        
        Raises:
            RateLimitExceededError: Still 429 after ``max_retries`` retries
            TwitterAuthError: Credentials rejected
            TwitterAPIError: Any other non-success response, or repeated timeouts
        """
        url = f"{self.config.api_base.rstrip('/')}{path}"
        retries = 0
        
        while True:
            await self.quota.wait_if_exhausted(self._sleep)
            
            try:
                response = await self.client.get(url, params=params, headers=self._headers)
            except httpx.TimeoutException as exc:
                if retries >= self.config.max_retries:
                    raise TwitterAPIError(
                        f"Request to {path} timed out after {retries} retries"
                    ) from exc
                delay = calculate_backoff(
                    retries,
                    base_delay=self.config.initial_retry_delay,
                    max_delay=MAX_BACKOFF_SECONDS,
                    jitter=False,
                )
                logger.warning(f"Timeout on {path}, retrying in {delay:.1f}s")
                retries += 1
                self.retry_count += 1
                await self._sleep(delay)
                continue
            
            self.quota.update_from_headers(response.headers)
            
            if response.status_code == 429:
                if retries >= self.config.max_retries:
                    raise RateLimitExceededError(
                        f"Rate limit exceeded for {path} after {retries} retries",
                        retries=retries,
                        payload=self._error_payload(response),
                    )
                delay = parse_retry_after(response.headers)
                if delay is None:
                    delay = calculate_backoff(
                        retries,
                        base_delay=self.config.initial_retry_delay,
                        max_delay=MAX_BACKOFF_SECONDS,
                        jitter=False,
                    )
                logger.warning(
                    f"Rate limited on {path}, retry {retries + 1}/{self.config.max_retries} in {delay:.1f}s"
                )
                retries += 1
                self.retry_count += 1
                await self._sleep(delay)
                continue
            
            if response.status_code in (401, 403):
                raise TwitterAuthError(
                    f"Twitter API rejected credentials ({response.status_code})",
                    status_code=response.status_code,
                    payload=self._error_payload(response),
                )
            
            if response.is_error:
                raise TwitterAPIError(
                    f"Twitter API error {response.status_code} for {path}",
                    status_code=response.status_code,
                    payload=self._error_payload(response),
                )
            
            return response.json()
    
    @staticmethod
    def _error_payload(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return response.text or None
    
    async def get_user_id(self, handle: str) -> Optional[str]:
        """
        Resolve a handle to the API's numeric user id.
        
        Args:
            handle: Bare username, ``@username`` or profile URL
        
        Returns:
            User id, or None if the user does not exist
        """
        username = normalize_handle(handle)
        if not username:
            return None
        
        key = f"twitter_user_{username.lower()}"
        return await self.cache.get_or_compute(
            key,
            lambda: self._lookup_user_id(username),
            propagate=CALLER_VISIBLE_ERRORS,
        )
    
    async def _lookup_user_id(self, username: str) -> Optional[str]:
        try:
            payload = await self._request(f"/users/by/username/{username}")
        except TwitterAPIError as exc:
            if exc.status_code == 404:
                logger.info(f"Twitter user not found: {username}")
                return None
            raise
        
        if _is_not_found_payload(payload):
            logger.info(f"Twitter user not found: {username}")
            return None
        
        data = payload.get("data")
        if not data or "id" not in data:
            raise TwitterAPIError(
                f"Unexpected user lookup payload for {username}",
                status_code=200,
                payload=payload,
            )
        return str(data["id"])
    
    async def fetch_user_tweets(self, handle: str, max_results: int = 10) -> List[FetchedTweet]:
        """
        Fetch a user's most recent original posts.
        
        Retweets and replies are excluded.
        
        Args:
            handle: Bare username, ``@username`` or profile URL
            max_results: Number of posts, clamped to the API range [5, 100]
        
        Returns:
            FetchedTweet list, newest first
        
        Raises:
            TwitterUserNotFoundError: If the handle does not resolve
        """
        username = normalize_handle(handle)
        user_id = await self.get_user_id(username)
        if user_id is None:
            raise TwitterUserNotFoundError(handle)
        
        max_results = max(MIN_TWEET_RESULTS, min(MAX_TWEET_RESULTS, max_results))
        key = f"tweets_{user_id}_{max_results}"
        return await self.cache.get_or_compute(
            key,
            lambda: self._fetch_timeline(user_id, username, max_results),
            propagate=CALLER_VISIBLE_ERRORS,
        )
    
    async def _fetch_timeline(self, user_id: str, username: str, max_results: int) -> List[FetchedTweet]:
        payload = await self._request(
            f"/users/{user_id}/tweets",
            params={
                "max_results": max_results,
                "tweet.fields": "created_at,public_metrics",
                "exclude": "retweets,replies",
            },
        )
        
        tweets: List[FetchedTweet] = []
        for raw in payload.get("data") or []:
            tweet_id = str(raw["id"])
            tweets.append(
                FetchedTweet(
                    external_id=tweet_id,
                    text=raw.get("text", ""),
                    created_at=_parse_timestamp(raw.get("created_at")),
                    url=f"https://twitter.com/{username}/status/{tweet_id}",
                    metrics=raw.get("public_metrics"),
                )
            )
        
        logger.info(f"Fetched {len(tweets)} tweets for @{username}")
        return tweets
    
    async def close(self) -> None:
        """Close HTTP client (only when this instance created it)."""
        if self._owns_client:
            await self.client.aclose()
