"""
Client-side rate limiting.

Two complementary mechanisms:
- RateLimiter: token bucket pacing our own requests to scraped websites
- QuotaTracker: bookkeeping of a remote API's advertised request quota
  (``x-rate-limit-remaining`` / ``x-rate-limit-reset`` headers)

Responsibility: Keep outbound request rates within the limits of each source
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[Any]]


class RateLimiter:
    """
    Token bucket rate limiter for controlling request rates.
    
    Tokens are added at a constant rate, and each request consumes one
    token. Bursts up to ``burst`` requests are allowed.
    
    Example:
        limiter = RateLimiter(rate=1.0, burst=1)
        await limiter.acquire()  # Blocks until token available
    """
    
    def __init__(self, rate: float, burst: int = 1):
        """
        Initialize rate limiter.
        
        Args:
            rate: Requests per second (e.g., 2.0 = 2 req/sec)
            burst: Maximum burst size (tokens in bucket at full capacity)
        """
        if rate <= 0:
            raise ValueError("Rate must be positive")
        if burst < 1:
            raise ValueError("Burst must be at least 1")
        
        self.rate = rate
        self.burst = burst
        self.tokens = float(burst)  # Start with full bucket
        self.last_update = time.monotonic()
        self.lock = asyncio.Lock()
    
    async def acquire(self) -> None:
        """
        Acquire a token, blocking until one is available.
        """
        async with self.lock:
            now = time.monotonic()
            elapsed = now - self.last_update
            
            self.tokens = min(self.burst, self.tokens + elapsed * self.rate)
            self.last_update = now
            
            if self.tokens < 1:
                wait_time = (1 - self.tokens) / self.rate
                await asyncio.sleep(wait_time)
                self.tokens = 0
                self.last_update = time.monotonic()
            else:
                self.tokens -= 1


class QuotaTracker:
    """
    Tracks the request quota advertised by a remote API.
    
    The API reports how many requests remain in the current window and the
    epoch second at which the window resets. Once the quota is spent,
    callers are suspended until the reset time plus a safety margin.
    
    One tracker is shared by every task talking to the same API, so the
    state is process-wide for that API.
    
    Example:
        quota = QuotaTracker(default_quota=300)
        await quota.wait_if_exhausted()
        response = await client.get(url)
        quota.update_from_headers(response.headers)
    """
    
    REMAINING_HEADER = "x-rate-limit-remaining"
    RESET_HEADER = "x-rate-limit-reset"
    
    def __init__(
        self,
        default_quota: int = 300,
        window_seconds: float = 900.0,
        safety_margin: float = 1.0,
        clock: Callable[[], float] = time.time
    ):
        """
        Initialize tracker.
        
        Args:
            default_quota: Assumed remaining requests before the first response
            window_seconds: Assumed window length before the first response
            safety_margin: Extra seconds to wait past the advertised reset
            clock: Epoch-seconds time source (injectable for tests)
        """
        self.default_quota = default_quota
        self.window_seconds = window_seconds
        self.safety_margin = safety_margin
        self._clock = clock
        self.remaining = default_quota
        self.reset_at = clock() + window_seconds
        self.waits = 0
    
    def update_from_headers(self, headers: Mapping[str, str]) -> None:
        """
        Refresh quota state from response headers.
        
        Missing or malformed headers leave the current state untouched.
        """
        remaining = headers.get(self.REMAINING_HEADER)
        reset = headers.get(self.RESET_HEADER)
        
        if remaining is not None:
            try:
                self.remaining = int(remaining)
            except ValueError:
                logger.debug(f"Ignoring malformed {self.REMAINING_HEADER}: {remaining}")
        if reset is not None:
            try:
                self.reset_at = float(reset)
            except ValueError:
                logger.debug(f"Ignoring malformed {self.RESET_HEADER}: {reset}")
    
    def seconds_until_reset(self) -> float:
        return max(0.0, self.reset_at - self._clock())
    
    async def wait_if_exhausted(self, sleep: Optional[SleepFn] = None) -> float:
        """
        Suspend the calling task while the quota is spent.
        
        Args:
            sleep: Sleep coroutine (defaults to ``asyncio.sleep``)
        
        Returns:
            Seconds waited (0.0 when the quota was available)
        """
        if self.remaining > 0:
            return 0.0
        
        now = self._clock()
        if now >= self.reset_at:
            # Window already rolled over; the next response corrects the count
            self.remaining = self.default_quota
            return 0.0
        
        wait_time = self.reset_at - now + self.safety_margin
        logger.warning(f"Rate limit quota exhausted, waiting {wait_time:.1f}s for reset")
        self.waits += 1
        await (sleep or asyncio.sleep)(wait_time)
        self.remaining = self.default_quota
        return wait_time
    
    def snapshot(self) -> Dict[str, Any]:
        return {
            "remaining": self.remaining,
            "reset_at": self.reset_at,
            "seconds_until_reset": self.seconds_until_reset(),
            "waits": self.waits,
        }
