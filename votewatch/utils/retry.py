"""
Backoff helpers for resilient API calls.

Responsibility: Compute retry delays for HTTP 429 handling and transient
network failures
"""

import random
from typing import Mapping, Optional
import logging

logger = logging.getLogger(__name__)


def calculate_backoff(
    attempt: int,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True
) -> float:
    """
    Calculate backoff delay for retry attempt.
    
    Formula: min(max_delay, base_delay * (exponential_base ** attempt))
    
    Args:
        attempt: Current attempt number (0-indexed)
        base_delay: Base delay in seconds
        max_delay: Maximum delay cap in seconds
        exponential_base: Base for exponential calculation (usually 2.0)
        jitter: Add randomization to prevent synchronized retries
    
    Returns:
        Delay in seconds for this attempt
    
    Example:
        >>> calculate_backoff(0, base_delay=5.0, jitter=False)
        5.0
        >>> calculate_backoff(2, base_delay=5.0, jitter=False)
        20.0
    """
    delay = base_delay * (exponential_base ** attempt)
    delay = min(delay, max_delay)
    
    # Randomize between 0.5x and 1.0x of calculated delay
    if jitter:
        delay = delay * (0.5 + random.random() * 0.5)
    
    return delay


def parse_retry_after(headers: Mapping[str, str]) -> Optional[float]:
    """
    Read a ``Retry-After`` header expressed in seconds.
    
    Returns:
        Seconds to wait, or None when absent or not a number
    """
    value = headers.get("retry-after")
    if value is None:
        return None
    try:
        seconds = float(value)
    except ValueError:
        logger.debug(f"Ignoring non-numeric retry-after header: {value}")
        return None
    return max(0.0, seconds)
