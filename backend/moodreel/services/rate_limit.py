"""
rate_limit.py

Exponential backoff for TMDB quota responses (HTTP 429).
TMDB answers 429 with a Retry-After header; that value wins over the
computed delay when present.
"""
import asyncio
import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

MAX_DELAY_SECONDS = 30


class RateLimitExceeded(Exception):
    """Raised when the remote service keeps answering 429."""

    def __init__(self, message: str, service: str = None, retry_after: Optional[float] = None):
        super().__init__(message)
        self.service = service
        self.retry_after = retry_after


def _retry_after(response: httpx.Response) -> Optional[float]:
    value = response.headers.get("Retry-After")
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


async def with_backoff(func, *args, max_retries: int = 5, service: str = None, base_delay: float = 1.0, **kwargs):
    """Execute func with exponential backoff on rate limit errors.

    Only 429 responses are retried; every other error propagates to the caller
    on the first attempt.
    """
    delay = base_delay
    last_exception = None

    for attempt in range(max_retries):
        try:
            return await func(*args, **kwargs)
        except httpx.HTTPStatusError as e:
            if e.response.status_code != 429:
                raise
            retry_after = _retry_after(e.response)
            last_exception = RateLimitExceeded(
                f"Rate limit exceeded for {service or 'remote service'}",
                service=service,
                retry_after=retry_after,
            )
            if attempt == max_retries - 1:
                break
            sleep_for = min(retry_after if retry_after is not None else delay, MAX_DELAY_SECONDS)
            logger.warning(f"Rate limited on attempt {attempt + 1}/{max_retries}, sleeping {sleep_for}s")
            await asyncio.sleep(sleep_for)
            delay = min(delay * 2, MAX_DELAY_SECONDS)

    raise last_exception or RateLimitExceeded(f"Max retries ({max_retries}) exceeded", service=service)
