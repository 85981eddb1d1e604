"""Bounded retry with rate-limit-aware backoff for upstream calls."""

import asyncio
import logging
from typing import Any, Awaitable, Callable

import httpx

from hotel_search.config import settings

logger = logging.getLogger(__name__)


def error_status(error: BaseException) -> int | None:
    """HTTP-ish status carried by an error, if any."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    status = getattr(error, "status", None)
    return status if isinstance(status, int) else None


def is_rate_limited(error: BaseException) -> bool:
    return error_status(error) == 429


def is_non_retryable(error: BaseException) -> bool:
    """Client errors other than 429 are surfaced immediately."""
    status = error_status(error)
    return status is not None and 400 <= status < 500 and status != 429


class RetryExecutor:
    """Runs an async operation with up to ``max_attempts`` tries.

    On 429 the wait is ``2**attempt * base_delay``; on any other retryable
    failure it is ``base_delay * attempt``. Both count toward the same budget.
    """

    def __init__(
        self,
        max_attempts: int | None = None,
        base_delay: float | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.max_attempts = max_attempts or settings.retry_max_attempts
        self.base_delay = settings.retry_base_delay_s if base_delay is None else base_delay
        self._sleep = sleep

    def backoff(self, error: BaseException, attempt: int) -> float:
        if is_rate_limited(error):
            return (2 ** attempt) * self.base_delay
        return self.base_delay * attempt

    async def execute(
        self,
        operation: Callable[[], Awaitable[Any]],
        max_attempts: int | None = None,
        label: str = "upstream call",
    ) -> Any:
        attempts = max_attempts or self.max_attempts
        last_error: BaseException | None = None

        for attempt in range(1, attempts + 1):
            try:
                return await operation()
            except Exception as e:
                if is_non_retryable(e):
                    raise
                last_error = e
                if attempt == attempts:
                    break
                wait = self.backoff(e, attempt)
                if is_rate_limited(e):
                    logger.info(f"{label} rate limited, retrying in {wait:.1f}s (attempt {attempt}/{attempts})")
                else:
                    logger.warning(f"{label} failed: {e!r}, retrying in {wait:.1f}s (attempt {attempt}/{attempts})")
                await self._sleep(wait)

        logger.error(f"{label} failed after {attempts} attempts: {last_error!r}")
        raise last_error
