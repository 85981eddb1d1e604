from __future__ import annotations

import httpx
import pytest

from hotel_search.errors import GeocodingError, ProviderError, RateLimitError, ValidationError
from hotel_search.services.retry import RetryExecutor, is_non_retryable


class _Flaky:
    """Raises the queued errors in order, then returns ``result``."""

    def __init__(self, errors: list[Exception], result: str = "ok") -> None:
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


def _http_error(status: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://example.test")
    response = httpx.Response(status, request=request)
    return httpx.HTTPStatusError("error", request=request, response=response)


@pytest.mark.asyncio
async def test_rate_limited_twice_then_succeeds(retry, sleeper):
    op = _Flaky([RateLimitError("slow down", "booking"), RateLimitError("slow down", "booking")])

    assert await retry.execute(op, max_attempts=3) == "ok"
    assert op.calls == 3
    # 2^attempt seconds
    assert sleeper.delays == [2.0, 4.0]


@pytest.mark.asyncio
async def test_httpx_429_uses_exponential_backoff(retry, sleeper):
    op = _Flaky([_http_error(429)])

    assert await retry.execute(op) == "ok"
    assert sleeper.delays == [2.0]


@pytest.mark.asyncio
async def test_generic_failures_use_linear_backoff(retry, sleeper):
    op = _Flaky([httpx.ConnectError("boom"), ProviderError("upstream", "booking", 503)])

    assert await retry.execute(op) == "ok"
    assert sleeper.delays == [1.0, 2.0]


@pytest.mark.asyncio
async def test_exhausted_attempts_reraise_last_error(retry, sleeper):
    first = ProviderError("first", "booking", 500)
    last = ProviderError("last", "booking", 502)
    op = _Flaky([first, ProviderError("second", "booking", 500), last])

    with pytest.raises(ProviderError) as exc_info:
        await retry.execute(op, max_attempts=3)

    assert exc_info.value is last
    assert op.calls == 3
    assert len(sleeper.delays) == 2


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        ValidationError("bad input"),
        GeocodingError("denied", 403),
        ProviderError("not found", "booking", 404),
    ],
)
async def test_client_errors_are_not_retried(retry, sleeper, error):
    op = _Flaky([error])

    with pytest.raises(type(error)):
        await retry.execute(op)

    assert op.calls == 1
    assert sleeper.delays == []


@pytest.mark.asyncio
async def test_mixed_failures_share_one_budget(retry, sleeper):
    op = _Flaky([RateLimitError("slow", "booking"), httpx.ReadTimeout("timeout"), RateLimitError("slow", "booking")])

    with pytest.raises(RateLimitError):
        await retry.execute(op, max_attempts=3)

    assert op.calls == 3
    assert sleeper.delays == [2.0, 2.0]


def test_is_non_retryable_classification():
    assert is_non_retryable(_http_error(400))
    assert not is_non_retryable(_http_error(429))
    assert not is_non_retryable(_http_error(500))
    assert not is_non_retryable(httpx.ConnectError("boom"))


@pytest.mark.asyncio
async def test_single_attempt_does_not_sleep(sleeper):
    executor = RetryExecutor(max_attempts=1, base_delay=1.0, sleep=sleeper)
    op = _Flaky([ProviderError("down", "booking", 500)])

    with pytest.raises(ProviderError):
        await executor.execute(op)
    assert sleeper.delays == []
