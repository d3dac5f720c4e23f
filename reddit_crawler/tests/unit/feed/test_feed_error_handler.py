"""Tests for the error handler module."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from reddit_crawler.feed.error_handler import ConsecutiveErrorTracker, with_exponential_backoff


def _status_error(status, headers=None):
    request = httpx.Request("GET", "https://feed.test/.json")
    response = httpx.Response(status, headers=headers, request=request)
    return httpx.HTTPStatusError(f"HTTP {status}", request=request, response=response)


class TestConsecutiveErrorTracker:
    def test_record_error_and_success(self):
        tracker = ConsecutiveErrorTracker(5)
        tracker.record_error()
        tracker.record_error()
        assert tracker.consecutive_errors == 2

        tracker.record_success()
        assert tracker.consecutive_errors == 0

    def test_should_abort(self):
        tracker = ConsecutiveErrorTracker(3)
        for _ in range(2):
            tracker.record_error()
        assert not tracker.should_abort()

        tracker.record_error()
        assert tracker.should_abort()


@pytest.fixture
def mock_sleep():
    with patch("reddit_crawler.feed.error_handler.asyncio.sleep", new_callable=AsyncMock) as sleep:
        yield sleep


@pytest.mark.asyncio
async def test_success_returns_result_without_sleeping(mock_sleep):
    func = AsyncMock(return_value="ok")

    assert await with_exponential_backoff()(func)() == "ok"
    mock_sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_server_errors_back_off_exponentially(mock_sleep):
    func = AsyncMock(side_effect=[_status_error(502), _status_error(503), _status_error(500), "ok"])
    decorated = with_exponential_backoff(initial_backoff=1.0, backoff_factor=2.0, max_backoff=3.0)(func)

    assert await decorated() == "ok"
    assert [c.args[0] for c in mock_sleep.await_args_list] == [1.0, 2.0, 3.0]


@pytest.mark.asyncio
async def test_gives_up_after_max_retries(mock_sleep):
    func = AsyncMock(side_effect=_status_error(503))

    with pytest.raises(httpx.HTTPStatusError):
        await with_exponential_backoff(max_retries=2)(func)()

    assert func.await_count == 3
    assert mock_sleep.await_count == 2


@pytest.mark.asyncio
async def test_client_errors_raise_immediately(mock_sleep):
    func = AsyncMock(side_effect=_status_error(403))

    with pytest.raises(httpx.HTTPStatusError):
        await with_exponential_backoff()(func)()

    assert func.await_count == 1
    mock_sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_transport_errors_are_retried(mock_sleep):
    func = AsyncMock(side_effect=[httpx.ConnectError("refused"), httpx.ReadTimeout("slow"), "ok"])

    assert await with_exponential_backoff()(func)() == "ok"
    assert mock_sleep.await_count == 2


@pytest.mark.asyncio
async def test_tracker_aborts_and_success_resets(mock_sleep):
    tracker = ConsecutiveErrorTracker(2)
    func = AsyncMock(side_effect=[_status_error(500), "ok"])

    assert await with_exponential_backoff(error_tracker=tracker)(func)() == "ok"
    assert tracker.consecutive_errors == 0

    func = AsyncMock(side_effect=_status_error(500))
    with pytest.raises(httpx.HTTPStatusError):
        await with_exponential_backoff(error_tracker=tracker)(func)()
    assert func.await_count == 2


@pytest.mark.asyncio
async def test_429_is_handed_to_rate_limiter_without_counting_as_retry(mock_sleep):
    limiter = MagicMock()
    limiter.handle_429 = AsyncMock()
    func = AsyncMock(side_effect=[_status_error(429, {"Retry-After": "7"}), _status_error(429), "ok"])

    assert await with_exponential_backoff(max_retries=0, rate_limiter=limiter)(func)() == "ok"
    assert [c.args[0] for c in limiter.handle_429.await_args_list] == ["7", None]
    mock_sleep.assert_not_awaited()


@pytest.mark.asyncio
async def test_429_without_rate_limiter_raises(mock_sleep):
    func = AsyncMock(side_effect=_status_error(429))

    with pytest.raises(httpx.HTTPStatusError):
        await with_exponential_backoff()(func)()
