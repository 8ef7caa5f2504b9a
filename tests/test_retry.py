"""
Tests for the retry helpers.
"""

import pytest

from tileplanner.core.retry import async_retry, exponential_backoff, should_retry


class TestExponentialBackoff:
    """Tests for exponential_backoff."""

    def test_growth(self):
        assert exponential_backoff(0, base_delay=0.5) == 0.5
        assert exponential_backoff(1, base_delay=0.5) == 1.0
        assert exponential_backoff(3, base_delay=0.5) == 4.0

    def test_capped(self):
        assert exponential_backoff(10, base_delay=1.0, max_delay=5.0) == 5.0

    def test_should_retry(self):
        assert should_retry(ConnectionError(), (ConnectionError,))
        assert not should_retry(ValueError(), (ConnectionError,))


class TestAsyncRetry:
    """Tests for the async_retry decorator."""

    @pytest.mark.asyncio
    async def test_recovers_from_transient_errors(self):
        calls = []
        retries = []

        @async_retry(max_attempts=3, base_delay=0.0, on_retry=lambda e, n: retries.append(n))
        async def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise ConnectionError("reset")
            return "ok"

        assert await flaky() == "ok"
        assert len(calls) == 3
        assert retries == [1, 2]

    @pytest.mark.asyncio
    async def test_permanent_error_raised_immediately(self):
        calls = []

        @async_retry(max_attempts=5, base_delay=0.0)
        async def broken():
            calls.append(1)
            raise ValueError("bad request")

        with pytest.raises(ValueError):
            await broken()
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        calls = []

        @async_retry(max_attempts=2, base_delay=0.0, retryable_exceptions=(TimeoutError,))
        async def slow():
            calls.append(1)
            raise TimeoutError("slow")

        with pytest.raises(TimeoutError):
            await slow()
        assert len(calls) == 2
