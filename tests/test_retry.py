"""Tests for newsfeed.services.retry."""
import asyncio

import pytest

from newsfeed.core.errors import FetchCancelled, PermanentProviderError, TransientProviderError, is_rate_limited
from newsfeed.services.cancellation import CancellationToken
from newsfeed.services.retry import RetryExecutor, RetryPolicy


def _rate_limited() -> TransientProviderError:
    return TransientProviderError("slow down", provider="nytimes", status=429)


class FlakyOperation:
    """Raises the queued errors in order, then returns ``result``."""

    def __init__(self, errors, result="payload"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


class TestRetryExecutor:
    def setup_method(self) -> None:
        self.delays = []

        async def fake_sleep(delay: float) -> None:
            self.delays.append(delay)

        self.executor = RetryExecutor(sleep=fake_sleep)

    def test_first_success_does_not_sleep(self) -> None:
        op = FlakyOperation([])

        result = asyncio.run(self.executor.execute(op, RetryPolicy()))

        assert result == "payload"
        assert op.calls == 1
        assert self.delays == []

    def test_retries_until_success_with_exponential_delays(self) -> None:
        op = FlakyOperation([_rate_limited(), _rate_limited()])
        policy = RetryPolicy(max_retries=3, initial_delay=1.0, backoff_factor=2.0, should_retry=is_rate_limited)

        result = asyncio.run(self.executor.execute(op, policy))

        assert result == "payload"
        assert op.calls == 3
        assert self.delays == [1.0, 2.0]

    def test_calls_at_most_max_retries_plus_one(self) -> None:
        op = FlakyOperation([_rate_limited() for _ in range(10)])
        policy = RetryPolicy(max_retries=3, initial_delay=0.5, backoff_factor=2.0, should_retry=is_rate_limited)

        with pytest.raises(TransientProviderError):
            asyncio.run(self.executor.execute(op, policy))

        assert op.calls == 4
        assert self.delays == [0.5, 1.0, 2.0]

    def test_zero_retries_runs_once(self) -> None:
        op = FlakyOperation([_rate_limited()])

        with pytest.raises(TransientProviderError):
            asyncio.run(self.executor.execute(op, RetryPolicy(max_retries=0)))

        assert op.calls == 1

    def test_non_retryable_error_fails_fast(self) -> None:
        op = FlakyOperation([PermanentProviderError("bad key", status=401)])
        policy = RetryPolicy(max_retries=3, should_retry=is_rate_limited)

        with pytest.raises(PermanentProviderError):
            asyncio.run(self.executor.execute(op, policy))

        assert op.calls == 1
        assert self.delays == []

    def test_reraises_the_last_underlying_error(self) -> None:
        first = _rate_limited()
        last = PermanentProviderError("server exploded", status=500)
        op = FlakyOperation([first, last])
        policy = RetryPolicy(max_retries=3, should_retry=is_rate_limited)

        with pytest.raises(PermanentProviderError) as exc_info:
            asyncio.run(self.executor.execute(op, policy))

        assert exc_info.value is last
        assert op.calls == 2

    def test_delay_for_uses_zero_indexed_attempt(self) -> None:
        policy = RetryPolicy(initial_delay=5.0, backoff_factor=3.0)

        assert [policy.delay_for(n) for n in range(3)] == [5.0, 15.0, 45.0]


class TestRetryCancellation:
    def test_cancelled_token_prevents_first_attempt(self) -> None:
        token = CancellationToken()
        token.cancel()
        op = FlakyOperation([])

        with pytest.raises(FetchCancelled):
            asyncio.run(RetryExecutor().execute(op, RetryPolicy(), token))

        assert op.calls == 0

    def test_cancellation_interrupts_backoff_sleep(self) -> None:
        token = CancellationToken()

        async def op():
            token.cancel()
            raise _rate_limited()

        policy = RetryPolicy(max_retries=3, initial_delay=60.0, should_retry=is_rate_limited)

        with pytest.raises(FetchCancelled):
            asyncio.run(asyncio.wait_for(RetryExecutor().execute(op, policy, token), timeout=5))
