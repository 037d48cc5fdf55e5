"""Bounded retry with exponential backoff for async provider calls.

Every provider that needs retries goes through ``RetryExecutor`` rather
than carrying its own delay arithmetic.  The policy's ``should_retry``
predicate is the only thing deciding whether an error is retryable; any
other error is re-raised on the attempt that produced it.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

from ..utils.redaction import sanitize
from .cancellation import CancellationToken, check

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _always(error: BaseException) -> bool:
    return True


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    initial_delay: float = 1.0      # seconds
    backoff_factor: float = 2.0
    should_retry: Callable[[BaseException], bool] = field(default=_always)

    def delay_for(self, attempt: int) -> float:
        """Backoff before retry number ``attempt + 1`` (``attempt`` is 0-indexed)."""
        return self.initial_delay * (self.backoff_factor ** attempt)


class RetryExecutor:
    """Run an async operation up to ``policy.max_retries + 1`` times."""

    def __init__(self, sleep: Optional[Callable[[float], Awaitable[None]]] = None, label: str = ""):
        # ``sleep`` is injectable so tests can observe delays without waiting
        self._sleep = sleep or asyncio.sleep
        self.label = label

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        policy: RetryPolicy,
        cancel_token: Optional[CancellationToken] = None,
    ) -> T:
        attempt = 0
        while True:
            check(cancel_token)
            try:
                return await operation()
            except Exception as e:
                if attempt >= policy.max_retries or not policy.should_retry(e):
                    raise
                delay = policy.delay_for(attempt)
                logger.warning(
                    "%s retry attempt %d/%d after %.2fs: %s",
                    self.label or "operation",
                    attempt + 1,
                    policy.max_retries,
                    delay,
                    sanitize(e),
                )
                await self._wait(delay, cancel_token)
                attempt += 1

    async def _wait(self, delay: float, cancel_token: Optional[CancellationToken]) -> None:
        if cancel_token is not None and self._sleep is asyncio.sleep:
            await cancel_token.sleep(delay)
            return
        await self._sleep(delay)
        check(cancel_token)
