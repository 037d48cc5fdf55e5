"""Cooperative cancellation for in-flight feed requests.

A ``CancellationToken`` is handed to ``Aggregator.fetch_all`` and on to every
provider client.  It is checked around each network call and interrupts
backoff sleeps, so a request that has been superseded stops doing work at
the next suspension point.  ``RequestGate`` hands out one token per request
and cancels the previous one, which keeps a slow, older response from
overwriting the result of a newer request.
"""
import asyncio
import logging
from typing import Optional

from ..core.errors import FetchCancelled

logger = logging.getLogger(__name__)


class CancellationToken:
    def __init__(self, label: str = ""):
        self.label = label
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        if not self._event.is_set():
            logger.debug("Cancelling request %s", self.label or "<unnamed>")
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise FetchCancelled(f"Request {self.label or '<unnamed>'} was superseded")

    async def sleep(self, delay: float) -> None:
        """Sleep for ``delay`` seconds, waking early (and raising) if cancelled."""
        self.raise_if_cancelled()
        if delay <= 0:
            return
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return
        self.raise_if_cancelled()


def check(token: Optional[CancellationToken]) -> None:
    """Raise ``FetchCancelled`` if ``token`` is set; a missing token never cancels."""
    if token is not None:
        token.raise_if_cancelled()


class RequestGate:
    """Issue one token per request; starting a request cancels the previous one."""

    def __init__(self):
        self._current: Optional[CancellationToken] = None
        self._counter = 0

    @property
    def current(self) -> Optional[CancellationToken]:
        return self._current

    def begin(self) -> CancellationToken:
        if self._current is not None:
            self._current.cancel()
        self._counter += 1
        self._current = CancellationToken(label=f"request-{self._counter}")
        return self._current
