"""
Feed views served to the application layer.

``NewsFeedService`` produces the three views of the feed: everything,
filtered, and "for you".  The filtered and personalized views each run
their own ``fetch_all``.  Requests go through a ``RequestGate`` keyed by
session and view: starting a request cancels the previous request for the
same view, and a request that was superseded raises ``FetchCancelled``
instead of returning data that is already out of date.  Different views
never cancel each other.  A gate lives only while a request on it is in
flight.
"""
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, List, Optional, Tuple

from ..core.errors import FetchCancelled
from ..models.schemas import AggregateResult, Article, QueryFilters, SourceResult, UserPreferences
from .aggregator import Aggregator
from .cancellation import CancellationToken, RequestGate
from .filters import FilterEngine
from .ranking import PersonalizationRanker

logger = logging.getLogger(__name__)

NO_ARTICLES_MESSAGE = "No articles could be loaded from any news source. Please try again later."

SNAPSHOT_VIEW = "snapshot"
FILTERED_VIEW = "filtered"
PERSONALIZED_VIEW = "personalized"


@dataclass
class FeedSnapshot:
    articles: List[Article] = field(default_factory=list)
    filtered_articles: List[Article] = field(default_factory=list)
    personalized_articles: List[Article] = field(default_factory=list)
    sources: List[SourceResult] = field(default_factory=list)
    error: Optional[str] = None


class NewsFeedService:
    def __init__(self, aggregator: Optional[Aggregator] = None):
        self.aggregator = aggregator or Aggregator()
        self.gates: Dict[Tuple[str, str], RequestGate] = {}

    async def refresh(
        self, filters: QueryFilters, preferences: UserPreferences, session: str = "default"
    ) -> FeedSnapshot:
        """Build every view of the feed for one filter/preference state."""
        async with self._request(session, SNAPSHOT_VIEW) as token:
            everything = await self._fetch(filters, token)
            filtered = FilterEngine.apply(everything.articles, filters)
            personalized = await self._personalized(filters, preferences, token)

            self._ensure_current(token)
            return FeedSnapshot(
                articles=everything.articles,
                filtered_articles=filtered,
                personalized_articles=personalized,
                sources=everything.sources,
                error=no_articles_error(everything),
            )

    async def get_filtered_feed(self, filters: QueryFilters, session: str = "default") -> AggregateResult:
        async with self._request(session, FILTERED_VIEW) as token:
            result = await self._fetch(filters, token)
            return result.model_copy(update={"articles": FilterEngine.apply(result.articles, filters)})

    async def get_personalized_feed(
        self, filters: QueryFilters, preferences: UserPreferences, session: str = "default"
    ) -> AggregateResult:
        async with self._request(session, PERSONALIZED_VIEW) as token:
            result = await self._fetch(filters, token)
            return result.model_copy(update={"articles": PersonalizationRanker.rank(result.articles, preferences)})

    async def _personalized(
        self, filters: QueryFilters, preferences: UserPreferences, token: CancellationToken
    ) -> List[Article]:
        result = await self._fetch(filters, token)
        return PersonalizationRanker.rank(result.articles, preferences)

    @asynccontextmanager
    async def _request(self, session: str, view: str) -> AsyncIterator[CancellationToken]:
        """Issue a token for ``(session, view)``, superseding the one before it.

        The gate is dropped once its current request finishes, so idle
        sessions hold no state.
        """
        key = (session, view)
        gate = self.gates.get(key)
        if gate is None:
            gate = self.gates[key] = RequestGate()
        token = gate.begin()
        try:
            yield token
        finally:
            if gate.current is token and self.gates.get(key) is gate:
                del self.gates[key]

    async def _fetch(self, filters: QueryFilters, token: CancellationToken) -> AggregateResult:
        result = await self.aggregator.fetch_all_with_status(filters, token)
        self._ensure_current(token)
        return result

    def _ensure_current(self, token: CancellationToken) -> None:
        if token.cancelled:
            logger.info("Discarding result of superseded %s", token.label)
            raise FetchCancelled(f"{token.label} was superseded by a newer request")

    async def close(self):
        await self.aggregator.close()


def no_articles_error(result: AggregateResult) -> Optional[str]:
    """User-facing message when the merged feed is empty."""
    if result.articles:
        return None
    return NO_ARTICLES_MESSAGE


# Global feed service instance
news_feed_service = NewsFeedService()
