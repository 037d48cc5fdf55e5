import asyncio
import logging
from typing import List, Optional, Sequence

from ..models.schemas import AggregateResult, Article, QueryFilters, SourceResult
from ..utils.dates import sort_key
from .cancellation import CancellationToken
from .providers.base import SourceClient
from .providers.guardian import GuardianClient
from .providers.newsapi import NewsApiClient
from .providers.nytimes import NYTimesClient

logger = logging.getLogger(__name__)


class Aggregator:
    """
    Fans a request out to every provider client at once and merges the
    results into one list, newest first.

    Provider clients swallow their own failures, so a failed provider shows
    up here only as an empty contribution; the per-provider ``SourceResult``
    records the reason.  Every provider coming back empty yields an empty
    list, not an error.
    """

    def __init__(self, clients: Optional[Sequence[SourceClient]] = None):
        self.clients: List[SourceClient] = list(clients) if clients is not None else default_clients()

    async def fetch_all(
        self, filters: Optional[QueryFilters] = None, cancel_token: Optional[CancellationToken] = None
    ) -> List[Article]:
        result = await self.fetch_all_with_status(filters, cancel_token)
        return result.articles

    async def fetch_all_with_status(
        self, filters: Optional[QueryFilters] = None, cancel_token: Optional[CancellationToken] = None
    ) -> AggregateResult:
        filters = filters or QueryFilters()
        results: List[SourceResult] = list(await asyncio.gather(
            *(client.fetch_with_status(filters, cancel_token) for client in self.clients)
        ))

        articles: List[Article] = []
        for result in results:
            articles.extend(result.articles)
        articles = sort_by_date(articles)

        distribution = {r.provider.value: len(r.articles) for r in results}
        distribution["total"] = len(articles)
        logger.info("Article sources distribution: %s", distribution)
        if results and all(not r.articles for r in results):
            logger.error("All news sources returned no articles: %s", {r.provider.value: r.status.value for r in results})

        cancelled = cancel_token is not None and cancel_token.cancelled
        return AggregateResult(articles=articles, sources=results, cancelled=cancelled)

    async def available_sources(self) -> List[str]:
        """Union of the outlet names every provider can offer, in first-seen order."""
        lists = await asyncio.gather(*(client.list_sources() for client in self.clients))
        return _merge(lists)

    async def available_categories(self) -> List[str]:
        lists = await asyncio.gather(*(client.list_categories() for client in self.clients))
        return _merge(lists)

    async def close(self):
        for client in self.clients:
            try:
                await client.close()
            except Exception as e:
                logger.warning(f"Error closing {client.display_name} session: {e}")


def sort_by_date(articles: List[Article]) -> List[Article]:
    """Newest first; articles with unparseable dates go last, in input order."""
    return sorted(articles, key=lambda a: sort_key(a.published_at), reverse=True)


def default_clients() -> List[SourceClient]:
    return [NewsApiClient(), GuardianClient(), NYTimesClient()]


def _merge(lists: Sequence[List[str]]) -> List[str]:
    merged: List[str] = []
    seen = set()
    for values in lists:
        for value in values:
            if value and value not in seen:
                seen.add(value)
                merged.append(value)
    return merged
