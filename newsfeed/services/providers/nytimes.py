"""
New York Times article search client.

The article search API has a tight per-minute quota, so this client is the
only one that layers extra resilience on top of the shared plumbing:

1. A fresh ``ResponseCache`` entry answers the request without any network
   call.
2. Before a live call the client waits a random fraction of a second to
   spread out bursts of requests.
3. HTTP 429 replies (and only those) are retried through ``RetryExecutor``.
4. When the live call still fails, whatever is cached is returned no matter
   how old; with nothing cached the result is empty.

The cache is a single slot: it holds the last successful response
regardless of which filters produced it.
"""
import asyncio
import logging
import random
from typing import Any, Callable, Dict, List, Optional, Tuple

from ...core.config import settings
from ...core.errors import is_rate_limited
from ...models.schemas import Article, ProviderTag, QueryFilters, SourceResult, SourceStatus
from ...utils.dates import compact_date
from ...utils.redaction import sanitize
from ..cache import ResponseCache
from ..cancellation import CancellationToken
from ..retry import RetryExecutor, RetryPolicy
from .base import SourceClient, ensure_unique_ids, optional_text, text

logger = logging.getLogger(__name__)

# Fewer results per call keeps us further from the quota.
RESULT_LIMIT = "3"

NYTIMES_CATEGORIES = ["Politics", "World"]


class NYTimesClient(SourceClient):
    provider = ProviderTag.NYTIMES
    display_name = "The New York Times"
    base_url = "https://api.nytimes.com/svc/search/v2"
    image_host = "https://www.nytimes.com/"

    def __init__(
        self,
        api_key: Optional[str] = None,
        cache: Optional[ResponseCache] = None,
        cache_max_age: Optional[float] = None,
        retry_policy: Optional[RetryPolicy] = None,
        executor: Optional[RetryExecutor] = None,
        max_pre_delay: Optional[float] = None,
        rng: Callable[[], float] = random.random,
        **kwargs,
    ):
        super().__init__(api_key if api_key is not None else settings.NYTIMES_API_KEY, **kwargs)
        self.cache = cache or ResponseCache()
        self.cache_max_age = cache_max_age if cache_max_age is not None else settings.NYTIMES_CACHE_SECONDS
        self.retry_policy = retry_policy or RetryPolicy(
            max_retries=settings.NYTIMES_MAX_RETRIES,
            initial_delay=settings.NYTIMES_RETRY_INITIAL_DELAY,
            backoff_factor=settings.NYTIMES_RETRY_BACKOFF,
            should_retry=is_rate_limited,
        )
        self.executor = executor or RetryExecutor(label=self.display_name)
        self.max_pre_delay = max_pre_delay if max_pre_delay is not None else settings.NYTIMES_MAX_PRE_DELAY
        self._rng = rng

    async def fetch_with_status(
        self, filters: QueryFilters, cancel_token: Optional[CancellationToken] = None
    ) -> SourceResult:
        if self.cache.is_fresh(self.cache_max_age):
            entry = self.cache.get()
            if entry is not None:
                logger.info("Using cached NY Times response to avoid rate limits")
                return SourceResult(provider=self.provider, articles=list(entry.data), status=SourceStatus.CACHED)
        return await super().fetch_with_status(filters, cancel_token)

    def _failure_result(self, error: Exception) -> SourceResult:
        entry = self.cache.get()
        if entry is None:
            return super()._failure_result(error)
        logger.warning(
            "Error fetching from NY Times API (%s); returning cached data from %.0fs ago",
            sanitize(error),
            self.cache.age() or 0.0,
        )
        return SourceResult(
            provider=self.provider,
            articles=list(entry.data),
            status=SourceStatus.STALE_CACHE,
            error=sanitize(error),
        )

    def build_request(self, filters: QueryFilters) -> Tuple[str, Dict[str, str]]:
        params: Dict[str, str] = {
            "api-key": self.api_key or "",
            "page": str(filters.page),
        }
        if filters.query and filters.query.strip():
            params["q"] = filters.query.strip()
        if filters.categories:
            params["fq"] = f"news_desk:({' '.join(filters.categories)})"
        if filters.from_date:
            params["begin_date"] = compact_date(filters.from_date)
        if filters.to_date:
            params["end_date"] = compact_date(filters.to_date)
        params["limit"] = RESULT_LIMIT
        return f"{self.base_url}/articlesearch.json", params

    async def _fetch(self, filters: QueryFilters, cancel_token: Optional[CancellationToken]) -> List[Article]:
        url, params = self.build_request(filters)

        await self._pre_delay(cancel_token)
        data = await self.executor.execute(
            lambda: self._request_json(url, params),
            self.retry_policy,
            cancel_token,
        )

        docs = _docs(data)
        if not docs:
            return []

        articles = ensure_unique_ids([self.normalize(doc) for doc in docs])
        self.cache.set(articles)
        return articles

    async def _pre_delay(self, cancel_token: Optional[CancellationToken]) -> None:
        delay = self._rng() * self.max_pre_delay
        if delay <= 0:
            return
        if cancel_token is not None:
            await cancel_token.sleep(delay)
        else:
            await asyncio.sleep(delay)

    def normalize(self, doc: Dict[str, Any]) -> Article:
        headline = doc.get("headline") or {}
        byline = doc.get("byline") or {}
        snippet = text(doc.get("snippet")) or text(doc.get("abstract"))
        return Article(
            id=text(doc.get("_id")) or text(doc.get("uri")) or text(doc.get("web_url")),
            title=text(headline.get("main")) if isinstance(headline, dict) else "",
            description=snippet,
            content=snippet,
            url=text(doc.get("web_url")),
            image_url=self._image_url(doc.get("multimedia")),
            source=self.display_name,
            author=_author(byline.get("original") if isinstance(byline, dict) else None),
            category=optional_text(doc.get("section_name")),
            published_at=text(doc.get("pub_date")),
            provider=self.provider,
        )

    def _image_url(self, multimedia: Any) -> str:
        if not isinstance(multimedia, list):
            return ""
        for media in multimedia:
            if isinstance(media, dict) and media.get("type") == "image" and media.get("url"):
                url = text(media["url"])
                if url.startswith("http"):
                    return url
                return f"{self.image_host}{url.lstrip('/')}"
        return ""

    async def list_categories(self) -> List[str]:
        return list(NYTIMES_CATEGORIES)


def _docs(data: Any) -> List[Dict[str, Any]]:
    response = data.get("response") if isinstance(data, dict) else None
    docs = response.get("docs") if isinstance(response, dict) else None
    if not isinstance(docs, list):
        return []
    return [d for d in docs if isinstance(d, dict)]


def _author(original: Any) -> Optional[str]:
    value = text(original)
    if value.lower().startswith("by "):
        value = value[3:].strip()
    return value or None
