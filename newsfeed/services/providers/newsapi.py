import logging
import re
from typing import Any, Dict, List, Optional, Tuple

from ...core.config import settings
from ...models.schemas import Article, ProviderTag, QueryFilters
from ...utils.redaction import sanitize
from ..cancellation import CancellationToken
from .base import SourceClient, optional_text, text

logger = logging.getLogger(__name__)

# NewsAPI's own category vocabulary; only a subset is offered as a filter.
NEWSAPI_CATEGORIES = ["business", "technology", "sports", "science"]

# The sources endpoint lists hundreds of outlets; keep the picker short.
MAX_LISTED_SOURCES = 20


class NewsApiClient(SourceClient):
    """
    Client for NewsAPI.org.

    Uses ``/v2/everything`` when a search query is present and
    ``/v2/top-headlines`` otherwise.  NewsAPI refuses ``country`` together
    with ``sources``, so the default ``country=us`` is only added to
    top-headlines requests that do not name sources.  NewsAPI only accepts a
    single category per request; the first requested category is sent and
    stamped onto every returned article.
    """

    provider = ProviderTag.NEWSAPI
    display_name = "NewsAPI"
    base_url = "https://newsapi.org/v2"
    default_page_size = 10

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        super().__init__(api_key if api_key is not None else settings.NEWSAPI_KEY, **kwargs)

    def build_request(self, filters: QueryFilters) -> Tuple[str, Dict[str, str]]:
        params: Dict[str, str] = {
            "apiKey": self.api_key or "",
            "page": str(filters.page),
            "pageSize": str(filters.page_size or self.default_page_size),
        }
        query = (filters.query or "").strip()
        if query:
            params["q"] = query
        if filters.sources:
            params["sources"] = ",".join(filters.sources)
        if filters.categories and filters.categories[0]:
            params["category"] = filters.categories[0]
        if filters.from_date:
            params["from"] = filters.from_date
        if filters.to_date:
            params["to"] = filters.to_date

        endpoint = "everything" if query else "top-headlines"
        if endpoint == "top-headlines" and not filters.sources:
            params["country"] = "us"
        return f"{self.base_url}/{endpoint}", params

    async def _fetch(self, filters: QueryFilters, cancel_token: Optional[CancellationToken]) -> List[Article]:
        url, params = self.build_request(filters)
        data = await self._request_json(url, params)

        if not isinstance(data, dict) or data.get("status") != "ok" or not data.get("articles"):
            logger.warning("NewsAPI returned no articles or error status")
            return []

        category = filters.categories[0] if filters.categories and filters.categories[0] else None
        return [
            self.normalize(item, category)
            for item in data["articles"]
            if isinstance(item, dict)
        ]

    def normalize(self, item: Dict[str, Any], category: Optional[str] = None) -> Article:
        title = text(item.get("title"))
        description = text(item.get("description"))
        source = item.get("source") or {}
        return Article(
            id=f"newsapi-{slugify(title)}",
            title=title,
            description=description,
            content=text(item.get("content")) or description,
            url=text(item.get("url")),
            image_url=text(item.get("urlToImage")),
            source=text(source.get("name")) if isinstance(source, dict) else "",
            author=optional_text(item.get("author")),
            category=category,
            published_at=text(item.get("publishedAt")),
            provider=self.provider,
        )

    async def list_sources(self) -> List[str]:
        if not self.is_configured:
            return []
        try:
            data = await self._request_json(f"{self.base_url}/sources", {"apiKey": self.api_key or ""})
        except Exception as e:
            logger.warning("Error fetching sources from NewsAPI: %s", sanitize(e))
            return []
        sources = data.get("sources") if isinstance(data, dict) else None
        if not sources:
            return []
        names = [text(s.get("name")) for s in sources if isinstance(s, dict)]
        return [n for n in names if n][:MAX_LISTED_SOURCES]

    async def list_categories(self) -> List[str]:
        return list(NEWSAPI_CATEGORIES)


def slugify(title: str) -> str:
    return re.sub(r"\s+", "-", title).lower()
