import logging
from typing import Any, Dict, List, Optional, Tuple

from ...core.config import settings
from ...models.schemas import Article, ProviderTag, QueryFilters
from ...utils.redaction import sanitize
from ..cancellation import CancellationToken
from .base import SourceClient, optional_text, text

logger = logging.getLogger(__name__)

SHOW_FIELDS = "headline,trailText,thumbnail,body,byline"


class GuardianClient(SourceClient):
    """Client for The Guardian content API ``/search`` endpoint.

    Every article comes from a single outlet, so the ``sources`` and
    ``authors`` filters have no provider-side equivalent and are left to the
    filter engine.  Categories map to Guardian sections (OR-ed with ``|``).
    """

    provider = ProviderTag.GUARDIAN
    display_name = "The Guardian"
    base_url = "https://content.guardianapis.com"

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        super().__init__(api_key if api_key is not None else settings.GUARDIAN_API_KEY, **kwargs)

    def build_request(self, filters: QueryFilters) -> Tuple[str, Dict[str, str]]:
        params: Dict[str, str] = {
            "api-key": self.api_key or "",
            "page": str(filters.page),
            "page-size": str(filters.page_size or settings.DEFAULT_PAGE_SIZE),
            "show-fields": SHOW_FIELDS,
        }
        if filters.query and filters.query.strip():
            params["q"] = filters.query.strip()
        if filters.categories:
            params["section"] = "|".join(filters.categories)
        if filters.from_date:
            params["from-date"] = filters.from_date
        if filters.to_date:
            params["to-date"] = filters.to_date
        return f"{self.base_url}/search", params

    async def _fetch(self, filters: QueryFilters, cancel_token: Optional[CancellationToken]) -> List[Article]:
        url, params = self.build_request(filters)
        data = await self._request_json(url, params)
        results = _results(data)
        return [self.normalize(item) for item in results]

    def normalize(self, item: Dict[str, Any]) -> Article:
        fields = item.get("fields") or {}
        description = text(fields.get("trailText"))
        return Article(
            id=text(item.get("id")) or text(item.get("webUrl")),
            title=text(item.get("webTitle")) or text(fields.get("headline")),
            description=description,
            content=text(fields.get("body")) or description,
            url=text(item.get("webUrl")),
            image_url=text(fields.get("thumbnail")),
            source=self.display_name,
            author=optional_text(fields.get("byline")),
            category=optional_text(item.get("sectionName")),
            published_at=text(item.get("webPublicationDate")),
            provider=self.provider,
        )

    async def list_categories(self) -> List[str]:
        """Section titles from the ``/sections`` endpoint."""
        if not self.is_configured:
            return []
        try:
            data = await self._request_json(f"{self.base_url}/sections", {"api-key": self.api_key or ""})
        except Exception as e:
            logger.warning("Error fetching sections from Guardian API: %s", sanitize(e))
            return []
        titles = [text(section.get("webTitle")) for section in _results(data)]
        return [t for t in titles if t]


def _results(data: Any) -> List[Dict[str, Any]]:
    response = data.get("response") if isinstance(data, dict) else None
    results = response.get("results") if isinstance(response, dict) else None
    if not isinstance(results, list):
        return []
    return [r for r in results if isinstance(r, dict)]
