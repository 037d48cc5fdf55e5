"""
Common plumbing for the provider clients.

A ``SourceClient`` turns ``QueryFilters`` into one HTTP GET against its
provider and normalizes the JSON payload into ``Article`` objects.  The
public entry points never raise: configuration problems, HTTP failures,
malformed payloads and cancellations all come back as an empty article
list.  ``fetch_with_status`` additionally reports *why* the list is empty
so callers and tests can tell "provider failed" from "provider had nothing".
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from ...core.config import is_usable_key, settings
from ...core.errors import (
    ConfigurationError,
    FetchCancelled,
    PermanentProviderError,
    ProviderError,
    TransientProviderError,
)
from ...models.schemas import Article, ProviderTag, QueryFilters, SourceResult, SourceStatus
from ...utils.redaction import sanitize
from ..cancellation import CancellationToken, check

logger = logging.getLogger(__name__)


class SourceClient:
    provider: ProviderTag
    display_name: str = ""
    base_url: str = ""

    def __init__(
        self,
        api_key: Optional[str],
        session: Optional[aiohttp.ClientSession] = None,
        timeout: Optional[float] = None,
    ):
        self.api_key = api_key.strip() if api_key else api_key
        self.session = session
        self._owns_session = session is None
        self.timeout = timeout if timeout is not None else settings.REQUEST_TIMEOUT_SECONDS

    @property
    def is_configured(self) -> bool:
        return is_usable_key(self.api_key, self.provider.value)

    async def _get_session(self) -> aiohttp.ClientSession:
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))
            self._owns_session = True
        return self.session

    async def close(self):
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()

    # ------------------------------------------------------------

    async def fetch_articles(
        self, filters: QueryFilters, cancel_token: Optional[CancellationToken] = None
    ) -> List[Article]:
        result = await self.fetch_with_status(filters, cancel_token)
        return result.articles

    async def fetch_with_status(
        self, filters: QueryFilters, cancel_token: Optional[CancellationToken] = None
    ) -> SourceResult:
        if not self.is_configured:
            error = ConfigurationError(f"{self.display_name} API key not set properly", provider=self.provider.value)
            logger.warning("%s", error)
            return SourceResult(provider=self.provider, status=SourceStatus.UNCONFIGURED, error=str(error))

        try:
            check(cancel_token)
            articles = await self._fetch(filters, cancel_token)
            check(cancel_token)
        except FetchCancelled:
            logger.info("%s fetch abandoned: request superseded", self.display_name)
            return SourceResult(provider=self.provider, status=SourceStatus.CANCELLED)
        except Exception as e:
            return self._failure_result(e)

        articles = ensure_unique_ids(articles)
        status = SourceStatus.OK if articles else SourceStatus.EMPTY
        logger.info("%s returned %d articles", self.display_name, len(articles))
        return SourceResult(provider=self.provider, articles=articles, status=status)

    def _failure_result(self, error: Exception) -> SourceResult:
        if isinstance(error, ProviderError):
            logger.warning("Error fetching from %s: %s", self.display_name, sanitize(error))
        else:
            logger.error("Unexpected error fetching from %s: %s", self.display_name, sanitize(error))
        return SourceResult(provider=self.provider, status=SourceStatus.FAILED, error=sanitize(error))

    async def _fetch(self, filters: QueryFilters, cancel_token: Optional[CancellationToken]) -> List[Article]:
        raise NotImplementedError

    # ------------------------------------------------------------

    async def _request_json(self, url: str, params: Dict[str, str]) -> Any:
        """GET ``url`` and decode its JSON body.

        HTTP 429 raises ``TransientProviderError``; every other failure
        (non-200 status, network error, timeout, non-JSON body) raises
        ``PermanentProviderError``.
        """
        session = await self._get_session()
        try:
            async with session.get(url, params=params) as resp:
                if resp.status == 429:
                    text = await resp.text()
                    raise TransientProviderError(
                        f"{self.display_name} rate limited (429): {text[:200]}",
                        provider=self.provider.value,
                        status=429,
                    )
                if resp.status != 200:
                    text = await resp.text()
                    raise PermanentProviderError(
                        f"{self.display_name} responded with status {resp.status}: {text[:200]}",
                        provider=self.provider.value,
                        status=resp.status,
                    )
                try:
                    return await resp.json(content_type=None)
                except (aiohttp.ContentTypeError, ValueError) as e:
                    raise PermanentProviderError(
                        f"{self.display_name} returned a non-JSON body: {e}",
                        provider=self.provider.value,
                        status=resp.status,
                    )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise PermanentProviderError(
                f"{self.display_name} request failed: {sanitize(e) or type(e).__name__}",
                provider=self.provider.value,
            )

    # Option lists for filter pickers; providers override what they can offer.

    async def list_sources(self) -> List[str]:
        return [self.display_name] if self.display_name else []

    async def list_categories(self) -> List[str]:
        return []


def ensure_unique_ids(articles: List[Article]) -> List[Article]:
    """Suffix repeated IDs (``-2``, ``-3`` ...) so IDs are unique within a batch."""
    seen: Dict[str, int] = {}
    unique: List[Article] = []
    for article in articles:
        count = seen.get(article.id, 0) + 1
        seen[article.id] = count
        if count > 1:
            article = article.model_copy(update={"id": f"{article.id}-{count}"})
        unique.append(article)
    return unique


def text(value: Any) -> str:
    """Coerce an optional provider field to a stripped string ('' when absent)."""
    if value is None:
        return ""
    return str(value).strip()


def optional_text(value: Any) -> Optional[str]:
    value = text(value)
    return value or None
