"""Shared stand-ins for tests: article factory, fake clock and stub provider client."""
from __future__ import annotations

import asyncio
from typing import List, Optional, Sequence

from newsfeed.models.schemas import Article, ProviderTag, QueryFilters, SourceResult, SourceStatus


def make_article(
    id: str = "a1",
    title: str = "Title",
    description: str = "",
    content: str = "",
    source: str = "Outlet",
    author: Optional[str] = None,
    category: Optional[str] = None,
    published_at: str = "2024-01-01T00:00:00Z",
    provider: ProviderTag = ProviderTag.NEWSAPI,
) -> Article:
    return Article(
        id=id,
        title=title,
        description=description,
        content=content,
        url=f"https://example.com/{id}",
        source=source,
        author=author,
        category=category,
        published_at=published_at,
        provider=provider,
    )


class FakeClock:
    """Monotonic clock stand-in that only moves when told to."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubClient:
    """Provider client stand-in returning canned articles with a canned status."""

    def __init__(
        self,
        provider: ProviderTag,
        articles: Sequence[Article] = (),
        status: Optional[SourceStatus] = None,
        sources: Sequence[str] = (),
        categories: Sequence[str] = (),
        gate: Optional[asyncio.Event] = None,
    ):
        self.provider = provider
        self.display_name = provider.value
        self.articles = list(articles)
        self.status = status or (SourceStatus.OK if articles else SourceStatus.EMPTY)
        self.sources = list(sources)
        self.categories = list(categories)
        self.gate = gate
        self.calls: List[QueryFilters] = []
        self.closed = False

    async def fetch_with_status(self, filters: QueryFilters, cancel_token=None) -> SourceResult:
        self.calls.append(filters)
        if self.gate is not None:
            await self.gate.wait()
        return SourceResult(provider=self.provider, articles=list(self.articles), status=self.status)

    async def fetch_articles(self, filters: QueryFilters, cancel_token=None) -> List[Article]:
        return (await self.fetch_with_status(filters, cancel_token)).articles

    async def list_sources(self) -> List[str]:
        return list(self.sources)

    async def list_categories(self) -> List[str]:
        return list(self.categories)

    async def close(self):
        self.closed = True
