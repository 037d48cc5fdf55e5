from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Dict
from datetime import datetime


class ProviderTag(str, Enum):
    NEWSAPI = "newsapi"
    GUARDIAN = "guardian"
    NYTIMES = "nytimes"


class SourceStatus(str, Enum):
    OK = "ok"
    EMPTY = "empty"
    UNCONFIGURED = "unconfigured"
    FAILED = "failed"
    CACHED = "cached"
    STALE_CACHE = "stale_cache"
    CANCELLED = "cancelled"


class Article(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Provider-specific ID, unique within one fetch batch")
    title: str = Field("", description="Article headline")
    description: str = Field("", description="Short summary or trail text")
    content: str = Field("", description="Best-effort body text; may equal the description")
    url: str = Field("", description="Canonical article URL")
    image_url: str = Field("", description="Lead image URL, empty string if none")
    source: str = Field("", description="Human-readable outlet name")
    author: Optional[str] = Field(None, description="Byline, if the provider exposes one")
    category: Optional[str] = Field(None, description="Provider-specific section or category")
    published_at: str = Field("", description="ISO-8601 publication timestamp")
    provider: ProviderTag = Field(..., description="Which provider client produced the article")


class QueryFilters(BaseModel):
    model_config = ConfigDict(frozen=True)

    query: Optional[str] = Field(None, description="Free-text search query")
    sources: List[str] = Field(default_factory=list, description="Outlet names to keep")
    categories: List[str] = Field(default_factory=list, description="Categories/sections to keep")
    authors: List[str] = Field(default_factory=list, description="Authors to keep")
    from_date: Optional[str] = Field(None, description="Inclusive lower bound (ISO date)")
    to_date: Optional[str] = Field(None, description="Inclusive upper bound, extended to end of day")
    page: int = Field(1, ge=1, description="1-based result page")
    page_size: Optional[int] = Field(None, ge=1, le=100, description="Results per page; provider default if unset")


class UserPreferences(BaseModel):
    model_config = ConfigDict(frozen=True)

    preferred_sources: List[str] = Field(default_factory=list)
    preferred_categories: List[str] = Field(default_factory=list)
    preferred_authors: List[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.preferred_sources or self.preferred_categories or self.preferred_authors)


class SourceResult(BaseModel):
    """Outcome of one provider call: the articles plus how they were obtained."""

    provider: ProviderTag
    articles: List[Article] = Field(default_factory=list)
    status: SourceStatus = SourceStatus.OK
    error: Optional[str] = None

    @property
    def from_cache(self) -> bool:
        return self.status in (SourceStatus.CACHED, SourceStatus.STALE_CACHE)


class AggregateResult(BaseModel):
    articles: List[Article] = Field(default_factory=list)
    sources: List[SourceResult] = Field(default_factory=list)
    cancelled: bool = False

    @property
    def failed_providers(self) -> List[ProviderTag]:
        return [r.provider for r in self.sources if r.status in (SourceStatus.FAILED, SourceStatus.STALE_CACHE)]


class SourceStatusResponse(BaseModel):
    provider: ProviderTag
    status: SourceStatus
    article_count: int = Field(..., description="Articles contributed by this provider")
    error: Optional[str] = Field(None, description="Diagnostic message when the provider failed")


class FeedResponse(BaseModel):
    articles: List[Article] = Field(..., description="Articles for the requested view")
    total_count: int = Field(..., description="Number of articles returned")
    sources: List[SourceStatusResponse] = Field(default_factory=list, description="Per-provider outcome")
    error: Optional[str] = Field(None, description="Set when no provider returned anything")
    generated_at: datetime = Field(..., description="Timestamp of feed generation (UTC)")
    processing_time_ms: int = Field(..., description="Time taken to build the response (in milliseconds)")


class FeedSnapshotResponse(BaseModel):
    articles: List[Article] = Field(..., description="Merged, date-sorted articles from every provider")
    filtered_articles: List[Article] = Field(..., description="Articles matching every active filter")
    personalized_articles: List[Article] = Field(..., description="Articles ordered by preference score")
    sources: List[SourceStatusResponse] = Field(default_factory=list)
    error: Optional[str] = None
    generated_at: datetime
    processing_time_ms: int


class FilterOptionsResponse(BaseModel):
    sources: List[str] = Field(..., description="Outlet names available for filtering")
    categories: List[str] = Field(..., description="Categories available for filtering")


class HealthResponse(BaseModel):
    status: str = Field(..., description="Overall API status ('ok' or 'unhealthy')")
    message: str = Field(..., description="Descriptive health message")
    timestamp: datetime = Field(..., description="Timestamp of health check (UTC)")
    providers: Dict[str, bool] = Field(..., description="Provider tag -> API key configured")


class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Error message returned from the server")
