from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
import time
import logging
from datetime import datetime, timezone
from typing import List, Optional

from ..models.schemas import (
    AggregateResult, ErrorResponse, FeedResponse, FeedSnapshotResponse, FilterOptionsResponse,
    HealthResponse, QueryFilters, SourceResult, SourceStatusResponse, UserPreferences,
)
from ..core.config import settings
from ..core.database import preference_store
from ..core.errors import FetchCancelled
from ..services.feed import news_feed_service, no_articles_error

logger = logging.getLogger(__name__)
router = APIRouter()

SUPERSEDED_DETAIL = "Request superseded by a newer request for the same view"

FEED_ERRORS = {
    409: {"model": ErrorResponse, "description": "Superseded by a newer request for the same view"},
    500: {"model": ErrorResponse, "description": "Feed could not be built"},
}
ERRORS = {500: {"model": ErrorResponse}}


def _split(value: Optional[str]) -> List[str]:
    """Comma-separated query parameter -> list of trimmed, non-empty values."""
    if not value:
        return []
    return [v.strip() for v in value.split(",") if v.strip()]


def get_filters(
    query: Optional[str] = Query(None, description="Free-text search query"),
    sources: Optional[str] = Query(None, description="Comma-separated outlet names"),
    categories: Optional[str] = Query(None, description="Comma-separated categories"),
    authors: Optional[str] = Query(None, description="Comma-separated authors"),
    from_date: Optional[str] = Query(None, description="Inclusive lower date bound (YYYY-MM-DD)"),
    to_date: Optional[str] = Query(None, description="Inclusive upper date bound (YYYY-MM-DD)"),
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1, le=100),
) -> QueryFilters:
    return QueryFilters(
        query=query,
        sources=_split(sources),
        categories=_split(categories),
        authors=_split(authors),
        from_date=from_date,
        to_date=to_date,
        page=page,
        page_size=page_size,
    )


def _status_rows(results: List[SourceResult]) -> List[SourceStatusResponse]:
    return [
        SourceStatusResponse(
            provider=r.provider,
            status=r.status,
            article_count=len(r.articles),
            error=r.error,
        )
        for r in results
    ]


def _feed_response(result: AggregateResult, start_time: float) -> FeedResponse:
    return FeedResponse(
        articles=result.articles,
        total_count=len(result.articles),
        sources=_status_rows(result.sources),
        error=no_articles_error(result),
        generated_at=datetime.now(timezone.utc),
        processing_time_ms=int((time.time() - start_time) * 1000),
    )


@router.get("/news", response_model=FeedSnapshotResponse, responses=FEED_ERRORS)
async def get_news(filters: QueryFilters = Depends(get_filters), user: str = "default"):
    """All views of the feed (everything, filtered, personalized) for the user's stored preferences."""
    start_time = time.time()
    try:
        preferences = await preference_store.load_preferences(user)
        snapshot = await news_feed_service.refresh(filters, preferences, session=user)
        return FeedSnapshotResponse(
            articles=snapshot.articles,
            filtered_articles=snapshot.filtered_articles,
            personalized_articles=snapshot.personalized_articles,
            sources=_status_rows(snapshot.sources),
            error=snapshot.error,
            generated_at=datetime.now(timezone.utc),
            processing_time_ms=int((time.time() - start_time) * 1000),
        )
    except FetchCancelled:
        raise HTTPException(status_code=409, detail=SUPERSEDED_DETAIL)
    except Exception as e:
        logger.error(f"Error fetching news: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch news articles. Please try again later.")


@router.get("/news/filtered", response_model=FeedResponse, responses=FEED_ERRORS)
async def get_filtered_news(filters: QueryFilters = Depends(get_filters), user: str = "default"):
    start_time = time.time()
    try:
        result = await news_feed_service.get_filtered_feed(filters, session=user)
        return _feed_response(result, start_time)
    except FetchCancelled:
        raise HTTPException(status_code=409, detail=SUPERSEDED_DETAIL)
    except Exception as e:
        logger.error(f"Error fetching filtered news: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch news articles. Please try again later.")


@router.get("/news/personalized", response_model=FeedResponse, responses=FEED_ERRORS)
async def get_personalized_news(filters: QueryFilters = Depends(get_filters), user: str = "default"):
    """The "for you" feed: ordered by preference score, newest first within a score."""
    start_time = time.time()
    try:
        preferences = await preference_store.load_preferences(user)
        result = await news_feed_service.get_personalized_feed(filters, preferences, session=user)
        return _feed_response(result, start_time)
    except FetchCancelled:
        raise HTTPException(status_code=409, detail=SUPERSEDED_DETAIL)
    except Exception as e:
        logger.error(f"Error fetching personalized news: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch news articles. Please try again later.")


@router.get("/news/options", response_model=FilterOptionsResponse, responses=ERRORS)
async def get_filter_options():
    """Outlet names and categories to offer in filter and preference pickers."""
    try:
        aggregator = news_feed_service.aggregator
        return FilterOptionsResponse(
            sources=await aggregator.available_sources(),
            categories=await aggregator.available_categories(),
        )
    except Exception as e:
        logger.error(f"Error getting filter options: {e}")
        raise HTTPException(status_code=500, detail="Failed to get filter options")


@router.get("/preferences/{user}", response_model=UserPreferences, responses=ERRORS)
async def get_preferences(user: str):
    try:
        return await preference_store.load_preferences(user)
    except Exception as e:
        logger.error(f"Error loading preferences: {e}")
        raise HTTPException(status_code=500, detail="Failed to load preferences")


@router.put("/preferences/{user}", response_model=UserPreferences, responses=ERRORS)
async def save_preferences(user: str, preferences: UserPreferences):
    try:
        return await preference_store.save_preferences(user, preferences)
    except Exception as e:
        logger.error(f"Error saving preferences: {e}")
        raise HTTPException(status_code=500, detail="Failed to save preferences")


@router.delete("/preferences/{user}", response_model=UserPreferences, responses=ERRORS)
async def reset_preferences(user: str):
    try:
        return await preference_store.reset_preferences(user)
    except Exception as e:
        logger.error(f"Error resetting preferences: {e}")
        raise HTTPException(status_code=500, detail="Failed to reset preferences")


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check with per-provider configuration status"""
    try:
        providers = settings.configured_providers
        configured = sum(providers.values())
        return HealthResponse(
            status="ok",
            message=f"Service is healthy ({configured}/{len(providers)} news providers configured)",
            timestamp=datetime.now(timezone.utc),
            providers=providers,
        )
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"status": "unhealthy", "message": str(e)}
        )
