from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn
from contextlib import asynccontextmanager
import logging

# Import submodules relative to the newsfeed package so the app works both
# via ``python -m newsfeed.main`` and ``uvicorn newsfeed.main:app``.
from .api.routes import router as api_router
from .core.config import settings
from .core.database import init_db
from .services.feed import news_feed_service

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown logic for the FastAPI app."""
    logger.info("Starting up the news feed service...")
    await init_db()
    missing = [name for name, ok in settings.configured_providers.items() if not ok]
    if missing:
        logger.warning("No usable API key for: %s; those sources will return no articles", ", ".join(missing))
    try:
        yield
    finally:
        # Close provider HTTP sessions to avoid unclosed aiohttp client warnings.
        try:
            await news_feed_service.close()
        except Exception as e:
            logger.warning(f"Error closing provider sessions: {e}")
        logger.info("Shutting down the news feed service...")


# Initialize FastAPI app
app = FastAPI(
    title="News Feed Aggregator",
    description="Unified, filterable and personalized feed over NewsAPI, The Guardian and The New York Times",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check():
    return {"status": "ok", "message": "Service is healthy"}


# Mount all API routes
app.include_router(api_router, prefix="/api")

# Dev entry point
if __name__ == "__main__":
    uvicorn.run(
        "newsfeed.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.is_development
    )
