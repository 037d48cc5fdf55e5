"""
Application configuration management.

This module defines a ``Settings`` dataclass that reads its values from
environment variables at instantiation time.  Each configuration option
has a reasonable default which can be overridden by setting the
corresponding environment variable.  Provider API keys are optional; a
provider whose key is absent (or still set to the placeholder copied from
the example ``.env``) is simply skipped by its client.
"""

from dataclasses import dataclass, field
import os
from typing import Dict, List, Optional


# Placeholder values shipped in example environment files.  A key equal to
# one of these is treated exactly like a missing key.
PLACEHOLDER_KEYS = {
    "newsapi": "your_newsapi_key_here",
    "guardian": "your_guardian_api_key_here",
    "nytimes": "your_nytimes_api_key_here",
}


@dataclass
class Settings:
    """Configuration values loaded from environment variables with defaults."""

    # Application settings
    ENVIRONMENT: str = field(default_factory=lambda: os.getenv("ENVIRONMENT", "development"))
    PORT: int = field(default_factory=lambda: int(os.getenv("PORT", "8000")))
    LOG_LEVEL: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    # Provider credentials
    NEWSAPI_KEY: Optional[str] = field(default_factory=lambda: os.getenv("NEWSAPI_KEY"))
    GUARDIAN_API_KEY: Optional[str] = field(default_factory=lambda: os.getenv("GUARDIAN_API_KEY"))
    NYTIMES_API_KEY: Optional[str] = field(default_factory=lambda: os.getenv("NYTIMES_API_KEY"))

    # HTTP behaviour shared by every provider client
    REQUEST_TIMEOUT_SECONDS: float = field(default_factory=lambda: float(os.getenv("REQUEST_TIMEOUT_SECONDS", "10")))
    DEFAULT_PAGE_SIZE: int = field(default_factory=lambda: int(os.getenv("DEFAULT_PAGE_SIZE", "20")))

    # The New York Times article search API is aggressively rate limited.
    # Responses are cached for NYTIMES_CACHE_SECONDS and HTTP 429 replies are
    # retried with exponential backoff.
    NYTIMES_CACHE_SECONDS: float = field(default_factory=lambda: float(os.getenv("NYTIMES_CACHE_SECONDS", "600")))
    NYTIMES_MAX_RETRIES: int = field(default_factory=lambda: int(os.getenv("NYTIMES_MAX_RETRIES", "3")))
    NYTIMES_RETRY_INITIAL_DELAY: float = field(default_factory=lambda: float(os.getenv("NYTIMES_RETRY_INITIAL_DELAY", "1.0")))
    NYTIMES_RETRY_BACKOFF: float = field(default_factory=lambda: float(os.getenv("NYTIMES_RETRY_BACKOFF", "2.0")))
    NYTIMES_MAX_PRE_DELAY: float = field(default_factory=lambda: float(os.getenv("NYTIMES_MAX_PRE_DELAY", "1.0")))

    # Preference store
    PREFERENCES_DB_PATH: str = field(default_factory=lambda: os.getenv("PREFERENCES_DB_PATH", "newsfeed_preferences.db"))

    # CORS
    CORS_ORIGINS: List[str] = field(default_factory=lambda: [
        "http://localhost:3000",
        "http://localhost:5000",
        "http://localhost:8000",
    ])

    @property
    def is_development(self) -> bool:
        """Return True if the environment is set to development."""
        return self.ENVIRONMENT.lower() == "development"

    @property
    def configured_providers(self) -> Dict[str, bool]:
        """Map each provider tag to whether a usable API key is configured."""
        keys = {
            "newsapi": self.NEWSAPI_KEY,
            "guardian": self.GUARDIAN_API_KEY,
            "nytimes": self.NYTIMES_API_KEY,
        }
        return {name: is_usable_key(key, name) for name, key in keys.items()}


def is_usable_key(key: Optional[str], provider: str) -> bool:
    """Return True if ``key`` is present and not the provider's placeholder."""
    if not key or not key.strip():
        return False
    return key.strip() != PLACEHOLDER_KEYS.get(provider)


# Instantiate a single settings object that can be imported across the
# application.
settings = Settings()
