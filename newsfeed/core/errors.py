"""Exception hierarchy for the news feed pipeline.

Provider clients raise these internally and convert them to an empty
result at their public boundary; they never reach the aggregator.
"""
from typing import Optional


class NewsFeedError(Exception):
    """Base error for all newsfeed subsystems."""
    pass


class ProviderError(NewsFeedError):
    """A provider call failed."""

    def __init__(self, message: str, *, provider: str = "", status: Optional[int] = None):
        self.provider = provider
        self.status = status
        super().__init__(message)


class TransientProviderError(ProviderError):
    """The provider asked us to back off (HTTP 429).  Eligible for retry."""
    pass


class PermanentProviderError(ProviderError):
    """Bad credential, malformed request/response, network or non-429 HTTP failure."""
    pass


class ConfigurationError(NewsFeedError):
    """Missing or placeholder credential; detected before any network call."""

    def __init__(self, message: str, *, provider: str = ""):
        self.provider = provider
        super().__init__(message)


class FetchCancelled(NewsFeedError):
    """A newer request superseded this one."""
    pass


def is_rate_limited(error: BaseException) -> bool:
    """Return True only for the provider rate-limit condition."""
    return isinstance(error, TransientProviderError) and error.status == 429
