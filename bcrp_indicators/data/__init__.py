"""Data fetching and caching."""

from .client import BcrpClient
from .cache import CacheMode, SeriesCache
from .errors import PayloadError, SeriesUnavailableError
from .fetcher import SeriesFetcher

__all__ = [
    "BcrpClient",
    "CacheMode",
    "PayloadError",
    "SeriesCache",
    "SeriesFetcher",
    "SeriesUnavailableError",
]
