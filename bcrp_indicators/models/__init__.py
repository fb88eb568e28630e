"""Series data models."""

from bcrp_indicators.models.series_data import (
    CacheEntry,
    FetchResult,
    Frequency,
    Indicator,
    SeriesRecord,
    TimeSeriesPoint,
)

__all__ = [
    "CacheEntry",
    "FetchResult",
    "Frequency",
    "Indicator",
    "SeriesRecord",
    "TimeSeriesPoint",
]
