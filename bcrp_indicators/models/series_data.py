"""Data models for BCRP time series."""

import math
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Iterable

import pandas as pd


class Frequency(str, Enum):
    """Publication frequency of an indicator."""

    DAILY = "daily"
    MONTHLY = "monthly"
    ANNUAL = "annual"


@dataclass(frozen=True)
class Indicator:
    """Catalog entry for a BCRP indicator."""

    code: str
    name: str
    frequency: Frequency
    unit: str


@dataclass(frozen=True)
class TimeSeriesPoint:
    """Single observation; date is a logical period label, not an instant."""

    date: str
    value: float | None

    def is_missing(self) -> bool:
        """True for None or NaN values."""
        return self.value is None or math.isnan(self.value)


@dataclass(frozen=True)
class SeriesRecord:
    """An indicator code, its display name and its ordered observations."""

    code: str
    name: str
    points: tuple[TimeSeriesPoint, ...] = ()

    def __post_init__(self) -> None:
        if not self.code or not self.code.strip():
            raise ValueError("Series code must not be empty")
        # Accept any iterable but store an immutable tuple
        object.__setattr__(self, "points", tuple(self.points))

    def with_points(self, points: Iterable[TimeSeriesPoint]) -> "SeriesRecord":
        """Return a copy of this record holding different points."""
        return SeriesRecord(code=self.code, name=self.name, points=tuple(points))

    def values(self) -> list[float | None]:
        return [p.value for p in self.points]

    def to_frame(self) -> pd.DataFrame:
        """
        Tabular view of the series.

        Returns:
            DataFrame indexed by period label with a 'value' column
        """
        if not self.points:
            return pd.DataFrame(columns=["value"])

        df = pd.DataFrame(
            {
                "date": [p.date for p in self.points],
                "value": pd.to_numeric(self.values(), errors="coerce"),
            }
        )
        df.set_index("date", inplace=True)
        return df


@dataclass(frozen=True)
class CacheEntry:
    """Last sanitized record stored for a code and when it was retrieved."""

    record: SeriesRecord
    retrieved_at: datetime

    def is_fresh(self, today: date) -> bool:
        """Freshness is by calendar day only, not by elapsed time."""
        return self.retrieved_at.date() == today


@dataclass(frozen=True)
class FetchResult:
    """Outcome of a successful fetch."""

    record: SeriesRecord
    source: str
    stale: bool = False
    failures: tuple = field(default=())
