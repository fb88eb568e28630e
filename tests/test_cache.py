from __future__ import annotations

import asyncio
import sqlite3
from datetime import datetime
from pathlib import Path

import pytest

from bcrp_indicators.data.cache import CacheMode, SeriesCache
from bcrp_indicators.models.series_data import SeriesRecord, TimeSeriesPoint


class Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def _record(values, name="Reservas") -> SeriesRecord:
    return SeriesRecord(
        code="PD04650MD",
        name=name,
        points=[TimeSeriesPoint(date=f"2024-01-{i + 1:02d}", value=v) for i, v in enumerate(values)],
    )


def test_store_and_read_back_in_order(tmp_path: Path):
    cache = SeriesCache(tmp_path / "c.db", clock=Clock(datetime(2024, 5, 1, 9, 0)))

    cache.store("PD04650MD", _record([3.0, 1.0, 2.0]))
    entry = cache.get_entry("PD04650MD")

    assert entry is not None
    assert entry.record.name == "Reservas"
    assert entry.record.values() == [3.0, 1.0, 2.0]
    assert entry.retrieved_at == datetime(2024, 5, 1, 9, 0)


def test_fresh_lookup_compares_calendar_day_only(tmp_path: Path):
    clock = Clock(datetime(2024, 5, 1, 0, 1))
    cache = SeriesCache(tmp_path / "c.db", clock=clock)
    cache.store("PD04650MD", _record([1.0]))

    clock.now = datetime(2024, 5, 1, 23, 59)
    assert cache.get_entry("PD04650MD", CacheMode.FRESH) is not None

    clock.now = datetime(2024, 5, 2, 0, 0)
    assert cache.get_entry("PD04650MD", CacheMode.FRESH) is None
    assert cache.get_entry("PD04650MD", CacheMode.FORCED) is not None


def test_upsert_replaces_previous_record(tmp_path: Path):
    cache = SeriesCache(tmp_path / "c.db")

    asyncio.run(cache.upsert("PD04650MD", _record([1.0, 2.0, 3.0], name="old")))
    asyncio.run(cache.upsert("PD04650MD", _record([9.0], name="new")))
    entry = asyncio.run(cache.get("PD04650MD", CacheMode.FORCED))

    assert entry.record.name == "new"
    assert entry.record.values() == [9.0]


def test_missing_code_returns_none(tmp_path: Path):
    cache = SeriesCache(tmp_path / "c.db")
    assert asyncio.run(cache.get("NOPE", CacheMode.FORCED)) is None


def test_status_and_delete(tmp_path: Path):
    cache = SeriesCache(tmp_path / "c.db")
    cache.store("PD04650MD", _record([1.0, 2.0]))

    status = cache.get_cache_status()

    assert status["PD04650MD"]["point_count"] == 2
    assert status["PD04650MD"]["first_date"] == "2024-01-01"
    assert status["PD04650MD"]["last_date"] == "2024-01-02"

    cache.delete("PD04650MD")
    assert cache.get_cache_status() == {}


class TrackingCache(SeriesCache):
    def __init__(self, *args, **kwargs):
        self.opened: list[sqlite3.Connection] = []
        super().__init__(*args, **kwargs)

    def _get_connection(self) -> sqlite3.Connection:
        conn = super()._get_connection()
        self.opened.append(conn)
        return conn


def test_connections_are_closed_after_each_operation(tmp_path: Path):
    cache = TrackingCache(tmp_path / "c.db", clock=Clock(datetime(2024, 5, 1, 9, 0)))

    cache.store("PD04650MD", _record([1.0, 2.0]))
    cache.get_entry("PD04650MD")
    cache.get_cache_status()
    cache.delete("PD04650MD")

    assert len(cache.opened) == 5
    for conn in cache.opened:
        with pytest.raises(sqlite3.ProgrammingError):
            conn.execute("SELECT 1")
