"""SQLite cache for sanitized series records."""

import asyncio
import logging
import sqlite3
from contextlib import closing
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Protocol

from bcrp_indicators.models.series_data import CacheEntry, SeriesRecord, TimeSeriesPoint


logger = logging.getLogger(__name__)


class CacheMode(str, Enum):
    """FRESH only returns entries retrieved today; FORCED ignores age."""

    FRESH = "fresh"
    FORCED = "forced"


class SeriesStore(Protocol):
    async def get(self, code: str, mode: CacheMode = CacheMode.FRESH) -> CacheEntry | None: ...

    async def upsert(self, code: str, record: SeriesRecord) -> None: ...


class SeriesCache:
    """SQLite-based cache keyed by indicator code, last writer wins."""

    def __init__(
        self, db_path: Path, clock: Callable[[], datetime] = datetime.now
    ) -> None:
        self.db_path = db_path
        self.clock = clock
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection with row factory."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        """Initialize database schema."""
        with closing(self._get_connection()) as conn, conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS series_records (
                    code TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    retrieved_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS series_points (
                    code TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    date TEXT NOT NULL,
                    value REAL,
                    PRIMARY KEY (code, position)
                )
            """)

    def _read(self, code: str) -> CacheEntry | None:
        with closing(self._get_connection()) as conn, conn:
            head = conn.execute(
                "SELECT name, retrieved_at FROM series_records WHERE code = ?",
                (code,),
            ).fetchone()
            if head is None:
                return None
            rows = conn.execute(
                "SELECT date, value FROM series_points WHERE code = ? ORDER BY position",
                (code,),
            ).fetchall()

        record = SeriesRecord(
            code=code,
            name=head["name"],
            points=[TimeSeriesPoint(date=row["date"], value=row["value"]) for row in rows],
        )
        return CacheEntry(record=record, retrieved_at=datetime.fromisoformat(head["retrieved_at"]))

    def _write(self, code: str, record: SeriesRecord, retrieved_at: datetime) -> None:
        rows = [(code, i, p.date, p.value) for i, p in enumerate(record.points)]
        with closing(self._get_connection()) as conn, conn:
            conn.execute("DELETE FROM series_points WHERE code = ?", (code,))
            conn.executemany(
                "INSERT INTO series_points (code, position, date, value) VALUES (?, ?, ?, ?)",
                rows,
            )
            conn.execute(
                """
                INSERT OR REPLACE INTO series_records (code, name, retrieved_at)
                VALUES (?, ?, ?)
                """,
                (code, record.name, retrieved_at.isoformat()),
            )

    def get_entry(self, code: str, mode: CacheMode = CacheMode.FRESH) -> CacheEntry | None:
        """
        Read a cached record.

        Args:
            code: Indicator code
            mode: FRESH returns only entries retrieved on the current calendar
                day; FORCED returns whatever is stored

        Returns:
            CacheEntry or None if absent (or not fresh in FRESH mode)
        """
        entry = self._read(code)
        if entry is None:
            return None
        if mode is CacheMode.FRESH and not entry.is_fresh(self.clock().date()):
            return None
        return entry

    def store(self, code: str, record: SeriesRecord) -> None:
        """Insert or replace the record for a code."""
        self._write(code, record, self.clock())

    def delete(self, code: str) -> None:
        with closing(self._get_connection()) as conn, conn:
            conn.execute("DELETE FROM series_points WHERE code = ?", (code,))
            conn.execute("DELETE FROM series_records WHERE code = ?", (code,))

    async def get(self, code: str, mode: CacheMode = CacheMode.FRESH) -> CacheEntry | None:
        return await asyncio.to_thread(self.get_entry, code, mode)

    async def upsert(self, code: str, record: SeriesRecord) -> None:
        await asyncio.to_thread(self.store, code, record)
        logger.info(f"Cached {len(record.points)} points for {code}")

    def get_cache_status(self) -> dict[str, dict]:
        """Get status of cached data for each code."""
        # Period labels such as "Ene.2011" don't sort, so use stored order
        with closing(self._get_connection()) as conn, conn:
            rows = conn.execute("""
                SELECT
                    r.code,
                    r.name,
                    r.retrieved_at,
                    (SELECT COUNT(*) FROM series_points p
                     WHERE p.code = r.code) as point_count,
                    (SELECT p.date FROM series_points p
                     WHERE p.code = r.code ORDER BY p.position LIMIT 1) as first_date,
                    (SELECT p.date FROM series_points p
                     WHERE p.code = r.code ORDER BY p.position DESC LIMIT 1) as last_date
                FROM series_records r
                ORDER BY r.code
            """).fetchall()

        return {
            row["code"]: {
                "name": row["name"],
                "point_count": row["point_count"],
                "first_date": row["first_date"],
                "last_date": row["last_date"],
                "retrieved_at": row["retrieved_at"],
            }
            for row in rows
        }
