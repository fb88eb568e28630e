"""Resilient BCRP series fetcher with cache fallback."""

import asyncio
import logging
from typing import Awaitable, Callable, Iterable

from bcrp_indicators.config import ALL_INDICATORS, Settings
from bcrp_indicators.data.cache import CacheMode, SeriesCache, SeriesStore
from bcrp_indicators.data.client import BcrpClient
from bcrp_indicators.data.dates import normalize_end, normalize_start
from bcrp_indicators.data.errors import SeriesUnavailableError
from bcrp_indicators.data.strategies import (
    AnnualPageStrategy,
    DatelessStrategy,
    FetchRequest,
    PrimaryStrategy,
    Strategy,
    StrategyFailure,
    StrategySuccess,
    request_series,
)
from bcrp_indicators.indicators.sanitizer import (
    clip_outliers,
    sanitize_record,
    smooth_rolling,
)
from bcrp_indicators.models.series_data import FetchResult, SeriesRecord


logger = logging.getLogger(__name__)


class SeriesFetcher:
    """Fetches BCRP series through ordered fallbacks, sanitizing every result."""

    def __init__(
        self,
        client: BcrpClient,
        cache: SeriesStore | None = None,
        settings: Settings | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        strategies: list[Strategy] | None = None,
    ) -> None:
        self.client = client
        self.cache = cache
        self.settings = settings or client.settings
        self.settings.validate()
        self.strategies = strategies if strategies is not None else self._default_strategies(sleep)

    def _default_strategies(self, sleep) -> list[Strategy]:
        timeout = self.settings.timeout
        return [
            PrimaryStrategy(
                self.client,
                max_attempts=self.settings.max_attempts,
                backoff_base=self.settings.backoff_base,
                timeout=timeout,
                sleep=sleep,
            ),
            DatelessStrategy(self.client, timeout=timeout),
            AnnualPageStrategy(self.client, timeout=timeout),
        ]

    async def _store(self, code: str, record: SeriesRecord) -> None:
        """Best-effort cache write."""
        if self.cache is None:
            return
        try:
            await self.cache.upsert(code, record)
        except Exception as e:
            logger.warning(f"Could not cache {code}: {e}")

    async def _from_cache(
        self, code: str, mode: CacheMode, failures: list[StrategyFailure]
    ) -> SeriesRecord | None:
        if self.cache is None:
            return None
        try:
            entry = await self.cache.get(code, mode)
        except Exception as e:
            failures.append(StrategyFailure(f"cache ({mode.value})", f"lookup failed: {e}"))
            return None
        if entry is None:
            failures.append(StrategyFailure(f"cache ({mode.value})", "no entry"))
            return None
        return sanitize_record(entry.record)

    async def fetch_series(
        self,
        code: str,
        date_from: str | None = None,
        date_to: str | None = None,
        prefer_cache: bool = False,
    ) -> FetchResult:
        """
        Fetch a single series.

        Args:
            code: BCRP indicator code
            date_from: Start period, YYYY-MM or YYYY-MM-DD
            date_to: End period, YYYY-MM or YYYY-MM-DD
            prefer_cache: Return a same-day cached copy without going live

        Returns:
            FetchResult with the sanitized record; `stale` is set when the
            record came from an out-of-date cache entry

        Raises:
            ValueError: if the code is empty or a date is malformed
            SeriesUnavailableError: if every strategy and the cache failed
        """
        if not code or not code.strip():
            raise ValueError("Indicator code is required")
        code = code.strip()

        request = FetchRequest(
            code=code,
            date_from=normalize_start(date_from),
            date_to=normalize_end(date_to),
        )
        failures: list[StrategyFailure] = []
        logger.info(f"Fetching {code} ({request.date_from} to {request.date_to})...")

        if prefer_cache:
            cached = await self._from_cache(code, CacheMode.FRESH, [])
            if cached is not None:
                logger.info(f"  Using today's cached copy of {code}")
                return FetchResult(record=cached, source="cache (fresh)")

        for strategy in self.strategies:
            for outcome in await strategy.attempt(request):
                if isinstance(outcome, StrategySuccess):
                    record = sanitize_record(outcome.record)
                    logger.info(f"  {outcome.strategy}: {len(record.points)} points for {code}")
                    await self._store(code, record)
                    return FetchResult(
                        record=record, source=outcome.strategy, failures=tuple(failures)
                    )
                failures.append(outcome)

        logger.warning(f"All live strategies failed for {code}, checking cache")

        cached = await self._from_cache(code, CacheMode.FRESH, failures)
        if cached is not None:
            return FetchResult(record=cached, source="cache (fresh)", failures=tuple(failures))

        cached = await self._from_cache(code, CacheMode.FORCED, failures)
        if cached is not None:
            logger.warning(f"Using possibly outdated cached data for {code}")
            return FetchResult(
                record=cached, source="cache (forced)", stale=True, failures=tuple(failures)
            )

        error = SeriesUnavailableError(code, failures)
        logger.error(str(error))
        raise error

    async def fetch_many(
        self,
        codes: Iterable[str],
        date_from: str | None = None,
        date_to: str | None = None,
    ) -> dict[str, FetchResult]:
        """
        Fetch several series concurrently.

        Returns:
            Dict mapping code to result; codes that failed are left out
        """
        codes = list(codes)
        outcomes = await asyncio.gather(
            *(self.fetch_series(code, date_from, date_to) for code in codes),
            return_exceptions=True,
        )

        results = {}
        errors = {}
        for code, outcome in zip(codes, outcomes):
            if isinstance(outcome, FetchResult):
                results[code] = outcome
            elif isinstance(outcome, Exception):
                logger.error(f"Error fetching {code}: {outcome}")
                errors[code] = str(outcome)
            else:
                raise outcome

        if errors:
            logger.warning(f"Failed to fetch {len(errors)} series: {list(errors.keys())}")

        return results

    async def _fetch_recent_one(self, code: str, limit: int) -> SeriesRecord:
        request = FetchRequest(code=code)
        outcome = await request_series(
            self.client,
            "recent",
            request,
            with_dates=False,
            timeout=self.settings.recent_timeout,
        )
        if isinstance(outcome, StrategyFailure):
            raise SeriesUnavailableError(code, [outcome])
        record = outcome.record
        return sanitize_record(record.with_points(record.points[-limit:]))

    async def fetch_recent(self, codes: Iterable[str], limit: int = 30) -> dict[str, SeriesRecord]:
        """
        Latest observations for several (typically daily) series.

        One dateless request per code with the short timeout, keeping the
        last `limit` periods. Failed codes are logged and left out.
        """
        codes = list(codes)
        outcomes = await asyncio.gather(
            *(self._fetch_recent_one(code, limit) for code in codes),
            return_exceptions=True,
        )

        results = {}
        for code, outcome in zip(codes, outcomes):
            if isinstance(outcome, SeriesRecord):
                results[code] = outcome
            elif isinstance(outcome, Exception):
                logger.error(f"Error fetching recent data for {code}: {outcome}")
            else:
                raise outcome
        return results


def _print_record(record: SeriesRecord, tail: int = 12) -> None:
    df = record.to_frame()
    print(f"\n{record.code} - {record.name} ({len(df)} points)")
    print("-" * 50)
    if df.empty:
        print("  (no data)")
        return
    print(df.tail(tail).to_string())


async def _run(args) -> int:
    settings = Settings()
    settings.validate()
    cache = SeriesCache(settings.db_path)

    if args.status:
        status = cache.get_cache_status()
        print("\nCache Status:")
        print("-" * 70)
        for code, info in sorted(status.items()):
            last = info["last_date"] or "N/A"
            print(f"{code:12} | {info['point_count']:6} pts | Last: {last:10} | {info['name']}")
        return 0

    async with BcrpClient(settings) as client:
        fetcher = SeriesFetcher(client, cache, settings)

        if args.recent:
            codes = [args.code] if args.code else list(ALL_INDICATORS)
            records = await fetcher.fetch_recent(codes)
            for record in records.values():
                _print_record(record, tail=5)
            return 0 if records else 1

        if args.all:
            results = await fetcher.fetch_many(ALL_INDICATORS, args.date_from, args.date_to)
            for code in ALL_INDICATORS:
                result = results.get(code)
                if result is None:
                    print(f"  {code}: unavailable")
                else:
                    flag = " (stale)" if result.stale else ""
                    print(f"  {code}: {len(result.record.points)} points via {result.source}{flag}")
            return 0 if results else 1

        try:
            result = await fetcher.fetch_series(
                args.code, args.date_from, args.date_to, prefer_cache=args.prefer_cache
            )
        except SeriesUnavailableError as e:
            print(f"Unavailable: {e}")
            return 1

        record = result.record
        if args.clip is not None:
            record = record.with_points(clip_outliers(record.points, args.clip))
        if args.smooth is not None:
            record = record.with_points(smooth_rolling(record.points, args.smooth))

        if result.stale:
            print("Warning: live data unavailable, showing possibly outdated cached data")
        _print_record(record)
        return 0


def main() -> None:
    """CLI entry point for fetching series."""
    import argparse
    import sys

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Fetch BCRP indicator series")
    parser.add_argument("--code", type=str, help="Indicator code, e.g. PN01271PM")
    parser.add_argument("--from", dest="date_from", help="Start period (YYYY-MM or YYYY-MM-DD)")
    parser.add_argument("--to", dest="date_to", help="End period (YYYY-MM or YYYY-MM-DD)")
    parser.add_argument("--all", action="store_true", help="Fetch every catalog indicator")
    parser.add_argument("--recent", action="store_true", help="Latest 30 observations only")
    parser.add_argument("--status", action="store_true", help="Show cache status and exit")
    parser.add_argument(
        "--prefer-cache",
        action="store_true",
        help="Use today's cached copy when available",
    )
    parser.add_argument("--smooth", type=int, help="Apply a rolling mean of this window")
    parser.add_argument("--clip", type=float, help="Clip outliers beyond this many std devs")
    args = parser.parse_args()

    if not (args.code or args.all or args.status or args.recent):
        parser.error("one of --code, --all, --recent or --status is required")

    try:
        sys.exit(asyncio.run(_run(args)))
    except ValueError as e:
        print(f"Configuration error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
