"""Ordered fallback strategies for obtaining a series from the BCRP API.

Each strategy returns a list of tagged outcomes: zero or more failures,
optionally ending in a success. An empty list means the strategy does not
apply to the request. The fetcher walks the strategies in order and stops at
the first success.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Protocol, Union

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from bcrp_indicators.data.client import BcrpClient
from bcrp_indicators.data.errors import PayloadError
from bcrp_indicators.data.parsing import (
    annual_to_payload,
    extract_embedded_data,
    parse_series_payload,
)
from bcrp_indicators.models.series_data import SeriesRecord


logger = logging.getLogger(__name__)

# Statuses where the API sometimes accepts the same query without dates
DATELESS_TRIGGER_STATUSES = (403, 500)

RETRYABLE_STATUSES = (429, 500, 502, 503, 504)


@dataclass(frozen=True)
class StrategySuccess:
    strategy: str
    record: SeriesRecord


@dataclass(frozen=True)
class StrategyFailure:
    strategy: str
    reason: str
    status_code: int | None = None
    retryable: bool = False

    def __str__(self) -> str:
        return f"{self.strategy}: {self.reason}"


StrategyOutcome = Union[StrategySuccess, StrategyFailure]


@dataclass
class FetchRequest:
    """A single series request with normalized bounds."""

    code: str
    date_from: str | None = None
    date_to: str | None = None
    statuses: list[int] = field(default_factory=list)

    @property
    def has_dates(self) -> bool:
        return bool(self.date_from and self.date_to)


@dataclass(frozen=True)
class AnnualOverride:
    """Annual dataset served by the HTML results page."""

    slug: str
    name: str


# Codes whose JSON endpoint is unreliable, mapped to their results page
SPECIAL_HANDLING: dict[str, AnnualOverride] = {
    "PM04908AA": AnnualOverride(slug="PBI-nivel", name="PBI (millones S/)"),
    "PM05373BA": AnnualOverride(slug="PBI-var", name="PBI (var%)"),
}


class Strategy(Protocol):
    name: str

    async def attempt(self, request: FetchRequest) -> list[StrategyOutcome]: ...


async def request_series(
    client: BcrpClient,
    strategy: str,
    request: FetchRequest,
    with_dates: bool,
    timeout: float,
) -> StrategyOutcome:
    """
    One GET against the JSON API, classified into a tagged outcome.

    Observed HTTP statuses are appended to `request.statuses`.
    """
    date_from = request.date_from if with_dates else None
    date_to = request.date_to if with_dates else None

    try:
        response = await asyncio.wait_for(
            client.get_series(request.code, date_from, date_to, timeout=timeout),
            timeout=timeout,
        )
    except asyncio.TimeoutError:
        return StrategyFailure(strategy, f"timed out after {timeout:g}s", retryable=True)
    except httpx.TimeoutException as e:
        return StrategyFailure(strategy, f"timed out: {e!r}", retryable=True)
    except httpx.HTTPError as e:
        return StrategyFailure(strategy, f"network error: {e!r}", retryable=True)

    request.statuses.append(response.status_code)
    logger.info(f"{strategy} {request.code}: HTTP {response.status_code}")

    if not response.is_success:
        return StrategyFailure(
            strategy,
            f"HTTP {response.status_code} {response.reason_phrase}".strip(),
            status_code=response.status_code,
            retryable=response.status_code in RETRYABLE_STATUSES,
        )

    try:
        payload = response.json()
    except ValueError as e:
        return StrategyFailure(
            strategy, f"invalid JSON: {e}", status_code=response.status_code
        )

    try:
        record = parse_series_payload(request.code, payload)
    except PayloadError as e:
        return StrategyFailure(strategy, str(e), status_code=response.status_code)

    return StrategySuccess(strategy, record)


def _is_retryable(outcome: StrategyOutcome) -> bool:
    return isinstance(outcome, StrategyFailure) and outcome.retryable


class PrimaryStrategy:
    """Dated request with exponential backoff on transient failures."""

    name = "primary"

    def __init__(
        self,
        client: BcrpClient,
        max_attempts: int = 3,
        backoff_base: float = 2.0,
        timeout: float = 30.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.client = client
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self.timeout = timeout
        self.sleep = sleep

    def _log_retry(self, retry_state: RetryCallState) -> None:
        failure = retry_state.outcome.result()
        logger.warning(
            f"{failure.strategy} {retry_state.args[0].code}: {failure.reason}, "
            f"retrying in {retry_state.next_action.sleep:g}s"
        )

    async def attempt(self, request: FetchRequest) -> list[StrategyOutcome]:
        outcomes: list[StrategyOutcome] = []

        async def request_once(request: FetchRequest) -> StrategyOutcome:
            label = f"{self.name} (attempt {len(outcomes) + 1}/{self.max_attempts})"
            outcome = await request_series(
                self.client, label, request, with_dates=True, timeout=self.timeout
            )
            outcomes.append(outcome)
            return outcome

        # Delays are backoff_base ** attempt: 2s then 4s by default
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_base, exp_base=self.backoff_base),
            retry=retry_if_result(_is_retryable),
            sleep=self.sleep,
            before_sleep=self._log_retry,
            retry_error_callback=lambda retry_state: retry_state.outcome.result(),
            reraise=True,
        )
        outcome = await retrying(request_once, request)

        if isinstance(outcome, StrategyFailure) and not outcome.retryable:
            logger.warning(f"{outcome.strategy} {request.code}: {outcome.reason}, not retrying")
        return outcomes


class DatelessStrategy:
    """Repeat the query without its date range after a 403 or 500."""

    name = "dateless"

    def __init__(self, client: BcrpClient, timeout: float = 30.0) -> None:
        self.client = client
        self.timeout = timeout

    async def attempt(self, request: FetchRequest) -> list[StrategyOutcome]:
        if not request.has_dates:
            return []
        if not any(s in DATELESS_TRIGGER_STATUSES for s in request.statuses):
            return []

        logger.warning(f"Retrying {request.code} without date range")
        return [
            await request_series(
                self.client, self.name, request, with_dates=False, timeout=self.timeout
            )
        ]


class AnnualPageStrategy:
    """Scrape the annual results page for codes listed in SPECIAL_HANDLING."""

    name = "annual-page"

    def __init__(
        self,
        client: BcrpClient,
        overrides: dict[str, AnnualOverride] | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.client = client
        self.overrides = SPECIAL_HANDLING if overrides is None else overrides
        self.timeout = timeout

    async def _scrape(self, request: FetchRequest, override: AnnualOverride) -> StrategyOutcome:
        try:
            response = await asyncio.wait_for(
                self.client.get_annual_page(override.slug, timeout=self.timeout),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            return StrategyFailure(self.name, f"timed out after {self.timeout:g}s")
        except httpx.HTTPError as e:
            return StrategyFailure(self.name, f"network error: {e!r}")

        if not response.is_success:
            return StrategyFailure(
                self.name,
                f"HTTP {response.status_code} {response.reason_phrase}".strip(),
                status_code=response.status_code,
            )

        try:
            data = extract_embedded_data(response.text)
            payload = annual_to_payload(data, request.code, override.name)
            record = parse_series_payload(request.code, payload)
        except PayloadError as e:
            return StrategyFailure(self.name, str(e), status_code=response.status_code)

        return StrategySuccess(self.name, record)

    async def attempt(self, request: FetchRequest) -> list[StrategyOutcome]:
        override = self.overrides.get(request.code)
        if override is None:
            return []

        logger.info(f"Using annual results page {override.slug} for {request.code}")
        outcome = await self._scrape(request, override)
        if isinstance(outcome, StrategySuccess):
            return [outcome]

        logger.warning(f"Annual page failed for {request.code}, trying base endpoint")
        base = await request_series(
            self.client, "annual-base", request, with_dates=False, timeout=self.timeout
        )
        return [outcome, base]
