"""HTTP client for the BCRP statistics API."""

import logging

import httpx

from bcrp_indicators.config import ANNUAL_REFERER, BROWSER_HEADERS, Settings


logger = logging.getLogger(__name__)


class BcrpClient:
    """
    Thin async wrapper over the BCRP endpoints.

    Construct one per process and pass it to whatever needs it. Responses
    are returned as-is; status handling belongs to the caller.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self._client = http_client
        self._owns_client = http_client is None

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-initialize HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.settings.timeout,
                headers=BROWSER_HEADERS,
                follow_redirects=True,
            )
        return self._client

    async def aclose(self) -> None:
        """Close HTTP client if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "BcrpClient":
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    def series_url(
        self, code: str, date_from: str | None = None, date_to: str | None = None
    ) -> str:
        """Build /{code}/{format}[/{from}/{to}]/{language}."""
        parts = [self.settings.api_url.rstrip("/"), code, self.settings.output_format]
        if date_from and date_to:
            parts += [date_from, date_to]
        parts.append(self.settings.language)
        return "/".join(parts)

    def annual_url(self, slug: str) -> str:
        return f"{self.settings.annual_url.rstrip('/')}/{slug}"

    async def get_series(
        self,
        code: str,
        date_from: str | None = None,
        date_to: str | None = None,
        timeout: float | None = None,
    ) -> httpx.Response:
        """GET a series from the JSON API."""
        url = self.series_url(code, date_from, date_to)
        logger.info(f"GET {url}")
        return await self.client.get(
            url,
            headers=BROWSER_HEADERS,
            timeout=timeout or self.settings.timeout,
        )

    async def get_annual_page(self, slug: str, timeout: float | None = None) -> httpx.Response:
        """GET the HTML results page for an annual dataset."""
        url = self.annual_url(slug)
        logger.info(f"GET {url}")
        return await self.client.get(
            url,
            headers={**BROWSER_HEADERS, "Referer": ANNUAL_REFERER},
            timeout=timeout or self.settings.timeout,
        )
