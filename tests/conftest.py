from __future__ import annotations

from pathlib import Path
from typing import Callable

import httpx
import pytest

from bcrp_indicators.config import Settings
from bcrp_indicators.data.client import BcrpClient


API = "https://api.test/series/api"
ANNUAL = "https://api.test/series/anuales/resultados"


def make_payload(values, name: str = "Tipo de Cambio", labels=None) -> dict:
    labels = labels or [f"{m}.2024" for m in ["Ene", "Feb", "Mar", "Abr", "May", "Jun", "Jul"]]
    return {
        "config": {"title": "titulo", "series": [{"name": name}]},
        "periods": [{"name": label, "values": [value]} for label, value in zip(labels, values)],
    }


class Recorder:
    """Counts requests per path and answers with a handler."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]):
        self.handler = handler
        self.paths: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.paths.append(request.url.path)
        return self.handler(request)


async def no_sleep(_delay: float) -> None:
    return None


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        api_url=API,
        annual_url=ANNUAL,
        output_format="json",
        language="esp",
        timeout=5.0,
        recent_timeout=2.0,
        max_attempts=3,
        backoff_base=2.0,
        cache_dir=tmp_path / "cache",
    )


@pytest.fixture
def make_client(settings: Settings):
    def _make(handler) -> BcrpClient:
        http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return BcrpClient(settings, http_client=http)

    return _make
