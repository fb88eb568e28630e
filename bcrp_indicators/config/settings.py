"""Configuration settings for the BCRP series fetcher."""

from dataclasses import dataclass, field
from pathlib import Path
import os

from dotenv import load_dotenv

from bcrp_indicators.models.series_data import Frequency, Indicator


load_dotenv()


DEFAULT_API_URL = "https://estadisticas.bcrp.gob.pe/estadisticas/series/api"
DEFAULT_ANNUAL_URL = "https://estadisticas.bcrp.gob.pe/estadisticas/series/anuales/resultados"

# The statistics site rejects requests that don't look like a browser
BROWSER_HEADERS: dict[str, str] = {
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "es-ES,es;q=0.9,en;q=0.8",
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36"
    ),
    "Origin": "https://estadisticas.bcrp.gob.pe",
    "Referer": "https://estadisticas.bcrp.gob.pe/estadisticas/series/",
    "Sec-Fetch-Dest": "empty",
    "Sec-Fetch-Mode": "cors",
    "Sec-Fetch-Site": "same-origin",
    "Pragma": "no-cache",
    "Cache-Control": "no-cache",
}

ANNUAL_REFERER = "https://estadisticas.bcrp.gob.pe/estadisticas/series/anuales/pbi"


# Daily indicators - rates, FX, reserves, markets
DAILY_INDICATORS: dict[str, Indicator] = {
    ind.code: ind
    for ind in [
        Indicator("PD04650MD", "Reservas internacionales netas", Frequency.DAILY, "US$ millones"),
        Indicator("PD12301MD", "Tasa de Referencia de la Política Monetaria", Frequency.DAILY, "%"),
        Indicator("PD04692MD", "Tasa de Interés Interbancaria, S/", Frequency.DAILY, "%"),
        Indicator("PD04693MD", "Tasa de Interés Interbancaria, US$", Frequency.DAILY, "%"),
        Indicator("PD04637PD", "Tipo de Cambio - Compra", Frequency.DAILY, "S/ por US$"),
        Indicator("PD04638PD", "Tipo de Cambio - Venta", Frequency.DAILY, "S/ por US$"),
        Indicator("PD38026MD", "Índice General Bursátil BVL (índice)", Frequency.DAILY, "índice"),
        Indicator("PD04694MD", "Índice General Bursátil BVL (var%)", Frequency.DAILY, "%"),
        Indicator("PD04701XD", "Cobre (Londres, cUS$ por libras)", Frequency.DAILY, "cUS$ por libras"),
        Indicator("PD04704XD", "Oro (Londres, US$ por onzas troy)", Frequency.DAILY, "US$ por onzas troy"),
        Indicator("PD04721XD", "Dow Jones (var%)", Frequency.DAILY, "%"),
    ]
}

# Monthly indicators - prices, trade, fiscal
MONTHLY_INDICATORS: dict[str, Indicator] = {
    ind.code: ind
    for ind in [
        Indicator("PN38705PM", "Índice de Precios al Consumidor (IPC)", Frequency.MONTHLY, "índice"),
        Indicator("PN01271PM", "IPC var%", Frequency.MONTHLY, "%"),
        Indicator("PN01496BM", "Exportaciones Total", Frequency.MONTHLY, "US$ millones"),
        Indicator("PN02294FM", "Ingresos Tributarios", Frequency.MONTHLY, "millones S/"),
        Indicator("PN38072FM", "Gasto Total del Gobierno General", Frequency.MONTHLY, "millones S/"),
    ]
}

# Annual indicators - GDP
ANNUAL_INDICATORS: dict[str, Indicator] = {
    ind.code: ind
    for ind in [
        Indicator("PM04908AA", "PBI Anual (Nivel)", Frequency.ANNUAL, "millones S/"),
        Indicator("PM05373BA", "PBI Anual (Var%)", Frequency.ANNUAL, "%"),
    ]
}

ALL_INDICATORS: dict[str, Indicator] = {
    **DAILY_INDICATORS,
    **MONTHLY_INDICATORS,
    **ANNUAL_INDICATORS,
}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "")
    return float(raw) if raw.strip() else default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    return int(raw) if raw.strip() else default


@dataclass
class Settings:
    """Application settings."""

    api_url: str = field(default_factory=lambda: os.getenv("BCRP_API_URL", DEFAULT_API_URL))
    annual_url: str = field(
        default_factory=lambda: os.getenv("BCRP_ANNUAL_URL", DEFAULT_ANNUAL_URL)
    )
    output_format: str = field(default_factory=lambda: os.getenv("BCRP_FORMAT", "json"))
    language: str = field(default_factory=lambda: os.getenv("BCRP_LANGUAGE", "esp"))
    timeout: float = field(default_factory=lambda: _env_float("BCRP_TIMEOUT", 30.0))
    recent_timeout: float = field(
        default_factory=lambda: _env_float("BCRP_RECENT_TIMEOUT", 10.0)
    )
    max_attempts: int = field(default_factory=lambda: _env_int("BCRP_MAX_ATTEMPTS", 3))
    backoff_base: float = field(default_factory=lambda: _env_float("BCRP_BACKOFF_BASE", 2.0))
    cache_dir: Path = field(
        default_factory=lambda: Path(
            os.getenv("BCRP_CACHE_DIR", "") or Path(__file__).parent.parent.parent / "cache"
        )
    )
    db_path: Path = field(init=False)

    def __post_init__(self) -> None:
        self.cache_dir = Path(self.cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.db_path = self.cache_dir / "series_cache.db"

    def validate(self) -> None:
        """Validate required settings."""
        if not self.api_url:
            raise ValueError("BCRP_API_URL is empty")
        if self.timeout <= 0 or self.recent_timeout <= 0:
            raise ValueError("BCRP_TIMEOUT and BCRP_RECENT_TIMEOUT must be positive")
        if self.max_attempts < 1:
            raise ValueError("BCRP_MAX_ATTEMPTS must be at least 1")
        if self.backoff_base < 0:
            raise ValueError("BCRP_BACKOFF_BASE must not be negative")
