"""Settings and indicator catalog."""

from bcrp_indicators.config.settings import (
    ALL_INDICATORS,
    ANNUAL_INDICATORS,
    ANNUAL_REFERER,
    BROWSER_HEADERS,
    DAILY_INDICATORS,
    MONTHLY_INDICATORS,
    Settings,
)

__all__ = [
    "ALL_INDICATORS",
    "ANNUAL_INDICATORS",
    "ANNUAL_REFERER",
    "BROWSER_HEADERS",
    "DAILY_INDICATORS",
    "MONTHLY_INDICATORS",
    "Settings",
]
