"""Period bound normalization for the BCRP API."""

import calendar
import re
from datetime import date


_YEAR_MONTH = re.compile(r"^(\d{4})-(\d{1,2})$")
_FULL_DATE = re.compile(r"^\d{4}-\d{1,2}-\d{1,2}$")


def _parse_year_month(value: str) -> tuple[int, int] | None:
    match = _YEAR_MONTH.match(value)
    if not match:
        return None
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month in {value!r}")
    return year, month


def _normalize(value: str | None, month_end: bool) -> str | None:
    if value is None or not value.strip():
        return None
    value = value.strip()

    year_month = _parse_year_month(value)
    if year_month:
        year, month = year_month
        day = calendar.monthrange(year, month)[1] if month_end else 1
        return date(year, month, day).isoformat()

    if _FULL_DATE.match(value):
        year, month, day = (int(part) for part in value.split("-"))
        # date() rejects impossible days such as 2023-02-29
        return date(year, month, day).isoformat()

    raise ValueError(f"Unrecognized date {value!r}, expected YYYY-MM or YYYY-MM-DD")


def normalize_start(value: str | None) -> str | None:
    """Expand YYYY-MM to the first day of that month."""
    return _normalize(value, month_end=False)


def normalize_end(value: str | None) -> str | None:
    """Expand YYYY-MM to the last calendar day of that month."""
    return _normalize(value, month_end=True)
