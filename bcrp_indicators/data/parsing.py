"""Parse BCRP API payloads into series records."""

import json
import re
from typing import Any

from bcrp_indicators.data.errors import PayloadError
from bcrp_indicators.models.series_data import SeriesRecord, TimeSeriesPoint


_EMBEDDED_DATA = re.compile(r"var\s+data\s*=\s*(\{[\s\S]*?\});")

_PLACEHOLDERS = {"", "n.d.", "nd", "n/a", "na", "nan", "-"}


def parse_value(raw: Any) -> float | None:
    """
    Parse an observation cell.

    The API returns values as strings; gaps come back as "n.d." or empty.
    """
    if raw is None:
        return None
    if isinstance(raw, (int, float)):
        return float(raw)

    s = str(raw).strip().replace("\u00a0", "").replace(" ", "")
    if s.lower() in _PLACEHOLDERS:
        return None
    # decimal comma
    if "," in s and "." not in s:
        s = s.replace(",", ".")
    try:
        return float(s)
    except ValueError:
        return None


_MONTHS = {
    "ene": 1, "feb": 2, "mar": 3, "abr": 4, "may": 5, "jun": 6,
    "jul": 7, "ago": 8, "sep": 9, "set": 9, "oct": 10, "nov": 11, "dic": 12,
}
_MONTHLY_LABEL = re.compile(r"^([A-Za-z]{3})\.?(\d{2}|\d{4})$")
_DAILY_LABEL = re.compile(r"^(\d{1,2})\.([A-Za-z]{3})\.?(\d{2}|\d{4})$")


def _full_year(year: str) -> int:
    return int(year) if len(year) == 4 else 2000 + int(year)


def normalize_period(label: str) -> str:
    """
    Convert BCRP period labels to ISO-style labels.

    "Ene.2024" -> "2024-01", "02.Ene.24" -> "2024-01-02". Labels in any
    other shape (years, quarters, ISO dates) are returned stripped.
    """
    label = str(label).strip()

    match = _DAILY_LABEL.match(label)
    if match and match.group(2).lower() in _MONTHS:
        day, month, year = match.groups()
        return f"{_full_year(year):04d}-{_MONTHS[month.lower()]:02d}-{int(day):02d}"

    match = _MONTHLY_LABEL.match(label)
    if match and match.group(1).lower() in _MONTHS:
        month, year = match.groups()
        return f"{_full_year(year):04d}-{_MONTHS[month.lower()]:02d}"

    return label


def _display_name(payload: dict, code: str) -> str:
    config = payload.get("config") or {}
    if not isinstance(config, dict):
        return code

    series = config.get("series")
    if isinstance(series, list) and series and isinstance(series[0], dict):
        name = series[0].get("name")
        if name:
            return str(name)

    return str(config.get("title") or config.get("titulo") or code)


def parse_series_payload(code: str, payload: Any) -> SeriesRecord:
    """
    Convert a JSON payload into a raw (unsanitized) record.

    Args:
        code: Indicator code the payload was requested for
        payload: Decoded JSON body

    Returns:
        SeriesRecord with one point per period

    Raises:
        PayloadError: if the payload has no usable periods
    """
    if not isinstance(payload, dict):
        raise PayloadError(f"Expected a JSON object for {code}, got {type(payload).__name__}")

    periods = payload.get("periods")
    if not isinstance(periods, list) or not periods:
        raise PayloadError(f"Response for {code} contains no periods")

    points = []
    for period in periods:
        if not isinstance(period, dict) or "name" not in period:
            raise PayloadError(f"Malformed period entry for {code}: {period!r}")
        values = period.get("values") or [None]
        points.append(
            TimeSeriesPoint(date=normalize_period(period["name"]), value=parse_value(values[0]))
        )

    return SeriesRecord(code=code, name=_display_name(payload, code), points=points)


def extract_embedded_data(html: str) -> dict:
    """Pull the `var data = {...};` blob out of an HTML results page."""
    match = _EMBEDDED_DATA.search(html or "")
    if not match:
        raise PayloadError("No embedded data block found in page")
    try:
        return json.loads(match.group(1))
    except json.JSONDecodeError as e:
        raise PayloadError(f"Embedded data block is not valid JSON: {e}") from e


def annual_to_payload(data: dict, code: str, name: str) -> dict:
    """
    Reshape the annual results page data into the standard API payload.

    The page carries parallel arrays: `periodos` and `series[0].datos`.
    Periods without a value are dropped.
    """
    periods = []
    labels = data.get("periodos") or []
    series = data.get("series") or []
    values = series[0].get("datos", []) if series and isinstance(series[0], dict) else []

    for i, label in enumerate(labels):
        value = values[i] if i < len(values) else None
        if label is None or label == "" or value is None:
            continue
        periods.append({"name": str(label), "values": [str(value)]})

    return {
        "config": {
            "series": [
                {
                    "name": name,
                    "serieCodigo": code,
                    "codigoFrecuencia": "A",
                    "frecuencia": "Anual",
                }
            ],
            "titulo": name,
        },
        "periods": periods,
    }
