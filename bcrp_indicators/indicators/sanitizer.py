"""Cleaning transforms for BCRP time series.

The upstream feed uses zero and empty cells as placeholders for data gaps.
These transforms make a series safe to chart and summarize. Each one is a
pure function: it returns a new list and never touches its input.
"""

import logging
from typing import Sequence

import numpy as np

from bcrp_indicators.models.series_data import SeriesRecord, TimeSeriesPoint


logger = logging.getLogger(__name__)


def _is_informative(point: TimeSeriesPoint) -> bool:
    """Valid for mean replacement: not None, not NaN and not exactly zero."""
    # A genuine 0% reading is indistinguishable from a gap in the feed
    return not point.is_missing() and point.value != 0


def replace_missing_with_mean(points: Sequence[TimeSeriesPoint]) -> list[TimeSeriesPoint]:
    """
    Replace zero, None and NaN values with the mean of the remaining values.

    Args:
        points: Ordered observations

    Returns:
        New list of points. If no informative value exists the input is
        returned unchanged.
    """
    points = list(points)
    if not points:
        return points

    valid = [p.value for p in points if _is_informative(p)]
    if not valid:
        logger.warning("No valid values to compute a mean, series left unchanged")
        return points

    # A mean of exactly 0 (e.g. [1, -1, 0]) maps gaps back to 0; they stay
    # indistinguishable from genuine zeros.
    mean = sum(valid) / len(valid)
    replaced = len(points) - len(valid)
    if replaced:
        logger.info(f"Replacing {replaced} zero/empty values with mean {mean:.4f}")

    return [
        p if _is_informative(p) else TimeSeriesPoint(date=p.date, value=mean)
        for p in points
    ]


def smooth_rolling(
    points: Sequence[TimeSeriesPoint], window: int = 3
) -> list[TimeSeriesPoint]:
    """
    Centered rolling-mean smoother.

    Points are sorted by date first. Near the edges the window shrinks
    instead of padding, so the first point of a window-3 smoother averages
    itself and its right neighbour only.

    Args:
        points: Observations, any order
        window: Window size (default 3)

    Returns:
        New list of smoothed points in ascending date order
    """
    points = list(points)
    if not points or window <= 1:
        return points

    ordered = sorted(points, key=lambda p: p.date)
    half = window // 2
    smoothed = []

    for i, point in enumerate(ordered):
        start = max(0, i - half)
        end = min(len(ordered), i + half + 1)
        values = [p.value for p in ordered[start:end] if not p.is_missing()]

        if not values:
            smoothed.append(point)
            continue

        smoothed.append(TimeSeriesPoint(date=point.date, value=sum(values) / len(values)))

    return smoothed


def clip_outliers(
    points: Sequence[TimeSeriesPoint], threshold: float = 3.0
) -> list[TimeSeriesPoint]:
    """
    Replace values further than `threshold` standard deviations from the mean.

    Each value is tested against the mean and population standard deviation
    of the other present values, and an outlier is replaced by that mean.
    Measured against the full sample, a single spike inflates the deviation
    enough to hide itself (in 10 points it can never exceed 3 sigma).
    With n present values the rule only applies when n - 1 >= threshold ** 2.
    Below that a value can sit further than `threshold` deviations from the
    others while being within range of the full sample (e.g. [1, 2, 4]), and
    no value can exceed `threshold` full-sample deviations either, so the
    series is returned unchanged.
    """
    points = list(points)
    values = np.array([p.value for p in points if not p.is_missing()], dtype=float)
    n = len(values)
    if n < 3 or n - 1 < threshold ** 2:
        return points

    # Leave-one-out moments, computed on centered values for stability
    centered = values - values.mean()
    sum_sq = np.square(centered).sum()
    shift = centered / (n - 1)
    others_mean = values.mean() - shift
    others_var = np.maximum((sum_sq - np.square(centered)) / (n - 1) - np.square(shift), 0.0)
    others_std = np.sqrt(others_var)

    clipped = []
    outliers = 0
    idx = 0
    for p in points:
        if p.is_missing():
            clipped.append(p)
            continue

        mean = float(others_mean[idx])
        band = threshold * float(others_std[idx])
        idx += 1

        if abs(p.value - mean) > band and not np.isclose(p.value, mean):
            outliers += 1
            clipped.append(TimeSeriesPoint(date=p.date, value=mean))
        else:
            clipped.append(p)

    if outliers:
        logger.info(f"Replaced {outliers} outliers beyond {threshold} standard deviations")

    return clipped


def sanitize_record(record: SeriesRecord) -> SeriesRecord:
    """Apply zero/empty replacement to a record, returning a new record."""
    return record.with_points(replace_missing_with_mean(record.points))
