from __future__ import annotations

import math

import pytest

from bcrp_indicators.indicators.sanitizer import (
    clip_outliers,
    replace_missing_with_mean,
    sanitize_record,
    smooth_rolling,
)
from bcrp_indicators.models.series_data import SeriesRecord, TimeSeriesPoint


def _points(values, dates=None):
    dates = dates or [f"2024-{i + 1:02d}" for i in range(len(values))]
    return [TimeSeriesPoint(date=d, value=v) for d, v in zip(dates, values)]


# ---------- replace_missing_with_mean ----------

def test_replaces_zero_and_null_with_mean_of_valid_values():
    points = _points([3.5, 0, 3.8, None, 4.1, 0, 3.9])

    out = replace_missing_with_mean(points)

    expected_mean = (3.5 + 3.8 + 4.1 + 3.9) / 4
    assert [p.value for p in out] == [3.5, expected_mean, 3.8, expected_mean, 4.1, expected_mean, 3.9]
    assert out[1].value == pytest.approx(3.825)
    assert [p.date for p in out] == [p.date for p in points]


def test_nan_is_treated_as_missing():
    out = replace_missing_with_mean(_points([2.0, float("nan"), 4.0]))
    assert [p.value for p in out] == [2.0, 3.0, 4.0]


def test_negative_values_are_valid():
    out = replace_missing_with_mean(_points([-1.0, 0.0, -3.0]))
    assert [p.value for p in out] == [-1.0, -2.0, -3.0]


def test_no_valid_values_returns_input_unchanged(caplog):
    points = _points([0, None, float("nan")])

    with caplog.at_level("WARNING"):
        out = replace_missing_with_mean(points)

    assert out[0] == points[0]
    assert out[1] == points[1]
    assert math.isnan(out[2].value)
    assert "No valid values" in caplog.text


def test_valid_values_averaging_to_zero_fill_gaps_with_zero():
    # Gaps come back as 0.0 and remain indistinguishable from a real zero
    out = replace_missing_with_mean(_points([1.0, -1.0, 0]))
    assert [p.value for p in out] == [1.0, -1.0, 0.0]


def test_empty_series():
    assert replace_missing_with_mean([]) == []


def test_replacement_is_idempotent():
    once = replace_missing_with_mean(_points([1.0, 0, None, 5.0]))
    twice = replace_missing_with_mean(once)
    assert once == twice


def test_output_has_no_missing_values_when_any_value_is_valid():
    out = replace_missing_with_mean(_points([0, 0, None, 7.5, float("nan"), 0]))
    assert all(p.value not in (None, 0) and not math.isnan(p.value) for p in out)


def test_input_is_not_mutated():
    points = _points([1.0, 0])
    replace_missing_with_mean(points)
    assert points[1].value == 0


def test_sanitize_record_returns_new_record():
    record = SeriesRecord(code="PN01271PM", name="IPC var%", points=_points([1.0, 0, 3.0]))

    clean = sanitize_record(record)

    assert clean is not record
    assert clean.code == record.code and clean.name == record.name
    assert clean.values() == [1.0, 2.0, 3.0]
    assert record.values() == [1.0, 0, 3.0]


# ---------- smooth_rolling ----------

def test_smoothing_uses_shrinking_window_at_edges():
    out = smooth_rolling(_points([1.0, 2.0, 3.0, 4.0]), window=3)
    assert [p.value for p in out] == [1.5, 2.0, 3.0, 3.5]


def test_smoothing_sorts_by_date_first():
    points = _points([3.0, 1.0, 2.0], dates=["2024-03", "2024-01", "2024-02"])

    out = smooth_rolling(points, window=3)

    assert [p.date for p in out] == ["2024-01", "2024-02", "2024-03"]
    assert [p.value for p in out] == [1.5, 2.0, 2.5]


def test_smoothing_skips_missing_values_in_window():
    out = smooth_rolling(_points([1.0, None, 3.0]), window=3)
    assert [p.value for p in out] == [1.0, 2.0, 3.0]


def test_smoothing_window_of_one_is_identity():
    points = _points([5.0, 1.0])
    assert smooth_rolling(points, window=1) == points


# ---------- clip_outliers ----------

def test_single_spike_is_replaced_with_mean_of_the_rest():
    points = _points([10.0] * 9 + [10000.0], dates=[f"2024-01-{d:02d}" for d in range(1, 11)])

    out = clip_outliers(points, threshold=3)

    assert out[-1].value == pytest.approx(10.0)
    assert [p.value for p in out[:-1]] == [10.0] * 9


def test_clipping_needs_three_values():
    points = _points([1.0, 1000.0])
    assert clip_outliers(points) == points


def test_values_within_band_are_untouched():
    points = _points([9.0, 10.0, 11.0, 10.5, 9.5, 10.2])
    assert clip_outliers(points) == points


def test_clipping_ignores_missing_values():
    points = _points([10.0] * 9 + [None, 500.0])

    out = clip_outliers(points)

    assert out[9].value is None
    assert out[10].value == pytest.approx(10.0)


@pytest.mark.parametrize(
    "values",
    [
        [1.0, 2.0, 4.0],
        [10.0, 10.0, 10.0, 10.5],
        [10.0, 11.0, 13.0],
    ],
)
def test_small_series_are_not_clipped(values):
    points = _points(values)
    assert clip_outliers(points, threshold=3) == points


def test_clipping_starts_once_sample_is_large_enough():
    # n - 1 must reach threshold ** 2
    nine = _points([10.0] * 8 + [10000.0])
    ten = _points([10.0] * 9 + [10000.0])

    assert clip_outliers(nine, threshold=3) == nine
    assert clip_outliers(ten, threshold=3)[-1].value == pytest.approx(10.0)
