"""Series cleaning transforms."""

from bcrp_indicators.indicators.sanitizer import (
    clip_outliers,
    replace_missing_with_mean,
    sanitize_record,
    smooth_rolling,
)

__all__ = ["clip_outliers", "replace_missing_with_mean", "sanitize_record", "smooth_rolling"]
