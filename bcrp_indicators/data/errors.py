"""Exceptions raised by the series fetcher."""


class PayloadError(ValueError):
    """Upstream response could not be parsed into a series."""


class SeriesUnavailableError(RuntimeError):
    """Every live strategy and the cache failed for a code."""

    def __init__(self, code: str, failures: list) -> None:
        self.code = code
        self.failures = list(failures)
        if self.failures:
            detail = " | ".join(str(f) for f in self.failures)
        else:
            detail = "no strategy produced a result"
        super().__init__(f"Could not obtain data for indicator {code}: {detail}")
