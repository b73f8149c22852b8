"""Error types raised by the quick-cov runtime."""

from __future__ import annotations


class QuickCovError(RuntimeError):
    """Base class for failures that abort a quick-cov invocation."""


class CacheMissingError(QuickCovError):
    """Raised when the cache is loaded before any snapshot has been written."""


class MalformedSnapshotError(QuickCovError):
    """Raised when the persisted cache file is not a valid snapshot."""


class MalformedReportError(QuickCovError):
    """Raised when the runner's coverage report does not have the expected shape."""


class ConfigError(QuickCovError):
    """Raised when the quick-cov configuration cannot be parsed or validated."""


class RunnerError(QuickCovError):
    """Raised when the test runner cannot be spawned or does not finish."""


class RunnerFailedError(RunnerError):
    """Raised when the runner exits non-zero and merging on failure is disabled."""

    def __init__(self, exit_code: int) -> None:
        super().__init__(f"Test runner exited with code {exit_code}; cache left untouched.")
        self.exit_code = exit_code


__all__ = [
    "CacheMissingError",
    "ConfigError",
    "MalformedReportError",
    "MalformedSnapshotError",
    "QuickCovError",
    "RunnerError",
    "RunnerFailedError",
]
