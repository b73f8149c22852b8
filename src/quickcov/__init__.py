"""Incremental test-execution cache: re-run only what changed, keep coverage totals."""

from .coverage import aggregate, delta_annotation, read_coverage_report, stats_for_file, stats_for_term
from .errors import (
    CacheMissingError,
    ConfigError,
    MalformedReportError,
    MalformedSnapshotError,
    QuickCovError,
    RunnerError,
    RunnerFailedError,
)
from .hashing import fingerprint
from .planner import ChangeSet, RunCoordinator, RunOutcome, merge_results, plan_changes
from .registry import changed_or_added, fingerprint_all
from .schema import CoverageSummary, FileFingerprint, Snapshot, SourceFileCoverage, TermStats
from .store import CacheStore

__all__ = [
    "CacheMissingError",
    "CacheStore",
    "ChangeSet",
    "ConfigError",
    "CoverageSummary",
    "FileFingerprint",
    "MalformedReportError",
    "MalformedSnapshotError",
    "QuickCovError",
    "RunCoordinator",
    "RunOutcome",
    "RunnerError",
    "RunnerFailedError",
    "Snapshot",
    "SourceFileCoverage",
    "TermStats",
    "aggregate",
    "changed_or_added",
    "delta_annotation",
    "fingerprint",
    "fingerprint_all",
    "merge_results",
    "plan_changes",
    "read_coverage_report",
    "stats_for_file",
    "stats_for_term",
]
