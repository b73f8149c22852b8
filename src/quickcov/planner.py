"""Decide what to re-run and fold fresh coverage back into the cached snapshot.

``plan_changes`` and ``merge_results`` are the cache-consistency rules; the
``RunCoordinator`` strings them together with the store and the runner for the
first and subsequent invocations.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Protocol, Sequence

from .config import QuickCovConfig, RunnerSettings
from .coverage import aggregate, read_coverage_report, source_file_stats
from .errors import RunnerFailedError
from .registry import changed_or_added, fingerprint_all
from .runner import build_runner_args, runner_command, spawn_runner
from .schema import CoverageSummary, Snapshot
from .store import CacheStore

LOGGER = logging.getLogger(__name__)

Spawner = Callable[..., int]


@dataclass(slots=True)
class ChangeSet:
    """Test and source files that need to be re-run."""

    test_files: List[str] = field(default_factory=list)
    source_files: List[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.test_files and not self.source_files

    @property
    def all_files(self) -> List[str]:
        return [*self.test_files, *self.source_files]


@dataclass(slots=True)
class RunOutcome:
    """What a single invocation did, for rendering by the caller."""

    first_run: bool
    changes: ChangeSet = field(default_factory=ChangeSet)
    command: tuple[str, ...] = ()
    runner_exit_code: int | None = None
    elapsed: float | None = None
    before: CoverageSummary | None = None
    after: CoverageSummary = field(default_factory=CoverageSummary)
    saved: bool = False

    @property
    def runner_invoked(self) -> bool:
        return self.runner_exit_code is not None


def plan_changes(candidate_test_paths: Sequence[str], snapshot: Snapshot) -> ChangeSet:
    """Return the test and source files changed since ``snapshot`` was written.

    Test files may be added (new candidates) or modified. Source files are only
    checked for modification: new source files cannot be enumerated up front and
    enter the cache through the next coverage report instead.
    """

    test_files = changed_or_added(snapshot.test_files, candidate_test_paths)
    source_files = changed_or_added(snapshot.source_files, [])
    return ChangeSet(test_files=test_files, source_files=source_files)


def merge_results(
    snapshot: Snapshot,
    fresh_raw_report: Mapping[str, Mapping[str, Any]],
    touched_test_paths: Sequence[str],
    all_candidate_test_paths: Sequence[str],
    *,
    workers: Optional[int] = None,
) -> Snapshot:
    """Return a new snapshot with fresh coverage folded into ``snapshot``.

    Every file in ``fresh_raw_report`` gets a recomputed entry that replaces the
    cached one. Files the scoped run did not report keep their cached entry
    untouched. Test fingerprints are rebuilt from ``all_candidate_test_paths``,
    which drops entries for deleted or renamed tests. ``snapshot`` itself is
    not modified.
    """

    merged = snapshot.model_copy(deep=True)
    fresh = source_file_stats(fresh_raw_report)
    for path, coverage in fresh.items():
        merged.source_files[path] = coverage
    merged.test_files = fingerprint_all(all_candidate_test_paths, workers=workers)
    LOGGER.info(
        "Merged %d reported source file(s) after running %d changed test file(s)",
        len(fresh),
        len(touched_test_paths),
    )
    return merged


def build_snapshot(
    raw_report: Mapping[str, Mapping[str, Any]],
    candidate_test_paths: Sequence[str],
    *,
    elapsed: Optional[float] = None,
    workers: Optional[int] = None,
) -> Snapshot:
    """Build a snapshot from scratch after a full run."""

    return Snapshot(
        source_files=source_file_stats(raw_report),
        test_files=fingerprint_all(candidate_test_paths, workers=workers),
        first_run_elapsed_time=elapsed,
    )


class RunListener(Protocol):
    """Receives progress notifications while a run is in flight."""

    def first_run_started(self, command: Sequence[str]) -> None: ...

    def changes_found(self, changes: ChangeSet, command: Sequence[str]) -> None: ...

    def no_changes(self) -> None: ...

    def changes_saved(self) -> None: ...


class _SilentListener:
    def first_run_started(self, command: Sequence[str]) -> None:
        return None

    def changes_found(self, changes: ChangeSet, command: Sequence[str]) -> None:
        return None

    def no_changes(self) -> None:
        return None

    def changes_saved(self) -> None:
        return None


class RunCoordinator:
    """Run the tests that changed and keep the cache file up to date."""

    def __init__(
        self,
        config: QuickCovConfig,
        *,
        root: Path | None = None,
        store: CacheStore | None = None,
        spawner: Spawner = spawn_runner,
        listener: RunListener | None = None,
        workers: Optional[int] = None,
    ) -> None:
        self.config = config
        self.root = (root or Path.cwd()).resolve()
        self.store = store or CacheStore(self.root / config.paths.cache)
        self.report_path = self.root / config.paths.coverage_report
        self.spawner = spawner
        self.listener: RunListener = listener or _SilentListener()
        self.workers = workers if workers is not None else config.hash_workers

    @property
    def runner(self) -> RunnerSettings:
        return self.config.runner

    def run(self, candidate_test_paths: Sequence[str]) -> RunOutcome:
        if self.store.exists():
            return self.perform_subsequent_run(candidate_test_paths)
        return self.perform_first_run(candidate_test_paths)

    def perform_first_run(self, candidate_test_paths: Sequence[str]) -> RunOutcome:
        """Run the whole suite and build the cache from scratch."""

        args = list(self.runner.first_run_args)
        command = tuple(runner_command(self.runner, args))
        self.listener.first_run_started(command)

        started = time.perf_counter()
        exit_code = self._spawn(args)
        elapsed = time.perf_counter() - started

        report = read_coverage_report(self.report_path)
        snapshot = build_snapshot(
            report,
            candidate_test_paths,
            elapsed=elapsed,
            workers=self.workers,
        )
        self.store.save(snapshot)
        LOGGER.info("Created cache with %d source file(s) in %.2fs", len(snapshot.source_files), elapsed)
        return RunOutcome(
            first_run=True,
            command=command,
            runner_exit_code=exit_code,
            elapsed=elapsed,
            after=aggregate(snapshot.source_files),
            saved=True,
        )

    def perform_subsequent_run(self, candidate_test_paths: Sequence[str]) -> RunOutcome:
        """Re-run only what changed; leave the cache alone when nothing did."""

        snapshot = self.store.load()
        before = aggregate(snapshot.source_files)
        changes = plan_changes(candidate_test_paths, snapshot)

        if changes.is_empty:
            self.listener.no_changes()
            return RunOutcome(first_run=False, changes=changes, before=before, after=before)

        args = build_runner_args(self.runner, changes.test_files, changes.source_files)
        command = tuple(runner_command(self.runner, args))
        self.listener.changes_found(changes, command)

        started = time.perf_counter()
        exit_code = self._spawn(args)
        elapsed = time.perf_counter() - started

        report = read_coverage_report(self.report_path)
        merged = merge_results(
            snapshot,
            report,
            changes.test_files,
            candidate_test_paths,
            workers=self.workers,
        )
        self.store.save(merged)
        self.listener.changes_saved()
        return RunOutcome(
            first_run=False,
            changes=changes,
            command=command,
            runner_exit_code=exit_code,
            elapsed=elapsed,
            before=before,
            after=aggregate(merged.source_files),
            saved=True,
        )

    def _spawn(self, args: Sequence[str]) -> int:
        # Only a report written by this invocation may be merged.
        if self.report_path.exists():
            LOGGER.debug("Removing previous coverage report %s", self.report_path)
            self.report_path.unlink()
        exit_code = self.spawner(self.runner, args, cwd=self.root)
        if exit_code != 0:
            if not self.runner.merge_on_failure:
                raise RunnerFailedError(exit_code)
            LOGGER.warning("Runner exited with code %d; merging available coverage anyway", exit_code)
        return exit_code


__all__ = [
    "ChangeSet",
    "RunCoordinator",
    "RunListener",
    "RunOutcome",
    "build_snapshot",
    "merge_results",
    "plan_changes",
]
