"""Spawn the external test runner and discover its test files."""

from __future__ import annotations

import fnmatch
import logging
import subprocess
from pathlib import Path
from typing import List, Sequence

from .config import RunnerSettings
from .errors import RunnerError

LOGGER = logging.getLogger(__name__)


def _is_ignored(relative: str, ignore: Sequence[str]) -> bool:
    return any(fnmatch.fnmatch(relative, pattern) for pattern in ignore)


def discover_test_files(root: Path, patterns: Sequence[str], ignore: Sequence[str] = ()) -> List[str]:
    """Glob ``patterns`` under ``root`` and return sorted absolute file paths."""

    base = root.resolve()
    found: set[str] = set()
    for pattern in patterns:
        for path in base.glob(pattern):
            if not path.is_file():
                continue
            relative = path.relative_to(base).as_posix()
            if _is_ignored(relative, ignore):
                continue
            found.add(path.as_posix())
    LOGGER.debug("Discovered %d test file(s) under %s", len(found), base)
    return sorted(found)


def build_runner_args(
    settings: RunnerSettings,
    test_files: Sequence[str],
    source_files: Sequence[str],
) -> List[str]:
    """Return runner arguments scoped to the changed files.

    Changed tests come first, then the related-tests flag followed by changed
    sources when there are any, then the fixed coverage flags.
    """

    args: List[str] = [*test_files]
    if source_files:
        args.extend([settings.related_flag, *source_files])
    args.extend(settings.args)
    return args


def runner_command(settings: RunnerSettings, args: Sequence[str]) -> List[str]:
    return [*settings.command, *args]


def spawn_runner(settings: RunnerSettings, args: Sequence[str], *, cwd: Path | None = None) -> int:
    """Run the test runner to completion and return its exit code.

    Output streams are inherited so the user sees the runner's own report.
    """

    command = runner_command(settings, args)
    LOGGER.info("Running %s", " ".join(command))
    try:
        process = subprocess.run(  # noqa: S603 - command comes from project configuration
            command,
            cwd=cwd,
            check=False,
            timeout=settings.timeout,
        )
    except FileNotFoundError as error:
        raise RunnerError(f"Test runner not found: {settings.command[0]}") from error
    except subprocess.TimeoutExpired as error:
        raise RunnerError(f"Test runner did not finish within {settings.timeout} seconds.") from error

    LOGGER.info("Runner exited with code %d", process.returncode)
    return process.returncode


__all__ = ["build_runner_args", "discover_test_files", "runner_command", "spawn_runner"]
