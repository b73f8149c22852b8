"""Load quick-cov settings and the runner's declared test patterns.

Settings live in an optional ``.quick-cov.yaml`` next to the project. Test
patterns fall back to the runner's own JSON configuration (``jest.config.json``
or the ``jest`` key of ``package.json``) and finally to jest's defaults. Script
configuration files are never executed.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from pydantic import Field, ValidationError

from .errors import ConfigError
from .schema import RecordModel

DEFAULT_CONFIG_NAME = ".quick-cov.yaml"
LOGGER = logging.getLogger(__name__)

_JS_EXTENSIONS = ("js", "jsx", "ts", "tsx")

# jest's default ``testMatch`` rewritten without extglob syntax.
DEFAULT_TEST_MATCH: Tuple[str, ...] = tuple(
    pattern
    for ext in _JS_EXTENSIONS
    for pattern in (f"**/__tests__/**/*.{ext}", f"**/*.test.{ext}", f"**/*.spec.{ext}")
)
DEFAULT_IGNORE: Tuple[str, ...] = ("node_modules/**", "**/node_modules/**")
SCRIPT_CONFIG_NAMES = ("jest.config.js", "jest.config.ts", "jest.config.mjs", "jest.config.cjs")


class RunnerSettings(RecordModel):
    """How the test runner is spawned."""

    command: List[str] = Field(default_factory=lambda: ["jest"], min_length=1)
    args: List[str] = Field(default_factory=lambda: ["--coverage", "--bail"])
    first_run_args: List[str] = Field(default_factory=lambda: ["--coverage"])
    related_flag: str = "--findRelatedTests"
    timeout: Optional[float] = Field(default=None, gt=0)
    merge_on_failure: bool = True


class DiscoverySettings(RecordModel):
    """Which files count as test files."""

    test_match: Optional[List[str]] = None
    ignore: List[str] = Field(default_factory=lambda: list(DEFAULT_IGNORE))


class PathSettings(RecordModel):
    """Locations of the cache file and the runner's coverage report."""

    cache: str = ".quick-cov-report.json"
    coverage_report: str = "coverage/coverage-final.json"


class QuickCovConfig(RecordModel):
    """Validated quick-cov configuration."""

    runner: RunnerSettings = Field(default_factory=RunnerSettings)
    tests: DiscoverySettings = Field(default_factory=DiscoverySettings)
    paths: PathSettings = Field(default_factory=PathSettings)
    hash_workers: Optional[int] = Field(default=None, ge=1)


def load_config(config_path: Optional[Path] = None, *, root: Optional[Path] = None) -> QuickCovConfig:
    """Load configuration from ``config_path`` or the default file under ``root``.

    An explicit path must exist. Without one, a missing default file yields the
    built-in defaults.
    """

    if config_path is None:
        candidate = (root or Path.cwd()) / DEFAULT_CONFIG_NAME
        if not candidate.is_file():
            LOGGER.debug("No %s found; using defaults", DEFAULT_CONFIG_NAME)
            return QuickCovConfig()
        config_path = candidate
    elif not config_path.is_file():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as error:
        raise ConfigError(f"Failed to parse config {config_path}: {error}") from error

    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping at the top level.")

    try:
        config = QuickCovConfig.model_validate(data)
    except ValidationError as error:
        raise ConfigError(f"Invalid configuration in {config_path}: {error}") from error
    LOGGER.info("Loaded configuration from %s", config_path)
    return config


def _read_json(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)
    except json.JSONDecodeError as error:
        raise ConfigError(f"Failed to parse {path}: {error}") from error


def _normalise_patterns(value: Any, source: Path | str) -> List[str]:
    """Return root-relative glob patterns; ``Path.glob`` rejects anything else."""
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ConfigError(f"testMatch in {source} must be a string or a list of strings.")
    patterns: List[str] = []
    for pattern in value:
        cleaned = pattern.replace("<rootDir>/", "").lstrip("/")
        if not cleaned or Path(cleaned).is_absolute():
            raise ConfigError(f"Test pattern {pattern!r} in {source} must be relative to the project root.")
        if "?(" in cleaned or "+(" in cleaned or "@(" in cleaned:
            LOGGER.warning("Pattern %s from %s uses extglob syntax and may match nothing", pattern, source)
        patterns.append(cleaned)
    return patterns


def _runner_json_config(root: Path) -> Tuple[Optional[Dict[str, Any]], Optional[Path]]:
    json_config = root / "jest.config.json"
    if json_config.is_file():
        data = _read_json(json_config)
        if isinstance(data, dict):
            return data, json_config

    package_json = root / "package.json"
    if package_json.is_file():
        data = _read_json(package_json)
        if isinstance(data, dict) and isinstance(data.get("jest"), dict):
            return data["jest"], package_json

    return None, None


def resolve_test_match(config: QuickCovConfig, root: Path) -> Tuple[List[str], str]:
    """Return the test glob patterns and a label naming where they came from."""

    if config.tests.test_match:
        return _normalise_patterns(config.tests.test_match, DEFAULT_CONFIG_NAME), DEFAULT_CONFIG_NAME

    for name in SCRIPT_CONFIG_NAMES:
        if (root / name).is_file():
            LOGGER.warning(
                "Ignoring %s: script configuration is not evaluated; declare tests.test_match in %s",
                name,
                DEFAULT_CONFIG_NAME,
            )

    runner_config, source = _runner_json_config(root)
    if runner_config is not None and source is not None and "testMatch" in runner_config:
        return _normalise_patterns(runner_config["testMatch"], source), source.name

    return list(DEFAULT_TEST_MATCH), "defaults"


__all__ = [
    "DEFAULT_CONFIG_NAME",
    "DEFAULT_IGNORE",
    "DEFAULT_TEST_MATCH",
    "DiscoverySettings",
    "PathSettings",
    "QuickCovConfig",
    "RunnerSettings",
    "load_config",
    "resolve_test_match",
]
