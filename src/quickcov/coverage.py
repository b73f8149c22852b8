"""Turn raw per-file coverage reports into normalised statistics.

The runner writes an istanbul-style ``coverage-final.json``: a mapping from
source path to hit counters for statements (``s``), functions (``f``) and
branches (``b``). Statement and function counters are single integers per id,
while each branch id maps to one counter per branch outcome. That asymmetry is
kept when counting: every branch outcome contributes to the totals on its own.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Mapping

from .errors import MalformedReportError
from .hashing import fingerprint_file
from .schema import TERM_KINDS, CoverageSummary, SourceFileCoverage, TermStats

LOGGER = logging.getLogger(__name__)

DEFAULT_REPORT_PATH = Path("coverage") / "coverage-final.json"

RawReport = Dict[str, Dict[str, Any]]


def stats_for_term(raw_term: Mapping[str, Any], term_kind: str) -> TermStats:
    """Count covered and total entries for one term of a file report."""

    if term_kind not in TERM_KINDS:
        raise ValueError(f"Unknown coverage term: {term_kind!r}")

    total = 0
    covered = 0
    if term_kind == "b":
        for outcomes in raw_term.values():
            total += len(outcomes)
            covered += sum(1 for hits in outcomes if hits > 0)
    else:
        for hits in raw_term.values():
            total += 1
            if hits > 0:
                covered += 1
    return TermStats.from_counts(covered, total)


def stats_for_file(raw_file_report: Mapping[str, Any]) -> CoverageSummary:
    return CoverageSummary(
        **{kind: stats_for_term(raw_file_report.get(kind) or {}, kind) for kind in TERM_KINDS}
    )


def aggregate(source_files: Mapping[str, CoverageSummary]) -> CoverageSummary:
    """Sum totals across files and derive each percentage from the sums.

    Per-file percentages are never averaged, so large files weigh in according
    to their size. An empty mapping yields zero totals and ``0.0`` percentages.
    """

    sums = {kind: [0, 0] for kind in TERM_KINDS}
    for coverage in source_files.values():
        for kind, term in coverage.terms().items():
            sums[kind][0] += term.covered
            sums[kind][1] += term.total
    return CoverageSummary(
        **{kind: TermStats.from_counts(covered, total) for kind, (covered, total) in sums.items()}
    )


def delta_annotation(old_pct: float, new_pct: float) -> str:
    """Return a signed ``(+x.xx%)`` label, or ``""`` when equal at two decimals."""

    delta = round(new_pct, 2) - round(old_pct, 2)
    if abs(delta) < 0.005:
        return ""
    sign = "+" if delta > 0 else "-"
    return f"({sign}{abs(delta):.2f}%)"


def _is_count(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_report(data: Any) -> RawReport:
    """Check the shapes the aggregator relies on and return ``data`` unchanged."""

    if not isinstance(data, dict):
        raise MalformedReportError("Coverage report must be a JSON object keyed by file path.")
    for path, entry in data.items():
        if not isinstance(entry, dict):
            raise MalformedReportError(f"Coverage entry for {path} must be an object.")
        for kind in TERM_KINDS:
            term = entry.get(kind)
            if not isinstance(term, dict):
                raise MalformedReportError(f"Coverage entry for {path} is missing the '{kind}' map.")
            for key, value in term.items():
                if kind == "b":
                    valid = isinstance(value, list) and all(_is_count(hits) for hits in value)
                else:
                    valid = _is_count(value)
                if not valid:
                    raise MalformedReportError(
                        f"Invalid '{kind}' counter {key!r} for {path}: {value!r}"
                    )
    return data


def read_coverage_report(path: Path | str = DEFAULT_REPORT_PATH) -> RawReport:
    """Load and validate the runner's JSON report; a missing file raises ``OSError``."""

    report_path = Path(path)
    with report_path.open("r", encoding="utf-8") as handle:
        try:
            data = json.load(handle)
        except json.JSONDecodeError as error:
            raise MalformedReportError(f"Coverage report {report_path} is not valid JSON: {error}") from error
    report = validate_report(data)
    LOGGER.debug("Loaded coverage report for %d file(s) from %s", len(report), report_path)
    return report


def source_file_stats(report: Mapping[str, Mapping[str, Any]]) -> Dict[str, SourceFileCoverage]:
    """Compute coverage plus the current content digest for every reported file.

    Report paths are read as-is, so relative paths resolve against the working
    directory like every other cache key.
    """

    results: Dict[str, SourceFileCoverage] = {}
    for path, raw in report.items():
        summary = stats_for_file(raw)
        results[path] = SourceFileCoverage(
            s=summary.s,
            f=summary.f,
            b=summary.b,
            hash=fingerprint_file(path),
        )
    return results


__all__ = [
    "DEFAULT_REPORT_PATH",
    "RawReport",
    "aggregate",
    "delta_annotation",
    "read_coverage_report",
    "source_file_stats",
    "stats_for_file",
    "stats_for_term",
    "validate_report",
]
