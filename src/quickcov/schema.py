"""Typed records persisted in the quick-cov cache file."""

from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

TERM_KINDS = ("s", "f", "b")


class RecordModel(BaseModel):
    """Base Pydantic model with strict field handling."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class FileFingerprint(RecordModel):
    """Last-known content digest of a tracked file."""

    hash: str


class TermStats(RecordModel):
    """Coverage for one term (statements, functions or branches).

    ``percentage`` is ``covered / total * 100`` when ``total`` is positive and
    ``0.0`` otherwise.
    """

    total: int = Field(default=0, ge=0)
    covered: int = Field(default=0, ge=0)
    percentage: float = 0.0

    @classmethod
    def from_counts(cls, covered: int, total: int) -> "TermStats":
        percentage = (covered / total) * 100 if total > 0 else 0.0
        return cls(total=total, covered=covered, percentage=percentage)


class CoverageSummary(RecordModel):
    """Statement, function and branch statistics for a file or a whole run."""

    s: TermStats = Field(default_factory=TermStats)
    f: TermStats = Field(default_factory=TermStats)
    b: TermStats = Field(default_factory=TermStats)

    def terms(self) -> Dict[str, TermStats]:
        return {"s": self.s, "f": self.f, "b": self.b}


class SourceFileCoverage(CoverageSummary):
    """Coverage of one source file together with the digest it was computed from."""

    hash: str


class Snapshot(RecordModel):
    """Complete cache record written after every run that found changes."""

    source_files: Dict[str, SourceFileCoverage] = Field(
        default_factory=dict, alias="sourceFiles"
    )
    test_files: Dict[str, FileFingerprint] = Field(default_factory=dict, alias="testFiles")
    first_run_elapsed_time: Optional[float] = Field(default=None, alias="firstRunElapsedTime")

    def to_payload(self) -> dict:
        """Return the JSON-ready mapping using the persisted field names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


__all__ = [
    "CoverageSummary",
    "FileFingerprint",
    "RecordModel",
    "Snapshot",
    "SourceFileCoverage",
    "TERM_KINDS",
    "TermStats",
]
