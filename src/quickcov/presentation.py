"""Terminal output for quick-cov runs."""

from __future__ import annotations

from typing import List, Optional, Sequence

import typer

from .coverage import delta_annotation
from .planner import ChangeSet
from .schema import CoverageSummary, TermStats

HEADERS = ("Statements", "Functions", "Branches")


def show_greetings() -> None:
    typer.echo(f"Starting {typer.style('quick-cov', bold=True)}...\n")


def percentage_colour(percentage: float) -> str:
    """Red below 50%, yellow below 80%, green otherwise."""
    if percentage < 50:
        return typer.colors.BRIGHT_RED
    if percentage < 80:
        return typer.colors.BRIGHT_YELLOW
    return typer.colors.BRIGHT_GREEN


def coverage_rows(
    summary: CoverageSummary,
    previous: Optional[CoverageSummary] = None,
) -> List[List[str]]:
    """Return the ``covered / total`` and percentage rows as plain text."""

    terms: List[TermStats] = [summary.s, summary.f, summary.b]
    counts = [f"{term.covered} / {term.total}" for term in terms]
    percentages = [f"{term.percentage:.2f}%" for term in terms]
    if previous is not None:
        old_terms = [previous.s, previous.f, previous.b]
        for index, (old, new) in enumerate(zip(old_terms, terms)):
            delta = delta_annotation(old.percentage, new.percentage)
            if delta:
                percentages[index] = f"{percentages[index]} {delta}"
    return [counts, percentages]


def render_table(headers: Sequence[str], rows: Sequence[Sequence[str]], colours: Sequence[str]) -> str:
    """Render a boxed table; ``colours`` applies per column to body cells."""

    widths = [len(header) for header in headers]
    for row in rows:
        for index, cell in enumerate(row):
            widths[index] = max(widths[index], len(cell))

    border = "+" + "+".join("-" * (width + 2) for width in widths) + "+"
    header_cells = [
        " " + typer.style(header.ljust(widths[index]), bold=True) + " "
        for index, header in enumerate(headers)
    ]
    lines = [border, "|" + "|".join(header_cells) + "|", border]
    for row in rows:
        cells = [
            " " + typer.style(cell.ljust(widths[index]), fg=colours[index], bold=True) + " "
            for index, cell in enumerate(row)
        ]
        lines.append("|" + "|".join(cells) + "|")
    lines.append(border)
    return "\n".join(lines)


def show_coverage(summary: CoverageSummary, previous: Optional[CoverageSummary] = None) -> None:
    colours = [percentage_colour(term.percentage) for term in (summary.s, summary.f, summary.b)]
    typer.echo(render_table(HEADERS, coverage_rows(summary, previous), colours))


class ConsoleListener:
    """Echo run progress the way the CLI presents it."""

    def first_run_started(self, command: Sequence[str]) -> None:
        typer.echo("Cache file not found. Spawning runner...")
        typer.echo(f"Running tests with {typer.style(' '.join(command), dim=True)}\n")

    def changes_found(self, changes: ChangeSet, command: Sequence[str]) -> None:
        typer.echo(typer.style("Changes found on following files:\n", fg=typer.colors.BRIGHT_YELLOW, bold=True))
        for path in changes.all_files:
            typer.echo(f"- {path}")
        typer.echo(f"\nRunning tests with {typer.style(' '.join(command), dim=True)}\n")

    def no_changes(self) -> None:
        typer.echo("No changes were found. Showing existing results.\n")

    def changes_saved(self) -> None:
        typer.echo(typer.style("Changes have been saved.\n", fg=typer.colors.BRIGHT_GREEN, bold=True))


__all__ = [
    "ConsoleListener",
    "HEADERS",
    "coverage_rows",
    "percentage_colour",
    "render_table",
    "show_coverage",
    "show_greetings",
]
