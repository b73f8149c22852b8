"""CLI entry point for quick-cov."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn, Optional

import typer

from .config import QuickCovConfig, load_config, resolve_test_match
from .coverage import aggregate
from .errors import QuickCovError
from .planner import RunCoordinator, RunOutcome
from .presentation import ConsoleListener, show_coverage, show_greetings
from .runner import discover_test_files
from .store import CacheStore

APP_HELP = "Run only the tests affected by your changes and keep coverage totals cached."
LOGGER = logging.getLogger(__name__)

app = typer.Typer(help=APP_HELP)


@dataclass(slots=True)
class CliState:
    """Options shared by every command."""

    root: Path
    config: QuickCovConfig


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


def _fail(error: Exception) -> NoReturn:
    typer.echo(f"Error: {error}", err=True)
    raise typer.Exit(code=1) from error


def _render_outcome(outcome: RunOutcome) -> None:
    if outcome.first_run and outcome.elapsed is not None:
        typer.echo(f"Full run took {outcome.elapsed:.2f}s.\n")
    show_coverage(outcome.after, outcome.before if outcome.runner_invoked else None)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to a quick-cov YAML configuration file.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
) -> None:
    """Run the affected tests when no command is given."""
    _configure_logging(verbose)
    root = Path.cwd()
    try:
        config_data = load_config(config, root=root)
    except QuickCovError as error:
        _fail(error)
    ctx.obj = CliState(root=root, config=config_data)

    if ctx.invoked_subcommand is None:
        run(ctx)


@app.command()
def run(ctx: typer.Context) -> None:
    """Run changed tests (or the whole suite on the first run) and show coverage."""
    state: CliState = ctx.obj
    show_greetings()
    try:
        patterns, source = resolve_test_match(state.config, state.root)
        LOGGER.info("Using test patterns from %s", source)
        test_files = discover_test_files(state.root, patterns, state.config.tests.ignore)
        coordinator = RunCoordinator(state.config, root=state.root, listener=ConsoleListener())
        outcome = coordinator.run(test_files)
    except (QuickCovError, OSError) as error:
        _fail(error)
    _render_outcome(outcome)


@app.command()
def status(ctx: typer.Context) -> None:
    """Show the cached coverage totals without running anything."""
    state: CliState = ctx.obj
    store = CacheStore(state.root / state.config.paths.cache)
    if not store.exists():
        typer.echo("No cache found. Run quick-cov to create one.")
        raise typer.Exit(code=1)
    try:
        snapshot = store.load()
    except (QuickCovError, OSError) as error:
        _fail(error)

    typer.echo(
        f"Cache {store.path.name}: {len(snapshot.source_files)} source file(s), "
        f"{len(snapshot.test_files)} test file(s)"
    )
    if snapshot.first_run_elapsed_time is not None:
        typer.echo(f"Full run took {snapshot.first_run_elapsed_time:.2f}s.")
    show_coverage(aggregate(snapshot.source_files))


@app.command()
def clear(ctx: typer.Context) -> None:
    """Delete the cache so the next run starts from scratch."""
    state: CliState = ctx.obj
    store = CacheStore(state.root / state.config.paths.cache)
    try:
        removed = store.clear()
    except OSError as error:
        _fail(error)
    typer.echo("Cache removed." if removed else "No cache to remove.")


if __name__ == "__main__":
    app()
