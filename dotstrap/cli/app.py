"""Main CLI application."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from ..application.runner import RunOptions, run
from ..config.settings import Settings
from ..core.errors import DotstrapError
from ..core.models import ExecutionReport, LinkStatus

logger = logging.getLogger(__name__)

app = typer.Typer(
    name="dotstrap",
    help="Synchronise dotfiles from a template repository.",
    add_completion=True,
)

_STATUS_LABELS = {
    LinkStatus.LINKED: "linked",
    LinkStatus.BACKED_UP_AND_LINKED: "backed up",
    LinkStatus.SKIPPED_DRY_RUN: "would link",
    LinkStatus.FAILED: "FAILED",
}


def print_report(report: ExecutionReport) -> None:
    """Print one line per manifest entry followed by a summary."""
    run_report = report.run
    for item in run_report.outcomes:
        outcome = item.outcome
        line = f"{_STATUS_LABELS[outcome.status]:<11} {item.entry.destination}"
        if outcome.status is LinkStatus.FAILED:
            typer.echo(f"{line} ({item.entry.source}): {outcome.reason}", err=True)
            continue
        if outcome.backup_path is not None:
            line = f"{line} (backup: {outcome.backup_path})"
        typer.echo(line)

    for command in report.brew_commands:
        typer.echo(f"{'brew' if not run_report.dry_run else 'would run':<11} {command}")

    failures = len(run_report.failures)
    if run_report.dry_run:
        typer.echo(
            f"Dry run complete: {len(run_report.outcomes)} templates evaluated."
        )
    elif failures:
        typer.echo(
            f"{failures} of {len(run_report.outcomes)} template(s) failed.", err=True
        )
    else:
        typer.echo(f"Linked {len(run_report.outcomes)} template(s).")


@app.command()
def main_command(
    source: Annotated[
        str,
        typer.Argument(
            help="Git repository URL or local path containing the manifest and templates.",
            metavar="SOURCE",
        ),
    ],
    home: Annotated[
        Optional[Path],
        typer.Option(
            "--home",
            help="Override the target home directory (defaults to the current user's home).",
            metavar="PATH",
        ),
    ] = None,
    skip_brew: Annotated[
        bool,
        typer.Option("--skip-brew", help="Skip installing Homebrew packages."),
    ] = False,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Print the operations without changing the system."),
    ] = False,
    workers: Annotated[
        Optional[int],
        typer.Option(
            "--workers",
            min=1,
            help="Number of templates processed in parallel (default: 1).",
            metavar="N",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose logging.",
        ),
    ] = False,
) -> None:
    """Render templates, stage them and link them into the home directory."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )

    logger.debug("Starting dotstrap")

    options = RunOptions(
        source=source,
        home=home,
        skip_brew=skip_brew,
        dry_run=dry_run,
        workers=workers,
    )

    try:
        report = run(options, Settings())
    except DotstrapError as e:
        typer.echo(f"dotstrap failed: {e}", err=True)
        raise typer.Exit(code=1) from e

    print_report(report)
    if not report.succeeded:
        raise typer.Exit(code=1)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
