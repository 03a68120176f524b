"""Application layer wiring repository resolution, materialization and brew."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping

from pydantic import BaseModel, Field

from ..config import loader
from ..config.settings import Settings
from ..core.errors import HomeNotFound
from ..core.models import ExecutionReport
from ..infrastructure.command import CommandRunner, SystemCommandRunner
from ..infrastructure.repository import resolve_repository
from ..services import brew
from .materializer import Materializer

logger = logging.getLogger(__name__)


class RunOptions(BaseModel):
    """Options of a single dotstrap invocation."""

    source: str = Field(..., description="Repository path or git URL")
    home: Path | None = Field(default=None, description="Target home directory")
    skip_brew: bool = Field(default=False, description="Skip Homebrew installation")
    dry_run: bool = Field(default=False, description="Simulate without changes")
    workers: int | None = Field(default=None, ge=1, description="Worker threads")


def resolve_home(options: RunOptions, settings: Settings) -> Path:
    """Pick the home root: explicit option, then settings, then the user's home."""
    if options.home is not None:
        return options.home.expanduser()
    if settings.home is not None:
        return settings.home.expanduser()
    try:
        return Path.home()
    except (RuntimeError, KeyError) as e:
        raise HomeNotFound() from e


def run(
    options: RunOptions,
    settings: Settings | None = None,
    runner: CommandRunner | None = None,
    environ: Mapping[str, str] | None = None,
) -> ExecutionReport:
    """Run dotstrap end to end.

    Args:
        options: Invocation options
        settings: Environment-driven settings (defaults to ``Settings()``)
        runner: Command runner for git and brew
        environ: Environment used for secret resolution

    Returns:
        Report of the materialization and brew commands
    """
    settings = settings or Settings()
    runner = runner or SystemCommandRunner()
    home = resolve_home(options, settings)
    logger.debug(f"Home root: {home}")

    with resolve_repository(
        options.source, runner, attempts=settings.clone_attempts
    ) as repo:
        manifest = loader.load_manifest(repo.path)
        values = loader.load_values(repo.path)
        secret_specs = loader.load_secret_specs(repo.path)
        brew_spec = None if options.skip_brew else loader.load_brew_spec(repo.path)

        materializer = Materializer(
            repo.path,
            home,
            staging_root=settings.staging_root(home),
            backup_dir_name=settings.backup_dir_name,
            max_workers=options.workers or settings.workers,
            environ=environ,
        )
        report = materializer.run(
            manifest.templates, values, secret_specs, dry_run=options.dry_run
        )

    brew_commands: list[str] = []
    if options.skip_brew:
        logger.debug("Skipping Homebrew installation")
    elif not report.succeeded:
        logger.warning("Skipping Homebrew installation because templates failed")
    elif brew_spec is not None:
        brew_commands = brew.install_brew(brew_spec, runner, options.dry_run)

    return ExecutionReport(run=report, brew_commands=brew_commands)
