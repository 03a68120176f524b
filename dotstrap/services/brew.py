"""Installation of Homebrew taps, formulae and casks."""

from __future__ import annotations

import logging

from ..core.errors import BrewUnavailable, CommandFailed
from ..core.models import BrewSpec
from ..infrastructure.command import CommandRunner

logger = logging.getLogger(__name__)


def brew_commands(spec: BrewSpec) -> list[list[str]]:
    """Return the brew argument lists required by ``spec``, in execution order."""
    commands: list[list[str]] = [["update"]]
    commands.extend(["tap", tap, "--force"] for tap in spec.taps)
    commands.extend(["install", formula] for formula in spec.formulae)
    commands.extend(["install", "--cask", cask] for cask in spec.casks)
    return commands


def ensure_available(runner: CommandRunner) -> None:
    try:
        runner.run("brew", ["--version"])
    except CommandFailed as e:
        raise BrewUnavailable() from e


def install_brew(spec: BrewSpec, runner: CommandRunner, dry_run: bool) -> list[str]:
    """Prepare and optionally execute the Homebrew commands required by ``spec``.

    Args:
        spec: Taps, formulae and casks to install
        runner: Command runner used to invoke brew
        dry_run: List the commands without executing them

    Returns:
        Command lines executed (or planned, in dry-run mode)
    """
    executed: list[str] = []
    if spec.is_empty():
        return executed

    ensure_available(runner)
    for args in brew_commands(spec):
        command_line = " ".join(["brew", *args])
        executed.append(command_line)
        if dry_run:
            logger.info(f"[dry-run] Would run: {command_line}")
            continue
        logger.info(f"Running: {command_line}")
        runner.run("brew", args)

    return executed
