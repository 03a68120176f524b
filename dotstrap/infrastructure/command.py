from __future__ import annotations

import logging
import subprocess
import sys
from typing import Literal, Protocol, Sequence

from ..core.errors import CommandFailed

logger = logging.getLogger(__name__)


class CommandRunner(Protocol):
    def run(self, program: str, args: Sequence[str]) -> None: ...


def run_logged(
    cmd: Sequence[str],
    *,
    capture_output: bool = False,
    echo: Literal["always", "on_error", "never"] = "on_error",
) -> subprocess.CompletedProcess[str]:
    """
    Run a subprocess, mirroring captured stdout/stderr to the caller on failure.
    Raises CommandFailed when the command cannot be spawned or exits non-zero.
    """
    program = cmd[0]
    logger.debug(f"Running: {' '.join(cmd)}")
    try:
        result = subprocess.run(list(cmd), capture_output=capture_output, text=True)
    except OSError as e:
        raise CommandFailed(program, -1, str(e)) from e

    if capture_output and (
        echo == "always" or (echo == "on_error" and result.returncode != 0)
    ):
        if result.stdout:
            sys.stdout.write(result.stdout)
        if result.stderr:
            sys.stderr.write(result.stderr)
    if result.returncode != 0:
        raise CommandFailed(program, result.returncode)
    return result


class SystemCommandRunner:
    """Command runner that spawns real processes."""

    def run(self, program: str, args: Sequence[str]) -> None:
        run_logged([program, *args], capture_output=True)


class RecordingCommandRunner:
    """Command runner that records invocations instead of spawning them.

    ``fail_on`` names a program whose invocations fail with status 1.
    """

    def __init__(self, fail_on: str | None = None) -> None:
        self.fail_on = fail_on
        self.calls: list[tuple[str, list[str]]] = []

    def run(self, program: str, args: Sequence[str]) -> None:
        self.calls.append((program, list(args)))
        if program == self.fail_on:
            raise CommandFailed(program, 1)
