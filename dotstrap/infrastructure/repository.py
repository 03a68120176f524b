"""Resolution of the configuration repository from a local path or git remote."""

from __future__ import annotations

import logging
import shutil
import tempfile
from pathlib import Path
from types import TracebackType

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity.wait import wait_base

from ..core.errors import CommandFailed
from .command import CommandRunner

logger = logging.getLogger(__name__)

CLONE_BACKOFF = wait_exponential(multiplier=1, min=1, max=10)


class RepoHandle:
    """A resolved configuration repository.

    Cloned repositories live in a temporary directory that is removed when
    the handle is closed.
    """

    def __init__(
        self, path: Path, tempdir: tempfile.TemporaryDirectory[str] | None = None
    ) -> None:
        self.path = path
        self._tempdir = tempdir

    @property
    def is_clone(self) -> bool:
        return self._tempdir is not None

    def close(self) -> None:
        if self._tempdir is not None:
            self._tempdir.cleanup()
            self._tempdir = None

    def __enter__(self) -> RepoHandle:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def clone_remote(
    source: str,
    runner: CommandRunner,
    attempts: int = 3,
    wait: wait_base = CLONE_BACKOFF,
) -> RepoHandle:
    """Shallow-clone ``source`` into a temporary directory, retrying on failure."""
    tempdir = tempfile.TemporaryDirectory(prefix="dotstrap-")
    target = Path(tempdir.name) / "repo"

    def _clone() -> None:
        if target.exists():
            # A failed attempt may leave a partial checkout behind.
            shutil.rmtree(target)
        runner.run("git", ["clone", "--depth", "1", source, str(target)])

    retrying = Retrying(
        reraise=True,
        retry=retry_if_exception_type(CommandFailed),
        stop=stop_after_attempt(attempts),
        wait=wait,
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )
    try:
        retrying(_clone)
    except CommandFailed:
        tempdir.cleanup()
        raise

    logger.info(f"Cloned {source}")
    return RepoHandle(target, tempdir)


def resolve_repository(
    source: str,
    runner: CommandRunner,
    attempts: int = 3,
    wait: wait_base = CLONE_BACKOFF,
) -> RepoHandle:
    """Resolve the repository described by the user-provided source.

    Args:
        source: Local path or git URL
        runner: Command runner used for ``git clone``
        attempts: Clone attempts before giving up

    Returns:
        Handle to the repository contents
    """
    path = Path(source).expanduser()
    if path.exists():
        return RepoHandle(path.resolve())
    return clone_remote(source, runner, attempts=attempts, wait=wait)
