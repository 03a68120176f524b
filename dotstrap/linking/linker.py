"""Safe linking of staged artifacts into the home directory.

Every destination goes through a two-phase commit: a conflicting file is first
displaced into a backup directory next to it, then the staged content is put
in place with an atomic rename. A failure in the second phase leaves the
destination absent and the backup intact, never a partially written file.
"""

from __future__ import annotations

import datetime as dt
import logging
import os
import stat
from pathlib import Path
from typing import Callable

from ..core.errors import LinkIOError, LinkValidationError
from ..core.models import DEFAULT_FILE_MODE, BackupRecord, LinkOutcome, StagedArtifact
from ..rendering.io import atomic_write_bytes

logger = logging.getLogger(__name__)

DEFAULT_BACKUP_DIR_NAME = ".dotstrap-backups"


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class SafeLinker:
    """Commits staged artifacts below ``home_root``."""

    def __init__(
        self,
        home_root: Path,
        backup_dir_name: str = DEFAULT_BACKUP_DIR_NAME,
        clock: Callable[[], dt.datetime] = _utcnow,
    ) -> None:
        self.home_root = Path(os.path.normpath(Path(home_root).absolute()))
        self.backup_dir_name = backup_dir_name
        self._clock = clock

    def destination_path(self, relative: Path) -> Path:
        """Absolute destination for ``relative``, rejected if outside the home root.

        The check is lexical so that a symlink at the destination is never
        followed.
        """
        destination = Path(os.path.normpath(self.home_root / relative))
        if destination == self.home_root or not destination.is_relative_to(
            self.home_root
        ):
            raise LinkValidationError(destination, "outside the home directory")
        return destination

    def validate(self, relative: Path) -> Path:
        destination = self.destination_path(relative)
        parent = destination.parent.resolve()
        if not parent.is_relative_to(self.home_root.resolve()):
            raise LinkValidationError(
                destination, "parent directory resolves outside the home directory"
            )
        if destination.is_symlink():
            raise LinkValidationError(destination, "destination is a symbolic link")
        if destination.is_dir():
            raise LinkValidationError(destination, "destination is a directory")
        if destination.exists() and not destination.is_file():
            raise LinkValidationError(destination, "destination is not a regular file")
        return destination

    def backup_path_for(self, destination: Path, when: dt.datetime) -> Path:
        """Pick a backup path that does not collide with an earlier backup."""
        backup_dir = destination.parent / self.backup_dir_name
        stamp = when.strftime("%Y%m%dT%H%M%S%fZ")
        candidate = backup_dir / f"{destination.name}.{stamp}.bak"
        counter = 1
        while candidate.exists() or candidate.is_symlink():
            candidate = backup_dir / f"{destination.name}.{stamp}-{counter}.bak"
            counter += 1
        return candidate

    def commit(self, artifact: StagedArtifact, dry_run: bool = False) -> LinkOutcome:
        """Reconcile one staged artifact with its destination.

        Args:
            artifact: Staged content and its home-relative destination
            dry_run: Report what would happen without touching the filesystem

        Returns:
            Outcome for the destination; I/O and validation problems are
            reported as a failed outcome rather than raised
        """
        outcome, _ = self.commit_with_record(artifact, dry_run)
        return outcome

    def commit_with_record(
        self, artifact: StagedArtifact, dry_run: bool = False
    ) -> tuple[LinkOutcome, BackupRecord | None]:
        """Like :meth:`commit`, also returning the backup created, if any."""
        try:
            return self._commit(artifact, dry_run)
        except LinkValidationError as e:
            logger.error(str(e))
            return LinkOutcome.failure(e.destination, str(e)), None
        except LinkIOError as e:
            logger.error(str(e))
            return LinkOutcome.failure(e.destination, str(e), e.backup_path), None
        except OSError as e:
            error = LinkIOError(self.home_root / artifact.destination, e)
            logger.error(str(error))
            return LinkOutcome.failure(error.destination, str(error)), None

    def _commit(
        self, artifact: StagedArtifact, dry_run: bool
    ) -> tuple[LinkOutcome, BackupRecord | None]:
        destination = self.validate(artifact.destination)

        if not destination.exists():
            if dry_run:
                logger.info(f"[dry-run] Would link {destination}")
                return LinkOutcome.skipped_dry_run(destination), None
            self._place(destination, artifact, mode=artifact.mode)
            logger.info(f"Linked {destination}")
            return LinkOutcome.linked(destination), None

        try:
            current = destination.read_bytes()
            current_mode = stat.S_IMODE(destination.stat().st_mode)
        except OSError as e:
            raise LinkIOError(destination, e) from e

        if current == artifact.rendered_bytes:
            logger.info(f"Up to date: {destination}")
            return LinkOutcome.linked(destination), None

        when = self._clock()
        backup_path = self.backup_path_for(destination, when)
        if dry_run:
            logger.info(f"[dry-run] Would back up {destination} → {backup_path}")
            return LinkOutcome.skipped_dry_run(destination, backup_path), None

        self._displace(destination, backup_path)
        record = BackupRecord(
            original_path=destination, backup_path=backup_path, timestamp=when
        )
        mode = artifact.mode if artifact.mode is not None else current_mode
        try:
            self._place(destination, artifact, mode=mode, backup_path=backup_path)
        except LinkIOError as e:
            logger.error(str(e))
            return LinkOutcome.failure(destination, str(e), backup_path), record
        logger.info(f"Backed up {destination} → {backup_path} and linked")
        return LinkOutcome.backed_up_and_linked(destination, backup_path), record

    def _displace(self, destination: Path, backup_path: Path) -> None:
        try:
            backup_path.parent.mkdir(parents=True, exist_ok=True)
            os.rename(destination, backup_path)
        except OSError as e:
            raise LinkIOError(destination, e) from e

        if not backup_path.is_file() or destination.exists():
            raise LinkIOError(
                destination,
                OSError(f"backup move to `{backup_path}` could not be verified"),
                backup_path if backup_path.exists() else None,
            )

    def _place(
        self,
        destination: Path,
        artifact: StagedArtifact,
        mode: int | None,
        backup_path: Path | None = None,
    ) -> None:
        try:
            atomic_write_bytes(
                destination,
                artifact.rendered_bytes,
                mode=mode if mode is not None else DEFAULT_FILE_MODE,
            )
        except OSError as e:
            raise LinkIOError(destination, e, backup_path) from e
