"""Staging of rendered output in the generated-content directory."""

from __future__ import annotations

import logging
from pathlib import Path

from ..core.errors import StagingIOError
from ..core.models import DEFAULT_FILE_MODE, ManifestEntry, StagedArtifact
from ..rendering.io import atomic_write_bytes

logger = logging.getLogger(__name__)


class StagingWriter:
    """Writes rendered content below ``staging_root``, keyed by destination."""

    def __init__(self, staging_root: Path) -> None:
        self.staging_root = staging_root

    def staged_path(self, entry: ManifestEntry) -> Path:
        root = self.staging_root.resolve()
        path = (root / entry.destination).resolve()
        if not path.is_relative_to(root) or path == root:
            raise StagingIOError(entry, f"`{entry.destination}` escapes the staging area")
        return path

    def stage(self, entry: ManifestEntry, rendered: bytes) -> StagedArtifact:
        """Write rendered content for one entry.

        Args:
            entry: Manifest entry the content belongs to
            rendered: Rendered template bytes

        Returns:
            Artifact describing the staged file
        """
        path = self.staged_path(entry)
        mode = entry.mode if entry.mode is not None else DEFAULT_FILE_MODE
        try:
            atomic_write_bytes(path, rendered, mode=mode)
        except OSError as e:
            raise StagingIOError(entry, e) from e

        logger.debug(f"Staged {entry.source} → {path}")
        return StagedArtifact(
            destination=entry.destination,
            rendered_bytes=rendered,
            mode=entry.mode,
            staged_path=path,
        )
