"""Materialization orchestration: secrets → render → stage → link."""

from __future__ import annotations

import logging
import os
import tempfile
from concurrent.futures import ThreadPoolExecutor
from contextlib import ExitStack
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence, TypeVar

from ..core.errors import DotstrapError, DuplicateDestinationError
from ..core.models import (
    BackupRecord,
    EntryOutcome,
    LinkOutcome,
    ManifestEntry,
    RunReport,
    RunState,
    SecretSpec,
    StagedArtifact,
)
from ..environment import secrets
from ..environment.context import build_context
from ..linking.linker import DEFAULT_BACKUP_DIR_NAME, SafeLinker
from ..linking.staging import StagingWriter
from ..rendering.engine import TemplateRenderer

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def check_unique_destinations(entries: Sequence[ManifestEntry]) -> None:
    """Reject manifests in which two entries share a destination."""
    claimed: dict[str, list[Path]] = {}
    for entry in entries:
        key = os.path.normpath(entry.destination.as_posix())
        claimed.setdefault(key, []).append(entry.source)

    for key, sources in claimed.items():
        if len(sources) > 1:
            raise DuplicateDestinationError(Path(key), sources)


class Materializer:
    """Runs one materialization of a manifest into a home directory.

    Secret resolution is all-or-nothing and aborts the run before anything is
    rendered. After that, failures are isolated per entry: every entry is
    attempted and the report lists every outcome in manifest order.
    """

    def __init__(
        self,
        repo_root: Path,
        home_root: Path,
        *,
        staging_root: Path | None = None,
        backup_dir_name: str = DEFAULT_BACKUP_DIR_NAME,
        max_workers: int = 1,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.repo_root = repo_root
        self.home_root = home_root
        self.staging_root = staging_root or home_root / ".dotstrap" / "generated"
        self.linker = SafeLinker(home_root, backup_dir_name=backup_dir_name)
        self.max_workers = max(1, max_workers)
        self.environ = environ
        self.state = RunState.INITIALIZING

    def _transition(self, state: RunState) -> None:
        logger.debug(f"Run state: {self.state.value} → {state.value}")
        self.state = state

    def _map(
        self, func: Callable[[T], R], items: dict[int, T]
    ) -> dict[int, R | DotstrapError | OSError]:
        """Apply ``func`` to every item, collecting results on this thread."""
        results: dict[int, R | DotstrapError | OSError] = {}
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = {index: pool.submit(func, item) for index, item in items.items()}
            for index in sorted(futures):
                try:
                    results[index] = futures[index].result()
                except (DotstrapError, OSError) as e:
                    results[index] = e
        return results

    def _failed(self, entry: ManifestEntry, error: BaseException) -> EntryOutcome:
        logger.error(str(error))
        outcome = LinkOutcome.failure(self.home_root / entry.destination, str(error))
        return EntryOutcome(entry=entry, outcome=outcome)

    def run(
        self,
        entries: Sequence[ManifestEntry],
        shared_values: Mapping[str, Any],
        secret_specs: Mapping[str, SecretSpec],
        dry_run: bool = False,
    ) -> RunReport:
        """Materialize every entry.

        Args:
            entries: Manifest entries in manifest order
            shared_values: Values merged into the render context
            secret_specs: Secret declarations to resolve before rendering
            dry_run: Simulate linking without mutating the home directory

        Returns:
            Report with one outcome per entry
        """
        self._transition(RunState.INITIALIZING)
        try:
            check_unique_destinations(entries)
            self._transition(RunState.RESOLVING_SECRETS)
            resolved = secrets.resolve(
                secret_specs, self.repo_root, environ=self.environ, home=self.home_root
            )
            context = build_context(shared_values, resolved)
        except DotstrapError as e:
            self._transition(RunState.ABORTED)
            logger.error(f"Run aborted before rendering: {e}")
            raise

        outcomes: dict[int, EntryOutcome] = {}
        backups: list[BackupRecord] = []
        pending = dict(enumerate(entries))

        self._transition(RunState.RENDERING)
        renderer = TemplateRenderer(self.repo_root)
        rendered: dict[int, bytes] = {}
        for index, result in self._map(
            lambda entry: renderer.render(entry, context), pending
        ).items():
            if isinstance(result, BaseException):
                outcomes[index] = self._failed(pending[index], result)
            else:
                rendered[index] = result

        with ExitStack() as stack:
            staging_root = self.staging_root
            if dry_run:
                # The default staging area lives in the home root, which a
                # dry run must not touch.
                staging_root = Path(
                    stack.enter_context(
                        tempfile.TemporaryDirectory(prefix="dotstrap-dry-run-")
                    )
                )

            self._transition(RunState.STAGING)
            writer = StagingWriter(staging_root)
            staged: dict[int, StagedArtifact] = {}
            for index, result in self._map(
                lambda index: writer.stage(pending[index], rendered[index]),
                {index: index for index in rendered},
            ).items():
                if isinstance(result, BaseException):
                    outcomes[index] = self._failed(pending[index], result)
                else:
                    staged[index] = result

            self._transition(RunState.LINKING)
            for index, result in self._map(
                lambda artifact: self.linker.commit_with_record(artifact, dry_run),
                staged,
            ).items():
                if isinstance(result, BaseException):
                    outcomes[index] = self._failed(pending[index], result)
                    continue
                outcome, record = result
                if record is not None:
                    backups.append(record)
                outcomes[index] = EntryOutcome(entry=pending[index], outcome=outcome)

        self._transition(RunState.COMPLETED)
        report = RunReport(
            state=self.state,
            dry_run=dry_run,
            outcomes=[outcomes[index] for index in sorted(outcomes)],
            backups=backups,
        )
        logger.info(
            f"Materialized {len(report.outcomes)} template(s), "
            f"{len(report.failures)} failure(s)"
        )
        return report
