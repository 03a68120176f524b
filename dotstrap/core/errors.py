"""Error taxonomy shared across the materialization workflow."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ManifestEntry


class DotstrapError(Exception):
    """Base class for every failure raised by dotstrap."""


class HomeNotFound(DotstrapError):
    """Raised when no home directory can be determined."""

    def __init__(self) -> None:
        super().__init__("failed to determine home directory")


class ConfigParseError(DotstrapError):
    """Raised when a repository YAML file cannot be read, parsed or validated."""

    def __init__(self, path: Path, cause: object) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"failed to load yaml file `{path}`: {cause}")


class UnsupportedManifestVersion(DotstrapError):
    """Raised when the manifest declares a version this release cannot process."""

    def __init__(self, path: Path, version: int) -> None:
        self.path = path
        self.version = version
        super().__init__(f"manifest `{path}` declares unsupported version {version}")


class ManifestMissingTemplates(DotstrapError):
    """Raised when the manifest has no template entries."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"manifest `{path}` is missing templates section")


class DuplicateDestinationError(DotstrapError):
    """Raised when two manifest entries target the same destination."""

    def __init__(self, destination: Path, sources: list[Path]) -> None:
        self.destination = destination
        self.sources = sources
        listed = ", ".join(f"`{source}`" for source in sources)
        super().__init__(
            f"destination `{destination}` is claimed by more than one template: {listed}"
        )


class MissingSecret(DotstrapError):
    """Raised when an environment-backed secret is not set."""

    def __init__(self, name: str, key: str) -> None:
        self.name = name
        self.key = key
        super().__init__(
            f"secret `{name}` is not available from environment variable {key}"
        )


class UnreadableSecretFile(DotstrapError):
    """Raised when a file-backed secret cannot be read."""

    def __init__(self, name: str, path: Path, cause: BaseException) -> None:
        self.name = name
        self.path = path
        self.cause = cause
        super().__init__(f"secret `{name}` could not be read from `{path}`: {cause}")


class NamespaceCollision(DotstrapError):
    """Raised when shared values define a key reserved for secrets."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(
            f"shared values define reserved top-level key `{key}`; rename it"
        )


class CommandFailed(DotstrapError):
    """Raised when an external command cannot be spawned or exits non-zero."""

    def __init__(self, program: str, status: int, detail: str = "") -> None:
        self.program = program
        self.status = status
        message = f"command `{program}` failed with status {status}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class BrewUnavailable(DotstrapError):
    """Raised when Homebrew is required but cannot be executed."""

    def __init__(self) -> None:
        super().__init__("Homebrew is not installed or not executable")


class EntryError(DotstrapError):
    """Failure attributable to exactly one manifest entry."""

    def __init__(self, entry: ManifestEntry, message: str) -> None:
        self.entry = entry
        super().__init__(f"{entry.source} -> {entry.destination}: {message}")


class TemplateReadError(EntryError):
    def __init__(self, entry: ManifestEntry, cause: object) -> None:
        self.cause = cause
        super().__init__(entry, f"cannot read template: {cause}")


class RenderError(EntryError):
    def __init__(self, entry: ManifestEntry, cause: object) -> None:
        self.cause = cause
        super().__init__(entry, f"template render failure: {cause}")


class StagingIOError(EntryError):
    def __init__(self, entry: ManifestEntry, cause: object) -> None:
        self.cause = cause
        super().__init__(entry, f"cannot stage rendered output: {cause}")


class LinkValidationError(DotstrapError):
    """Raised when a destination is rejected before any mutation."""

    def __init__(self, destination: Path, reason: str) -> None:
        self.destination = destination
        self.reason = reason
        super().__init__(f"refusing to link `{destination}`: {reason}")


class LinkIOError(DotstrapError):
    """Raised when backing up or placing a destination fails.

    ``backup_path`` is set when the previous file was already displaced, so the
    user can restore it manually.
    """

    def __init__(
        self, destination: Path, cause: BaseException, backup_path: Path | None = None
    ) -> None:
        self.destination = destination
        self.cause = cause
        self.backup_path = backup_path
        message = f"failed to link `{destination}`: {cause}"
        if backup_path is not None:
            message = f"{message} (previous file preserved at `{backup_path}`)"
        super().__init__(message)
