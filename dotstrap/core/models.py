"""Domain models for manifests, secrets, staged output and link outcomes."""

from __future__ import annotations

import datetime as dt
from enum import Enum
from pathlib import Path
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

MANIFEST_VERSION = 1
DEFAULT_FILE_MODE = 0o644


class ManifestEntry(BaseModel):
    """A single template-to-destination mapping."""

    model_config = ConfigDict(frozen=True)

    source: Path = Field(..., description="Template path relative to the repository")
    destination: Path = Field(..., description="Target path relative to the home root")
    mode: int | None = Field(default=None, description="File permissions (octal)")

    @field_validator("destination")
    @classmethod
    def _relative_destination(cls, value: Path) -> Path:
        text = value.as_posix()
        if text.startswith("~/"):
            value = Path(text[2:])
        if value.is_absolute():
            raise ValueError(f"destination must be relative to the home directory: {text}")
        if ".." in value.parts:
            raise ValueError(f"destination may not contain '..': {text}")
        if not value.parts:
            raise ValueError("destination must name a file")
        return value

    @field_validator("mode", mode="before")
    @classmethod
    def _octal_mode(cls, value: object) -> object:
        if value is None:
            return None
        if isinstance(value, bool):
            raise ValueError("mode must be an octal number")
        if isinstance(value, str):
            try:
                value = int(value, 8)
            except ValueError as e:
                raise ValueError(f"Invalid octal mode: {value!r}") from e
        if isinstance(value, int) and not 0 <= value <= 0o7777:
            raise ValueError(f"mode out of range: {oct(value)}")
        return value


class Manifest(BaseModel):
    """Manifest describing how templates are rendered and linked."""

    version: int = Field(..., description="Manifest format version")
    templates: list[ManifestEntry] = Field(default_factory=list)


class EnvSecretSpec(BaseModel):
    """Secret read from an environment variable."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    source: Literal["env"] = Field(default="env", alias="from")
    key: str = Field(..., min_length=1, description="Environment variable name")
    optional: bool = Field(default=False, description="Omit instead of failing when unset")


class FileSecretSpec(BaseModel):
    """Secret read from a file, relative to the repository unless absolute."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    source: Literal["file"] = Field(default="file", alias="from")
    path: Path = Field(..., description="Secret file path")


SecretSpec = Annotated[
    Union[EnvSecretSpec, FileSecretSpec], Field(discriminator="source")
]


class ResolvedSecret(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    value: SecretStr


class BrewSpec(BaseModel):
    """Declarative definition of Homebrew taps, formulae and casks."""

    taps: list[str] = Field(default_factory=list)
    formulae: list[str] = Field(default_factory=list)
    casks: list[str] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.taps or self.formulae or self.casks)


class StagedArtifact(BaseModel):
    """Rendered content written to the staging area for one destination."""

    model_config = ConfigDict(frozen=True)

    destination: Path
    rendered_bytes: bytes
    mode: int | None = None
    staged_path: Path | None = None


class LinkStatus(str, Enum):
    LINKED = "linked"
    BACKED_UP_AND_LINKED = "backed_up_and_linked"
    SKIPPED_DRY_RUN = "skipped_dry_run"
    FAILED = "failed"


class LinkOutcome(BaseModel):
    """Result of committing one destination."""

    model_config = ConfigDict(frozen=True)

    status: LinkStatus
    destination: Path
    backup_path: Path | None = None
    reason: str | None = None

    @property
    def failed(self) -> bool:
        return self.status is LinkStatus.FAILED

    @classmethod
    def linked(cls, destination: Path) -> LinkOutcome:
        return cls(status=LinkStatus.LINKED, destination=destination)

    @classmethod
    def backed_up_and_linked(cls, destination: Path, backup_path: Path) -> LinkOutcome:
        return cls(
            status=LinkStatus.BACKED_UP_AND_LINKED,
            destination=destination,
            backup_path=backup_path,
        )

    @classmethod
    def skipped_dry_run(
        cls, destination: Path, backup_path: Path | None = None
    ) -> LinkOutcome:
        return cls(
            status=LinkStatus.SKIPPED_DRY_RUN,
            destination=destination,
            backup_path=backup_path,
        )

    @classmethod
    def failure(
        cls, destination: Path, reason: str, backup_path: Path | None = None
    ) -> LinkOutcome:
        return cls(
            status=LinkStatus.FAILED,
            destination=destination,
            reason=reason,
            backup_path=backup_path,
        )


class BackupRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    original_path: Path
    backup_path: Path
    timestamp: dt.datetime


class EntryOutcome(BaseModel):
    """Link outcome tied back to the manifest entry that produced it."""

    model_config = ConfigDict(frozen=True)

    entry: ManifestEntry
    outcome: LinkOutcome


class RunState(str, Enum):
    INITIALIZING = "initializing"
    RESOLVING_SECRETS = "resolving_secrets"
    RENDERING = "rendering"
    STAGING = "staging"
    LINKING = "linking"
    COMPLETED = "completed"
    ABORTED = "aborted"


class RunReport(BaseModel):
    """Outcome of one materialization run, in manifest order."""

    state: RunState
    dry_run: bool = False
    outcomes: list[EntryOutcome] = Field(default_factory=list)
    backups: list[BackupRecord] = Field(default_factory=list)

    @property
    def failures(self) -> list[EntryOutcome]:
        return [item for item in self.outcomes if item.outcome.failed]

    @property
    def succeeded(self) -> bool:
        return self.state is RunState.COMPLETED and not self.failures


class ExecutionReport(BaseModel):
    """Summary of a full dotstrap invocation."""

    run: RunReport
    brew_commands: list[str] = Field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.run.succeeded
