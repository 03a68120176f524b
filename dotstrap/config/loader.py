"""Loading and validation of the configuration repository files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import TypeAdapter, ValidationError

from ..core.errors import (
    ConfigParseError,
    ManifestMissingTemplates,
    UnsupportedManifestVersion,
)
from ..core.models import MANIFEST_VERSION, BrewSpec, Manifest, SecretSpec

logger = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.yaml"
VALUES_NAME = "values.yaml"
SECRETS_PATH = Path("secrets") / "secrets.yaml"
BREW_PATH = Path("brew") / "packages.yaml"

_SECRET_SPECS = TypeAdapter(dict[str, SecretSpec])
_VERSION = TypeAdapter(int)


def _read_yaml(path: Path) -> Any:
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        raise ConfigParseError(path, e) from e


def load_manifest(repo: Path) -> Manifest:
    """Load and validate the manifest from the repository root.

    Args:
        repo: Configuration repository root

    Returns:
        Validated manifest with at least one template entry
    """
    path = repo / MANIFEST_NAME
    data = _read_yaml(path)
    if not isinstance(data, dict):
        raise ConfigParseError(path, "expected a mapping at the document root")

    # Gated before the entries are validated, with the same int coercion the
    # schema applies.
    try:
        version = _VERSION.validate_python(data.get("version"))
    except ValidationError:
        version = None
    if version is not None and version != MANIFEST_VERSION:
        raise UnsupportedManifestVersion(path, version)

    try:
        manifest = Manifest.model_validate(data)
    except ValidationError as e:
        raise ConfigParseError(path, e) from e

    if not manifest.templates:
        raise ManifestMissingTemplates(path)

    logger.debug(f"Loaded manifest with {len(manifest.templates)} template(s)")
    return manifest


def load_values(repo: Path) -> dict[str, Any]:
    """Load shared values that seed the templating context."""
    path = repo / VALUES_NAME
    if not path.exists():
        return {}
    data = _read_yaml(path)
    if not isinstance(data, dict):
        return {}
    return {str(key): value for key, value in data.items()}


def load_secret_specs(repo: Path) -> dict[str, SecretSpec]:
    """Load the secret declarations from ``secrets/secrets.yaml``."""
    path = repo / SECRETS_PATH
    if not path.exists():
        return {}
    data = _read_yaml(path)
    if data is None:
        return {}
    try:
        return _SECRET_SPECS.validate_python(data)
    except ValidationError as e:
        raise ConfigParseError(path, e) from e


def load_brew_spec(repo: Path) -> BrewSpec | None:
    """Load the optional Homebrew package list from the repository root."""
    path = repo / BREW_PATH
    if not path.exists():
        return None
    data = _read_yaml(path)
    if data is None:
        return BrewSpec()
    try:
        return BrewSpec.model_validate(data)
    except ValidationError as e:
        raise ConfigParseError(path, e) from e
