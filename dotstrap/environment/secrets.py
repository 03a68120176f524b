"""Secret resolution backed by environment variables or files."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping

from pydantic import SecretStr

from ..core.errors import MissingSecret, UnreadableSecretFile
from ..core.models import EnvSecretSpec, FileSecretSpec, ResolvedSecret, SecretSpec

logger = logging.getLogger(__name__)


def expand_secret_path(path: Path, repo_root: Path, home: Path | None = None) -> Path:
    """Resolve a secret file path.

    ``~/`` expands against ``home``, other relative paths against the
    repository root, absolute paths are returned unchanged.
    """
    text = path.as_posix()
    if text.startswith("~/") and home is not None:
        return home / text[2:]
    if not path.is_absolute():
        return repo_root / path
    return path


def _strip_trailing_newline(text: str) -> str:
    if text.endswith("\r\n"):
        return text[:-2]
    if text.endswith("\n"):
        return text[:-1]
    return text


def _resolve_env(
    name: str, spec: EnvSecretSpec, environ: Mapping[str, str]
) -> ResolvedSecret | None:
    value = environ.get(spec.key)
    if value is None:
        if spec.optional:
            logger.debug(f"Optional secret {name} not set ({spec.key}); omitting")
            return None
        raise MissingSecret(name, spec.key)
    return ResolvedSecret(name=name, value=SecretStr(value))


def _resolve_file(
    name: str, spec: FileSecretSpec, repo_root: Path, home: Path | None
) -> ResolvedSecret:
    path = expand_secret_path(spec.path, repo_root, home)
    try:
        contents = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise UnreadableSecretFile(name, path, e) from e
    return ResolvedSecret(name=name, value=SecretStr(_strip_trailing_newline(contents)))


def resolve(
    specs: Mapping[str, SecretSpec],
    repo_root: Path,
    *,
    environ: Mapping[str, str] | None = None,
    home: Path | None = None,
) -> dict[str, ResolvedSecret]:
    """Resolve every declared secret or fail the whole batch.

    Args:
        specs: Secret declarations keyed by secret name
        repo_root: Configuration repository root for relative file paths
        environ: Environment mapping (defaults to the process environment)
        home: Home directory used to expand ``~/`` in file paths

    Returns:
        Mapping of secret name to resolved secret. Optional environment
        secrets that are unset are omitted.
    """
    env = os.environ if environ is None else environ
    resolved: dict[str, ResolvedSecret] = {}

    for name, spec in specs.items():
        if isinstance(spec, EnvSecretSpec):
            secret = _resolve_env(name, spec, env)
        elif isinstance(spec, FileSecretSpec):
            secret = _resolve_file(name, spec, repo_root, home)
        else:
            raise TypeError(f"Unknown secret source for {name}: {type(spec).__name__}")

        if secret is not None:
            resolved[name] = secret

    logger.debug(f"Resolved {len(resolved)} secret(s): {sorted(resolved)}")
    return resolved
