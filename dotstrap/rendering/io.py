"""File I/O operations for staging and linking."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path


def supports_permissions() -> bool:
    """Return True when the platform honours POSIX permission bits."""
    return os.name == "posix"


def ensure_parent(path: Path) -> None:
    """Ensure parent directories exist for the given path.

    Args:
        path: Path whose parent directories should be created
    """
    path.parent.mkdir(parents=True, exist_ok=True)


def atomic_write_bytes(path: Path, data: bytes, mode: int | None = None) -> None:
    """Write bytes to a file atomically using a temporary sibling file.

    The temporary file lives in the destination directory so the final
    ``os.replace`` never crosses a filesystem boundary. Observers see either
    the previous file or the complete new one.

    Args:
        path: Destination file path
        data: Content to write
        mode: File permissions (octal); ignored where unsupported
    """
    ensure_parent(path)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    try:
        with os.fdopen(fd, "wb") as tmp:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        if mode is not None and supports_permissions():
            os.chmod(tmp_name, mode)
        os.replace(tmp_name, path)
    finally:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)
