"""dotstrap - Materialize templated dotfiles into a home directory.

Secrets are resolved up front, templates are rendered with Jinja2, staged,
and linked into place with a backup of every file they replace.
"""

__version__ = "0.1.0"

# Configure logging for library use
import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())

# Re-export main CLI entry point
from .cli import main

__all__ = ["main"]
