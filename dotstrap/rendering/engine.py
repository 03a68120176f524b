"""Template rendering engine."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from ..core.errors import RenderError, TemplateReadError
from ..core.models import ManifestEntry

logger = logging.getLogger(__name__)


def create_environment(repo_root: Path) -> Environment:
    """Create the Jinja2 environment used for every template of a repository.

    Args:
        repo_root: Configuration repository root, used as include search path

    Returns:
        Configured Jinja2 environment
    """
    loader = FileSystemLoader(str(repo_root))
    return Environment(
        loader=loader,
        undefined=StrictUndefined,
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


class TemplateRenderer:
    """Renders manifest entries from a configuration repository."""

    def __init__(self, repo_root: Path) -> None:
        self.repo_root = repo_root.resolve()
        self.env = create_environment(self.repo_root)

    def template_path(self, entry: ManifestEntry) -> Path:
        """Resolve the template path, rejecting sources outside the repository."""
        path = (self.repo_root / entry.source).resolve()
        if not path.is_relative_to(self.repo_root):
            raise TemplateReadError(entry, f"`{entry.source}` is outside the repository")
        return path

    def read_template(self, entry: ManifestEntry) -> str:
        path = self.template_path(entry)
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise TemplateReadError(entry, e) from e

    def render(self, entry: ManifestEntry, context: Mapping[str, Any]) -> bytes:
        """Render a single manifest entry.

        Args:
            entry: Manifest entry naming the template
            context: Template context data, passed verbatim

        Returns:
            Rendered content encoded as UTF-8
        """
        logger.debug(f"Rendering template: {entry.source}")

        text = self.read_template(entry)
        try:
            template = self.env.from_string(text)
            rendered_text = template.render(context)
        except Exception as e:
            raise RenderError(entry, e) from e

        return rendered_text.encode("utf-8")
