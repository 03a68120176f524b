"""Shared test fixtures for dotstrap tests."""
import textwrap
from pathlib import Path

import pytest


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(text))
    return path


@pytest.fixture
def write():
    """Write dedented text to a path, creating parent directories."""
    return _write


@pytest.fixture
def home(tmp_path):
    """Empty home directory."""
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def repo(tmp_path):
    """Configuration repository with a single gitconfig template."""
    root = tmp_path / "repo"
    _write(
        root / "manifest.yaml",
        """\
        version: 1
        templates:
          - source: templates/gitconfig.tmpl
            destination: .gitconfig
        """,
    )
    _write(
        root / "values.yaml",
        """\
        user:
          name: Ada Lovelace
        """,
    )
    _write(
        root / "secrets" / "secrets.yaml",
        """\
        github_token:
          from: env
          key: DOTSTRAP_GITHUB_TOKEN
        """,
    )
    _write(
        root / "templates" / "gitconfig.tmpl",
        """\
        [user]
            name = {{ user.name }}
        token={{secrets.github_token}}
        """,
    )
    return root


@pytest.fixture
def token_env():
    """Environment mapping providing the example GitHub token."""
    return {"DOTSTRAP_GITHUB_TOKEN": "abc123"}
