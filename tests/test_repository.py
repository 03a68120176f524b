"""Tests for repository resolution and command execution."""
import os

import pytest
from tenacity import wait_none

from dotstrap.core.errors import CommandFailed
from dotstrap.infrastructure.command import RecordingCommandRunner, SystemCommandRunner
from dotstrap.infrastructure.repository import resolve_repository


class TestResolveRepository:
    """Local paths and git remotes."""

    def test_local_path_used_in_place(self, repo):
        runner = RecordingCommandRunner()

        with resolve_repository(str(repo), runner) as handle:
            assert handle.path == repo.resolve()
            assert not handle.is_clone

        assert runner.calls == []
        assert repo.exists()

    def test_remote_is_cloned_into_temporary_directory(self):
        runner = RecordingCommandRunner()

        with resolve_repository("https://example.invalid/dotfiles.git", runner) as handle:
            program, args = runner.calls[0]
            assert program == "git"
            assert args[:4] == ["clone", "--depth", "1", "https://example.invalid/dotfiles.git"]
            assert args[4] == str(handle.path)
            assert handle.is_clone
            workdir = handle.path.parent
            assert workdir.exists()

        assert not workdir.exists()

    def test_clone_is_retried_then_fails(self):
        runner = RecordingCommandRunner(fail_on="git")

        with pytest.raises(CommandFailed):
            resolve_repository(
                "https://example.invalid/dotfiles.git", runner, attempts=3, wait=wait_none()
            )

        assert len(runner.calls) == 3


@pytest.mark.skipif(os.name != "posix", reason="uses POSIX true/false")
class TestSystemCommandRunner:
    def test_runs_true(self):
        SystemCommandRunner().run("true", [])

    def test_reports_failure(self):
        with pytest.raises(CommandFailed) as exc_info:
            SystemCommandRunner().run("false", [])

        assert exc_info.value.status == 1

    def test_reports_missing_program(self):
        with pytest.raises(CommandFailed):
            SystemCommandRunner().run("dotstrap-no-such-program", [])
