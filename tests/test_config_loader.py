"""Tests for loading the configuration repository files."""
from pathlib import Path

import pytest

from dotstrap.config.loader import (
    load_brew_spec,
    load_manifest,
    load_secret_specs,
    load_values,
)
from dotstrap.core.errors import (
    ConfigParseError,
    ManifestMissingTemplates,
    UnsupportedManifestVersion,
)
from dotstrap.core.models import EnvSecretSpec, FileSecretSpec


class TestLoadManifest:
    """Manifest parsing and validation."""

    def test_loads_entries(self, repo):
        """Entries keep source and home-relative destination."""
        manifest = load_manifest(repo)

        assert manifest.version == 1
        assert len(manifest.templates) == 1
        entry = manifest.templates[0]
        assert entry.source == Path("templates/gitconfig.tmpl")
        assert entry.destination == Path(".gitconfig")
        assert entry.mode is None

    def test_unsupported_version(self, tmp_path, write):
        """Unknown versions fail before entries are validated."""
        write(
            tmp_path / "manifest.yaml",
            """\
            version: 2
            templates:
              - unexpected: shape
            """,
        )

        with pytest.raises(UnsupportedManifestVersion) as exc_info:
            load_manifest(tmp_path)

        assert exc_info.value.version == 2

    @pytest.mark.parametrize("version", ['"2"', "2.0"])
    def test_unsupported_version_after_coercion(self, tmp_path, write, version):
        """Versions the schema would coerce are gated too."""
        write(
            tmp_path / "manifest.yaml",
            f"""\
            version: {version}
            templates:
              - source: a.tmpl
                destination: .a
            """,
        )

        with pytest.raises(UnsupportedManifestVersion) as exc_info:
            load_manifest(tmp_path)

        assert exc_info.value.version == 2

    @pytest.mark.parametrize("body", ["version: 1\n", "version: 1\ntemplates: []\n"])
    def test_missing_templates(self, tmp_path, write, body):
        """A manifest without templates is rejected."""
        write(tmp_path / "manifest.yaml", body)

        with pytest.raises(ManifestMissingTemplates):
            load_manifest(tmp_path)

    def test_invalid_yaml(self, tmp_path, write):
        """Malformed YAML is reported with the file path."""
        path = write(tmp_path / "manifest.yaml", "version: [1\n")

        with pytest.raises(ConfigParseError) as exc_info:
            load_manifest(tmp_path)

        assert exc_info.value.path == path

    def test_missing_manifest(self, tmp_path):
        """A repository without a manifest cannot be loaded."""
        with pytest.raises(ConfigParseError):
            load_manifest(tmp_path)

    def test_octal_mode_string(self, tmp_path, write):
        """Quoted octal modes are parsed as octal."""
        write(
            tmp_path / "manifest.yaml",
            """\
            version: 1
            templates:
              - source: ssh.tmpl
                destination: .ssh/config
                mode: "0600"
            """,
        )

        manifest = load_manifest(tmp_path)

        assert manifest.templates[0].mode == 0o600

    def test_tilde_destination_is_home_relative(self, tmp_path, write):
        """A leading ~/ names the home root."""
        write(
            tmp_path / "manifest.yaml",
            """\
            version: 1
            templates:
              - source: zshrc.tmpl
                destination: ~/.zshrc
            """,
        )

        manifest = load_manifest(tmp_path)

        assert manifest.templates[0].destination == Path(".zshrc")

    @pytest.mark.parametrize("destination", ["/etc/passwd", "../outside", "."])
    def test_rejects_destinations_outside_home(self, tmp_path, write, destination):
        """Absolute and parent-relative destinations are schema errors."""
        write(
            tmp_path / "manifest.yaml",
            f"""\
            version: 1
            templates:
              - source: a.tmpl
                destination: "{destination}"
            """,
        )

        with pytest.raises(ConfigParseError):
            load_manifest(tmp_path)


class TestLoadValues:
    """Shared values loading."""

    def test_values(self, repo):
        assert load_values(repo) == {"user": {"name": "Ada Lovelace"}}

    def test_values_not_found(self, tmp_path):
        assert load_values(tmp_path) == {}

    def test_values_empty(self, tmp_path, write):
        write(tmp_path / "values.yaml", "")
        assert load_values(tmp_path) == {}

    def test_values_invalid(self, tmp_path, write):
        write(tmp_path / "values.yaml", "key: [unterminated\n")
        with pytest.raises(ConfigParseError):
            load_values(tmp_path)


class TestLoadSecretSpecs:
    """Secret declaration loading."""

    def test_env_and_file_variants(self, tmp_path, write):
        """Both source kinds are parsed into their own models."""
        write(
            tmp_path / "secrets" / "secrets.yaml",
            """\
            github_token:
              from: env
              key: DOTSTRAP_GITHUB_TOKEN
            npm_token:
              from: env
              key: NPM_TOKEN
              optional: true
            signing_key:
              from: file
              path: keys/signing
            """,
        )

        specs = load_secret_specs(tmp_path)

        assert specs["github_token"] == EnvSecretSpec(key="DOTSTRAP_GITHUB_TOKEN")
        assert specs["npm_token"] == EnvSecretSpec(key="NPM_TOKEN", optional=True)
        assert isinstance(specs["signing_key"], FileSecretSpec)
        assert specs["signing_key"].path == Path("keys/signing")

    def test_no_secrets_file(self, tmp_path):
        assert load_secret_specs(tmp_path) == {}

    def test_unknown_source(self, tmp_path, write):
        """Only env and file sources exist."""
        write(
            tmp_path / "secrets" / "secrets.yaml",
            """\
            token:
              from: vault
              key: x
            """,
        )

        with pytest.raises(ConfigParseError):
            load_secret_specs(tmp_path)

    def test_not_a_mapping(self, tmp_path, write):
        write(tmp_path / "secrets" / "secrets.yaml", "SYNTAX_ERROR\n")

        with pytest.raises(ConfigParseError):
            load_secret_specs(tmp_path)


class TestLoadBrewSpec:
    """Homebrew package list loading."""

    def test_not_found(self, tmp_path):
        assert load_brew_spec(tmp_path) is None

    def test_parsed(self, tmp_path, write):
        write(
            tmp_path / "brew" / "packages.yaml",
            """\
            taps: [homebrew/cask]
            formulae: [fzf, ripgrep]
            """,
        )

        spec = load_brew_spec(tmp_path)

        assert spec.taps == ["homebrew/cask"]
        assert spec.formulae == ["fzf", "ripgrep"]
        assert spec.casks == []

    def test_invalid(self, tmp_path, write):
        write(tmp_path / "brew" / "packages.yaml", "taps: {not: a list}\n")

        with pytest.raises(ConfigParseError):
            load_brew_spec(tmp_path)
