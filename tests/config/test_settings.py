"""Tests for PhaseSettings — unified settings with TOML source."""

from pathlib import Path

import click
import pytest

from phasectl.config.settings import PhaseSettings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("PHASECTL_CONFIG", "PHASECTL_SITE__ENDPOINT", "PHASECTL_SITE__SHARE_PATH"):
        monkeypatch.delenv(name, raising=False)


class TestPhaseSettingsDefaults:
    def test_all_defaults(self, tmp_path: Path) -> None:
        """With no TOML and no env vars, all fields use code defaults."""
        settings = PhaseSettings.from_cli(root=tmp_path)
        assert settings.root == tmp_path
        assert settings.config_path is None
        assert settings.json_output is False
        assert settings.quiet is False
        assert settings.verbose is False
        assert settings.no_interact is False
        assert settings.site.endpoint is None
        assert settings.site.timeout == 30.0
        assert settings.catalog.path is None

    def test_frozen(self, tmp_path: Path) -> None:
        settings = PhaseSettings.from_cli(root=tmp_path)
        with pytest.raises(Exception):
            settings.quiet = True  # type: ignore[misc]


class TestTomlSource:
    def test_loads_from_toml(self, tmp_path: Path) -> None:
        toml = tmp_path / "phasectl.toml"
        toml.write_text(
            '[site]\nendpoint = "https://cm.example.test"\n'
            "share_path = '\\\\files\\updates'\n"
        )
        settings = PhaseSettings.from_cli(root=tmp_path)
        assert settings.site.endpoint == "https://cm.example.test"
        assert settings.site.share_path == r"\\files\updates"
        assert settings.site.verify_tls is True  # default preserved
        assert settings.config_path == toml

    def test_root_defaults_to_config_parent(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / "phasectl.toml").write_text("")
        nested = tmp_path / "deploy" / "site1"
        nested.mkdir(parents=True)
        monkeypatch.chdir(nested)
        settings = PhaseSettings.from_cli()
        assert settings.root == tmp_path

    def test_explicit_config_path(self, tmp_path: Path) -> None:
        custom = tmp_path / "custom" / "my.toml"
        custom.parent.mkdir(parents=True)
        custom.write_text('[site]\nusername = "CONTOSO\\\\svc"\n')
        settings = PhaseSettings.from_cli(config_path=str(custom), root=tmp_path)
        assert settings.site.username == "CONTOSO\\svc"
        assert settings.config_path == custom

    def test_invalid_toml(self, tmp_path: Path) -> None:
        (tmp_path / "phasectl.toml").write_text("[site\n")
        with pytest.raises(click.ClickException, match="Invalid TOML"):
            PhaseSettings.from_cli(root=tmp_path)


class TestEnvVars:
    def test_env_overrides_toml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (tmp_path / "phasectl.toml").write_text('[site]\nendpoint = "https://toml"\n')
        monkeypatch.setenv("PHASECTL_SITE__ENDPOINT", "https://env")
        settings = PhaseSettings.from_cli(root=tmp_path)
        assert settings.site.endpoint == "https://env"

    def test_env_merges_with_toml_section(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        (tmp_path / "phasectl.toml").write_text('[site]\nendpoint = "https://toml"\n')
        monkeypatch.setenv("PHASECTL_SITE__SHARE_PATH", r"\\env\share")
        settings = PhaseSettings.from_cli(root=tmp_path)
        assert settings.site.endpoint == "https://toml"
        assert settings.site.share_path == r"\\env\share"


class TestCliFlags:
    def test_cli_flags_override(self, tmp_path: Path) -> None:
        settings = PhaseSettings.from_cli(
            root=tmp_path, json_output=True, quiet=True, verbose=True, no_interact=True
        )
        assert settings.json_output is True
        assert settings.quiet is True
        assert settings.verbose is True
        assert settings.no_interact is True

    def test_cli_flags_override_toml(self, tmp_path: Path) -> None:
        (tmp_path / "phasectl.toml").write_text("verbose = true\n")
        settings = PhaseSettings.from_cli(root=tmp_path, verbose=False)
        assert settings.verbose is False

    def test_none_flags_dropped(self, tmp_path: Path) -> None:
        (tmp_path / "phasectl.toml").write_text("verbose = true\n")
        settings = PhaseSettings.from_cli(root=tmp_path, verbose=None)
        assert settings.verbose is True


class TestCatalogSource:
    def test_builtin_when_unset(self, tmp_path: Path) -> None:
        assert PhaseSettings.from_cli(root=tmp_path).catalog_source() is None

    def test_relative_toml_path_resolves_against_root(self, tmp_path: Path) -> None:
        (tmp_path / "phasectl.toml").write_text('[catalog]\npath = "topology.toml"\n')
        settings = PhaseSettings.from_cli(root=tmp_path)
        assert settings.catalog_source() == tmp_path / "topology.toml"

    def test_flag_wins_over_toml(self, tmp_path: Path) -> None:
        (tmp_path / "phasectl.toml").write_text('[catalog]\npath = "topology.toml"\n')
        override = tmp_path / "other.toml"
        settings = PhaseSettings.from_cli(root=tmp_path, catalog_file=override)
        assert settings.catalog_source() == override
