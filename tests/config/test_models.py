"""Tests for configuration models and up-front connection validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from phasectl.config.models import CatalogConfig, ConfigError, PhaseConfig, SiteConfig

COMPLETE = {"endpoint": "https://cm.example.test", "share_path": r"\\files\updates"}


class TestSiteConfig:
    def test_defaults(self) -> None:
        cfg = SiteConfig()
        assert cfg.endpoint is None
        assert cfg.share_path is None
        assert cfg.verify_tls is True
        assert cfg.timeout == 30.0

    def test_password_is_secret(self) -> None:
        cfg = SiteConfig(password="hunter2")
        assert "hunter2" not in repr(cfg)
        assert cfg.password is not None
        assert cfg.password.get_secret_value() == "hunter2"

    def test_frozen(self) -> None:
        with pytest.raises(ValidationError):
            SiteConfig().endpoint = "x"  # type: ignore[misc]


class TestResolve:
    def test_complete(self) -> None:
        conn = SiteConfig(**COMPLETE).resolve()
        assert conn.endpoint == "https://cm.example.test"
        assert conn.share_path == r"\\files\updates"
        assert conn.username is None

    def test_normalizes_trailing_separators(self) -> None:
        conn = SiteConfig(
            endpoint=" https://cm.example.test/ ", share_path="\\\\files\\updates\\"
        ).resolve()
        assert conn.endpoint == "https://cm.example.test"
        assert conn.share_path == r"\\files\updates"

    def test_missing_fields_all_listed(self) -> None:
        with pytest.raises(ConfigError) as info:
            SiteConfig().resolve()
        assert info.value.fields == ["endpoint", "share_path"]
        assert "endpoint: not set" in str(info.value)
        assert "share_path: not set" in str(info.value)

    def test_bad_endpoint(self) -> None:
        with pytest.raises(ConfigError, match="endpoint") as info:
            SiteConfig(endpoint="cm.example.test", share_path=r"\\files\updates").resolve()
        assert info.value.fields == ["endpoint"]

    @pytest.mark.parametrize(
        "share", ["C:\\updates", r"\\server", "/mnt/updates", r"\\server\\"]
    )
    def test_share_must_be_unc(self, share: str) -> None:
        with pytest.raises(ConfigError, match="UNC path"):
            SiteConfig(endpoint="https://cm", share_path=share).resolve()

    def test_timeout_positive(self) -> None:
        with pytest.raises(ConfigError) as info:
            SiteConfig(**COMPLETE, timeout=0).resolve()
        assert info.value.fields == ["timeout"]

    def test_overrides_win(self) -> None:
        conn = SiteConfig(endpoint="https://old").resolve(
            endpoint="https://new", share_path=r"\\f\s", username=None
        )
        assert conn.endpoint == "https://new"
        assert conn.share_path == r"\\f\s"

    def test_config_error_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            SiteConfig().resolve()


class TestPhaseConfig:
    def test_defaults(self) -> None:
        cfg = PhaseConfig()
        assert cfg.site == SiteConfig()
        assert cfg.catalog == CatalogConfig()
        assert cfg.catalog.path is None

    def test_validate_nested(self) -> None:
        cfg = PhaseConfig.model_validate({"site": COMPLETE, "catalog": {"path": "c.toml"}})
        assert cfg.site.endpoint == COMPLETE["endpoint"]
        assert str(cfg.catalog.path) == "c.toml"
