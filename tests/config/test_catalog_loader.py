"""Tests for TOML catalog loading."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path

import pytest

from phasectl.config.catalog_loader import CatalogError, load_catalog, parse_catalog
from phasectl.domain.types import NotificationPolicy, ObjectKind

SHARE = r"\\files\updates"

CATALOG_TOML = r"""
[[objects]]
kind = "grouping"
name = "Pilot"
config = { comment = "first wave" }

[[objects]]
kind = "package"
name = "Workstation Updates"
config = { pkg_source_path = "{share}\\Workstation Updates" }

[[objects]]
kind = "rule"
name = "ADR - Workstations"
depends_on = { kind = "package", name = "Workstation Updates" }
enable_after_create = true

[[objects.phases]]
grouping = "Pilot"
deadline = "P2D"
notification = "software_center_only"

[[objects.phases]]
grouping = "All Desktops"
available_after = "P7D"
suppress_restart_workstations = true
"""


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "catalog.toml"
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadCatalog:
    def test_loads_file(self, tmp_path: Path) -> None:
        catalog = load_catalog(_write(tmp_path, CATALOG_TOML), share_path=SHARE)
        assert [o.name for o in catalog.creation_order()] == [
            "Pilot",
            "Workstation Updates",
            "ADR - Workstations",
        ]
        pkg = catalog.find(ObjectKind.PACKAGE, "Workstation Updates")
        assert pkg is not None
        assert pkg.config["pkg_source_path"] == r"\\files\updates\Workstation Updates"

    def test_phases_parsed(self, tmp_path: Path) -> None:
        catalog = load_catalog(_write(tmp_path, CATALOG_TOML), share_path=SHARE)
        rule = catalog.find(ObjectKind.RULE, "ADR - Workstations")
        assert rule is not None
        assert rule.enable_after_create is True
        first, second = rule.phases
        assert first.deadline == timedelta(days=2)
        assert first.notification is NotificationPolicy.SOFTWARE_CENTER_ONLY
        assert second.immediate
        assert second.available_after == timedelta(days=7)
        assert second.suppress_restart_workstations is True
        assert first.suppress_restart_workstations is False

    def test_builtin_when_no_path(self) -> None:
        catalog = load_catalog(None, share_path=SHARE)
        assert len(catalog) == 10

    def test_builtin_needs_share(self) -> None:
        with pytest.raises(CatalogError, match="share path"):
            load_catalog(None)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(CatalogError, match="Cannot read catalog"):
            load_catalog(tmp_path / "nope.toml", share_path=SHARE)

    def test_bad_toml(self, tmp_path: Path) -> None:
        with pytest.raises(CatalogError, match="Invalid TOML"):
            load_catalog(_write(tmp_path, "[[objects]\n"), share_path=SHARE)

    def test_validation_failure(self, tmp_path: Path) -> None:
        text = '[[objects]]\nkind = "update_group"\nname = "x"\n'
        with pytest.raises(CatalogError, match="Invalid catalog"):
            load_catalog(_write(tmp_path, text), share_path=SHARE)


class TestParseCatalog:
    def test_empty(self) -> None:
        assert len(parse_catalog({})) == 0

    def test_objects_must_be_list(self) -> None:
        with pytest.raises(CatalogError, match="array of tables"):
            parse_catalog({"objects": {"kind": "grouping"}})

    def test_entries_must_be_tables(self) -> None:
        with pytest.raises(CatalogError, match=r"objects\[0\] must be a table"):
            parse_catalog({"objects": ["grouping"]})

    def test_placeholder_without_share(self) -> None:
        data = {
            "objects": [
                {"kind": "package", "name": "P", "config": {"pkg_source_path": "{share}\\P"}}
            ]
        }
        with pytest.raises(CatalogError, match="no share path"):
            parse_catalog(data)

    def test_placeholder_in_nested_values(self) -> None:
        data = {
            "objects": [
                {
                    "kind": "package",
                    "name": "P",
                    "config": {"sources": ["{share}\\a", {"path": "{share}\\b"}], "size": 3},
                }
            ]
        }
        catalog = parse_catalog(data, share_path="\\\\f\\s\\")
        config = catalog.objects[0].config
        assert config["sources"] == ["\\\\f\\s\\a", {"path": "\\\\f\\s\\b"}]
        assert config["size"] == 3

    def test_unknown_key_rejected(self) -> None:
        with pytest.raises(CatalogError):
            parse_catalog({"objects": [{"kind": "grouping", "name": "G", "colour": "red"}]})
