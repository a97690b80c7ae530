r"""Catalog files — TOML description of a topology.

Layout::

    [[objects]]
    kind = "package"
    name = "SUM - Workstation Updates"
    config = { pkg_source_path = "{share}\\Workstation Updates" }

    [[objects]]
    kind = "rule"
    name = "ADR - Workstation Monthly"
    depends_on = { kind = "package", name = "SUM - Workstation Updates" }

    [[objects.phases]]
    grouping = "SUM - Pilot Workstations"
    deadline = "P2D"

``{share}`` inside any string config value is replaced by the configured
share path.  Order in the file is creation order.
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from phasectl.domain.catalog import Catalog, default_catalog

SHARE_PLACEHOLDER = "{share}"


class CatalogError(ValueError):
    """A catalog file could not be read or failed validation."""


def _substitute(value: Any, share_path: str | None, where: str) -> Any:
    if isinstance(value, str):
        if SHARE_PLACEHOLDER not in value:
            return value
        if share_path is None:
            msg = f"{where} uses {SHARE_PLACEHOLDER} but no share path is configured"
            raise CatalogError(msg)
        return value.replace(SHARE_PLACEHOLDER, share_path.rstrip("\\"))
    if isinstance(value, list):
        return [_substitute(v, share_path, where) for v in value]
    if isinstance(value, dict):
        return {k: _substitute(v, share_path, where) for k, v in value.items()}
    return value


def parse_catalog(data: dict[str, Any], *, share_path: str | None = None) -> Catalog:
    """Validate already-decoded catalog data."""
    objects = data.get("objects", [])
    if not isinstance(objects, list):
        msg = "'objects' must be an array of tables"
        raise CatalogError(msg)
    prepared: list[dict[str, Any]] = []
    for index, raw in enumerate(objects):
        if not isinstance(raw, dict):
            msg = f"objects[{index}] must be a table"
            raise CatalogError(msg)
        item = dict(raw)
        where = f"objects[{index}] ({item.get('name', '?')})"
        if "config" in item:
            item["config"] = _substitute(item["config"], share_path, where)
        prepared.append(item)
    try:
        return Catalog.model_validate({"objects": prepared})
    except ValidationError as exc:
        msg = f"Invalid catalog: {exc}"
        raise CatalogError(msg) from exc


def load_catalog(path: Path | None, *, share_path: str | None = None) -> Catalog:
    """Load the catalog at *path*, or the built-in one when *path* is None.

    Raises:
        CatalogError: Unreadable file, bad TOML, or validation failure.
    """
    if path is None:
        if share_path is None:
            msg = "The built-in catalog needs a share path for package sources"
            raise CatalogError(msg)
        return default_catalog(share_path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Cannot read catalog {path}: {exc}"
        raise CatalogError(msg) from exc
    try:
        data = tomllib.loads(raw)
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in {path}: {exc}"
        raise CatalogError(msg) from exc
    return parse_catalog(data, share_path=share_path)
