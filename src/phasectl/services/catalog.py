"""Catalog description — what a run would touch, without a site."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from phasectl.services.result import ServiceResult

if TYPE_CHECKING:
    from phasectl.domain.catalog import Catalog, TargetObject


def _describe(position: int, target: TargetObject, catalog: Catalog) -> dict[str, Any]:
    entry: dict[str, Any] = {
        "position": position,
        "kind": str(target.kind),
        "name": target.name,
    }
    if target.depends_on is not None:
        entry["depends_on"] = str(target.depends_on)
        entry["external"] = catalog.is_external(target.depends_on)
    if target.phases:
        entry["phases"] = [
            {
                "grouping": p.grouping,
                "deadline": "immediate" if p.immediate else str(p.deadline),
                "notification": str(p.notification),
            }
            for p in target.phases
        ]
    if target.enable_after_create is not None:
        entry["enable_after_create"] = target.enable_after_create
    return entry


def describe_catalog(catalog: Catalog, *, teardown: bool = False) -> ServiceResult:
    """List catalog objects in creation order, or teardown order if *teardown*."""
    ordered = catalog.teardown_order() if teardown else catalog.creation_order()
    return ServiceResult(
        ok=True,
        op="catalog",
        data={
            "order": "teardown" if teardown else "creation",
            "count": len(ordered),
            "objects": [_describe(i, t, catalog) for i, t in enumerate(ordered, start=1)],
        },
    )
