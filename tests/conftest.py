"""Shared pytest fixtures and test helpers for phasectl tests."""

from __future__ import annotations

import itertools
import logging
from collections import defaultdict
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from phasectl.domain.catalog import (
    Catalog,
    ObjectRef,
    RulePhase,
    TargetObject,
    is_derived_group_name,
)
from phasectl.domain.errors import NotFoundError
from phasectl.domain.types import ObjectKind
from phasectl.infrastructure.site import RemoteObject
from phasectl.services.provisioner import Provisioner
from phasectl.services.telemetry import disable_telemetry

RULE_TEMPLATE = (
    "<DeploymentCreationActionXML>"
    "<CollectionId>SMS00001</CollectionId>"
    "<EnableDeployment>false</EnableDeployment>"
    "</DeploymentCreationActionXML>"
)

# Calls that never change site state.
READ_VERBS = frozenset({"get", "associations", "derived_groups", "read_document"})


class FakeSite:
    """In-memory SiteClient that records every call.

    Failure injection: put an exception into ``fail_create``
    (keyed by ``(kind, name)``), ``fail_phase`` (keyed by grouping name)
    or ``fail_remove`` (keyed by ``(kind, name)``).
    """

    def __init__(self) -> None:
        self.objects: dict[tuple[ObjectKind, str], RemoteObject] = {}
        self.phases: defaultdict[str, list[tuple[str, RulePhase]]] = defaultdict(list)
        self.documents: dict[str, str] = {}
        self.blockers: dict[str, list[str]] = {}
        self.calls: list[tuple[Any, ...]] = []
        self.fail_create: dict[tuple[ObjectKind, str], Exception] = {}
        self.fail_phase: dict[str, Exception] = {}
        self.fail_remove: dict[tuple[ObjectKind, str], Exception] = {}
        self.closed = False
        self._ids = itertools.count(1)

    # -- helpers ---------------------------------------------------------

    def add(self, kind: ObjectKind, name: str, **properties: Any) -> RemoteObject:
        remote = RemoteObject(kind=kind, name=name, id=f"ID{next(self._ids):05d}", properties=properties)
        self.objects[(kind, name)] = remote
        if kind == ObjectKind.RULE:
            self.documents[remote.id] = RULE_TEMPLATE
        return remote

    def names(self, kind: ObjectKind) -> list[str]:
        return [name for (k, name) in self.objects if k == kind]

    def mutations(self) -> list[tuple[Any, ...]]:
        return [c for c in self.calls if c[0] not in READ_VERBS]

    def snapshot(self) -> dict[str, Any]:
        return {
            "objects": sorted((str(k), n) for (k, n) in self.objects),
            "phases": {rid: [g for g, _ in items] for rid, items in self.phases.items()},
            "documents": dict(self.documents),
        }

    # -- SiteClient ------------------------------------------------------

    def get(self, kind: ObjectKind, name: str) -> RemoteObject | None:
        self.calls.append(("get", kind, name))
        return self.objects.get((kind, name))

    def create(
        self, target: TargetObject, *, dependency: RemoteObject | None = None
    ) -> RemoteObject:
        self.calls.append(("create", target.kind, target.name))
        error = self.fail_create.get((target.kind, target.name))
        if error is not None:
            raise error
        return self.add(target.kind, target.name, **target.config)

    def remove(self, remote: RemoteObject) -> None:
        self.calls.append(("remove", remote.kind, remote.name))
        error = self.fail_remove.get((remote.kind, remote.name))
        if error is not None:
            raise error
        if (remote.kind, remote.name) not in self.objects:
            raise NotFoundError(f"{remote.name} is gone")
        del self.objects[(remote.kind, remote.name)]
        self.phases.pop(remote.id, None)
        self.documents.pop(remote.id, None)

    def append_phase(self, rule: RemoteObject, phase: RulePhase, grouping: RemoteObject) -> None:
        self.calls.append(("append_phase", rule.name, grouping.name))
        error = self.fail_phase.get(grouping.name)
        if error is not None:
            raise error
        self.phases[rule.id].append((grouping.name, phase))

    def associations(self, grouping: RemoteObject) -> list[str]:
        self.calls.append(("associations", grouping.name))
        return list(self.blockers.get(grouping.name, []))

    def derived_groups(self, rule_name: str) -> list[RemoteObject]:
        self.calls.append(("derived_groups", rule_name))
        return [
            remote
            for (kind, name), remote in self.objects.items()
            if kind == ObjectKind.UPDATE_GROUP and is_derived_group_name(rule_name, name)
        ]

    def read_document(self, rule: RemoteObject) -> str:
        self.calls.append(("read_document", rule.name))
        return self.documents[rule.id]

    def write_document(self, rule: RemoteObject, document: str) -> None:
        self.calls.append(("write_document", rule.name))
        self.documents[rule.id] = document

    def close(self) -> None:
        self.closed = True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

GROUPING_A = "Grouping A"
PACKAGE_B = "Package B"
RULE_C = "Rule C"


@pytest.fixture(autouse=True)
def _reset_process_state() -> Generator[None]:
    """Undo logging and telemetry setup done by AppContext during CLI runs."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    disable_telemetry()


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def site() -> FakeSite:
    return FakeSite()


@pytest.fixture
def sample_catalog() -> Catalog:
    """groupingA, packageB (no dependency), ruleC (depends on groupingA, 2 phases)."""
    return Catalog(
        objects=(
            TargetObject(kind=ObjectKind.GROUPING, name=GROUPING_A, config={"comment": "pilot"}),
            TargetObject(
                kind=ObjectKind.PACKAGE,
                name=PACKAGE_B,
                config={"pkg_source_path": r"\\files\updates\B"},
            ),
            TargetObject(
                kind=ObjectKind.RULE,
                name=RULE_C,
                depends_on=ObjectRef(kind=ObjectKind.GROUPING, name=GROUPING_A),
                phases=(
                    RulePhase(grouping=GROUPING_A),
                    RulePhase(grouping=GROUPING_A, deadline="P7D"),
                ),
            ),
        )
    )


@pytest.fixture
def provisioner(site: FakeSite, sample_catalog: Catalog) -> Provisioner:
    return Provisioner(site, sample_catalog)


@pytest.fixture
def _isolated_workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """CWD with a complete phasectl.toml so commands never prompt.

    Use via ``@pytest.mark.usefixtures("_isolated_workspace")`` on command
    test classes.
    """
    monkeypatch.delenv("PHASECTL_CONFIG", raising=False)
    (tmp_path / "phasectl.toml").write_text(
        "[site]\n"
        'endpoint = "https://cm.example.test"\n'
        "share_path = '\\\\files\\updates'\n",
        encoding="utf-8",
    )
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def cli_site(site: FakeSite, monkeypatch: pytest.MonkeyPatch) -> FakeSite:
    """Route the CLI's AdminServiceSite construction to the in-memory site."""
    from phasectl.infrastructure.adminservice import AdminServiceSite

    monkeypatch.setattr(AdminServiceSite, "from_connection", lambda connection: site)
    return site
