"""SiteClient — the verbs the provisioner needs from a management site.

The provisioner treats the site as an opaque service.  Any object that
satisfies this protocol can be injected: the AdminService REST client in
production, an in-memory fake in tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from phasectl.domain.catalog import RulePhase, TargetObject
    from phasectl.domain.types import ObjectKind


@dataclass(frozen=True)
class RemoteObject:
    """An object as it exists on the site."""

    kind: ObjectKind
    name: str
    id: str
    properties: dict[str, Any] = field(default_factory=dict, compare=False)


@runtime_checkable
class SiteClient(Protocol):
    """Per-kind get/create/remove plus the rule and grouping extras.

    Implementations raise :class:`~phasectl.domain.errors.ProvisionError`
    subclasses; they never swallow failures.
    """

    def get(self, kind: ObjectKind, name: str) -> RemoteObject | None:
        """Look up an object by its unique name within *kind*."""
        ...

    def create(
        self, target: TargetObject, *, dependency: RemoteObject | None = None
    ) -> RemoteObject:
        """Create *target* with its configuration."""
        ...

    def remove(self, remote: RemoteObject) -> None:
        """Delete *remote* (rules take their phases with them)."""
        ...

    def append_phase(self, rule: RemoteObject, phase: RulePhase, grouping: RemoteObject) -> None:
        """Attach one deployment phase to *rule*."""
        ...

    def associations(self, grouping: RemoteObject) -> list[str]:
        """Describe everything still targeting *grouping* (empty when free)."""
        ...

    def derived_groups(self, rule_name: str) -> list[RemoteObject]:
        """Update groups generated by the rule called *rule_name*."""
        ...

    def read_document(self, rule: RemoteObject) -> str:
        """Return the rule's deployment template XML."""
        ...

    def write_document(self, rule: RemoteObject, document: str) -> None:
        """Replace the rule's deployment template XML."""
        ...
