"""Catalog models — the declarative description of a deployment topology.

A :class:`Catalog` is an ordered sequence of :class:`TargetObject` records.
Order is creation order (dependencies first); teardown walks it in
reverse.  References to names that are not in the catalog are treated as
external objects that must already exist on the site.
"""

from __future__ import annotations

import re
from datetime import timedelta
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from phasectl.domain.types import CATALOG_KINDS, NotificationPolicy, ObjectKind

IMMEDIATE = "immediate"

# ConfigMgr built-in "All Systems" collection.
ALL_SYSTEMS_COLLECTION_ID = "SMS00001"

# Update groups generated by a rule run are named "<rule> YYYY-MM-DD HH:MM:SS".
_DERIVED_SUFFIX = r" \d{4}-\d{2}-\d{2}(?: \d{2}:\d{2}:\d{2})?$"


def is_derived_group_name(rule_name: str, group_name: str) -> bool:
    """True when *group_name* was generated by the rule called *rule_name*.

    Examples:
        >>> is_derived_group_name("ADR - Server", "ADR - Server 2026-10-01 06:00:00")
        True
        >>> is_derived_group_name("ADR - Server", "ADR - Server Monthly 2026-10-14 23:00:00")
        False
    """
    return re.match(re.escape(rule_name) + _DERIVED_SUFFIX, group_name) is not None


class ObjectRef(BaseModel):
    """Reference to a target object by kind and name."""

    model_config = {"frozen": True}

    kind: ObjectKind
    name: str = Field(min_length=1)

    def __str__(self) -> str:
        return f"{self.kind}:{self.name}"


class RulePhase(BaseModel):
    """One deployment wave of a rule.

    Restart and maintenance-window flags are kept exactly as declared;
    phases of the same rule may legitimately differ.
    """

    model_config = {"frozen": True, "extra": "forbid"}

    grouping: str = Field(min_length=1)
    available_after: timedelta = timedelta(0)
    deadline: Literal["immediate"] | timedelta = IMMEDIATE
    notification: NotificationPolicy = NotificationPolicy.DISPLAY_ALL
    suppress_restart_servers: bool = False
    suppress_restart_workstations: bool = False
    allow_restart_outside_window: bool = False
    allow_install_outside_window: bool = False

    @field_validator("available_after", "deadline")
    @classmethod
    def _whole_hours(cls, value: Any) -> Any:
        if isinstance(value, timedelta) and (value < timedelta(0) or value % timedelta(hours=1)):
            msg = f"Phase offsets are whole, non-negative hours; got {value}"
            raise ValueError(msg)
        return value

    @property
    def immediate(self) -> bool:
        return self.deadline == IMMEDIATE


class TargetObject(BaseModel):
    """A named site object the provisioner ensures exists.

    Attributes:
        kind: Grouping, package or rule.
        name: Unique within *kind*.
        config: Kind-specific properties passed to the site on creation.
        depends_on: Object that must exist before this one is created.
        phases: Ordered deployment phases (rules only).
        enable_after_create: Re-set the rule's deployment flag after
            creation (rules only).
    """

    model_config = {"frozen": True, "extra": "forbid"}

    kind: ObjectKind
    name: str = Field(min_length=1)
    config: dict[str, Any] = Field(default_factory=dict)
    depends_on: ObjectRef | None = None
    phases: tuple[RulePhase, ...] = ()
    enable_after_create: bool | None = None

    @model_validator(mode="after")
    def _check_kind_fields(self) -> TargetObject:
        if self.kind not in CATALOG_KINDS:
            msg = f"{self.kind!s} objects cannot be declared in a catalog"
            raise ValueError(msg)
        if self.kind != ObjectKind.RULE:
            if self.phases:
                msg = f"Only rules have phases ({self.kind!s} {self.name!r})"
                raise ValueError(msg)
            if self.enable_after_create is not None:
                msg = f"enable_after_create applies to rules only ({self.kind!s} {self.name!r})"
                raise ValueError(msg)
        return self

    @property
    def ref(self) -> ObjectRef:
        return ObjectRef(kind=self.kind, name=self.name)


class Catalog(BaseModel):
    """Ordered, validated collection of target objects."""

    model_config = {"frozen": True}

    objects: tuple[TargetObject, ...] = ()

    @model_validator(mode="after")
    def _check_order(self) -> Catalog:
        declared = {(obj.kind, obj.name) for obj in self.objects}
        seen: set[tuple[ObjectKind, str]] = set()
        for obj in self.objects:
            key = (obj.kind, obj.name)
            if key in seen:
                msg = f"Duplicate {obj.kind!s} name in catalog: {obj.name!r}"
                raise ValueError(msg)
            dep = obj.depends_on
            if dep is not None:
                dep_key = (dep.kind, dep.name)
                if dep_key in declared and dep_key not in seen:
                    msg = f"{obj.kind!s} {obj.name!r} must come after its dependency {dep}"
                    raise ValueError(msg)
            for phase in obj.phases:
                grouping_key = (ObjectKind.GROUPING, phase.grouping)
                if grouping_key in declared and grouping_key not in seen:
                    msg = (
                        f"rule {obj.name!r} has a phase targeting grouping "
                        f"{phase.grouping!r} declared after it"
                    )
                    raise ValueError(msg)
            seen.add(key)
        return self

    def __len__(self) -> int:
        return len(self.objects)

    def creation_order(self) -> list[TargetObject]:
        return list(self.objects)

    def teardown_order(self) -> list[TargetObject]:
        """Exact reverse of :meth:`creation_order`."""
        return list(reversed(self.objects))

    def find(self, kind: ObjectKind, name: str) -> TargetObject | None:
        for obj in self.objects:
            if obj.kind == kind and obj.name == name:
                return obj
        return None

    def is_external(self, ref: ObjectRef) -> bool:
        """True when *ref* names an object this catalog does not declare."""
        return self.find(ref.kind, ref.name) is None


# ---------------------------------------------------------------------------
# Built-in topology
# ---------------------------------------------------------------------------

PILOT_WORKSTATIONS = "SUM - Pilot Workstations"
PRODUCTION_WORKSTATIONS = "SUM - Production Workstations"
PILOT_SERVERS = "SUM - Pilot Servers"
PRODUCTION_SERVERS = "SUM - Production Servers"

WORKSTATION_PACKAGE = "SUM - Workstation Updates"
SERVER_PACKAGE = "SUM - Server Updates"
DEFINITIONS_PACKAGE = "SUM - Endpoint Protection Definitions"


def _grouping(name: str, comment: str) -> TargetObject:
    return TargetObject(
        kind=ObjectKind.GROUPING,
        name=name,
        config={
            "limit_to_collection_id": ALL_SYSTEMS_COLLECTION_ID,
            "refresh_type": 2,
            "comment": comment,
        },
    )


def _package(name: str, share_root: str, folder: str, description: str) -> TargetObject:
    return TargetObject(
        kind=ObjectKind.PACKAGE,
        name=name,
        config={
            "pkg_source_path": f"{share_root}\\{folder}",
            "description": description,
        },
    )


def default_catalog(share_path: str) -> Catalog:
    """Build the built-in phased topology with package sources under *share_path*.

    Four device collections (pilot/production for workstations and
    servers), one deployment package per update stream, and three
    automatic deployment rules.  The definitions rule is enabled right
    after creation; the monthly rules are left for an operator to enable.
    """
    root = share_path.rstrip("\\")
    days = timedelta(days=1)

    groupings = [
        _grouping(PILOT_WORKSTATIONS, "Workstations receiving updates first"),
        _grouping(PRODUCTION_WORKSTATIONS, "All remaining workstations"),
        _grouping(PILOT_SERVERS, "Non-critical servers patched ahead of production"),
        _grouping(PRODUCTION_SERVERS, "Production servers"),
    ]
    packages = [
        _package(WORKSTATION_PACKAGE, root, "Workstation Updates", "Monthly workstation updates"),
        _package(SERVER_PACKAGE, root, "Server Updates", "Monthly server updates"),
        _package(
            DEFINITIONS_PACKAGE,
            root,
            "Endpoint Protection Definitions",
            "Antimalware definition updates",
        ),
    ]
    rules = [
        TargetObject(
            kind=ObjectKind.RULE,
            name="ADR - Workstation Monthly",
            depends_on=ObjectRef(kind=ObjectKind.PACKAGE, name=WORKSTATION_PACKAGE),
            config={
                "description": "Security and critical updates for workstations",
                "products": ["Windows 10", "Windows 11", "Microsoft 365 Apps"],
                "update_classifications": ["Critical Updates", "Security Updates"],
                "exclude_superseded": True,
                "schedule": "monthly:second-tuesday+1@23:00",
                "add_to_existing_group": False,
            },
            phases=(
                RulePhase(
                    grouping=PILOT_WORKSTATIONS,
                    deadline=2 * days,
                    notification=NotificationPolicy.DISPLAY_ALL,
                ),
                RulePhase(
                    grouping=PRODUCTION_WORKSTATIONS,
                    available_after=7 * days,
                    deadline=14 * days,
                    notification=NotificationPolicy.SOFTWARE_CENTER_ONLY,
                ),
            ),
        ),
        TargetObject(
            kind=ObjectKind.RULE,
            name="ADR - Server Monthly",
            depends_on=ObjectRef(kind=ObjectKind.PACKAGE, name=SERVER_PACKAGE),
            config={
                "description": "Security and critical updates for servers",
                "products": ["Windows Server 2019", "Windows Server 2022"],
                "update_classifications": ["Critical Updates", "Security Updates"],
                "exclude_superseded": True,
                "schedule": "monthly:second-tuesday+1@23:00",
                "add_to_existing_group": False,
            },
            phases=(
                RulePhase(
                    grouping=PILOT_SERVERS,
                    deadline=3 * days,
                    notification=NotificationPolicy.SOFTWARE_CENTER_ONLY,
                    suppress_restart_servers=True,
                ),
                RulePhase(
                    grouping=PRODUCTION_SERVERS,
                    available_after=7 * days,
                    deadline=14 * days,
                    notification=NotificationPolicy.SOFTWARE_CENTER_ONLY,
                    suppress_restart_servers=True,
                ),
            ),
        ),
        TargetObject(
            kind=ObjectKind.RULE,
            name="ADR - Endpoint Protection Definitions",
            depends_on=ObjectRef(kind=ObjectKind.PACKAGE, name=DEFINITIONS_PACKAGE),
            enable_after_create=True,
            config={
                "description": "Daily antimalware definition updates",
                "products": ["Microsoft Defender Antivirus"],
                "update_classifications": ["Definition Updates"],
                "exclude_superseded": True,
                "schedule": "daily@06:00",
                "add_to_existing_group": True,
            },
            phases=(
                RulePhase(
                    grouping=PRODUCTION_WORKSTATIONS,
                    notification=NotificationPolicy.HIDE_ALL,
                    suppress_restart_servers=True,
                    suppress_restart_workstations=True,
                    allow_install_outside_window=True,
                ),
                RulePhase(
                    grouping=PRODUCTION_SERVERS,
                    notification=NotificationPolicy.HIDE_ALL,
                    suppress_restart_servers=True,
                    allow_install_outside_window=True,
                    allow_restart_outside_window=False,
                ),
            ),
        ),
    ]
    return Catalog(objects=(*groupings, *packages, *rules))
