"""Object kinds and outcome enums for provisioning runs."""

from __future__ import annotations

from enum import StrEnum


class ObjectKind(StrEnum):
    """Kinds of site objects the provisioner manages."""

    GROUPING = "grouping"
    PACKAGE = "package"
    RULE = "rule"
    # Generated by the site when a rule runs; only ever removed.
    UPDATE_GROUP = "update_group"


CATALOG_KINDS: frozenset[ObjectKind] = frozenset(
    {ObjectKind.GROUPING, ObjectKind.PACKAGE, ObjectKind.RULE}
)


class Outcome(StrEnum):
    """Result of a single ensure/remove step."""

    CREATED = "created"
    ALREADY_PRESENT = "already_present"
    FAILED = "failed"
    REMOVED = "removed"
    NOT_FOUND = "not_found"
    BLOCKED = "blocked"


class NotificationPolicy(StrEnum):
    """End-user notification level for a rule phase."""

    DISPLAY_ALL = "display_all"
    SOFTWARE_CENTER_ONLY = "software_center_only"
    HIDE_ALL = "hide_all"
