"""AdminServiceSite — SiteClient over the Configuration Manager AdminService.

Talks to the WMI route of the AdminService REST API
(``https://<provider>/AdminService/wmi/<Class>``) with httpx.  Each
object kind maps to one WMI class; catalog ``config`` keys are sent as
WMI properties (``pkg_source_path`` → ``PkgSourcePath``).

Error mapping:

- transport failures, 401/403 → :class:`SiteConnectionError`
- rejected POST → :class:`CreationError`
- DELETE on a missing object → :class:`NotFoundError`
- any other rejected DELETE → :class:`RemovalError`
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from types import TracebackType
from typing import TYPE_CHECKING, Any

import httpx

from phasectl.domain.catalog import is_derived_group_name
from phasectl.domain.errors import (
    CreationError,
    NotFoundError,
    ProvisionError,
    RemovalError,
    SiteConnectionError,
)
from phasectl.domain.types import NotificationPolicy, ObjectKind
from phasectl.infrastructure.site import RemoteObject

if TYPE_CHECKING:
    from phasectl.config.models import SiteConnection
    from phasectl.domain.catalog import RulePhase, TargetObject

logger = logging.getLogger(__name__)

WMI_ROOT = "/AdminService/wmi/"


@dataclass(frozen=True)
class WmiClass:
    """WMI class backing one object kind."""

    name: str
    name_field: str
    id_field: str
    numeric_key: bool = False

    def key_path(self, object_id: str) -> str:
        """Instance path, e.g. ``SMS_Collection('ABC00010')`` or ``SMS_AutoDeployment(7)``."""
        key = object_id if self.numeric_key else f"'{_quote(object_id)}'"
        return f"{self.name}({key})"


WMI_CLASSES: dict[ObjectKind, WmiClass] = {
    ObjectKind.GROUPING: WmiClass("SMS_Collection", "Name", "CollectionID"),
    ObjectKind.PACKAGE: WmiClass("SMS_SoftwareUpdatesPackage", "Name", "PackageID"),
    ObjectKind.RULE: WmiClass("SMS_AutoDeployment", "Name", "AutoDeploymentID", numeric_key=True),
    ObjectKind.UPDATE_GROUP: WmiClass(
        "SMS_AuthorizationList", "LocalizedDisplayName", "CI_ID", numeric_key=True
    ),
}

PHASE_CLASS = "SMS_UpdatesAssignment"
ASSOCIATION_CLASS = "SMS_DeploymentSummary"

# Property that receives a dependency's ID on create.
_DEPENDENCY_FIELDS: dict[ObjectKind, str] = {
    ObjectKind.PACKAGE: "PackageID",
    ObjectKind.GROUPING: "CollectionID",
}

_NOTIFICATION: dict[NotificationPolicy, str] = {
    NotificationPolicy.DISPLAY_ALL: "DisplayAll",
    NotificationPolicy.SOFTWARE_CENTER_ONLY: "DisplaySoftwareCenterOnly",
    NotificationPolicy.HIDE_ALL: "HideAll",
}


def wmi_property(key: str) -> str:
    """Convert a snake_case catalog key to a WMI property name.

    Examples:
        >>> wmi_property("pkg_source_path")
        'PkgSourcePath'
        >>> wmi_property("limit_to_collection_id")
        'LimitToCollectionID'
    """
    parts = [p for p in key.split("_") if p]
    return "".join("ID" if p == "id" else p[:1].upper() + p[1:] for p in parts)


def _quote(value: str) -> str:
    """OData string literal escaping."""
    return value.replace("'", "''")


def _hours(value: timedelta) -> int:
    return int(value.total_seconds() // 3600)


def _error_text(resp: httpx.Response) -> str:
    try:
        payload = resp.json()
    except ValueError:
        return resp.text.strip() or resp.reason_phrase
    if isinstance(payload, dict):
        err = payload.get("error")
        if isinstance(err, dict) and err.get("message"):
            return str(err["message"])
    return resp.text.strip() or resp.reason_phrase


def phase_body(rule: RemoteObject, phase: RulePhase, grouping: RemoteObject) -> dict[str, Any]:
    """WMI payload for one rule phase."""
    deadline = None if phase.immediate else _hours(phase.deadline)  # type: ignore[arg-type]
    return {
        "AutoDeploymentID": rule.id,
        "CollectionID": grouping.id,
        "AvailableAfterHours": _hours(phase.available_after),
        "DeadlineImmediate": phase.immediate,
        "DeadlineHours": deadline,
        "UserNotification": _NOTIFICATION[phase.notification],
        "SuppressServerRestart": phase.suppress_restart_servers,
        "SuppressWorkstationRestart": phase.suppress_restart_workstations,
        "AllowRestartOutsideMaintenanceWindow": phase.allow_restart_outside_window,
        "AllowInstallOutsideMaintenanceWindow": phase.allow_install_outside_window,
    }


class AdminServiceSite:
    """httpx-backed :class:`~phasectl.infrastructure.site.SiteClient`.

    Usage::

        with AdminServiceSite.from_connection(conn) as site:
            site.get(ObjectKind.GROUPING, "SUM - Pilot Workstations")
    """

    def __init__(
        self,
        endpoint: str,
        *,
        username: str | None = None,
        password: str | None = None,
        verify: bool = True,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        auth = httpx.BasicAuth(username, password or "") if username else None
        self._client = httpx.Client(
            base_url=endpoint.rstrip("/") + WMI_ROOT,
            auth=auth,
            verify=verify,
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @classmethod
    def from_connection(
        cls, connection: SiteConnection, *, transport: httpx.BaseTransport | None = None
    ) -> AdminServiceSite:
        password = connection.password.get_secret_value() if connection.password else None
        return cls(
            connection.endpoint,
            username=connection.username,
            password=password,
            verify=connection.verify_tls,
            timeout=connection.timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> AdminServiceSite:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        logger.debug("%s %s", method, path)
        try:
            resp = self._client.request(method, path, **kwargs)
        except httpx.TransportError as exc:
            msg = f"Cannot reach management endpoint: {exc}"
            raise SiteConnectionError(msg, detail={"path": path}) from exc
        if resp.status_code in (401, 403):
            msg = f"Management endpoint refused credentials (HTTP {resp.status_code})"
            raise SiteConnectionError(msg, detail={"status": resp.status_code})
        return resp

    def _query(self, wmi_class: str, filter_expr: str) -> list[dict[str, Any]]:
        resp = self._request("GET", wmi_class, params={"$filter": filter_expr})
        if resp.is_error:
            msg = f"Query on {wmi_class} failed (HTTP {resp.status_code}): {_error_text(resp)}"
            raise ProvisionError(msg, detail={"status": resp.status_code})
        rows = resp.json().get("value", [])
        return [row for row in rows if isinstance(row, dict)]

    @staticmethod
    def _to_remote(kind: ObjectKind, row: dict[str, Any]) -> RemoteObject:
        cls = WMI_CLASSES[kind]
        return RemoteObject(
            kind=kind,
            name=str(row.get(cls.name_field, "")),
            id=str(row.get(cls.id_field, "")),
            properties=row,
        )

    # ------------------------------------------------------------------
    # SiteClient verbs
    # ------------------------------------------------------------------

    def get(self, kind: ObjectKind, name: str) -> RemoteObject | None:
        cls = WMI_CLASSES[kind]
        rows = self._query(cls.name, f"{cls.name_field} eq '{_quote(name)}'")
        if not rows:
            return None
        return self._to_remote(kind, rows[0])

    def create(
        self, target: TargetObject, *, dependency: RemoteObject | None = None
    ) -> RemoteObject:
        cls = WMI_CLASSES[target.kind]
        body: dict[str, Any] = {cls.name_field: target.name}
        body.update({wmi_property(k): v for k, v in target.config.items()})
        if dependency is not None and dependency.kind in _DEPENDENCY_FIELDS:
            body[_DEPENDENCY_FIELDS[dependency.kind]] = dependency.id

        resp = self._request("POST", cls.name, json=body)
        if resp.is_error:
            msg = (
                f"Site rejected {target.kind!s} {target.name!r} "
                f"(HTTP {resp.status_code}): {_error_text(resp)}"
            )
            raise CreationError(msg, detail={"status": resp.status_code})

        row: dict[str, Any] = {}
        if resp.content:
            payload = resp.json()
            if isinstance(payload, dict):
                values = payload.get("value")
                row = values[0] if isinstance(values, list) and values else payload
        if row.get(cls.id_field):
            return self._to_remote(target.kind, {**body, **row})

        # Some providers answer 201 without a body; read the object back.
        created = self.get(target.kind, target.name)
        if created is None:
            msg = f"{target.kind!s} {target.name!r} not visible after creation"
            raise CreationError(msg)
        return created

    def remove(self, remote: RemoteObject) -> None:
        cls = WMI_CLASSES[remote.kind]
        resp = self._request("DELETE", cls.key_path(remote.id))
        if resp.status_code == 404:
            msg = f"{remote.kind!s} {remote.name!r} no longer exists"
            raise NotFoundError(msg, detail={"id": remote.id})
        if resp.is_error:
            msg = (
                f"Site refused to remove {remote.kind!s} {remote.name!r} "
                f"(HTTP {resp.status_code}): {_error_text(resp)}"
            )
            raise RemovalError(msg, detail={"status": resp.status_code})

    def append_phase(self, rule: RemoteObject, phase: RulePhase, grouping: RemoteObject) -> None:
        resp = self._request("POST", PHASE_CLASS, json=phase_body(rule, phase, grouping))
        if resp.is_error:
            msg = (
                f"Site rejected phase for {grouping.name!r} on rule {rule.name!r} "
                f"(HTTP {resp.status_code}): {_error_text(resp)}"
            )
            raise CreationError(msg, detail={"status": resp.status_code})

    def associations(self, grouping: RemoteObject) -> list[str]:
        rows = self._query(ASSOCIATION_CLASS, f"CollectionID eq '{_quote(grouping.id)}'")
        return [
            f"{row.get('SoftwareName') or 'deployment'} ({row.get('DeploymentID', '?')})"
            for row in rows
        ]

    def derived_groups(self, rule_name: str) -> list[RemoteObject]:
        cls = WMI_CLASSES[ObjectKind.UPDATE_GROUP]
        prefix = _quote(rule_name + " ")
        rows = self._query(cls.name, f"startswith({cls.name_field},'{prefix}')")
        groups = [self._to_remote(ObjectKind.UPDATE_GROUP, row) for row in rows]
        return [g for g in groups if is_derived_group_name(rule_name, g.name)]

    def read_document(self, rule: RemoteObject) -> str:
        cls = WMI_CLASSES[ObjectKind.RULE]
        resp = self._request("GET", cls.key_path(rule.id))
        if resp.status_code == 404:
            msg = f"rule {rule.name!r} no longer exists"
            raise NotFoundError(msg, detail={"id": rule.id})
        if resp.is_error:
            msg = f"Reading rule {rule.name!r} failed (HTTP {resp.status_code})"
            raise ProvisionError(msg, detail={"status": resp.status_code})
        rows = resp.json().get("value", [])
        if not rows or not rows[0].get("DeploymentTemplate"):
            msg = f"rule {rule.name!r} has no deployment template"
            raise NotFoundError(msg, detail={"id": rule.id})
        return str(rows[0]["DeploymentTemplate"])

    def write_document(self, rule: RemoteObject, document: str) -> None:
        cls = WMI_CLASSES[ObjectKind.RULE]
        resp = self._request("PATCH", cls.key_path(rule.id), json={"DeploymentTemplate": document})
        if resp.is_error:
            msg = (
                f"Site rejected deployment template for rule {rule.name!r} "
                f"(HTTP {resp.status_code}): {_error_text(resp)}"
            )
            raise ProvisionError(msg, detail={"status": resp.status_code})
