"""Provisioner — idempotent create-if-absent and symmetric teardown.

Pipelines:

- ``ensure``: LOOKUP → DEPENDENCY → CREATE → PHASES → DEPLOYMENT FLAG
- ``remove``: LOOKUP → ASSOCIATIONS (groupings) → REMOVE → DERIVED (rules)

INVARIANT: an object that already exists is never touched by ``ensure``.
INVARIANT: a failure on one object never stops the run; every step
records its own error and the run reports an aggregate tally.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog
from pydantic import BaseModel, Field

from phasectl.domain.errors import DependencyBlockedError, NotFoundError
from phasectl.domain.rule_document import set_deployment_flag
from phasectl.domain.types import ObjectKind, Outcome
from phasectl.services.base import BaseService, describe_error
from phasectl.services.result import ServiceError, ServiceResult
from phasectl.services.telemetry import trace_span, traced

if TYPE_CHECKING:
    from phasectl.domain.catalog import Catalog, RulePhase, TargetObject
    from phasectl.infrastructure.site import RemoteObject, SiteClient

log = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


class PhaseReport(BaseModel):
    """Outcome of attaching one phase to a newly created rule."""

    model_config = {"frozen": True}

    grouping: str
    ok: bool
    error_code: str | None = None
    reason: str | None = None


class ObjectReport(BaseModel):
    """Outcome of one ensure/remove step."""

    model_config = {"frozen": True}

    kind: ObjectKind
    name: str
    outcome: Outcome
    error_code: str | None = None
    reason: str | None = None
    phases: list[PhaseReport] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


@dataclass
class ProvisionTally:
    """Run-scoped outcome counts per object kind."""

    counts: defaultdict[ObjectKind, Counter[Outcome]] = field(
        default_factory=lambda: defaultdict(Counter)
    )
    phase_failures: int = 0

    def record(self, report: ObjectReport) -> None:
        self.counts[report.kind][report.outcome] += 1
        self.phase_failures += sum(1 for p in report.phases if not p.ok)

    def count(self, outcome: Outcome, kind: ObjectKind | None = None) -> int:
        if kind is not None:
            return self.counts[kind][outcome] if kind in self.counts else 0
        return sum(c[outcome] for c in self.counts.values())

    @property
    def failed(self) -> int:
        return self.count(Outcome.FAILED)

    @property
    def blocked(self) -> int:
        return self.count(Outcome.BLOCKED)

    @property
    def clean(self) -> bool:
        return self.failed == 0 and self.blocked == 0 and self.phase_failures == 0

    def to_dict(self) -> dict[str, Any]:
        totals = {str(o): self.count(o) for o in Outcome if self.count(o)}
        return {
            **totals,
            "failed": self.failed,
            "phase_failures": self.phase_failures,
            "by_kind": {
                str(kind): {str(o): n for o, n in counter.items() if n}
                for kind, counter in self.counts.items()
            },
        }


# ---------------------------------------------------------------------------
# Provisioner
# ---------------------------------------------------------------------------


class Provisioner(BaseService):
    """Ensures (or tears down) every object of an injected catalog."""

    def __init__(self, site: SiteClient, catalog: Catalog) -> None:
        super().__init__(site)
        self._catalog = catalog

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    # ── ensure ──────────────────────────────────────────────────────

    def ensure(self, target: TargetObject) -> ObjectReport:
        """Create *target* unless an object with its name already exists."""
        obj_log = log.bind(kind=str(target.kind), name=target.name)
        try:
            if self._site.get(target.kind, target.name) is not None:
                obj_log.debug("object.present")
                return ObjectReport(
                    kind=target.kind, name=target.name, outcome=Outcome.ALREADY_PRESENT
                )
            dependency = self._require_dependency(target)
            remote = self._site.create(target, dependency=dependency)
        except Exception as exc:
            code, message = describe_error(exc)
            obj_log.warning("object.create_failed", code=code, reason=message)
            return ObjectReport(
                kind=target.kind,
                name=target.name,
                outcome=Outcome.FAILED,
                error_code=code,
                reason=message,
            )

        obj_log.info("object.created", id=remote.id)
        phases = [self._attach_phase(remote, phase) for phase in target.phases]
        warnings: list[str] = []
        if target.enable_after_create is not None:
            warning = self._apply_deployment_flag(remote, enabled=target.enable_after_create)
            if warning:
                warnings.append(warning)
        return ObjectReport(
            kind=target.kind,
            name=target.name,
            outcome=Outcome.CREATED,
            phases=phases,
            warnings=warnings,
        )

    def _require_dependency(self, target: TargetObject) -> RemoteObject | None:
        ref = target.depends_on
        if ref is None:
            return None
        dependency = self._site.get(ref.kind, ref.name)
        if dependency is None:
            msg = f"{target.kind!s} {target.name!r} depends on {ref} which does not exist"
            raise NotFoundError(msg, detail={"dependency": str(ref)})
        return dependency

    def _attach_phase(self, rule: RemoteObject, phase: RulePhase) -> PhaseReport:
        try:
            grouping = self._site.get(ObjectKind.GROUPING, phase.grouping)
            if grouping is None:
                msg = f"Phase grouping {phase.grouping!r} does not exist"
                raise NotFoundError(msg)
            self._site.append_phase(rule, phase, grouping)
        except Exception as exc:
            code, message = describe_error(exc)
            log.warning("phase.failed", rule=rule.name, grouping=phase.grouping, reason=message)
            return PhaseReport(grouping=phase.grouping, ok=False, error_code=code, reason=message)
        log.info("phase.attached", rule=rule.name, grouping=phase.grouping)
        return PhaseReport(grouping=phase.grouping, ok=True)

    def _apply_deployment_flag(self, rule: RemoteObject, *, enabled: bool) -> str | None:
        """Re-set the rule's deployment flag. Returns a warning on failure."""
        try:
            document = self._site.read_document(rule)
            self._site.write_document(rule, set_deployment_flag(document, enabled=enabled))
        except Exception as exc:
            _, message = describe_error(exc)
            log.warning("rule.flag_failed", rule=rule.name, reason=message)
            return f"Deployment flag not set on rule {rule.name!r}: {message}"
        log.info("rule.flag_set", rule=rule.name, enabled=enabled)
        return None

    # ── remove ──────────────────────────────────────────────────────

    def remove(self, target: TargetObject) -> ObjectReport:
        """Remove *target*; groupings with active associations are left alone."""
        obj_log = log.bind(kind=str(target.kind), name=target.name)
        try:
            remote = self._site.get(target.kind, target.name)
            if remote is None:
                obj_log.debug("object.absent")
                return ObjectReport(kind=target.kind, name=target.name, outcome=Outcome.NOT_FOUND)
            if target.kind == ObjectKind.GROUPING:
                blockers = self._site.associations(remote)
                if blockers:
                    msg = (
                        f"grouping {target.name!r} still has {len(blockers)} "
                        f"active association(s): {', '.join(blockers)}"
                    )
                    raise DependencyBlockedError(msg, detail={"associations": blockers})
            self._site.remove(remote)
        except DependencyBlockedError as exc:
            obj_log.warning("object.blocked", reason=exc.message)
            return ObjectReport(
                kind=target.kind,
                name=target.name,
                outcome=Outcome.BLOCKED,
                error_code=exc.code,
                reason=exc.message,
            )
        except NotFoundError:
            # Vanished between lookup and delete.
            return ObjectReport(kind=target.kind, name=target.name, outcome=Outcome.NOT_FOUND)
        except Exception as exc:
            code, message = describe_error(exc)
            obj_log.warning("object.remove_failed", code=code, reason=message)
            return ObjectReport(
                kind=target.kind,
                name=target.name,
                outcome=Outcome.FAILED,
                error_code=code,
                reason=message,
            )

        obj_log.info("object.removed")
        warnings = self._remove_derived(target.name) if target.kind == ObjectKind.RULE else []
        return ObjectReport(
            kind=target.kind, name=target.name, outcome=Outcome.REMOVED, warnings=warnings
        )

    def _remove_derived(self, rule_name: str) -> list[str]:
        """Best-effort removal of update groups generated by a rule."""
        warnings: list[str] = []
        try:
            derived = self._site.derived_groups(rule_name)
        except Exception as exc:
            _, message = describe_error(exc)
            return [f"Could not list update groups for rule {rule_name!r}: {message}"]
        for group in derived:
            try:
                self._site.remove(group)
            except Exception as exc:
                _, message = describe_error(exc)
                warnings.append(f"Update group {group.name!r} not removed: {message}")
            else:
                log.info("update_group.removed", rule=rule_name, name=group.name)
        return warnings

    # ── whole-catalog runs ──────────────────────────────────────────

    @traced
    def install(self) -> ServiceResult:
        """Ensure every catalog object, in creation order."""
        tally = ProvisionTally()
        reports: list[ObjectReport] = []
        for target in self._catalog.creation_order():
            with trace_span(f"ensure:{target.kind}:{target.name}") as span:
                report = self.ensure(target)
                if span is not None:
                    span.annotate("outcome", str(report.outcome))
            reports.append(report)
            tally.record(report)
        return self._summarize("install", reports, tally)

    @traced
    def uninstall(self) -> ServiceResult:
        """Remove every catalog object, in teardown (reverse) order."""
        tally = ProvisionTally()
        reports: list[ObjectReport] = []
        for target in self._catalog.teardown_order():
            with trace_span(f"remove:{target.kind}:{target.name}") as span:
                report = self.remove(target)
                if span is not None:
                    span.annotate("outcome", str(report.outcome))
            reports.append(report)
            tally.record(report)
        return self._summarize("uninstall", reports, tally)

    @staticmethod
    def _summarize(op: str, reports: list[ObjectReport], tally: ProvisionTally) -> ServiceResult:
        warnings = [w for r in reports for w in r.warnings]
        data = {
            "objects": [r.model_dump(mode="json") for r in reports],
            "tally": tally.to_dict(),
        }
        log.info(f"{op}.complete", **{k: v for k, v in data["tally"].items() if k != "by_kind"})
        if tally.clean:
            return ServiceResult(ok=True, op=op, data=data, warnings=warnings)
        message = (
            f"{tally.failed} failed, {tally.blocked} blocked, "
            f"{tally.phase_failures} phase failure(s) across {len(reports)} object(s)"
        )
        return ServiceResult(
            ok=False,
            op=op,
            data=data,
            warnings=warnings,
            error=ServiceError(
                code="PROVISION_PARTIAL",
                message=message,
                detail={"failed": tally.failed, "blocked": tally.blocked},
            ),
        )

    # ── read-only inspection ────────────────────────────────────────

    @traced
    def status(self) -> ServiceResult:
        """Report which catalog objects exist on the site."""
        entries: list[dict[str, Any]] = []
        errors = 0
        for target in self._catalog.creation_order():
            entry: dict[str, Any] = {"kind": str(target.kind), "name": target.name}
            try:
                remote = self._site.get(target.kind, target.name)
                entry["present"] = remote is not None
                if remote is not None:
                    entry["id"] = remote.id
                    if target.kind == ObjectKind.GROUPING:
                        entry["associations"] = len(self._site.associations(remote))
            except Exception as exc:
                code, message = describe_error(exc)
                entry.update(present=None, error_code=code, reason=message)
                errors += 1
            entries.append(entry)

        present = sum(1 for e in entries if e.get("present"))
        data = {
            "objects": entries,
            "present": present,
            "absent": sum(1 for e in entries if e.get("present") is False),
        }
        if errors:
            return ServiceResult(
                ok=False,
                op="status",
                data=data,
                error=ServiceError(
                    code="STATUS_INCOMPLETE",
                    message=f"{errors} of {len(entries)} object(s) could not be checked",
                ),
            )
        return ServiceResult(ok=True, op="status", data=data)
