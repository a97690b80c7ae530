"""Provisioning error taxonomy.

Each error carries a stable ``code`` that ends up in ``ServiceError.code``
and in per-object reports.
"""

from __future__ import annotations

from typing import Any


class ProvisionError(Exception):
    """Base class for every error raised while talking to the site."""

    code = "PROVISION_ERROR"

    def __init__(self, message: str, *, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail or {}


class SiteConnectionError(ProvisionError):
    """The management endpoint could not be reached."""

    code = "CONNECTION_ERROR"


class NotFoundError(ProvisionError):
    """A referenced object does not exist on the site."""

    code = "NOT_FOUND"


class CreationError(ProvisionError):
    """The site rejected a create (or phase attach) request."""

    code = "CREATION_FAILED"


class RemovalError(ProvisionError):
    """The site rejected a delete request."""

    code = "REMOVAL_FAILED"


class DependencyBlockedError(ProvisionError):
    """Teardown refused because something still depends on the object."""

    code = "DEPENDENCY_BLOCKED"


class RuleDocumentError(ProvisionError, ValueError):
    """A rule's deployment template does not have the expected shape."""

    code = "INVALID_RULE_DOCUMENT"
