"""BaseService — foundation for site-facing services.

Every service receives a :class:`SiteClient` at construction time and
performs all remote calls through it.  Nothing here opens connections;
the caller owns the client's lifetime.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from phasectl.domain.errors import ProvisionError

if TYPE_CHECKING:
    from phasectl.infrastructure.site import SiteClient

UNEXPECTED = "UNEXPECTED"


def describe_error(exc: Exception) -> tuple[str, str]:
    """Return ``(code, message)`` for any exception raised by a site call."""
    if isinstance(exc, ProvisionError):
        return exc.code, exc.message
    return UNEXPECTED, f"{type(exc).__name__}: {exc}"


class BaseService:
    """Base for service-layer classes.

    Usage::

        class StatusService(BaseService):
            def status(self) -> ServiceResult:
                remote = self._site.get(ObjectKind.GROUPING, name)
                ...
    """

    def __init__(self, site: SiteClient) -> None:
        self._site = site
