"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults baked here, phasectl.toml only contains
overrides.  A working setup needs only ``[site] endpoint`` and
``[site] share_path``.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator

_UNC_PATH = re.compile(r"^\\\\[^\\/]+\\[^\\/]+")


class ConfigError(ValueError):
    """Site configuration is incomplete or invalid.

    Attributes:
        fields: Names of the offending fields, in declaration order.
    """

    def __init__(self, message: str, *, fields: list[str] | None = None) -> None:
        super().__init__(message)
        self.fields = fields or []

    @classmethod
    def from_validation(cls, exc: ValidationError) -> ConfigError:
        problems: list[str] = []
        fields: list[str] = []
        for err in exc.errors():
            name = ".".join(str(p) for p in err["loc"]) or "site"
            reason = "not set" if err.get("input") is None else err["msg"]
            problems.append(f"{name}: {reason}")
            if name not in fields:
                fields.append(name)
        return cls("Invalid site configuration: " + "; ".join(problems), fields=fields)


# --- phasectl.toml sections ---


class SiteConfig(BaseModel):
    """[site] section. Every field may be missing until :meth:`resolve`."""

    model_config = {"frozen": True}

    endpoint: str | None = None
    username: str | None = None
    password: SecretStr | None = None
    share_path: str | None = None
    verify_tls: bool = True
    timeout: float = 30.0

    def resolve(self, **overrides: Any) -> SiteConnection:
        """Validate into a :class:`SiteConnection`, failing fast.

        Non-None *overrides* (e.g. values the CLI prompted for) replace
        the configured ones.

        Raises:
            ConfigError: Listing every missing or invalid field.
        """
        data = self.model_dump()
        data.update({k: v for k, v in overrides.items() if v is not None})
        try:
            return SiteConnection.model_validate(data)
        except ValidationError as exc:
            raise ConfigError.from_validation(exc) from exc


class SiteConnection(BaseModel):
    """Validated connection coordinates for the management site."""

    model_config = {"frozen": True}

    endpoint: str
    username: str | None = None
    password: SecretStr | None = None
    share_path: str
    verify_tls: bool = True
    timeout: float = Field(default=30.0, gt=0)

    @field_validator("endpoint")
    @classmethod
    def _http_endpoint(cls, value: str) -> str:
        value = value.strip()
        parts = urlsplit(value)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            msg = "must be an http:// or https:// URL with a host"
            raise ValueError(msg)
        return value.rstrip("/")

    @field_validator("share_path")
    @classmethod
    def _unc_share(cls, value: str) -> str:
        value = value.strip()
        if not _UNC_PATH.match(value):
            msg = r"must be a UNC path such as \\server\share"
            raise ValueError(msg)
        return value.rstrip("\\")


class CatalogConfig(BaseModel):
    """[catalog] section."""

    model_config = {"frozen": True}

    path: Path | None = None


class PhaseConfig(BaseModel):
    """Root configuration composing all sections."""

    model_config = {"frozen": True}

    site: SiteConfig = Field(default_factory=SiteConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
