"""
Pydantic schemas for the upstream documents and the records built from them.

Three documents feed the graph:

    registry   ep.global.config.json                   {key: entry, ...}
    builds     <env href>/ep.builds.config.json        ["build", ...]
    metadata   <env href>/<build>/ep.metadata.config.json  {buildId, buildName, sourceName?}

The registry carries more than apps (vendors, proxy targets, API endpoints);
only entries typed MFE_APP become AppRecords.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MFE_APP_TYPE = "MFE_APP"

ENVIRONMENT_NAMES: tuple[str, ...] = ("live", "staging", "test", "local")


# =============================================================================
# App Records
# =============================================================================


class EnvironmentRef(BaseModel):
    """Base location of one environment's deployed builds."""

    model_config = ConfigDict(frozen=True)

    href: str = Field(..., description="Environment base URL")


class Environments(BaseModel):
    """Per-environment references for one app; any may be absent."""

    model_config = ConfigDict(frozen=True)

    live: EnvironmentRef | None = None
    staging: EnvironmentRef | None = None
    test: EnvironmentRef | None = None
    local: EnvironmentRef | None = None

    def get(self, environment_name: str) -> EnvironmentRef | None:
        """Get an environment by name."""
        if environment_name not in ENVIRONMENT_NAMES:
            raise KeyError(environment_name)
        return getattr(self, environment_name)


class AppRecord(BaseModel):
    """
    A micro front-end app from the registry.

    `key` is the registry mapping key, never a field of the entry itself.
    Fields other than the known ones are kept verbatim.
    """

    model_config = ConfigDict(extra="allow")

    key: str = Field(..., description="Registry key")
    type: str = Field(..., description="Entry discriminator")
    name: str = Field(..., description="Display name")
    dependencies: list[str] = Field(default_factory=list, description="Keys of apps this app depends on")
    environments: Environments = Field(default_factory=Environments)


# =============================================================================
# Build Records
# =============================================================================


class BuildRecord(BaseModel):
    """
    One deployed build, enriched with its environment href.

    The href is not part of the build-list document. It is carried so that
    the metadata fetch can be made from the build alone.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    href: str


class MetadataDocument(BaseModel):
    """Raw metadata document for a single build."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    build_id: str = Field(..., alias="buildId")
    build_name: str | None = Field(None, alias="buildName")
    source_name: str | None = Field(None, alias="sourceName")

    @field_validator("build_id", mode="before")
    @classmethod
    def _stringify_build_id(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @model_validator(mode="after")
    def _require_a_name(self) -> "MetadataDocument":
        if self.build_name is None and self.source_name is None:
            raise ValueError("metadata document needs buildName or sourceName")
        return self

    def to_record(self) -> "MetadataRecord":
        """Normalize into a MetadataRecord, falling back to buildName for source."""
        source = self.source_name if self.source_name is not None else self.build_name
        return MetadataRecord(id=self.build_id, source=source)


class MetadataRecord(BaseModel):
    """Normalized identity of one build."""

    model_config = ConfigDict(frozen=True)

    id: str
    source: str


# =============================================================================
# App Index
# =============================================================================


class AppIndex:
    """
    Key-indexed view over the apps of one registry fetch.

    Preserves registry document order.
    """

    def __init__(self, apps: Iterable[AppRecord]):
        self._apps: dict[str, AppRecord] = {}
        for app in apps:
            self._apps[app.key] = app

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "AppIndex":
        """
        Build an index from a raw registry document.

        Entries that are not objects with `type` MFE_APP are skipped whatever
        their shape; only app entries are validated.

        Raises:
            pydantic.ValidationError: If an app entry does not match the expected shape
        """
        apps = []
        for key, values in document.items():
            if not isinstance(values, Mapping) or values.get("type") != MFE_APP_TYPE:
                continue
            apps.append(AppRecord.model_validate({**values, "key": key}))
        return cls(apps)

    def __len__(self) -> int:
        return len(self._apps)

    def __contains__(self, key: object) -> bool:
        return key in self._apps

    def all(self) -> list[AppRecord]:
        """All apps, in registry order."""
        return list(self._apps.values())

    def get(self, key: str) -> AppRecord | None:
        """Find a single app by key."""
        return self._apps.get(key)

    def get_many(self, keys: Iterable[str]) -> list[AppRecord]:
        """Apps whose keys are in `keys`, in registry order; misses are omitted."""
        wanted = set(keys)
        return [app for key, app in self._apps.items() if key in wanted]
