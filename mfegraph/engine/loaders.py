"""
Request loaders.

The source clients re-fetch on every call. RequestLoaders wraps them with the
same operations, deduplicated through the request's cache:

    registry  -> fetched once per request, all lookups share the index
    builds    -> keyed by environment href
    metadata  -> keyed by (environment href, build name)
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Hashable, Iterable
from dataclasses import dataclass
from typing import TypeVar

import httpx

from mfegraph.integrations.base import IntegrationConfig
from mfegraph.sources import (
    DEFAULT_REGISTRY_URL,
    AppIndex,
    AppRecord,
    AppRegistryClient,
    BuildListClient,
    BuildMetadataClient,
    BuildRecord,
    MetadataRecord,
)

from .context import ResolutionContext

T = TypeVar("T")


@dataclass(frozen=True)
class SourceClients:
    """The three document source clients the engine reads from."""

    registry: AppRegistryClient
    builds: BuildListClient
    metadata: BuildMetadataClient

    @classmethod
    def create(
        cls,
        registry_url: str = DEFAULT_REGISTRY_URL,
        config: IntegrationConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "SourceClients":
        """Create one client per source sharing the same configuration."""
        return cls(
            registry=AppRegistryClient(registry_url, config, transport=transport),
            builds=BuildListClient(config, transport=transport),
            metadata=BuildMetadataClient(config, transport=transport),
        )

    async def close(self) -> None:
        """Close every client's HTTP connection pool."""
        await asyncio.gather(
            self.registry.close(),
            self.builds.close(),
            self.metadata.close(),
        )


class RequestLoaders:
    """Source operations deduplicated for one request."""

    def __init__(self, sources: SourceClients, context: ResolutionContext):
        self._sources = sources
        self._context = context

    async def _load(self, key: Hashable, source: str, fetch: Callable[[], Awaitable[T]]) -> T:
        async def counted_fetch() -> T:
            self._context.record_fetch(source)
            return await fetch()

        return await self._context.cache.get_or_fetch(key, counted_fetch)

    # =========================================================================
    # Registry
    # =========================================================================

    async def fetch_index(self) -> AppIndex:
        return await self._load(("registry",), "registry", self._sources.registry.fetch_index)

    async def fetch_all_apps(self) -> list[AppRecord]:
        index = await self.fetch_index()
        return index.all()

    async def fetch_app_by_key(self, key: str) -> AppRecord | None:
        index = await self.fetch_index()
        return index.get(key)

    async def fetch_apps_by_keys(self, keys: Iterable[str]) -> list[AppRecord]:
        index = await self.fetch_index()
        return index.get_many(keys)

    # =========================================================================
    # Builds and Metadata
    # =========================================================================

    async def fetch_builds_for_environment(self, environment_href: str) -> list[BuildRecord]:
        return await self._load(
            ("builds", environment_href),
            "builds",
            lambda: self._sources.builds.fetch_builds_for_environment(environment_href),
        )

    async def fetch_metadata_for_build(self, environment_href: str, build_name: str) -> MetadataRecord:
        return await self._load(
            ("metadata", environment_href, build_name),
            "metadata",
            lambda: self._sources.metadata.fetch_metadata_for_build(environment_href, build_name),
        )
