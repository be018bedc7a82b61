"""
App Registry client.

The registry ("global configuration") is the single source of truth for
every entry in the micro front-end ecosystem: apps, their environments and
their dependencies on other apps. Its location is static.

Usage:
    async with AppRegistryClient(registry_url) as registry:
        apps = await registry.fetch_all_apps()
        shell = await registry.fetch_app_by_key("app-shell")
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from pydantic import ValidationError

from mfegraph.integrations.base import DocumentError, IntegrationClient, IntegrationConfig, IntegrationError
from mfegraph.sources.schemas import AppIndex, AppRecord

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_URL = "https://mfe-global-config.educationperfect.com/v0/ep.global.config.json"


class AppRegistryClient(IntegrationClient):
    """
    Async client for the app registry document.

    Every operation re-fetches and re-filters the whole registry; the
    client keeps no document cache of its own.
    """

    def __init__(
        self,
        registry_url: str = DEFAULT_REGISTRY_URL,
        config: IntegrationConfig | None = None,
        **kwargs,
    ):
        super().__init__(config, **kwargs)
        if not registry_url.strip():
            raise ValueError("registry_url must not be blank")
        self.registry_url = registry_url.strip()

    @property
    def name(self) -> str:
        return "registry"

    async def fetch_index(self) -> AppIndex:
        """
        Fetch the registry and index its app entries by key.

        Raises:
            IntegrationError: If the registry cannot be fetched
            DocumentError: If the registry is not a mapping of well-formed entries
        """
        document = await self._get_json(self.registry_url)

        if not isinstance(document, dict):
            raise DocumentError(
                f"Registry must be a JSON object, got {type(document).__name__}",
                self.name,
                href=self.registry_url,
            )

        try:
            index = AppIndex.from_document(document)
        except ValidationError as e:
            raise DocumentError(
                f"Registry entry does not match the expected shape: {e}",
                self.name,
                href=self.registry_url,
            ) from e

        logger.debug(f"[{self.name}] Indexed {len(index)} apps out of {len(document)} entries")
        return index

    async def fetch_all_apps(self) -> list[AppRecord]:
        """List every app in the registry."""
        index = await self.fetch_index()
        return index.all()

    async def fetch_app_by_key(self, key: str) -> AppRecord | None:
        """Find one app by key; None if the registry has no such app."""
        index = await self.fetch_index()
        return index.get(key)

    async def fetch_apps_by_keys(self, keys: Iterable[str]) -> list[AppRecord]:
        """
        Find the apps for a set of keys.

        Keys missing from the registry are omitted and repeated keys yield
        one record. Results follow registry order, not input order.
        """
        index = await self.fetch_index()
        return index.get_many(keys)

    async def health_check(self) -> bool:
        """Check the registry is reachable and well-formed."""
        try:
            await self.fetch_index()
            return True
        except IntegrationError as e:
            logger.warning(f"[{self.name}] Health check failed: {e}")
            return False
