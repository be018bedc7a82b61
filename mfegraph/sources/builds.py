"""
Build List client.

A build list identifies every deployment of one app inside one
environment. It lives at the root of the environment's base location:

    https://mfe-app-shell.example.com/ep.builds.config.json
"""

from __future__ import annotations

import logging

from pydantic import TypeAdapter, ValidationError

from mfegraph.integrations.base import DocumentError, IntegrationClient, join_href
from mfegraph.sources.schemas import BuildRecord

logger = logging.getLogger(__name__)

BUILDS_DOCUMENT_PATH = "ep.builds.config.json"

_BUILD_NAMES = TypeAdapter(list[str])


class BuildListClient(IntegrationClient):
    """Async client for per-environment build lists."""

    @property
    def name(self) -> str:
        return "builds"

    def builds_href(self, environment_href: str) -> str:
        """Location of the build list for an environment."""
        return join_href(environment_href, BUILDS_DOCUMENT_PATH, integration=self.name)

    async def fetch_builds_for_environment(self, environment_href: str) -> list[BuildRecord]:
        """
        Fetch an environment's builds, in document order.

        Each build name is enriched with `environment_href` so that a build's
        metadata can be located without going back to its environment.

        Raises:
            IntegrationError: If the document cannot be fetched
            DocumentError: If the href is malformed or the document is not a list of names
        """
        href = self.builds_href(environment_href)
        document = await self._get_json(href)

        try:
            build_names = _BUILD_NAMES.validate_python(document)
        except ValidationError as e:
            raise DocumentError(
                f"Build list must be a list of build names: {e}",
                self.name,
                href=href,
            ) from e

        logger.debug(f"[{self.name}] {len(build_names)} builds at {href}")
        return [BuildRecord(name=build_name, href=environment_href) for build_name in build_names]
