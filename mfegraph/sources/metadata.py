"""
Build Metadata client.

Metadata lives at the root of a deployed build:

    https://mfe-app-shell.example.com/release/ep.metadata.config.json

Build names and source names are being split apart (trunk-based
development ships "release" builds from many branches). When a document has
no `sourceName`, its `buildName` stands in for it.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from mfegraph.integrations.base import DocumentError, IntegrationClient, join_href
from mfegraph.sources.schemas import MetadataDocument, MetadataRecord

logger = logging.getLogger(__name__)

METADATA_DOCUMENT_NAME = "ep.metadata.config.json"


class BuildMetadataClient(IntegrationClient):
    """Async client for per-build metadata documents."""

    @property
    def name(self) -> str:
        return "metadata"

    def metadata_href(self, environment_href: str, build_name: str) -> str:
        """Location of a build's metadata document."""
        return join_href(
            environment_href,
            f"{build_name}/{METADATA_DOCUMENT_NAME}",
            integration=self.name,
        )

    async def fetch_metadata_for_build(self, environment_href: str, build_name: str) -> MetadataRecord:
        """
        Fetch and normalize one build's metadata.

        Raises:
            IntegrationError: If the document cannot be fetched
            DocumentError: If the href is malformed or required fields are missing
        """
        href = self.metadata_href(environment_href, build_name)
        document = await self._get_json(href)

        try:
            metadata = MetadataDocument.model_validate(document)
        except ValidationError as e:
            raise DocumentError(
                f"Metadata document does not match the expected shape: {e}",
                self.name,
                href=href,
            ) from e

        return metadata.to_record()
