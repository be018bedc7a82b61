"""
Document sources for Mfegraph.

One client per upstream document type. The clients are leaves: none of
them knows about the others, and the engine supplies the parent context
(an environment href, a build name) each fetch needs.

    AppRegistryClient    registry -> AppRecord
    BuildListClient      environment href -> [BuildRecord]
    BuildMetadataClient  (environment href, build name) -> MetadataRecord
"""

from mfegraph.sources.builds import BUILDS_DOCUMENT_PATH, BuildListClient
from mfegraph.sources.metadata import METADATA_DOCUMENT_NAME, BuildMetadataClient
from mfegraph.sources.registry import DEFAULT_REGISTRY_URL, AppRegistryClient
from mfegraph.sources.schemas import (
    ENVIRONMENT_NAMES,
    MFE_APP_TYPE,
    AppIndex,
    AppRecord,
    BuildRecord,
    EnvironmentRef,
    Environments,
    MetadataDocument,
    MetadataRecord,
)

__all__ = [
    "AppIndex",
    "AppRecord",
    "AppRegistryClient",
    "BUILDS_DOCUMENT_PATH",
    "BuildListClient",
    "BuildMetadataClient",
    "BuildRecord",
    "DEFAULT_REGISTRY_URL",
    "ENVIRONMENT_NAMES",
    "EnvironmentRef",
    "Environments",
    "METADATA_DOCUMENT_NAME",
    "MFE_APP_TYPE",
    "MetadataDocument",
    "MetadataRecord",
]
