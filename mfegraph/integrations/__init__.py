"""
Mfegraph Integrations Layer.

Shared plumbing for the upstream JSON document sources. Each source
follows the same pattern:

1. Client: Subclass of IntegrationClient that knows its document location
2. Schemas: Pydantic models describing the document shape (in sources/)

Usage:
    from mfegraph.integrations import IntegrationConfig
    from mfegraph.sources import BuildListClient

    async with BuildListClient(IntegrationConfig(timeout=5.0)) as client:
        builds = await client.fetch_builds_for_environment(
            "https://mfe-app-shell.example.com/"
        )
"""

from mfegraph.integrations.base import (
    DocumentError,
    IntegrationClient,
    IntegrationConfig,
    IntegrationError,
    NotFoundError,
    RateLimitError,
    join_href,
)

__all__ = [
    "DocumentError",
    "IntegrationClient",
    "IntegrationConfig",
    "IntegrationError",
    "NotFoundError",
    "RateLimitError",
    "join_href",
]
