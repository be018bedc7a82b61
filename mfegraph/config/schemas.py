"""
Configuration Schemas for Mfegraph.

Pydantic model for application settings, populated from MFEGRAPH_*
environment variables by `mfegraph.app.dependencies.get_settings`.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from mfegraph.integrations.base import IntegrationConfig
from mfegraph.sources.registry import DEFAULT_REGISTRY_URL


class AppSettings(BaseModel):
    """
    Application settings model.

    Used for type-safe settings access.
    """

    # Service identity
    service_name: str = "mfegraph"
    environment: str = "development"
    debug: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = Field(8000, ge=1, le=65535)

    # Upstream documents
    registry_url: str = Field(DEFAULT_REGISTRY_URL, description="Registry document URL")
    request_timeout: float = Field(10.0, gt=0, description="Per-request timeout in seconds")
    max_retries: int = Field(2, ge=0, description="Retries for retryable upstream failures")
    retry_delay: float = Field(0.5, ge=0, description="Base backoff delay in seconds")
    max_connections: int = Field(20, ge=1, description="Connection pool size per source")

    # Query surface
    expose_build_href: bool = Field(False, description="Allow selecting Build.href in JSON queries")

    # Observability
    log_requests: bool = False
    log_responses: bool = False

    @field_validator("registry_url")
    @classmethod
    def _validate_registry_url(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped.startswith(("http://", "https://")):
            raise ValueError("registry_url must be an absolute http(s) URL")
        return stripped

    def integration_config(self) -> IntegrationConfig:
        """Client settings shared by the three document sources."""
        return IntegrationConfig(
            timeout=self.request_timeout,
            max_connections=self.max_connections,
            max_retries=self.max_retries,
            retry_delay=self.retry_delay,
            log_requests=self.log_requests,
            log_responses=self.log_responses,
        )
