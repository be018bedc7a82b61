"""
Dependency Injection for Mfegraph.

Provides process-wide instances of the source clients and the engine.

The source clients hold HTTP connection pools and are shared by every
request. Request state (the dedup cache) is never shared: each request gets
its own ResolutionContext from `new_resolution_context`.
"""
from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Optional

from mfegraph.config.schemas import AppSettings
from mfegraph.engine import ResolutionContext, ResolutionEngine, SourceClients
from mfegraph.sources.registry import DEFAULT_REGISTRY_URL

logger = logging.getLogger(__name__)


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


@lru_cache()
def get_settings() -> AppSettings:
    """
    Get application settings from environment.

    Uses lru_cache for singleton pattern.
    """
    return AppSettings(
        # Service
        service_name=os.getenv("MFEGRAPH_SERVICE_NAME", "mfegraph"),
        environment=os.getenv("MFEGRAPH_ENVIRONMENT", "development"),
        debug=_env_flag("MFEGRAPH_DEBUG"),
        # Server
        host=os.getenv("MFEGRAPH_HOST", "0.0.0.0"),
        port=int(os.getenv("MFEGRAPH_PORT", "8000")),
        # Upstream documents
        registry_url=os.getenv("MFEGRAPH_REGISTRY_URL", DEFAULT_REGISTRY_URL),
        request_timeout=float(os.getenv("MFEGRAPH_REQUEST_TIMEOUT", "10.0")),
        max_retries=int(os.getenv("MFEGRAPH_MAX_RETRIES", "2")),
        retry_delay=float(os.getenv("MFEGRAPH_RETRY_DELAY", "0.5")),
        max_connections=int(os.getenv("MFEGRAPH_MAX_CONNECTIONS", "20")),
        # Query surface
        expose_build_href=_env_flag("MFEGRAPH_EXPOSE_BUILD_HREF"),
        # Observability
        log_requests=_env_flag("MFEGRAPH_LOG_REQUESTS"),
        log_responses=_env_flag("MFEGRAPH_LOG_RESPONSES"),
    )


# Global instances (initialized on first access)
_sources: Optional[SourceClients] = None
_engine: Optional[ResolutionEngine] = None


def get_sources() -> SourceClients:
    """
    Get the document source clients.

    Initializes clients on first call.
    """
    global _sources
    if _sources is None:
        settings = get_settings()
        _sources = SourceClients.create(
            settings.registry_url,
            settings.integration_config(),
        )
        logger.info(f"Document sources configured (registry={settings.registry_url})")
    return _sources


def get_engine() -> ResolutionEngine:
    """Get the resolution engine."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = ResolutionEngine(
            get_sources(),
            expose_build_href=settings.expose_build_href,
        )
    return _engine


def set_engine(engine: ResolutionEngine | None) -> None:
    """Replace the engine (tests inject one backed by stub sources)."""
    global _engine
    _engine = engine


def new_resolution_context() -> ResolutionContext:
    """A fresh request-scoped context."""
    return ResolutionContext()


async def initialize_services() -> None:
    """Initialize all services on application startup."""
    get_engine()


async def shutdown_services() -> None:
    """Cleanup services on application shutdown."""
    global _sources, _engine

    if _sources is not None:
        await _sources.close()
        logger.info("Document sources closed")

    _sources = None
    _engine = None
