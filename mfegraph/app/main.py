"""
Mfegraph - Micro front-end graph service

FastAPI application entry point.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from strawberry.fastapi import GraphQLRouter

from mfegraph import __version__
from mfegraph.app.api import query_router
from mfegraph.app.dependencies import (
    get_engine,
    get_settings,
    initialize_services,
    new_resolution_context,
    shutdown_services,
)
from mfegraph.app.schema import schema
from mfegraph.engine import ResolutionContext, ResolutionEngine

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Starting Mfegraph services...")
    try:
        await initialize_services()
        logger.info("Mfegraph services initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize services: {e}", exc_info=True)
        raise

    yield

    # Shutdown
    logger.info("Shutting down Mfegraph services...")
    try:
        await shutdown_services()
        logger.info("Mfegraph services shut down successfully")
    except Exception as e:
        logger.error(f"Error during shutdown: {e}", exc_info=True)


async def get_resolution_context() -> AsyncIterator[ResolutionContext]:
    """One resolution context per HTTP request, closed after it."""
    context = new_resolution_context()
    try:
        yield context
    finally:
        await context.close()
        if context.issues:
            logger.info(
                f"[graphql] Request {context.request_id} resolved with "
                f"{len(context.issues)} issues"
            )


async def get_graphql_context(
    engine: ResolutionEngine = Depends(get_engine),
    resolution: ResolutionContext = Depends(get_resolution_context),
) -> dict[str, Any]:
    """Context handed to GraphQL resolvers."""
    return {"engine": engine, "resolution": resolution}


# Create FastAPI application
settings = get_settings()

app = FastAPI(
    title="Mfegraph",
    description="Read-only graph over the micro front-end registry, build lists and build metadata",
    version=__version__,
    lifespan=lifespan,
    debug=settings.debug,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

# Include routers
graphql_router = GraphQLRouter(
    schema,
    context_getter=get_graphql_context,
    graphql_ide="graphiql",
)
app.include_router(graphql_router, prefix="/graphql")
app.include_router(query_router, prefix="/api/v1")


@app.get("/", tags=["root"])
async def root() -> dict[str, str]:
    """Root endpoint with service info."""
    return {
        "service": settings.service_name,
        "version": __version__,
        "status": "running",
    }


@app.get("/health", tags=["health"])
async def health_check(engine: ResolutionEngine = Depends(get_engine)) -> dict[str, Any]:
    """
    Health check endpoint.

    Reports whether the registry document is reachable and well-formed.
    """
    registry_ok = await engine.sources.registry.health_check()
    return {
        "status": "healthy" if registry_ok else "unhealthy",
        "registry": "reachable" if registry_ok else "unreachable",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "mfegraph.app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
