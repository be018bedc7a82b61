"""
Mfegraph - a read-only graph over the micro front-end ecosystem.

Mfegraph aggregates three kinds of JSON documents into one queryable graph:

- **Registry**: the single source of truth listing every app, its
  environments and its dependencies on other apps
- **Build lists**: the builds deployed to each environment
- **Build metadata**: the identity (id, source branch) of each build

Only the documents a query actually needs are fetched, each at most once
per request, and cyclic app dependencies are walked without looping.

Quick Start:
    >>> from mfegraph import ResolutionEngine, Selection, SourceClients
    >>>
    >>> engine = ResolutionEngine(SourceClients.create())
    >>> apps = await engine.resolve_all_apps(Selection.parse(["key", "name"]))
"""

__version__ = "0.1.0"
__license__ = "MIT"

from mfegraph.engine import ResolutionContext, ResolutionEngine, Selection, SourceClients

__all__ = [
    "__version__",
    "__license__",
    "ResolutionContext",
    "ResolutionEngine",
    "Selection",
    "SourceClients",
]
