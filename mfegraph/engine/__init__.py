"""
Mfegraph Resolution Engine.

Resolves a field selection over the app graph, fetching only what the
selection needs.

Quick Start:
    >>> from mfegraph.engine import ResolutionEngine, Selection, SourceClients
    >>>
    >>> engine = ResolutionEngine(SourceClients.create())
    >>> apps = await engine.resolve_all_apps(Selection.parse({
    ...     "key": True,
    ...     "environments": {"live": {"builds": {"name": True, "metadata": ["id", "source"]}}},
    ... }))
"""

from .cache import RequestCache
from .context import ResolutionContext, ResolutionIssue
from .errors import EntryResolutionError, ResolutionError, SelectionError
from .loaders import RequestLoaders, SourceClients
from .resolver import ResolutionEngine, ResolutionResult
from .selection import ENTITY_FIELDS, LEAF, Selection, validate_selection

__all__ = [
    "ENTITY_FIELDS",
    "EntryResolutionError",
    "LEAF",
    "RequestCache",
    "RequestLoaders",
    "ResolutionContext",
    "ResolutionEngine",
    "ResolutionError",
    "ResolutionIssue",
    "ResolutionResult",
    "Selection",
    "SelectionError",
    "SourceClients",
    "validate_selection",
]
