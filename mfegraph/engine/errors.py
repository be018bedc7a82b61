"""
Engine error taxonomy.

Only two conditions escape the engine as exceptions: a selection that does
not fit the entity graph, and a registry that cannot be read when resolving
the entry point. Failures further down the graph are scoped to their field
and reported as ResolutionIssue records instead.
"""

from __future__ import annotations


class ResolutionError(Exception):
    """Base exception for resolution errors."""


class SelectionError(ResolutionError):
    """Raised when a field selection does not fit the entity graph."""

    def __init__(self, message: str, *, path: tuple[str, ...] = ()):
        super().__init__(message)
        self.path = path

    def __str__(self) -> str:
        if self.path:
            return f"{self.args[0]} (at {'.'.join(self.path)})"
        return self.args[0]


class EntryResolutionError(ResolutionError):
    """
    Raised when the registry cannot be resolved for the entry point.

    Fatal to the whole request. The underlying IntegrationError is chained
    as __cause__.
    """

    def __init__(self, message: str, *, key: str | None = None):
        super().__init__(message)
        self.key = key
