"""
Resolution Context for Mfegraph.

The context holds request-scoped state for one top-level request: the
dedup cache, fetch counters, and the issues recorded for fields that
could not be resolved.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any
from uuid import UUID, uuid4

from .cache import RequestCache


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ResolutionIssue:
    """A field that resolved to None because its fetch failed."""

    path: tuple[str, ...]
    source: str
    message: str
    href: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": list(self.path),
            "source": self.source,
            "message": self.message,
            "href": self.href,
        }


@dataclass
class ResolutionContext:
    """
    Request-scoped context shared by every branch of one resolution.

    Provides:
    - Unique request ID for tracing
    - The request's fetch dedup cache
    - Upstream fetch counts per source
    - Issues for fields that failed to resolve

    Create one per top-level request; root fields of the same request may
    share it so their fetches are deduplicated together.
    """

    request_id: UUID = field(default_factory=uuid4)
    started_at: datetime = field(default_factory=_utc_now)

    cache: RequestCache = field(default_factory=RequestCache)

    fetch_counts: Counter[str] = field(default_factory=Counter)
    issues: list[ResolutionIssue] = field(default_factory=list)

    @property
    def elapsed_ms(self) -> float:
        """Milliseconds since the request started."""
        delta = datetime.now(timezone.utc) - self.started_at
        return delta.total_seconds() * 1000

    @property
    def fetch_total(self) -> int:
        return sum(self.fetch_counts.values())

    def record_fetch(self, source: str) -> None:
        """Count one upstream fetch."""
        self.fetch_counts[source] += 1

    def record_issue(self, issue: ResolutionIssue) -> None:
        """Record a scoped failure."""
        self.issues.append(issue)

    async def close(self) -> None:
        """Release the request cache."""
        await self.cache.close()

    def stats(self) -> dict[str, Any]:
        """Fetch and cache statistics."""
        return {
            "fetches": dict(self.fetch_counts),
            "cache": self.cache.stats(),
            "duration_ms": self.elapsed_ms,
        }

    def to_dict(self) -> dict[str, Any]:
        """Summary for logging and API responses."""
        return {
            "request_id": str(self.request_id),
            "started_at": self.started_at.isoformat(),
            "duration_ms": self.elapsed_ms,
            "fetches": dict(self.fetch_counts),
            "issues": [issue.to_dict() for issue in self.issues],
        }
