"""
Request-scoped fetch deduplication.

One top-level request can reach the same upstream document along several
branches: two apps sharing a dependency, the registry lookup behind every
`dependencies` field, the same build list reached through a cycle. The
RequestCache makes each distinct fetch happen once per request.

Lifetime:
    - One cache per top-level request, discarded afterwards
    - Write-once per key: the first caller starts the fetch, later callers
      await the same task
    - A failed fetch stays failed for the rest of the request, so every
      branch observes the same outcome

No cross-request caching and no invalidation: documents are re-read on the
next request.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RequestCache:
    """Key to in-flight-or-completed fetch, for one request."""

    def __init__(self) -> None:
        self._tasks: dict[Hashable, asyncio.Task[Any]] = {}
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, key: object) -> bool:
        return key in self._tasks

    async def get_or_fetch(self, key: Hashable, fetch: Callable[[], Awaitable[T]]) -> T:
        """
        Return the result of `fetch`, running it at most once per key.

        Args:
            key: Identity of the fetch, e.g. ("builds", environment_href)
            fetch: Zero-argument coroutine factory

        Returns:
            The fetch result

        Raises:
            Whatever `fetch` raised, for every caller of the same key
        """
        task = self._tasks.get(key)
        if task is None:
            self.misses += 1
            task = asyncio.ensure_future(fetch())
            task.add_done_callback(_consume_exception)
            self._tasks[key] = task
        else:
            self.hits += 1
            logger.debug(f"[request_cache] Reusing fetch for {key!r}")

        # One waiter being cancelled must not cancel the shared fetch
        return await asyncio.shield(task)

    async def close(self) -> None:
        """Cancel fetches nobody is waiting on any more."""
        pending = [task for task in self._tasks.values() if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.debug(f"[request_cache] Cancelled {len(pending)} pending fetches")
        self._tasks.clear()

    def stats(self) -> dict[str, int]:
        """Hit/miss counters."""
        return {"entries": len(self._tasks), "hits": self.hits, "misses": self.misses}


def _consume_exception(task: asyncio.Task[Any]) -> None:
    # Waiters re-raise the exception themselves; this only marks it retrieved
    # for tasks whose waiters were cancelled.
    if not task.cancelled():
        task.exception()
