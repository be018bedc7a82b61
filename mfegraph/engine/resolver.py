"""
Resolution Engine for Mfegraph.

Turns a field selection into a result tree of exactly that shape, fetching
only the documents the selection needs.

Resolution walk:

    entry (all apps | one app by key)         registry, fetched once
      └─ App
           ├─ key, type, name                 from the record, no fetch
           ├─ environments
           │    └─ live|staging|test|local
           │         ├─ href                  from the record, no fetch
           │         └─ builds                build list for that href
           │              ├─ name             from the build, no fetch
           │              └─ metadata         metadata for (href, build name)
           └─ dependencies                    registry lookup, then App again

Sibling apps, sibling fields, sibling environments and sibling builds are
resolved concurrently. Builds keep build-list order; nothing else has an
ordering guarantee beyond the input lists.

Dependencies form a graph, not a tree: they may point back at an ancestor
or at the app itself. The keys on the current path are carried down each
branch; an app already on its path is materialized but its dependencies are
not expanded again (the field is None). Its other selected fields, environments
and builds included, are still resolved. A key reachable through two
independent branches is expanded on both.

Failures:
    - registry unavailable at the entry point -> EntryResolutionError
    - a build list, metadata document or dependency lookup failing -> that
      field is None and a ResolutionIssue is recorded; siblings are unaffected
    - an unknown key -> None for a single lookup, omitted from dependencies
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from mfegraph.integrations.base import IntegrationError
from mfegraph.sources import AppRecord, BuildRecord, EnvironmentRef

from .context import ResolutionContext, ResolutionIssue
from .errors import EntryResolutionError
from .loaders import RequestLoaders, SourceClients
from .selection import Selection, validate_selection

logger = logging.getLogger(__name__)

T = TypeVar("T")

Path = tuple[str, ...]


@dataclass
class ResolutionResult:
    """Result tree plus the request context it was resolved in."""

    data: Any
    context: ResolutionContext

    @property
    def issues(self) -> list[ResolutionIssue]:
        return self.context.issues

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": self.data,
            "issues": [issue.to_dict() for issue in self.issues],
            "stats": self.context.stats(),
        }


class ResolutionEngine:
    """
    Selection-driven resolver over the three document sources.

    The engine itself is stateless between requests; all request state lives
    in a ResolutionContext, created per call unless one is passed in.

    Usage:
        engine = ResolutionEngine(SourceClients.create())
        apps = await engine.resolve_all_apps(Selection.parse(["key", "name"]))
    """

    def __init__(self, sources: SourceClients, *, expose_build_href: bool = False):
        self.sources = sources
        self.expose_build_href = expose_build_href

    def validate(self, selection: Selection) -> None:
        """Check an App selection; raises SelectionError."""
        validate_selection(selection, "App", expose_internal=self.expose_build_href)

    async def resolve(
        self,
        selection: Selection,
        *,
        key: str | None = None,
        context: ResolutionContext | None = None,
    ) -> ResolutionResult:
        """
        Resolve all apps, or the app with `key`, for an App selection.

        Args:
            selection: Fields to resolve on each App
            key: Entry app key; None resolves every app
            context: Request context to share; a fresh one is created and
                closed when omitted

        Returns:
            ResolutionResult with a list of app dicts, or one app dict or
            None when `key` is given

        Raises:
            SelectionError: If the selection does not fit the graph
            EntryResolutionError: If the registry cannot be read
        """
        self.validate(selection)

        owns_context = context is None
        context = context or ResolutionContext()

        try:
            walk = _Resolution(RequestLoaders(self.sources, context), context)
            if key is None:
                data: Any = await walk.all_apps(selection)
            else:
                data = await walk.app_by_key(key, selection)
        finally:
            if owns_context:
                await context.close()

        logger.debug(
            f"[engine] Resolved {'all apps' if key is None else key!r} "
            f"in {context.elapsed_ms:.1f}ms: fetches={dict(context.fetch_counts)} "
            f"issues={len(context.issues)}"
        )
        return ResolutionResult(data=data, context=context)

    async def resolve_all_apps(
        self,
        selection: Selection,
        context: ResolutionContext | None = None,
    ) -> list[dict[str, Any]]:
        """Resolve every app in the registry."""
        result = await self.resolve(selection, context=context)
        return result.data

    async def resolve_app(
        self,
        key: str,
        selection: Selection,
        context: ResolutionContext | None = None,
    ) -> dict[str, Any] | None:
        """Resolve one app by key; None if the registry has no such app."""
        result = await self.resolve(selection, key=key, context=context)
        return result.data


class _Resolution:
    """One walk over the graph for one request."""

    def __init__(self, loaders: RequestLoaders, context: ResolutionContext):
        self.loaders = loaders
        self.context = context

    # =========================================================================
    # Entry points
    # =========================================================================

    async def all_apps(self, selection: Selection) -> list[dict[str, Any]]:
        try:
            apps = await self.loaders.fetch_all_apps()
        except IntegrationError as e:
            raise EntryResolutionError(f"Could not resolve apps: {e}") from e

        return list(
            await asyncio.gather(
                *(self.app(app, selection, on_path=frozenset({app.key})) for app in apps)
            )
        )

    async def app_by_key(self, key: str, selection: Selection) -> dict[str, Any] | None:
        try:
            app = await self.loaders.fetch_app_by_key(key)
        except IntegrationError as e:
            raise EntryResolutionError(f"Could not resolve app {key!r}: {e}", key=key) from e

        if app is None:
            logger.debug(f"[engine] No app with key {key!r}")
            return None
        return await self.app(app, selection, on_path=frozenset({key}))

    # =========================================================================
    # App
    # =========================================================================

    async def app(
        self,
        app: AppRecord,
        selection: Selection,
        *,
        on_path: frozenset[str],
        expand_dependencies: bool = True,
        path: Path = (),
    ) -> dict[str, Any]:
        path = (*path, app.key)
        names = list(selection)
        values = await asyncio.gather(
            *(
                self.app_field(
                    app,
                    name,
                    selection[name],
                    on_path=on_path,
                    expand_dependencies=expand_dependencies,
                    path=path,
                )
                for name in names
            )
        )
        return dict(zip(names, values))

    async def app_field(
        self,
        app: AppRecord,
        name: str,
        selection: Selection,
        *,
        on_path: frozenset[str],
        expand_dependencies: bool,
        path: Path,
    ) -> Any:
        if name == "environments":
            return await self.environments(app, selection, path=(*path, name))
        if name == "dependencies":
            if not expand_dependencies:
                return None
            return await self.dependencies(app, selection, on_path=on_path, path=(*path, name))
        return getattr(app, name)

    async def dependencies(
        self,
        app: AppRecord,
        selection: Selection,
        *,
        on_path: frozenset[str],
        path: Path,
    ) -> list[dict[str, Any]] | None:
        if not app.dependencies:
            return []

        dependencies = await self.scoped(
            path,
            "registry",
            lambda: self.loaders.fetch_apps_by_keys(app.dependencies),
        )
        if dependencies is None:
            return None

        missing = set(app.dependencies) - {dependency.key for dependency in dependencies}
        if missing:
            logger.debug(f"[engine] {app.key!r} depends on unknown apps {sorted(missing)}")

        return list(
            await asyncio.gather(
                *(
                    self.app(
                        dependency,
                        selection,
                        on_path=on_path | {dependency.key},
                        expand_dependencies=dependency.key not in on_path,
                        path=path,
                    )
                    for dependency in dependencies
                )
            )
        )

    # =========================================================================
    # Environments
    # =========================================================================

    async def environments(self, app: AppRecord, selection: Selection, *, path: Path) -> dict[str, Any]:
        names = list(selection)
        values = await asyncio.gather(
            *(
                self.environment(app.environments.get(name), selection[name], path=(*path, name))
                for name in names
            )
        )
        return dict(zip(names, values))

    async def environment(
        self,
        environment: EnvironmentRef | None,
        selection: Selection,
        *,
        path: Path,
    ) -> dict[str, Any] | None:
        if environment is None:
            return None

        result: dict[str, Any] = {}
        if "href" in selection:
            result["href"] = environment.href
        if "builds" in selection:
            result["builds"] = await self.builds(environment.href, selection["builds"], path=(*path, "builds"))
        return result

    # =========================================================================
    # Builds
    # =========================================================================

    async def builds(self, environment_href: str, selection: Selection, *, path: Path) -> list[dict[str, Any]] | None:
        builds = await self.scoped(
            path,
            "builds",
            lambda: self.loaders.fetch_builds_for_environment(environment_href),
        )
        if builds is None:
            return None

        return list(await asyncio.gather(*(self.build(build, selection, path=path) for build in builds)))

    async def build(self, build: BuildRecord, selection: Selection, *, path: Path) -> dict[str, Any]:
        path = (*path, build.name)
        result: dict[str, Any] = {}
        for name in selection:
            if name == "metadata":
                result[name] = await self.metadata(build, selection[name], path=(*path, name))
            else:
                result[name] = getattr(build, name)
        return result

    async def metadata(self, build: BuildRecord, selection: Selection, *, path: Path) -> dict[str, Any] | None:
        metadata = await self.scoped(
            path,
            "metadata",
            lambda: self.loaders.fetch_metadata_for_build(build.href, build.name),
        )
        if metadata is None:
            return None
        return {name: getattr(metadata, name) for name in selection}

    # =========================================================================
    # Failure scoping
    # =========================================================================

    async def scoped(self, path: Path, source: str, fetch: Callable[[], Awaitable[T]]) -> T | None:
        """Run a sub-tree fetch; on failure record an issue and return None."""
        try:
            return await fetch()
        except IntegrationError as e:
            issue = ResolutionIssue(path=path, source=source, message=str(e), href=e.href)
            self.context.record_issue(issue)
            logger.warning(f"[engine] {source} fetch failed at {'.'.join(path)}: {e}")
            return None
