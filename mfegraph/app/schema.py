"""
GraphQL schema for Mfegraph.

The schema only describes shapes. Field resolution is not spread over
per-field resolvers: each root field turns its selection set into a
Selection, hands it to the ResolutionEngine, and returns the engine's
result tree. Strawberry reads that tree with `getitem`, so the dicts the
engine builds are served as they are.

Example query:
    {
      mfes {
        key
        name
        environments { live { href builds { name metadata { id source } } } }
        dependencies { key }
      }
    }
"""

from collections.abc import Iterable
from operator import getitem
from typing import Any, Optional

import strawberry
from strawberry.schema.config import StrawberryConfig
from strawberry.types import Info
from strawberry.types.nodes import SelectedField

from mfegraph.engine import ResolutionContext, ResolutionEngine, Selection

# =============================================================================
# Types
# =============================================================================


@strawberry.type(description="Normalized identity of one deployed build.")
class Metadata:
    id: str
    source: str


@strawberry.type(description="One named build deployed to an environment.")
class Build:
    name: str
    metadata: Optional[Metadata]


@strawberry.type(description="One deployment target of an app.")
class Environment:
    href: str
    builds: Optional[list[Build]]


@strawberry.type
class Environments:
    live: Optional[Environment]
    staging: Optional[Environment]
    test: Optional[Environment]
    local: Optional[Environment]


@strawberry.type(name="Mfe", description="A micro front-end app from the registry.")
class App:
    key: str
    type: str
    name: str
    dependencies: Optional[list["App"]]
    environments: Environments


# =============================================================================
# Selection conversion
# =============================================================================


def _is_included(directives: dict[str, Any]) -> bool:
    skip = directives.get("skip")
    if skip is not None and skip.get("if"):
        return False
    include = directives.get("include")
    if include is not None and not include.get("if"):
        return False
    return True


def selection_from_fields(nodes: Iterable[Any]) -> Selection:
    """
    Build a Selection from Strawberry selection nodes.

    Fragment spreads and inline fragments are flattened into their parent;
    `@skip`/`@include` are honoured; introspection fields are ignored.
    """
    selection = Selection()
    for node in nodes:
        if not _is_included(node.directives or {}):
            continue
        if isinstance(node, SelectedField):
            if node.name.startswith("__"):
                continue
            child = selection_from_fields(node.selections)
            selection = selection.merge(Selection({node.name: child}))
        else:
            selection = selection.merge(selection_from_fields(node.selections))
    return selection


def selection_from_info(info: Info) -> Selection:
    """The App selection requested under the current root field."""
    selection = Selection()
    for field in info.selected_fields:
        selection = selection.merge(selection_from_fields(field.selections))
    return selection


def _request_state(info: Info) -> tuple[ResolutionEngine, ResolutionContext]:
    return info.context["engine"], info.context["resolution"]


# =============================================================================
# Query
# =============================================================================


@strawberry.type
class Query:
    @strawberry.field(description="Every app in the registry.")
    async def mfes(self, info: Info) -> list[App]:
        engine, context = _request_state(info)
        return await engine.resolve_all_apps(selection_from_info(info), context)

    @strawberry.field(description="One app by registry key.")
    async def mfe(self, info: Info, key: str) -> Optional[App]:
        engine, context = _request_state(info)
        return await engine.resolve_app(key, selection_from_info(info), context)


schema = strawberry.Schema(
    query=Query,
    config=StrawberryConfig(default_resolver=getitem),
)
