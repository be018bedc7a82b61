"""
Field selection trees.

A Selection says which output fields a caller wants. The engine walks it to
decide what to fetch: a field that is not selected never causes a fetch.

Selections can be written as nested Python data:

    Selection.parse({
        "key": True,
        "environments": {"live": {"href": True, "builds": ["name"]}},
        "dependencies": ["key", "name"],
    })

Lists hold field names or one-key mappings; mapping values are True for a
leaf, False to leave the field out, or a nested selection.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from mfegraph.sources.schemas import ENVIRONMENT_NAMES

from .errors import SelectionError


@dataclass(frozen=True)
class Selection:
    """Immutable field selection tree; a leaf has no children."""

    fields: Mapping[str, "Selection"] = field(default_factory=dict)

    def __contains__(self, name: object) -> bool:
        return name in self.fields

    def __iter__(self) -> Iterator[str]:
        return iter(self.fields)

    def __getitem__(self, name: str) -> "Selection":
        return self.fields[name]

    def __len__(self) -> int:
        return len(self.fields)

    @property
    def is_leaf(self) -> bool:
        return not self.fields

    def merge(self, other: "Selection") -> "Selection":
        """Union of two selections; shared fields merge their children."""
        merged = dict(self.fields)
        for name, child in other.fields.items():
            merged[name] = merged[name].merge(child) if name in merged else child
        return Selection(merged)

    def with_field(self, name: str, child: "Selection | None" = None) -> "Selection":
        """Return a copy with one more field selected."""
        return self.merge(Selection({name: child or LEAF}))

    def to_dict(self) -> dict[str, Any]:
        """Render as nested data accepted by `parse`."""
        return {name: True if child.is_leaf else child.to_dict() for name, child in self.fields.items()}

    @classmethod
    def parse(cls, raw: Any) -> "Selection":
        """
        Build a selection from nested mappings and lists.

        Raises:
            SelectionError: If the value is not made of names, mappings and lists
        """
        if isinstance(raw, Selection):
            return raw

        if isinstance(raw, str):
            return cls({raw: LEAF})

        if isinstance(raw, Mapping):
            selection = cls()
            for name, value in raw.items():
                if not isinstance(name, str):
                    raise SelectionError(f"Field names must be strings, got {name!r}")
                if value is False:
                    continue
                if value is True or value is None:
                    child = LEAF
                else:
                    child = cls.parse(value)
                selection = selection.merge(cls({name: child}))
            return selection

        if isinstance(raw, (list, tuple)):
            selection = cls()
            for item in raw:
                if not isinstance(item, (str, Mapping)):
                    raise SelectionError(f"Unsupported selection item {item!r}")
                selection = selection.merge(cls.parse(item))
            return selection

        raise SelectionError(f"Unsupported selection {raw!r}")


LEAF = Selection()


# =============================================================================
# Entity Shapes
# =============================================================================

# field name -> entity name of its sub-selection, or None for scalars
ENTITY_FIELDS: dict[str, dict[str, str | None]] = {
    "App": {
        "key": None,
        "type": None,
        "name": None,
        "dependencies": "App",
        "environments": "Environments",
    },
    "Environments": {name: "Environment" for name in ENVIRONMENT_NAMES},
    "Environment": {
        "href": None,
        "builds": "Build",
    },
    "Build": {
        "name": None,
        "href": None,
        "metadata": "Metadata",
    },
    "Metadata": {
        "id": None,
        "source": None,
    },
}

_INTERNAL_FIELDS: dict[str, frozenset[str]] = {
    "Build": frozenset({"href"}),
}


def validate_selection(
    selection: Selection,
    entity: str = "App",
    *,
    expose_internal: bool = False,
    path: tuple[str, ...] = (),
) -> None:
    """
    Check a selection against the entity graph before anything is fetched.

    Args:
        selection: Selection to check
        entity: Entity the selection applies to
        expose_internal: Allow carrier fields such as Build.href
        path: Field path of `selection`, for error messages

    Raises:
        SelectionError: On unknown fields, object fields without a
            sub-selection, or scalar fields with one
    """
    known_fields = ENTITY_FIELDS[entity]
    hidden_fields = frozenset() if expose_internal else _INTERNAL_FIELDS.get(entity, frozenset())

    if selection.is_leaf:
        raise SelectionError(f"{entity} requires a sub-selection", path=path)

    for name, child in selection.fields.items():
        field_path = (*path, name)
        if name not in known_fields or name in hidden_fields:
            raise SelectionError(f"Unknown field {name!r} on {entity}", path=field_path)

        child_entity = known_fields[name]
        if child_entity is None:
            if not child.is_leaf:
                raise SelectionError(f"Scalar field {name!r} cannot have a sub-selection", path=field_path)
            continue

        validate_selection(child, child_entity, expose_internal=expose_internal, path=field_path)
