"""Filter and update documents expressed in attribute paths.

Paths use attribute names joined with dots (``"contacts.phones.value"``) and
are translated into element names through the class maps. ``$`` is the
positional operator and a non-negative integer addresses an array slot.
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Tuple

from .class_map import MappingError
from .codec import DocumentCodec, sequence_item_type
from .registry import Mappings

POSITIONAL = "$"


class FilterDefinition(dict):
    """A pymongo filter document that can be combined with ``&``."""

    def __and__(self, other: Mapping[str, Any]) -> "FilterDefinition":
        clauses: List[Dict[str, Any]] = []
        for part in (self, other):
            if set(part) == {"$and"}:
                clauses.extend(part["$and"])
            elif part:
                clauses.append(dict(part))
        return FilterDefinition({"$and": clauses})


class UpdateDefinition(dict):
    """A pymongo update document; ``&`` merges operators of two updates."""

    def __and__(self, other: Mapping[str, Any]) -> "UpdateDefinition":
        merged = UpdateDefinition({operator: dict(fields) for operator, fields in self.items()})
        for operator, fields in other.items():
            merged.setdefault(operator, {}).update(fields)
        return merged


class _PathBuilder:
    def __init__(self, mappings: Mappings, class_type: type) -> None:
        self.mappings = mappings
        self.class_type = class_type
        self.codec = DocumentCodec(mappings)

    def render_path(self, path: str) -> str:
        return resolve_path(self.mappings, self.class_type, path)[0]


class FilterBuilder(_PathBuilder):
    def eq(self, path: str, value: Any) -> FilterDefinition:
        return FilterDefinition({self.render_path(path): self.codec.encode_value(value)})

    def elem_match(self, path: str, item_filter: Mapping[str, Any]) -> FilterDefinition:
        return FilterDefinition({self.render_path(path): {"$elemMatch": dict(item_filter)}})

    def for_item(self, path: str) -> "FilterBuilder":
        """Builder for the element type of the array member at ``path``."""
        _, member_type = resolve_path(self.mappings, self.class_type, path)
        item_type = sequence_item_type(member_type)
        if not isinstance(item_type, type):
            raise MappingError(f"'{path}' on {self.class_type.__name__} is not a typed sequence.")
        return FilterBuilder(self.mappings, item_type)

    def empty(self) -> FilterDefinition:
        return FilterDefinition()


class UpdateBuilder(_PathBuilder):
    def set(self, path: str, value: Any) -> UpdateDefinition:
        return UpdateDefinition({"$set": {self.render_path(path): self.codec.encode_value(value)}})

    def combine(self, *updates: Mapping[str, Any]) -> UpdateDefinition:
        combined = UpdateDefinition()
        for update in updates:
            combined = combined & update
        return combined


def resolve_path(mappings: Mappings, class_type: type, path: str) -> Tuple[str, Any]:
    """Translate ``path`` to element names; also returns the type found at its end."""
    if not path:
        raise MappingError("Empty member path.")
    elements: List[str] = []
    current: Any = class_type
    for segment in path.split("."):
        if segment == POSITIONAL or segment.isdigit():
            elements.append(segment)
            current = sequence_item_type(current)
            continue
        if segment.lstrip("-").isdigit():
            raise MappingError(f"Negative array index in '{path}'; use '{POSITIONAL}' for the matched element.")
        item_type = sequence_item_type(current)
        if item_type is not None:
            current = item_type
        if not mappings.is_mapped(current):
            raise MappingError(f"Can not resolve '{segment}' in '{path}': {current!r} is not mapped.")
        member_map = mappings.lookup(current).find_member_map(segment)
        if member_map is None:
            raise MappingError(f"{current.__name__} has no mapped member '{segment}' (path '{path}').")
        elements.append(member_map.element_name)
        current = member_map.member_type
    return ".".join(elements), current


__all__ = [
    "FilterBuilder",
    "FilterDefinition",
    "POSITIONAL",
    "UpdateBuilder",
    "UpdateDefinition",
    "resolve_path",
]
