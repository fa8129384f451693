"""Conversion between mapped objects and BSON-ready documents."""
from __future__ import annotations

import collections.abc
import logging
import types
import typing
from typing import Any, Dict, Mapping, Optional

from .registry import Mappings

LOGGER = logging.getLogger(__name__)

_SEQUENCE_ORIGINS = (
    list,
    tuple,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Iterable,
)
_UNION_ORIGINS = (typing.Union, types.UnionType)


class DocumentCodec:
    """Encode and decode objects using a frozen :class:`Mappings` configuration."""

    def __init__(self, mappings: Mappings) -> None:
        self.mappings = mappings

    def encode(self, obj: Any) -> Dict[str, Any]:
        class_map = self.mappings.lookup(type(obj))
        document: Dict[str, Any] = {}
        id_member = class_map.id_member_map
        if id_member is not None:
            document[id_member.element_name] = id_member.get_value(obj)
        for member_map in class_map.all_member_maps():
            if member_map is id_member:
                continue
            document[member_map.element_name] = self.encode_value(member_map.get_value(obj))
        return document

    def encode_value(self, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return [self.encode_value(item) for item in value]
        if isinstance(value, dict):
            return {key: self.encode_value(item) for key, item in value.items()}
        if self.mappings.is_mapped(type(value)):
            return self.encode(value)
        return value

    def decode(self, class_type: type, document: Mapping[str, Any]) -> Any:
        class_map = self.mappings.lookup(class_type)
        values: Dict[str, Any] = {}
        for member_map in class_map.all_member_maps():
            if member_map.element_name in document:
                raw = document[member_map.element_name]
                values[member_map.member_name] = self.decode_value(member_map.member_type, raw)

        creator = class_map.creator
        if creator is not None:
            instance = creator(values)
            consumed = set(creator.arguments)
        else:
            instance = class_type.__new__(class_type)
            consumed = set()

        for member_map in class_map.all_member_maps():
            name = member_map.member_name
            if name in consumed or name not in values:
                continue
            if member_map.is_read_only:
                LOGGER.debug("Skipping read-only %r while decoding", member_map)
                continue
            member_map.set_value(instance, values[name])
        return instance

    def decode_value(self, member_type: Any, value: Any) -> Any:
        if value is None or member_type is None:
            return value
        member_type = _unwrap_optional(member_type)
        if isinstance(value, list):
            item_type = sequence_item_type(member_type)
            items = [self.decode_value(item_type, item) for item in value]
            if typing.get_origin(member_type) is tuple or member_type is tuple:
                return tuple(items)
            return items
        if isinstance(value, Mapping) and self.mappings.is_mapped(member_type):
            return self.decode(member_type, value)
        return value


def sequence_item_type(member_type: Any) -> Optional[Any]:
    """Return ``X`` for ``List[X]``, ``Sequence[X]`` or ``Tuple[X, ...]``, otherwise ``None``."""
    member_type = _unwrap_optional(member_type)
    if typing.get_origin(member_type) not in _SEQUENCE_ORIGINS:
        return None
    args = typing.get_args(member_type)
    return args[0] if args else None


def _unwrap_optional(member_type: Any) -> Any:
    args = typing.get_args(member_type)
    if args and typing.get_origin(member_type) in _UNION_ORIGINS:
        remaining = [arg for arg in args if arg is not type(None)]
        if len(remaining) == 1:
            return remaining[0]
    return member_type


__all__ = ["DocumentCodec", "sequence_item_type"]
