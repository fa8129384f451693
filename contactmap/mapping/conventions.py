"""Conventions applied to class maps during their auto-map pass."""
from __future__ import annotations

import inspect
import logging
from abc import ABC, abstractmethod
from typing import Callable, Iterable, Iterator, List, Optional

from .class_map import ClassMap

LOGGER = logging.getLogger(__name__)

_REQUIRED_PARAMETER_KINDS = (
    inspect.Parameter.POSITIONAL_ONLY,
    inspect.Parameter.POSITIONAL_OR_KEYWORD,
    inspect.Parameter.KEYWORD_ONLY,
)


class ClassMapConvention(ABC):
    """A rule that adjusts a class map after the default members are mapped."""

    name: str = "convention"

    @abstractmethod
    def apply(self, class_map: ClassMap) -> None:
        """Mutate ``class_map`` in place."""


class ReadOnlyPropertiesConvention(ClassMapConvention):
    """Map read-only properties so they are written to the document as well.

    Only members declared directly on the mapped class are considered. A
    property qualifies when it has a getter, has no setter, needs no
    arguments besides the instance and does not override a member of a base
    class.
    """

    name = "read-only-properties"

    def __init__(self, *, include_non_public: bool = False) -> None:
        self.include_non_public = include_non_public

    def apply(self, class_map: ClassMap) -> None:
        for name, member in list(vars(class_map.class_type).items()):
            if not self._is_visible(name):
                continue
            if self.is_read_only_property(class_map, name, member):
                LOGGER.debug("Including read-only property %s.%s", class_map.class_type.__name__, name)
                class_map.map_member(name)

    def _is_visible(self, name: str) -> bool:
        if name.startswith("__"):
            return False
        return self.include_non_public or not name.startswith("_")

    @staticmethod
    def is_read_only_property(class_map: ClassMap, name: str, member: object) -> bool:
        if not isinstance(member, property) or member.fget is None:
            return False
        if member.fset is not None:  # mapped by the default pass
            return False
        if _takes_arguments(member.fget):
            return False
        if _overrides_base_member(class_map.class_type, name):
            return False
        return True


class ConventionPack:
    """Ordered conventions together with the filter choosing the classes they apply to."""

    def __init__(
        self,
        conventions: Iterable[ClassMapConvention] = (),
        *,
        applies_to: Optional[Callable[[type], bool]] = None,
    ) -> None:
        self._conventions: List[ClassMapConvention] = list(conventions)
        self._filter = applies_to or (lambda _cls: True)

    def append(self, convention: ClassMapConvention) -> None:
        self._conventions.append(convention)

    def applies_to(self, class_type: type) -> bool:
        return bool(self._filter(class_type))

    def apply(self, class_map: ClassMap) -> None:
        if not self.applies_to(class_map.class_type):
            return
        for convention in self._conventions:
            convention.apply(class_map)

    def __iter__(self) -> Iterator[ClassMapConvention]:
        return iter(self._conventions)

    def __len__(self) -> int:
        return len(self._conventions)


def _takes_arguments(getter: Callable[..., object]) -> bool:
    try:
        parameters = list(inspect.signature(getter).parameters.values())
    except (TypeError, ValueError):
        return False
    return any(
        parameter.kind in _REQUIRED_PARAMETER_KINDS and parameter.default is inspect.Parameter.empty
        for parameter in parameters[1:]
    )


def _overrides_base_member(class_type: type, name: str) -> bool:
    return any(
        isinstance(vars(base).get(name), property)
        for base in class_type.__mro__[1:]
        if base is not object
    )


__all__ = ["ClassMapConvention", "ConventionPack", "ReadOnlyPropertiesConvention"]
