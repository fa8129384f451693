"""Registration of class maps and the frozen configuration built from them."""
from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Callable, Dict, Iterable, Iterator, Mapping, Optional, Type

from .class_map import ClassMap, MappingError
from .conventions import ConventionPack

LOGGER = logging.getLogger(__name__)

ClassMapConfigurator = Callable[[ClassMap], None]


class Mappings:
    """Immutable set of frozen class maps, shared by the codec and the builders."""

    def __init__(self, class_maps: Mapping[type, ClassMap]) -> None:
        self._class_maps = MappingProxyType(dict(class_maps))

    def lookup(self, class_type: type) -> ClassMap:
        """Return the class map for ``class_type`` or its nearest mapped base class."""
        for klass in getattr(class_type, "__mro__", ()):
            class_map = self._class_maps.get(klass)
            if class_map is not None:
                return class_map
        raise MappingError(f"No class map registered for {getattr(class_type, '__name__', class_type)!r}.")

    def is_mapped(self, class_type: object) -> bool:
        if not isinstance(class_type, type) or class_type is object:
            return False
        return any(klass in self._class_maps for klass in class_type.__mro__)

    def __contains__(self, class_type: object) -> bool:
        return class_type in self._class_maps

    def __iter__(self) -> Iterator[type]:
        return iter(self._class_maps)

    def __len__(self) -> int:
        return len(self._class_maps)


class MappingRegistry:
    """Collects class map declarations before they are frozen into :class:`Mappings`."""

    def __init__(self, conventions: Iterable[ConventionPack] = ()) -> None:
        self._conventions = tuple(conventions)
        self._class_maps: Dict[type, ClassMap] = {}
        self._built: Optional[Mappings] = None

    def register(self, class_type: Type, configure: Optional[ClassMapConfigurator] = None) -> ClassMap:
        """Declare the mapping for ``class_type``; ``auto_map`` is used when nothing is given."""
        if self._built is not None:
            raise MappingError("Mappings were already built; register every class before build().")
        if class_type in self._class_maps:
            raise MappingError(f"A class map for {class_type.__name__} is already registered.")
        class_map = ClassMap(class_type, conventions=self._conventions)
        if configure is None:
            class_map.auto_map()
        else:
            configure(class_map)
        self._class_maps[class_type] = class_map
        LOGGER.debug("Registered %r", class_map)
        return class_map

    def is_registered(self, class_type: type) -> bool:
        return class_type in self._class_maps

    def build(self) -> Mappings:
        """Link base class maps, freeze everything and return the read-only result."""
        if self._built is not None:
            return self._built
        for class_type in list(self._class_maps):
            self._link_base(self._class_maps[class_type])
        for class_map in self._class_maps.values():
            class_map.freeze()
        self._built = Mappings(self._class_maps)
        LOGGER.info("Built mappings for %s classes", len(self._class_maps))
        return self._built

    def _link_base(self, class_map: ClassMap) -> None:
        base_type = class_map.class_type.__mro__[1]
        if base_type is object:
            return
        base_map = self._class_maps.get(base_type)
        if base_map is None:
            LOGGER.debug("Auto-registering base class %s", base_type.__name__)
            base_map = self.register(base_type)
            self._link_base(base_map)
        class_map.base_class_map = base_map


__all__ = ["ClassMapConfigurator", "MappingRegistry", "Mappings"]
