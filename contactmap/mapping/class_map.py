"""Per-type mapping between object members and document elements."""
from __future__ import annotations

import inspect
import logging
import typing
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Sequence, Tuple

if TYPE_CHECKING:  # pragma: no cover
    from .conventions import ConventionPack

LOGGER = logging.getLogger(__name__)

ID_ELEMENT_NAME = "_id"


class MappingError(ValueError):
    """Raised when a class mapping is invalid or used incorrectly."""


class MemberMap:
    """Binds one attribute or property of a class to a document element."""

    def __init__(self, class_map: "ClassMap", member_name: str, *, is_property: bool) -> None:
        self.class_map = class_map
        self.member_name = member_name
        self.is_property = is_property
        self._element_name = member_name if is_property else member_name.lstrip("_")
        self._member_type: Any = None
        self._type_resolved = False

    @property
    def element_name(self) -> str:
        return self._element_name

    @property
    def is_id(self) -> bool:
        return self.class_map.id_member_map is self

    @property
    def is_read_only(self) -> bool:
        if not self.is_property:
            return False
        descriptor = _find_descriptor(self.class_map.class_type, self.member_name)
        return getattr(descriptor, "fset", None) is None

    @property
    def member_type(self) -> Any:
        if not self._type_resolved:
            self._member_type = _resolve_member_type(self.class_map.class_type, self.member_name)
            self._type_resolved = True
        return self._member_type

    def set_element_name(self, element_name: str) -> "MemberMap":
        self.class_map._ensure_mutable()
        if not element_name:
            raise MappingError(f"Element name for {self} must not be empty.")
        self._element_name = element_name
        return self

    def set_member_type(self, member_type: Any) -> "MemberMap":
        self.class_map._ensure_mutable()
        self._member_type = member_type
        self._type_resolved = True
        return self

    def get_value(self, obj: Any) -> Any:
        return getattr(obj, self.member_name)

    def set_value(self, obj: Any, value: Any) -> None:
        if self.is_read_only:
            raise MappingError(f"{self} is read-only and can not be assigned.")
        setattr(obj, self.member_name, value)

    def __repr__(self) -> str:
        return f"MemberMap({self.class_map.class_type.__name__}.{self.member_name} -> {self._element_name!r})"


class Creator:
    """Factory used to rebuild an instance from decoded member values."""

    def __init__(self, factory: Callable[..., Any], arguments: Tuple[str, ...]) -> None:
        self.factory = factory
        self.arguments = arguments

    def __call__(self, values: Dict[str, Any]) -> Any:
        return self.factory(*(values.get(name) for name in self.arguments))


class ClassMap:
    """Declared mapping for one class.

    Members are added by :meth:`auto_map` (the default pass followed by the
    registered conventions) or explicitly. Once :meth:`freeze` has run the
    class map can no longer change.
    """

    def __init__(self, class_type: type, *, conventions: Sequence["ConventionPack"] = ()) -> None:
        self.class_type = class_type
        self.base_class_map: Optional[ClassMap] = None
        self._conventions = tuple(conventions)
        self._members: Dict[str, MemberMap] = {}
        self._id_member_name: Optional[str] = None
        self._creator: Optional[Creator] = None
        self._frozen = False

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    @property
    def declared_member_maps(self) -> List[MemberMap]:
        return list(self._members.values())

    @property
    def id_member_map(self) -> Optional[MemberMap]:
        if self._id_member_name is not None:
            return self._members[self._id_member_name]
        if self.base_class_map is not None:
            return self.base_class_map.id_member_map
        return None

    @property
    def creator(self) -> Optional[Creator]:
        return self._creator

    def all_member_maps(self) -> List[MemberMap]:
        """Inherited members first, then the ones declared on this class."""
        inherited = self.base_class_map.all_member_maps() if self.base_class_map else []
        return inherited + self.declared_member_maps

    def auto_map(self) -> "ClassMap":
        """Map writable public members, then let the conventions add theirs."""
        self._ensure_mutable()
        for name, member in vars(self.class_type).items():
            if name.startswith("_"):
                continue
            if isinstance(member, property):
                if member.fget is not None and member.fset is not None:
                    self.map_member(name)
        for name in _declared_annotations(self.class_type):
            if not name.startswith("_"):
                self.map_member(name)
        for pack in self._conventions:
            pack.apply(self)
        return self

    def map_member(self, member_name: str) -> MemberMap:
        self._ensure_mutable()
        existing = self._members.get(member_name)
        if existing is not None:
            return existing
        descriptor = vars(self.class_type).get(member_name)
        is_property = isinstance(descriptor, property)
        if not is_property and member_name not in _declared_annotations(self.class_type):
            raise MappingError(
                f"{self.class_type.__name__} declares no property or annotated attribute "
                f"named '{member_name}'."
            )
        member_map = MemberMap(self, member_name, is_property=is_property)
        self._members[member_name] = member_map
        LOGGER.debug("Mapped %r", member_map)
        return member_map

    def map_field(self, field_name: str) -> MemberMap:
        """Map an instance attribute that the class does not declare."""
        self._ensure_mutable()
        existing = self._members.get(field_name)
        if existing is not None:
            return existing
        if isinstance(vars(self.class_type).get(field_name), property):
            raise MappingError(f"{self.class_type.__name__}.{field_name} is a property; use map_member().")
        member_map = MemberMap(self, field_name, is_property=False)
        self._members[field_name] = member_map
        LOGGER.debug("Mapped field %r", member_map)
        return member_map

    def map_id_member(self, member_name: str) -> MemberMap:
        member_map = self.map_member(member_name)
        member_map.set_element_name(ID_ELEMENT_NAME)
        self._id_member_name = member_name
        return member_map

    def get_member_map(self, member_name: str) -> Optional[MemberMap]:
        return self._members.get(member_name)

    def find_member_map(self, member_name: str) -> Optional[MemberMap]:
        """Look the member up here and then in the base class maps."""
        member_map = self._members.get(member_name)
        if member_map is None and self.base_class_map is not None:
            return self.base_class_map.find_member_map(member_name)
        return member_map

    def unmap_member(self, member_name: str) -> None:
        self._ensure_mutable()
        if self._members.pop(member_name, None) is not None and self._id_member_name == member_name:
            self._id_member_name = None

    def map_creator(self, factory: Callable[..., Any], *member_names: str) -> "ClassMap":
        self._ensure_mutable()
        self._creator = Creator(factory, tuple(member_names))
        return self

    def freeze(self) -> "ClassMap":
        if self._frozen:
            return self
        seen: Dict[str, MemberMap] = {}
        for member_map in self.all_member_maps():
            clash = seen.get(member_map.element_name)
            if clash is not None:
                raise MappingError(
                    f"{self.class_type.__name__}: {member_map!r} and {clash!r} share element "
                    f"name '{member_map.element_name}'."
                )
            seen[member_map.element_name] = member_map
        if self._creator is not None:
            for name in self._creator.arguments:
                if self.find_member_map(name) is None:
                    raise MappingError(
                        f"{self.class_type.__name__}: creator argument '{name}' is not a mapped member."
                    )
        self._frozen = True
        return self

    def _ensure_mutable(self) -> None:
        if self._frozen:
            raise MappingError(f"Class map for {self.class_type.__name__} is frozen.")

    def __repr__(self) -> str:
        return f"ClassMap({self.class_type.__name__}, members={list(self._members)})"


def _declared_annotations(class_type: type) -> List[str]:
    annotations = inspect.get_annotations(class_type)
    return [
        name
        for name, annotation in annotations.items()
        if not str(annotation).startswith(("ClassVar", "typing.ClassVar"))
    ]


def _find_descriptor(class_type: type, member_name: str) -> Any:
    for klass in class_type.__mro__:
        if member_name in vars(klass):
            return vars(klass)[member_name]
    return None


def _resolve_member_type(class_type: type, member_name: str) -> Any:
    descriptor = _find_descriptor(class_type, member_name)
    try:
        if isinstance(descriptor, property) and descriptor.fget is not None:
            return typing.get_type_hints(descriptor.fget).get("return")
        return typing.get_type_hints(class_type).get(member_name)
    except (NameError, TypeError) as exc:
        LOGGER.debug("No usable type hint for %s.%s: %s", class_type.__name__, member_name, exc)
        return None


__all__ = ["ClassMap", "Creator", "ID_ELEMENT_NAME", "MappingError", "MemberMap"]
