"""Object-to-document mapping: class maps, conventions, codec and builders."""

from .builders import FilterBuilder, FilterDefinition, UpdateBuilder, UpdateDefinition, resolve_path
from .class_map import ID_ELEMENT_NAME, ClassMap, MappingError, MemberMap
from .codec import DocumentCodec
from .conventions import ClassMapConvention, ConventionPack, ReadOnlyPropertiesConvention
from .registry import MappingRegistry, Mappings

__all__ = [
    "ClassMap",
    "ClassMapConvention",
    "ConventionPack",
    "DocumentCodec",
    "FilterBuilder",
    "FilterDefinition",
    "ID_ELEMENT_NAME",
    "MappingError",
    "MappingRegistry",
    "Mappings",
    "MemberMap",
    "ReadOnlyPropertiesConvention",
    "UpdateBuilder",
    "UpdateDefinition",
    "resolve_path",
]
