"""Typed access to a MongoDB collection through the document codec."""
from __future__ import annotations

import logging
from typing import Any, Generic, Iterator, Mapping, Optional, Type, TypeVar

from bson import ObjectId
from pymongo import ReturnDocument

from contactmap.mapping import DocumentCodec, FilterBuilder, UpdateBuilder

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class EntityCollection(Generic[T]):
    """Wrap a pymongo collection so it reads and writes ``entity_type`` instances."""

    def __init__(self, collection: Any, entity_type: Type[T], codec: DocumentCodec) -> None:
        self.collection = collection
        self.entity_type = entity_type
        self.codec = codec

    @property
    def name(self) -> str:
        return self.collection.name

    @property
    def filters(self) -> FilterBuilder:
        return FilterBuilder(self.codec.mappings, self.entity_type)

    @property
    def updates(self) -> UpdateBuilder:
        return UpdateBuilder(self.codec.mappings, self.entity_type)

    def insert_one(self, entity: T) -> Any:
        document = self.codec.encode(entity)
        result = self.collection.insert_one(document)
        LOGGER.info("Inserted %s %s into %s", self.entity_type.__name__, result.inserted_id, self.name)
        return result.inserted_id

    def find(self, filter_doc: Optional[Mapping[str, Any]] = None) -> Iterator[T]:
        for document in self.collection.find(dict(filter_doc or {})):
            yield self.codec.decode(self.entity_type, document)

    def find_one(self, filter_doc: Optional[Mapping[str, Any]] = None) -> Optional[T]:
        document = self.collection.find_one(dict(filter_doc or {}))
        if document is None:
            return None
        return self.codec.decode(self.entity_type, document)

    def find_by_id(self, entity_id: ObjectId) -> Optional[T]:
        return self.find_one(self.filters.eq("id", entity_id))

    def find_one_and_update(
        self,
        filter_doc: Mapping[str, Any],
        update_doc: Mapping[str, Any],
        *,
        return_after: bool = False,
    ) -> Optional[T]:
        """Apply ``update_doc`` to the first match; ``None`` when nothing matched."""
        return_document = ReturnDocument.AFTER if return_after else ReturnDocument.BEFORE
        document = self.collection.find_one_and_update(
            dict(filter_doc),
            dict(update_doc),
            return_document=return_document,
        )
        if document is None:
            LOGGER.info("No %s matched update filter in %s", self.entity_type.__name__, self.name)
            return None
        LOGGER.info("Updated %s %s in %s", self.entity_type.__name__, document.get("_id"), self.name)
        return self.codec.decode(self.entity_type, document)

    def drop(self) -> None:
        self.collection.drop()
        LOGGER.info("Dropped collection %s", self.name)


__all__ = ["EntityCollection"]
