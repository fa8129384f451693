"""Mapping registration for the contacts entities and the demo run."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from bson import ObjectId
from pymongo import MongoClient

from contactmap.config.settings import Settings
from contactmap.domain import Contacts, Entity, Person, PhoneNumber
from contactmap.mapping import (
    ClassMap,
    ConventionPack,
    DocumentCodec,
    MappingRegistry,
    Mappings,
    ReadOnlyPropertiesConvention,
)
from contactmap.storage import EmbeddedServer, EntityCollection

LOGGER = logging.getLogger(__name__)


def _map_entity(class_map: ClassMap) -> None:
    class_map.auto_map()
    class_map.map_id_member("id")


def _map_phone_number(class_map: ClassMap) -> None:
    class_map.auto_map()
    class_map.map_member("value").set_element_name("value")
    class_map.map_creator(PhoneNumber, "value", "id")


def _map_contacts(class_map: ClassMap) -> None:
    class_map.auto_map()
    class_map.map_member("phones").set_element_name("phones")
    class_map.map_creator(Contacts, "phones", "id")


def _map_person(class_map: ClassMap) -> None:
    class_map.auto_map()
    class_map.map_member("name").set_element_name("name")
    class_map.map_member("contacts").set_element_name("contacts")
    class_map.map_creator(Person, "name", "contacts", "id")


def build_mappings() -> Mappings:
    """Register the read-only convention and every entity class map once."""
    registry = MappingRegistry([ConventionPack([ReadOnlyPropertiesConvention()])])
    registry.register(Entity, _map_entity)
    registry.register(PhoneNumber, _map_phone_number)
    registry.register(Contacts, _map_contacts)
    registry.register(Person, _map_person)
    return registry.build()


@dataclass
class DemoResult:
    person_id: ObjectId
    fetched_name: Optional[str]
    phones_line: str
    updated: Optional[Person]

    @property
    def update_matched(self) -> bool:
        return self.updated is not None

    def render(self) -> str:
        return f"{self.fetched_name or ''}\n{self.phones_line}"


def run_demo(database: Any, mappings: Mappings, settings: Settings) -> DemoResult:
    """Insert a person, read it back and try the positional phone update."""
    codec = DocumentCodec(mappings)
    people: EntityCollection[Person] = EntityCollection(database[settings.collection], Person, codec)

    phone = PhoneNumber(settings.phone_number)
    contacts = Contacts([])
    person = Person(settings.person_name, contacts)

    people.insert_one(person)

    stored = people.find_by_id(person.id)
    phones_line = ", ".join(str(item) for item in stored.contacts.phones) if stored else ""
    LOGGER.info("Fetched %s with %s phone numbers", stored, len(stored.contacts.phones) if stored else 0)

    filters = people.filters
    phone_filter = filters.for_item("contacts.phones").eq("id", phone.id)
    match = filters.eq("id", person.id) & filters.elem_match("contacts.phones", phone_filter)
    setter = people.updates.set("contacts.phones.$.value", settings.updated_number)
    LOGGER.debug("Update filter %s, update %s", match, setter)

    updated = people.find_one_and_update(match, setter)

    if settings.drop_collection:
        people.drop()

    return DemoResult(
        person_id=person.id,
        fetched_name=stored.name if stored else None,
        phones_line=phones_line,
        updated=updated,
    )


def run(settings: Settings, mappings: Mappings) -> DemoResult:
    """Connect to ``settings.mongo_url`` or a fresh embedded server and run the demo."""
    server: Optional[EmbeddedServer] = None
    mongo_url = settings.mongo_url
    if not mongo_url:
        server = EmbeddedServer(mongod_binary=settings.mongod_binary)
        server.register_cleanup()
        mongo_url = server.start()

    try:
        client = MongoClient(mongo_url)
        try:
            return run_demo(client[settings.database], mappings, settings)
        finally:
            client.close()
    finally:
        if server is not None:
            server.dispose()


__all__ = ["DemoResult", "build_mappings", "run", "run_demo"]
