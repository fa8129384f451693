"""Positional updates against a real mongod (mongomock resolves ``$`` to the wrong slot)."""
from __future__ import annotations

import os
import shutil
from typing import Iterator

import pytest
from pymongo import MongoClient

from contactmap.demo import build_mappings
from contactmap.domain import Contacts, Person, PhoneNumber
from contactmap.mapping import DocumentCodec
from contactmap.storage import EmbeddedServer, EntityCollection

MONGOD = shutil.which(os.getenv("MONGOD_BINARY") or "mongod")

pytestmark = pytest.mark.skipif(MONGOD is None, reason="mongod binary not available")


@pytest.fixture(scope="module")
def mongo_url() -> Iterator[str]:
    with EmbeddedServer(mongod_binary=MONGOD) as server:
        yield server.connection_string


@pytest.fixture()
def people(mongo_url: str) -> Iterator[EntityCollection[Person]]:
    client = MongoClient(mongo_url)
    collection = EntityCollection(client["Person"]["integration"], Person, DocumentCodec(build_mappings()))
    try:
        yield collection
    finally:
        collection.drop()
        client.close()


def _match_phone(people: EntityCollection[Person], person: Person, phone: PhoneNumber):
    filters = people.filters
    return filters.eq("id", person.id) & filters.elem_match(
        "contacts.phones", filters.for_item("contacts.phones").eq("id", phone.id)
    )


def test_positional_update_changes_only_the_matched_phone(people: EntityCollection[Person]) -> None:
    other = PhoneNumber("555-000")
    phone = PhoneNumber("123-123")
    person = Person("Paul", Contacts([other, phone]))
    people.insert_one(person)

    updated = people.find_one_and_update(
        _match_phone(people, person, phone),
        people.updates.set("contacts.phones.$.value", "111-222"),
        return_after=True,
    )

    assert updated is not None
    assert [item.value for item in updated.contacts.phones] == ["555-000", "111-222"]
    assert [item.id for item in updated.contacts.phones] == [other.id, phone.id]


def test_unknown_phone_matches_nothing(people: EntityCollection[Person]) -> None:
    person = Person("Paul", Contacts([]))
    people.insert_one(person)

    result = people.find_one_and_update(
        _match_phone(people, person, PhoneNumber("123-123")),
        people.updates.set("contacts.phones.$.value", "111-222"),
    )

    assert result is None
    assert people.find_by_id(person.id).name == "Paul"
