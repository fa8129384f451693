"""Domain entities stored through the class-map layer."""
from __future__ import annotations

from typing import Iterable, List, Optional, Tuple

from bson import ObjectId


class Entity:
    """Base for anything persisted with an ObjectId identity.

    A fresh id is generated unless one is passed in (the decoder hands the
    stored id back through the constructor). Once assigned, the id can not be
    replaced.
    """

    def __init__(self, id: Optional[ObjectId] = None) -> None:
        self.id = id if id is not None else ObjectId()

    @property
    def id(self) -> ObjectId:
        try:
            return self.__dict__["_id"]
        except KeyError:
            raise AttributeError(f"{type(self).__name__} has no id assigned yet") from None

    @id.setter
    def id(self, value: ObjectId) -> None:
        if "_id" in self.__dict__:
            raise AttributeError(f"{type(self).__name__} id is already assigned")
        self.__dict__["_id"] = value

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.__dict__.get('_id')!s})"


class PhoneNumber(Entity):
    def __init__(self, number: str, id: Optional[ObjectId] = None) -> None:
        super().__init__(id)
        self._value = number

    @property
    def value(self) -> str:
        return self._value

    def __str__(self) -> str:
        return self._value


class Contacts(Entity):
    """Ordered phone numbers owned by a single person."""

    def __init__(
        self,
        phones: Optional[Iterable[PhoneNumber]] = None,
        id: Optional[ObjectId] = None,
    ) -> None:
        super().__init__(id)
        self._phones: List[PhoneNumber] = list(phones or [])

    @property
    def phones(self) -> Tuple[PhoneNumber, ...]:
        """Snapshot of the phone list; the backing list is never handed out."""
        return tuple(self._phones)

    def add_phone(self, phone: PhoneNumber) -> None:
        self._phones.append(phone)


class Person(Entity):
    def __init__(self, name: str, contacts: Contacts, id: Optional[ObjectId] = None) -> None:
        super().__init__(id)
        self._name = name
        self._contacts = contacts

    @property
    def name(self) -> str:
        return self._name

    @property
    def contacts(self) -> Contacts:
        return self._contacts


__all__ = ["Entity", "PhoneNumber", "Contacts", "Person"]
