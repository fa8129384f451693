"""Domain layer for the contacts mapping demo."""

from .entities import Contacts, Entity, Person, PhoneNumber

__all__ = ["Entity", "PhoneNumber", "Contacts", "Person"]
