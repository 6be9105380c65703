"""
Mappers convert between domain entities and the documents stored in MongoDB.

Either method may be a coroutine; the repository awaits whatever comes back
when it is awaitable.
"""

import dataclasses
import inspect
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Generic, TypeVar

from ..constants import DOCUMENT_ID_FIELD
from .base import Entity

T = TypeVar("T")
E = TypeVar("E", bound=Entity)


class Mapper(ABC, Generic[T]):
    """
    Bidirectional converter between an entity and its stored representation.

    Implementations should round-trip: ``to_entity(to_json(e)) == e``.
    """

    @abstractmethod
    def to_entity(self, raw: dict[str, Any]) -> T | Awaitable[T]:
        """Build an entity from a stored document."""

    @abstractmethod
    def to_json(self, entity: T) -> dict[str, Any] | Awaitable[dict[str, Any]]:
        """Serialize an entity into a document."""


async def resolve(value: Any) -> Any:
    """Await ``value`` if it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


class DataclassMapper(Mapper[E]):
    """
    Mapper for :class:`Entity` dataclasses.

    Every field is stored, ``None`` and ``id`` included. A ``None`` therefore
    clears the field on update, and integer IDs survive a round trip even
    though the document ``_id`` is always a string.
    """

    def __init__(self, entity_class: type[E]):
        if not dataclasses.is_dataclass(entity_class):
            raise TypeError(f"{entity_class.__name__} is not a dataclass")
        self._entity_class = entity_class
        self._field_names = {f.name for f in dataclasses.fields(entity_class)}

    @property
    def entity_class(self) -> type[E]:
        return self._entity_class

    def to_entity(self, raw: dict[str, Any]) -> E:
        data = {k: v for k, v in raw.items() if k in self._field_names}
        if data.get("id") is None and DOCUMENT_ID_FIELD in raw:
            data["id"] = raw[DOCUMENT_ID_FIELD]
        return self._entity_class(**data)

    def to_json(self, entity: E) -> dict[str, Any]:
        return {f.name: getattr(entity, f.name) for f in dataclasses.fields(entity)}
