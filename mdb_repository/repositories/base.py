"""
Abstract Repository Pattern

Defines the read and write repository interfaces that abstract data access.
Domain services depend on these; :class:`MongoRepository` implements them.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Generic, TypeVar

from .filters import Filter, FilterMany, FilterPage, Page

EntityId = str | int


@dataclass
class Entity:
    """
    Base class for domain entities.

    The only requirement is a unique ``id`` (string or integer). Subclass
    this for your domain models.

    Example:
        @dataclass
        class User(Entity):
            email: str = ""
            name: str = ""
    """

    id: EntityId | None = None


T = TypeVar("T", bound=Entity)


class ReadRepository(ABC, Generic[T]):
    """
    Read side of a repository.

    Example:
        class UserQueries:
            def __init__(self, users: ReadRepository[User]):
                self._users = users

            async def admins(self) -> list[User]:
                return await self._users.find(
                    FilterMany(where=[("role", "==", "admin")], take=20)
                )
    """

    @abstractmethod
    async def get(self, id: EntityId) -> T | None:
        """
        Get a single entity by ID.

        Returns:
            Entity if found, None otherwise
        """

    @abstractmethod
    async def find(self, filter: FilterMany | None = None) -> list[T]:
        """
        Find entities matching a filter.

        Args:
            filter: Where/order-by clauses and a take (default 50, max 100)

        Returns:
            List of matching entities, empty when nothing matches
        """

    @abstractmethod
    async def find_one(self, filter: Filter) -> T | None:
        """
        Find the first entity matching a filter.

        Callers are expected to pass at least one where clause.

        Returns:
            First matching entity or None
        """

    @abstractmethod
    async def paginate(self, input: FilterPage | None = None) -> Page[T]:
        """
        Return one page of entities ordered by identifier.

        Args:
            input: Filter plus an optional page token from a previous Page

        Returns:
            Page with data and next/prev tokens (None when no such page)
        """


class WriteRepository(ABC, Generic[T]):
    """Write side of a repository."""

    @abstractmethod
    async def create(self, entity: T) -> None:
        """Create an entity; fails if one with the same ID exists."""

    @abstractmethod
    async def update(self, entity: T) -> None:
        """Update an existing entity; fails if it does not exist."""

    @abstractmethod
    async def delete_by_id(self, id: EntityId) -> None:
        """Delete an entity by ID; fails if it does not exist."""


class Repository(ReadRepository[T], WriteRepository[T], ABC):
    """Full read/write repository."""
