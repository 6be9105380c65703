"""
MongoDB Repository Implementation

Implements the Repository interface on top of a Motor collection, with
keyset pagination over the document ``_id``.
"""

from contextlib import contextmanager
from typing import Any, Generic, Iterator, TypeVar

from pymongo import ASCENDING

from ..constants import (
    CURSOR_DIRECTION_NEXT,
    CURSOR_DIRECTION_PREV,
    DOCUMENT_ID_FIELD,
)
from ..exceptions import InvalidPageTokenError
from ..observability import bind_repository_context, get_logger, track_operation
from .base import Entity, EntityId, Repository
from .cursor import PageCursor, decode_cursor, encode_cursor
from .filters import (
    Filter,
    FilterMany,
    FilterPage,
    Page,
    build_query,
    build_sort,
    clamp_take,
    invert_sort,
)
from .mapper import Mapper, resolve
from .unit_of_work import (
    BatchedWrites,
    CreateOperation,
    DeleteOperation,
    ImmediateWrites,
    UnitOfWork,
    UpdateOperation,
    WriteMode,
    WriteOperation,
)

logger = get_logger(__name__)

T = TypeVar("T", bound=Entity)

_ID_ORDER = [(DOCUMENT_ID_FIELD, ASCENDING)]


class MongoRepository(Repository[T], Generic[T]):
    """
    MongoDB implementation of the Repository interface.

    Documents are keyed by ``str(entity.id)`` in ``_id``. Without a unit of
    work every write hits the store immediately; with one, writes are queued
    on its batch until ``commit()``.

    Example:
        mapper = DataclassMapper(User)
        users = MongoRepository(mapper, db.users)

        await users.create(User(id="u1", name="Ada"))
        page = await users.paginate(FilterPage(take=20))
        more = await users.paginate(FilterPage(page_token=page.next_page_token))
    """

    def __init__(
        self,
        mapper: Mapper[T],
        collection: Any,  # AsyncIOMotorCollection
        unit_of_work: UnitOfWork | None = None,
    ):
        """
        Initialize the MongoDB repository.

        Args:
            mapper: Converts between entities and documents
            collection: Motor collection holding the documents
            unit_of_work: Optional unit of work; when given, writes are batched
        """
        self._mapper = mapper
        self._collection = collection
        self._write_mode: WriteMode = (
            BatchedWrites(unit_of_work) if unit_of_work is not None else ImmediateWrites()
        )

    @property
    def write_mode(self) -> WriteMode:
        return self._write_mode

    @property
    def collection_name(self) -> str:
        name = getattr(self._collection, "name", None)
        return name if isinstance(name, str) else "unknown"

    @contextmanager
    def _operation(self, name: str) -> Iterator[None]:
        """Bind the collection to log records and time the call as ``repository.<name>``."""
        with bind_repository_context(collection_name=self.collection_name, operation=name):
            with track_operation(f"repository.{name}", collection=self.collection_name):
                yield

    async def _to_entities(self, docs: list[dict[str, Any]]) -> list[T]:
        return [await resolve(self._mapper.to_entity(doc)) for doc in docs]

    async def _execute(
        self,
        query: dict[str, Any],
        sort: list[tuple[str, int]],
        take: int,
    ) -> list[dict[str, Any]]:
        cursor = self._collection.find(query)
        if sort:
            cursor = cursor.sort(sort)
        cursor = cursor.limit(take)
        return await cursor.to_list(length=take)

    # Read path

    async def get(self, id: EntityId) -> T | None:
        """Get entity by ID."""
        with self._operation("get"):
            doc = await self._collection.find_one({DOCUMENT_ID_FIELD: str(id)})
            if doc is None:
                return None
            return await resolve(self._mapper.to_entity(doc))

    async def find(self, filter: FilterMany | None = None) -> list[T]:
        """Find entities matching a filter, in store order."""
        filter = filter or FilterMany()
        take = clamp_take(filter.take)

        with self._operation("find"):
            query = build_query(filter.where)
            docs = await self._execute(query, build_sort(filter.order_by), take)
            logger.debug(f"Found {len(docs)} document(s)", extra={"take": take})
            return await self._to_entities(docs)

    async def find_one(self, filter: Filter) -> T | None:
        """Find the first entity matching a filter."""
        with self._operation("find_one"):
            query = build_query(filter.where)
            docs = await self._execute(query, build_sort(filter.order_by), 1)
            if not docs:
                return None
            return await resolve(self._mapper.to_entity(docs[0]))

    async def paginate(self, input: FilterPage | None = None) -> Page[T]:
        """
        Return one page ordered by document ID.

        A page token from a previous call overrides the filter fields of
        ``input``. ``next_page_token`` is set whenever the page came back
        full, so a result set that ends exactly on a page boundary yields
        one trailing empty page.

        Raises:
            InvalidPageTokenError: If the token cannot be decoded or names an
                unknown direction
        """
        input = input or FilterPage()

        with self._operation("paginate"):
            cursor = decode_cursor(input.page_token) if input.page_token else None

            page = cursor.page if cursor else 0
            take = clamp_take(cursor.take if cursor else input.take)
            where = cursor.where if cursor and cursor.where is not None else input.where
            order_by = (
                cursor.order_by if cursor and cursor.order_by is not None else input.order_by
            )

            sort = _ID_ORDER + build_sort(order_by)
            boundary: list[dict[str, Any]] = []
            backwards = False

            if cursor is not None and cursor.ref:
                if cursor.type == CURSOR_DIRECTION_NEXT:
                    boundary.append({DOCUMENT_ID_FIELD: {"$gt": cursor.ref}})
                elif cursor.type == CURSOR_DIRECTION_PREV:
                    boundary.append({DOCUMENT_ID_FIELD: {"$lt": cursor.ref}})
                    backwards = True
                else:
                    raise InvalidPageTokenError(
                        f"Invalid page token direction '{cursor.type}'",
                        token=input.page_token,
                        reason="direction",
                    )

            query = build_query(where, *boundary)
            if backwards:
                # Read the rows just before ref nearest-first, then restore ascending order
                docs = await self._execute(query, invert_sort(sort), take)
                docs.reverse()
            else:
                docs = await self._execute(query, sort, take)

            prev_page_token = None
            if page > 0 and input.page_token and docs:
                prev_page_token = encode_cursor(
                    PageCursor(
                        type=CURSOR_DIRECTION_PREV,
                        ref=str(docs[0][DOCUMENT_ID_FIELD]),
                        take=take,
                        where=where,
                        order_by=order_by,
                        page=page - 1,
                    )
                )

            next_page_token = None
            if len(docs) == take:
                next_page_token = encode_cursor(
                    PageCursor(
                        type=CURSOR_DIRECTION_NEXT,
                        ref=str(docs[-1][DOCUMENT_ID_FIELD]),
                        take=take,
                        where=where,
                        order_by=order_by,
                        page=page + 1,
                    )
                )

            logger.debug(
                f"Paginated '{self.collection_name}': page={page} take={take} "
                f"returned={len(docs)}"
            )

            return Page(
                data=await self._to_entities(docs),
                next_page_token=next_page_token,
                prev_page_token=prev_page_token,
            )

    # Write path

    async def _submit(self, operation: WriteOperation) -> None:
        await self._write_mode.submit(operation)
        logger.debug(
            f"{type(operation).__name__} for '{operation.doc_id}' via {self._write_mode!r}",
            extra={"doc_id": operation.doc_id},
        )

    async def create(self, entity: T) -> None:
        """Create an entity; the store rejects a duplicate ID."""
        data = await resolve(self._mapper.to_json(entity))
        with self._operation("create"):
            await self._submit(CreateOperation(self._collection, str(entity.id), data))

    async def update(self, entity: T) -> None:
        """Update an existing entity by ID."""
        data = await resolve(self._mapper.to_json(entity))
        with self._operation("update"):
            await self._submit(UpdateOperation(self._collection, str(entity.id), data))

    async def delete_by_id(self, id: EntityId) -> None:
        """Delete an existing entity by ID."""
        with self._operation("delete_by_id"):
            await self._submit(DeleteOperation(self._collection, str(id)))
