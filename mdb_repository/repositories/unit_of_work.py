"""
Unit of Work Pattern

Collects create/update/delete operations from one or more repositories and
applies them as a single all-or-nothing group.

A batch is committed inside one MongoDB client session and multi-document
transaction, so any failing precondition (duplicate create, update or delete
of a missing document) aborts the transaction and none of the batch's writes
become visible. Transactions require a replica set or sharded cluster.
"""

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from ..constants import DOCUMENT_ID_FIELD
from ..exceptions import DocumentNotFoundError, RepositoryError
from ..observability import get_logger, log_operation, timed_operation

logger = get_logger(__name__)


def _collection_name(collection: Any) -> str | None:
    name = getattr(collection, "name", None)
    return name if isinstance(name, str) else None


@dataclass
class WriteOperation(ABC):
    """A single keyed write against one collection."""

    collection: Any  # AsyncIOMotorCollection
    doc_id: str

    @abstractmethod
    async def apply(self, session: Any = None) -> None:
        """Run the write, inside ``session`` when given."""


@dataclass
class CreateOperation(WriteOperation):
    """Insert a document; the store rejects an existing ``_id`` (DuplicateKeyError)."""

    data: dict[str, Any] = field(default_factory=dict)

    async def apply(self, session: Any = None) -> None:
        document = {**self.data, DOCUMENT_ID_FIELD: self.doc_id}
        await self.collection.insert_one(document, session=session)


@dataclass
class UpdateOperation(WriteOperation):
    """Set fields on an existing document."""

    data: dict[str, Any] = field(default_factory=dict)

    async def apply(self, session: Any = None) -> None:
        fields = {k: v for k, v in self.data.items() if k != DOCUMENT_ID_FIELD}
        result = await self.collection.update_one(
            {DOCUMENT_ID_FIELD: self.doc_id}, {"$set": fields}, session=session
        )
        if result.matched_count == 0:
            raise DocumentNotFoundError(
                f"Cannot update missing document '{self.doc_id}'",
                doc_id=self.doc_id,
                collection_name=_collection_name(self.collection),
            )


@dataclass
class DeleteOperation(WriteOperation):
    """Delete a document that must exist."""

    async def apply(self, session: Any = None) -> None:
        result = await self.collection.delete_one(
            {DOCUMENT_ID_FIELD: self.doc_id}, session=session
        )
        if result.deleted_count == 0:
            raise DocumentNotFoundError(
                f"Cannot delete missing document '{self.doc_id}'",
                doc_id=self.doc_id,
                collection_name=_collection_name(self.collection),
            )


class WriteBatch:
    """
    Ordered queue of pending writes.

    A batch can be committed once. Operations run in insertion order.
    """

    def __init__(self) -> None:
        self._operations: list[WriteOperation] = []
        self._committed = False

    def __len__(self) -> int:
        return len(self._operations)

    @property
    def operations(self) -> tuple[WriteOperation, ...]:
        return tuple(self._operations)

    @property
    def committed(self) -> bool:
        return self._committed

    def add(self, operation: WriteOperation) -> "WriteBatch":
        if self._committed:
            raise RepositoryError("Cannot add operations to a committed batch")
        self._operations.append(operation)
        return self

    def create(self, collection: Any, doc_id: str, data: dict[str, Any]) -> "WriteBatch":
        return self.add(CreateOperation(collection, doc_id, data))

    def update(self, collection: Any, doc_id: str, data: dict[str, Any]) -> "WriteBatch":
        return self.add(UpdateOperation(collection, doc_id, data))

    def delete(self, collection: Any, doc_id: str) -> "WriteBatch":
        return self.add(DeleteOperation(collection, doc_id))

    async def commit(self, client: Any) -> None:
        """
        Apply every queued operation atomically.

        Args:
            client: AsyncIOMotorClient owning the collections in the batch

        Raises:
            RepositoryError: If the batch was already committed
            DocumentNotFoundError: If an update/delete target is missing
            pymongo.errors.PyMongoError: Store failures, including DuplicateKeyError
        """
        if self._committed:
            raise RepositoryError("Batch has already been committed")
        self._committed = True

        if not self._operations:
            logger.debug("Skipping commit of empty batch")
            return

        start_time = time.time()
        try:
            async with await client.start_session() as session:
                async with session.start_transaction():
                    for operation in self._operations:
                        await operation.apply(session=session)
        except Exception:
            log_operation(
                logger,
                "batch.commit",
                level=logging.WARNING,
                success=False,
                duration_ms=(time.time() - start_time) * 1000,
                operations=len(self._operations),
            )
            raise

        log_operation(
            logger,
            "batch.commit",
            level=logging.DEBUG,
            duration_ms=(time.time() - start_time) * 1000,
            operations=len(self._operations),
        )


class UnitOfWork:
    """
    Accumulates writes and commits or discards them as one group.

    The batch exists from construction on; there is no lazy creation. After
    ``commit()`` or ``rollback()`` a fresh empty batch takes its place.

    A UnitOfWork must not be shared by concurrent callers: they would
    interleave operations in the same batch.

    Usage:
        uow = UnitOfWork(client)
        users = MongoRepository(mapper, db.users, unit_of_work=uow)

        await users.create(alice)
        await users.delete_by_id("bob")
        await uow.commit()  # both or neither

        # Or as a context manager: commit on success, rollback on error
        async with UnitOfWork(client) as uow:
            ...
    """

    def __init__(self, client: Any):
        """
        Initialize the Unit of Work.

        Args:
            client: AsyncIOMotorClient used to open the commit session
        """
        self._client = client
        self._batch = WriteBatch()

    @property
    def client(self) -> Any:
        return self._client

    @property
    def transaction(self) -> WriteBatch:
        """The batch currently collecting writes."""
        return self._batch

    def begin(self) -> WriteBatch:
        """Discard pending writes and start a new batch."""
        if len(self._batch):
            logger.debug(f"Discarding {len(self._batch)} pending operation(s) on begin()")
        self._batch = WriteBatch()
        return self._batch

    @timed_operation("unit_of_work.commit")
    async def commit(self) -> None:
        """
        Commit the pending batch and start a new one.

        A failed commit leaves nothing applied; its batch is discarded either way.
        """
        batch = self._batch
        self._batch = WriteBatch()
        await batch.commit(self._client)

    async def rollback(self) -> None:
        """Discard pending writes. Already committed batches are not affected."""
        logger.debug(f"Rolling back {len(self._batch)} pending operation(s)")
        self._batch = WriteBatch()

    async def __aenter__(self) -> "UnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            await self.commit()
        else:
            await self.rollback()


class WriteMode(ABC):
    """How a repository delivers its writes. Chosen once, at construction."""

    @abstractmethod
    async def submit(self, operation: WriteOperation) -> None:
        """Deliver a write."""


class ImmediateWrites(WriteMode):
    """Apply each write against the store right away."""

    async def submit(self, operation: WriteOperation) -> None:
        await operation.apply()

    def __repr__(self) -> str:
        return "ImmediateWrites()"


class BatchedWrites(WriteMode):
    """Queue each write on a unit of work; nothing reaches the store before commit."""

    def __init__(self, unit_of_work: Any):
        self.unit_of_work = unit_of_work

    async def submit(self, operation: WriteOperation) -> None:
        self.unit_of_work.transaction.add(operation)

    def __repr__(self) -> str:
        return f"BatchedWrites({self.unit_of_work!r})"
