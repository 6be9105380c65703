"""
MDB Repository Pattern

Provides abstract repository interfaces, a MongoDB implementation with
cursor-based pagination, and a unit of work for atomic batched writes.

Usage:
    from mdb_repository.repositories import (
        DataclassMapper, FilterPage, MongoRepository, UnitOfWork,
    )

    users = MongoRepository(DataclassMapper(User), db.users)
    page = await users.paginate(FilterPage(where=[("role", "==", "admin")], take=20))

    # Batched writes
    uow = UnitOfWork(client)
    batched_users = MongoRepository(DataclassMapper(User), db.users, unit_of_work=uow)
    await batched_users.create(user)
    await batched_users.delete_by_id("stale")
    await uow.commit()
"""

from .base import Entity, ReadRepository, Repository, WriteRepository
from .cursor import PageCursor, decode_cursor, encode_cursor
from .filters import (
    Filter,
    FilterMany,
    FilterPage,
    OrderBy,
    Page,
    Where,
    build_query,
    build_sort,
    clamp_take,
)
from .mapper import DataclassMapper, Mapper
from .mongo import MongoRepository
from .unit_of_work import (
    BatchedWrites,
    CreateOperation,
    DeleteOperation,
    ImmediateWrites,
    UnitOfWork,
    UpdateOperation,
    WriteBatch,
    WriteMode,
    WriteOperation,
)

__all__ = [
    # Interfaces
    "Repository",
    "ReadRepository",
    "WriteRepository",
    "Entity",
    "Mapper",
    "DataclassMapper",
    # Filters
    "Filter",
    "FilterMany",
    "FilterPage",
    "Page",
    "Where",
    "OrderBy",
    "build_query",
    "build_sort",
    "clamp_take",
    # Cursors
    "PageCursor",
    "encode_cursor",
    "decode_cursor",
    # MongoDB
    "MongoRepository",
    # Unit of work
    "UnitOfWork",
    "WriteBatch",
    "WriteOperation",
    "CreateOperation",
    "UpdateOperation",
    "DeleteOperation",
    "WriteMode",
    "ImmediateWrites",
    "BatchedWrites",
]
