"""
Unit tests for UnitOfWork and WriteBatch.

Tests batch lifecycle, atomic commit, rollback and the context manager.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from pymongo.errors import DuplicateKeyError

from mdb_repository.exceptions import DocumentNotFoundError, RepositoryError
from mdb_repository.observability import get_metrics_collector
from mdb_repository.repositories import (CreateOperation, DeleteOperation,
                                         UnitOfWork, UpdateOperation,
                                         WriteBatch)


class TestWriteBatch:
    """Test WriteBatch queueing and commit."""

    def test_operations_keep_insertion_order(self, users_collection):
        batch = WriteBatch()
        batch.create(users_collection, "1", {"a": 1}).update(users_collection, "1", {"a": 2})
        batch.delete(users_collection, "1")

        assert [type(op) for op in batch.operations] == [
            CreateOperation,
            UpdateOperation,
            DeleteOperation,
        ]
        assert len(batch) == 3

    @pytest.mark.asyncio
    async def test_empty_commit_does_not_touch_store(self):
        client = MagicMock()
        client.start_session = AsyncMock()

        await WriteBatch().commit(client)

        client.start_session.assert_not_called()

    @pytest.mark.asyncio
    async def test_commit_runs_in_one_transaction(self, fake_client, users_collection):
        batch = WriteBatch()
        batch.create(users_collection, "1", {"name": "a"})
        batch.create(users_collection, "2", {"name": "b"})

        await batch.commit(fake_client)

        assert fake_client.sessions_started == 1
        assert fake_client.transactions_committed == 1
        assert set(users_collection.documents) == {"1", "2"}

    @pytest.mark.asyncio
    async def test_batch_commits_once(self, fake_client):
        batch = WriteBatch()
        await batch.commit(fake_client)

        with pytest.raises(RepositoryError):
            await batch.commit(fake_client)
        with pytest.raises(RepositoryError):
            batch.delete(MagicMock(), "1")

    @pytest.mark.asyncio
    async def test_missing_delete_target_aborts_batch(self, fake_client, users_collection):
        batch = WriteBatch()
        batch.create(users_collection, "1", {"name": "a"})
        batch.delete(users_collection, "missing")

        with pytest.raises(DocumentNotFoundError):
            await batch.commit(fake_client)

        assert users_collection.documents == {}
        assert fake_client.transactions_aborted == 1

    @pytest.mark.asyncio
    async def test_update_does_not_overwrite_id(self, users_collection):
        users_collection.documents["1"] = {"_id": "1", "name": "a"}

        await UpdateOperation(users_collection, "1", {"_id": "other", "name": "b"}).apply()

        assert users_collection.documents["1"] == {"_id": "1", "name": "b"}


class TestUnitOfWork:
    """Test UnitOfWork lifecycle."""

    def test_batch_exists_from_construction(self, fake_client):
        uow = UnitOfWork(fake_client)

        assert isinstance(uow.transaction, WriteBatch)
        assert uow.transaction is uow.transaction
        assert len(uow.transaction) == 0

    def test_begin_discards_pending(self, fake_client, users_collection):
        uow = UnitOfWork(fake_client)
        uow.transaction.create(users_collection, "1", {})

        batch = uow.begin()

        assert batch is uow.transaction
        assert len(batch) == 0

    @pytest.mark.asyncio
    async def test_commit_starts_fresh_batch(self, fake_client, users_collection):
        uow = UnitOfWork(fake_client)
        first = uow.transaction
        first.create(users_collection, "1", {})

        await uow.commit()

        assert uow.transaction is not first
        assert len(uow.transaction) == 0
        assert "1" in users_collection.documents

    @pytest.mark.asyncio
    async def test_failed_commit_discards_batch(self, fake_client, users_collection):
        users_collection.documents["1"] = {"_id": "1"}
        uow = UnitOfWork(fake_client)
        uow.transaction.create(users_collection, "1", {})

        with pytest.raises(DuplicateKeyError):
            await uow.commit()

        assert len(uow.transaction) == 0
        assert get_metrics_collector().get_error_count("unit_of_work.commit") == 1

    @pytest.mark.asyncio
    async def test_rollback_does_not_undo_committed_work(self, fake_client, users_collection):
        uow = UnitOfWork(fake_client)
        uow.transaction.create(users_collection, "1", {})
        await uow.commit()

        uow.transaction.create(users_collection, "2", {})
        await uow.rollback()
        await uow.commit()

        assert set(users_collection.documents) == {"1"}

    @pytest.mark.asyncio
    async def test_context_manager_commits(self, fake_client, users_collection):
        async with UnitOfWork(fake_client) as uow:
            uow.transaction.create(users_collection, "1", {"name": "a"})

        assert users_collection.documents["1"]["name"] == "a"

    @pytest.mark.asyncio
    async def test_context_manager_rolls_back_on_error(self, fake_client, users_collection):
        with pytest.raises(ValueError):
            async with UnitOfWork(fake_client) as uow:
                uow.transaction.create(users_collection, "1", {"name": "a"})
                raise ValueError("abort")

        assert users_collection.documents == {}
        assert fake_client.sessions_started == 0
