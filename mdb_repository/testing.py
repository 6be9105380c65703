"""
Call-recording test doubles for mappers and units of work.

Usage:
    mapper = MapperMock()
    mapper.mock_to_entity(User(id="u1"))

    repo = MongoRepository(mapper, collection)
    user = await repo.get("u1")
    mapper.assert_to_entity_called(1)
"""

from typing import Any
from unittest.mock import DEFAULT, AsyncMock, MagicMock, call

from .repositories.unit_of_work import WriteBatch


class _Once:
    """side_effect that serves queued one-shot results before falling back to return_value."""

    def __init__(self) -> None:
        self.pending: list[Any] = []

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        if not self.pending:
            return DEFAULT
        item = self.pending.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


def _set(mock: MagicMock, value: Any, once: bool) -> None:
    if once:
        if not isinstance(mock.side_effect, _Once):
            mock.side_effect = _Once()
        mock.side_effect.pending.append(value)
    else:
        mock.side_effect = None
        mock.return_value = value


def _set_error(mock: MagicMock, error: Exception, once: bool) -> None:
    if once:
        _set(mock, error, once=True)
    else:
        mock.side_effect = error


def _assert_count(name: str, count: int, times: int) -> None:
    if count != times:
        raise AssertionError(f"{name} called {count} time(s), expected {times}")


def _assert_called_with(mock: MagicMock, nth: int | None, *args: Any, **kwargs: Any) -> None:
    if nth is None:
        mock.assert_any_call(*args, **kwargs)
        return
    calls = mock.call_args_list
    if len(calls) < nth:
        raise AssertionError(f"expected at least {nth} call(s), got {len(calls)}")
    expected = call(*args, **kwargs)
    if calls[nth - 1] != expected:
        raise AssertionError(f"call {nth} was {calls[nth - 1]}, expected {expected}")


class MapperMock:
    """Mapper whose ``to_entity``/``to_json`` are MagicMocks."""

    def __init__(self) -> None:
        self.to_entity = MagicMock()
        self.to_json = MagicMock()

    def mock_to_entity(self, entity: Any, once: bool = False) -> None:
        _set(self.to_entity, entity, once)

    def mock_to_entity_error(self, error: Exception, once: bool = False) -> None:
        _set_error(self.to_entity, error, once)

    def mock_to_json(self, json: Any, once: bool = False) -> None:
        _set(self.to_json, json, once)

    def mock_to_json_error(self, error: Exception, once: bool = False) -> None:
        _set_error(self.to_json, error, once)

    def assert_to_entity_called(self, times: int) -> None:
        _assert_count("to_entity", self.to_entity.call_count, times)

    def assert_to_entity_called_with(self, value: Any, nth: int | None = None) -> None:
        _assert_called_with(self.to_entity, nth, value)

    def assert_to_json_called(self, times: int) -> None:
        _assert_count("to_json", self.to_json.call_count, times)

    def assert_to_json_called_with(self, value: Any, nth: int | None = None) -> None:
        _assert_called_with(self.to_json, nth, value)

    def reset(self) -> None:
        self.to_entity.reset_mock(return_value=True, side_effect=True)
        self.to_json.reset_mock(return_value=True, side_effect=True)


class UnitOfWorkMock:
    """
    Unit of work whose ``commit``/``rollback`` are AsyncMocks.

    Writes queued by a repository land in ``transaction`` (a real
    :class:`WriteBatch` unless replaced) and are never sent to a store.
    """

    def __init__(self, transaction: Any = None) -> None:
        self.transaction = transaction if transaction is not None else WriteBatch()
        self.commit = AsyncMock(return_value=None)
        self.rollback = AsyncMock(return_value=None)

    def mock_transaction(self, transaction: Any) -> None:
        self.transaction = transaction

    def mock_commit(self, once: bool = False) -> None:
        _set(self.commit, None, once)

    def mock_commit_error(self, error: Exception, once: bool = False) -> None:
        _set_error(self.commit, error, once)

    def mock_rollback(self, once: bool = False) -> None:
        _set(self.rollback, None, once)

    def mock_rollback_error(self, error: Exception, once: bool = False) -> None:
        _set_error(self.rollback, error, once)

    def assert_commit_called(self, times: int) -> None:
        _assert_count("commit", self.commit.await_count, times)

    def assert_commit_called_with(
        self, *args: Any, nth: int | None = None, **kwargs: Any
    ) -> None:
        _assert_called_with(self.commit, nth, *args, **kwargs)

    def assert_rollback_called(self, times: int) -> None:
        _assert_count("rollback", self.rollback.await_count, times)

    def assert_rollback_called_with(
        self, *args: Any, nth: int | None = None, **kwargs: Any
    ) -> None:
        _assert_called_with(self.rollback, nth, *args, **kwargs)

    def reset(self) -> None:
        self.commit.reset_mock(return_value=True, side_effect=True)
        self.rollback.reset_mock(return_value=True, side_effect=True)
