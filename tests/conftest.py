"""
Pytest configuration and shared fixtures for MDB_REPOSITORY tests.

This module provides:
- An in-memory stand-in for a Motor collection and client that understands
  the query subset the repository emits and rolls back aborted transactions
- Mapper and repository fixtures
"""

import copy
import re
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest
from pymongo.errors import DuplicateKeyError

from mdb_repository.observability import get_metrics_collector

_MISSING = object()


# ============================================================================
# IN-MEMORY MOTOR STAND-INS
# ============================================================================


def _compare(value: Any, operator: str, operand: Any) -> bool:
    if operator == "$eq":
        return value == operand or (isinstance(value, list) and operand in value)
    if operator == "$ne":
        return value != operand
    if operator == "$in":
        if isinstance(value, list):
            return any(v in operand for v in value)
        return value in operand
    if operator == "$nin":
        return value not in operand
    if operator == "$regex":
        return isinstance(value, str) and re.search(operand, value) is not None
    if value is _MISSING or value is None:
        return False
    if operator == "$gt":
        return value > operand
    if operator == "$gte":
        return value >= operand
    if operator == "$lt":
        return value < operand
    if operator == "$lte":
        return value <= operand
    raise NotImplementedError(f"operator {operator} not supported by FakeCollection")


def matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
    """Evaluate a MongoDB filter document against a document."""
    for key, condition in query.items():
        if key == "$and":
            if not all(matches(doc, sub) for sub in condition):
                return False
            continue
        value = doc.get(key, _MISSING)
        if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
            if not all(_compare(value, op, operand) for op, operand in condition.items()):
                return False
        elif not _compare(value, "$eq", condition):
            return False
    return True


class FakeCursor:
    """Chainable cursor supporting sort/limit/to_list like AsyncIOMotorCursor."""

    def __init__(self, docs: List[Dict[str, Any]]):
        self._docs = docs
        self._sort: List[tuple] = []
        self._limit = 0

    def sort(self, key_or_list, direction=None):
        if isinstance(key_or_list, str):
            key_or_list = [(key_or_list, direction or 1)]
        self._sort = list(key_or_list)
        return self

    def limit(self, limit: int):
        self._limit = limit
        return self

    async def to_list(self, length=None):
        docs = list(self._docs)
        for key, direction in reversed(self._sort):
            docs.sort(key=lambda d: d.get(key), reverse=direction < 0)
        if self._limit:
            docs = docs[: self._limit]
        return [copy.deepcopy(d) for d in docs]


class FakeCollection:
    """In-memory collection keyed by ``_id`` in insertion order."""

    def __init__(self, name: str):
        self.name = name
        self.documents: Dict[Any, Dict[str, Any]] = {}
        self.calls: List[str] = []

    def find(self, query=None, session=None):
        self.calls.append("find")
        return FakeCursor([d for d in self.documents.values() if matches(d, query or {})])

    async def find_one(self, query=None, session=None):
        self.calls.append("find_one")
        for doc in self.documents.values():
            if matches(doc, query or {}):
                return copy.deepcopy(doc)
        return None

    async def insert_one(self, document, session=None):
        self.calls.append("insert_one")
        if document["_id"] in self.documents:
            raise DuplicateKeyError(f"E11000 duplicate key error: _id {document['_id']!r}", 11000)
        self.documents[document["_id"]] = copy.deepcopy(document)
        return SimpleNamespace(inserted_id=document["_id"])

    async def update_one(self, query, update, session=None):
        self.calls.append("update_one")
        for doc in self.documents.values():
            if matches(doc, query):
                doc.update(copy.deepcopy(update.get("$set", {})))
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def delete_one(self, query, session=None):
        self.calls.append("delete_one")
        for doc_id, doc in list(self.documents.items()):
            if matches(doc, query):
                del self.documents[doc_id]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)


class FakeTransaction:
    """Snapshots every collection on entry and restores them if the block raises."""

    def __init__(self, client: "FakeClient"):
        self._client = client
        self._snapshot: Dict[str, Dict[Any, Dict[str, Any]]] = {}

    async def __aenter__(self):
        self._client.transactions_started += 1
        self._snapshot = {
            name: copy.deepcopy(collection.documents)
            for name, collection in self._client.collections.items()
        }
        return self

    async def __aexit__(self, exc_type, exc, tb):
        if exc_type is not None:
            self._client.transactions_aborted += 1
            for name, documents in self._snapshot.items():
                self._client.collections[name].documents = documents
        else:
            self._client.transactions_committed += 1
        return False


class FakeSession:
    def __init__(self, client: "FakeClient"):
        self._client = client

    def start_transaction(self):
        return FakeTransaction(self._client)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeClient:
    """Client exposing ``start_session`` with transaction rollback."""

    def __init__(self):
        self.collections: Dict[str, FakeCollection] = {}
        self.sessions_started = 0
        self.transactions_started = 0
        self.transactions_committed = 0
        self.transactions_aborted = 0

    def collection(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]

    async def start_session(self):
        self.sessions_started += 1
        return FakeSession(self)


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def fake_client() -> FakeClient:
    """Provide an in-memory Motor client stand-in."""
    return FakeClient()


@pytest.fixture
def users_collection(fake_client: FakeClient) -> FakeCollection:
    """Provide an empty 'users' collection registered with the fake client."""
    return fake_client.collection("users")


@pytest.fixture(autouse=True)
def reset_metrics():
    """Start every test with an empty global metrics collector."""
    get_metrics_collector().reset()
    yield
    get_metrics_collector().reset()
