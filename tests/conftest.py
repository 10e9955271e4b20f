"""
Shared fixtures and fakes.

No real Google API calls in tests: the remote store is replaced by an
in-memory document store that can be told to fail.
"""

import datetime as dt
from collections import defaultdict
from decimal import Decimal
from typing import Optional
from uuid import uuid4

import pytest

from lume.config import AppSettings
from lume.models.finance import Transaction, TransactionType
from lume.services.storage import (
    Collection,
    DocumentStoreInterface,
    LocalJsonDocumentStore,
    NotFoundError,
    StorageError,
)


def permission_denied() -> StorageError:
    return StorageError(
        "Missing or insufficient permissions.",
        code="permission-denied",
    )


class InMemoryDocumentStore(DocumentStoreInterface):
    """Dict-backed document store recording every call."""

    def __init__(self, fail_with: Optional[Exception] = None):
        self.documents: dict[Collection, dict[str, dict]] = defaultdict(dict)
        self.fail_with = fail_with
        self.delete_failures: dict[str, Exception] = {}
        self.calls: list[tuple[str, Collection]] = []

    def _enter(self, operation: str, collection: Collection) -> None:
        self.calls.append((operation, collection))
        if self.fail_with is not None:
            raise self.fail_with

    def seed(self, collection: Collection, *documents: dict) -> None:
        for document in documents:
            self.documents[collection][document["id"]] = dict(document)

    async def list_documents(self, collection, filters=None):
        self._enter("list", collection)
        return [
            dict(document)
            for document in self.documents[collection].values()
            if not filters
            or all(str(document.get(k)) == str(v) for k, v in filters.items())
        ]

    async def add_document(self, collection, document):
        self._enter("add", collection)
        doc_id = document.get("id") or uuid4().hex
        self.documents[collection][doc_id] = {**document, "id": doc_id}
        return doc_id

    async def set_document(self, collection, doc_id, document):
        self._enter("set", collection)
        self.documents[collection][doc_id] = {**document, "id": doc_id}

    async def update_document(self, collection, doc_id, changes):
        self._enter("update", collection)
        if doc_id not in self.documents[collection]:
            raise NotFoundError(f"{collection.value}/{doc_id} not found")
        self.documents[collection][doc_id].update(changes)

    async def delete_document(self, collection, doc_id):
        self._enter("delete", collection)
        if doc_id in self.delete_failures:
            raise self.delete_failures[doc_id]
        self.documents[collection].pop(doc_id, None)


def make_transaction(
    amount: str,
    type: TransactionType = TransactionType.EXPENSE,
    category: str = "Lazer",
    date: dt.date = dt.date(2024, 3, 10),
    description: str = "Test",
    user_id: str = "user-1",
    id: Optional[str] = None,
) -> Transaction:
    return Transaction(
        id=id or uuid4().hex,
        user_id=user_id,
        description=description,
        amount=Decimal(amount),
        type=type,
        category=category,
        date=date,
    )


@pytest.fixture
def remote_store():
    return InMemoryDocumentStore()


@pytest.fixture
def denied_remote_store():
    return InMemoryDocumentStore(fail_with=permission_denied())


@pytest.fixture
def local_store(tmp_path):
    return LocalJsonDocumentStore(tmp_path / "data")


@pytest.fixture
def app_settings():
    return AppSettings(
        default_reserve_mode="total",
        seed_admin_password="admin-pass",
    )
