"""
Tests for the resilient data-access layer.

Remote and local stores are in-memory fakes, except where the on-device
JSON store itself is under test.
"""

import asyncio
import datetime as dt
from decimal import Decimal

import pytest

from conftest import InMemoryDocumentStore, permission_denied
from lume.models.finance import (
    TransactionDraft,
    TransactionType,
    TransactionUpdate,
    User,
    UserRole,
    UserUpdate,
)
from lume.services.data_access import (
    DataAccessError,
    ResilientDataAccess,
    StorageMode,
    StorageSession,
)
from lume.services.storage import (
    Collection,
    ConnectionError,
    StorageError,
    is_authorization_denied,
)


def _draft(user_id="u1", description="Rent"):
    return TransactionDraft(
        user_id=user_id,
        description=description,
        amount=Decimal("800.00"),
        type=TransactionType.EXPENSE,
        category="Moradia",
        date=dt.date(2024, 1, 10),
    )


def _user(id="u1", email="ana@example.com"):
    return User(id=id, name="Ana", email=email, role=UserRole.USER, password_hash="h")


class TestAuthorizationClassification:

    def test_by_code(self):
        assert is_authorization_denied(StorageError("x", code="permission-denied"))
        assert is_authorization_denied(StorageError("x", code=403))

    def test_by_message(self):
        assert is_authorization_denied(
            StorageError("Missing or insufficient permissions.")
        )
        assert is_authorization_denied(ValueError("no permission for this"))

    def test_other_errors(self):
        assert not is_authorization_denied(StorageError("timeout", code="unavailable"))
        assert not is_authorization_denied(ConnectionError("network down"))


class TestStorageSession:

    def test_transition_is_one_way(self):
        session = StorageSession()
        assert session.mode == StorageMode.REMOTE
        assert session.activate_fallback()
        assert not session.activate_fallback()
        assert session.is_fallback

    def test_sessions_are_independent(self, remote_store, local_store):
        denied = ResilientDataAccess(
            InMemoryDocumentStore(fail_with=permission_denied()), local_store
        )
        healthy = ResilientDataAccess(remote_store, local_store)

        asyncio.run(denied.list_users())

        assert denied.mode == StorageMode.LOCAL_FALLBACK
        assert healthy.mode == StorageMode.REMOTE

    def test_no_remote_starts_in_fallback(self, local_store):
        dal = ResilientDataAccess(None, local_store)
        assert dal.is_using_fallback


class TestFallback:

    def test_denied_list_transactions_switches_all_collections(
        self, denied_remote_store, local_store
    ):
        dal = ResilientDataAccess(denied_remote_store, local_store)

        async def scenario():
            await local_store.add_document(
                Collection.TRANSACTIONS,
                {**_draft().model_dump(mode="json"), "id": "local-1"},
            )
            transactions = await dal.list_transactions("u1")
            await dal.list_users()
            await dal.list_categories()
            return transactions

        transactions = asyncio.run(scenario())

        assert [t.id for t in transactions] == ["local-1"]
        assert dal.mode == StorageMode.LOCAL_FALLBACK
        # Remote was tried exactly once, for the transactions read
        assert denied_remote_store.calls == [("list", Collection.TRANSACTIONS)]

    def test_denied_write_is_replayed_locally_with_new_id(
        self, denied_remote_store, local_store
    ):
        dal = ResilientDataAccess(denied_remote_store, local_store)

        async def scenario():
            new_id = await dal.create_transaction(_draft())
            return new_id, await dal.list_transactions("u1")

        new_id, transactions = asyncio.run(scenario())

        assert new_id
        assert [t.id for t in transactions] == [new_id]
        assert dal.is_using_fallback

    def test_local_failure_after_fallback_is_not_retried(self, denied_remote_store):
        broken_local = InMemoryDocumentStore(fail_with=StorageError("disk full"))
        dal = ResilientDataAccess(denied_remote_store, broken_local)

        with pytest.raises(DataAccessError):
            asyncio.run(dal.add_category("Pets"))

        assert broken_local.calls == [("add", Collection.CATEGORIES)]

    def test_remote_mode_lets_remote_assign_ids(self, remote_store, local_store):
        dal = ResilientDataAccess(remote_store, local_store)
        new_id = asyncio.run(dal.create_transaction(_draft()))

        assert new_id in remote_store.documents[Collection.TRANSACTIONS]
        assert dal.mode == StorageMode.REMOTE


class TestFailurePolicy:

    def test_read_failure_returns_empty(self, local_store):
        remote = InMemoryDocumentStore(fail_with=StorageError("unavailable", code="503"))
        dal = ResilientDataAccess(remote, local_store)

        assert asyncio.run(dal.list_categories()) == []
        assert dal.mode == StorageMode.REMOTE

    def test_write_failure_raises_data_access_error(self, local_store):
        remote = InMemoryDocumentStore(fail_with=StorageError("unavailable", code="503"))
        dal = ResilientDataAccess(remote, local_store)

        with pytest.raises(DataAccessError) as exc_info:
            asyncio.run(dal.delete_transaction("t1"))

        assert exc_info.value.operation == "delete_transaction"
        assert exc_info.value.code == "503"
        assert isinstance(exc_info.value.__cause__, StorageError)
        assert dal.mode == StorageMode.REMOTE

    def test_update_missing_document_raises(self, remote_store, local_store):
        dal = ResilientDataAccess(remote_store, local_store)
        with pytest.raises(DataAccessError):
            asyncio.run(dal.update_transaction(
                "missing", TransactionUpdate(description="X")
            ))

    def test_malformed_documents_are_skipped(self, remote_store, local_store):
        remote_store.seed(
            Collection.TRANSACTIONS,
            {**_draft().model_dump(mode="json"), "id": "good"},
            {"id": "bad", "user_id": "u1", "amount": "not a number"},
        )
        dal = ResilientDataAccess(remote_store, local_store)

        transactions = asyncio.run(dal.list_transactions("u1"))
        assert [t.id for t in transactions] == ["good"]


class TestTransactions:

    def test_list_is_scoped_and_newest_first(self, remote_store, local_store):
        dal = ResilientDataAccess(remote_store, local_store)

        async def scenario():
            older = _draft(description="Old").model_copy(
                update={"date": dt.date(2023, 5, 1)}
            )
            await dal.create_transaction(older)
            await dal.create_transaction(_draft(description="New"))
            await dal.create_transaction(_draft(user_id="u2", description="Other"))
            return await dal.list_transactions("u1")

        transactions = asyncio.run(scenario())
        assert [t.description for t in transactions] == ["New", "Old"]

    def test_update_and_delete(self, remote_store, local_store):
        dal = ResilientDataAccess(remote_store, local_store)

        async def scenario():
            new_id = await dal.create_transaction(_draft())
            await dal.update_transaction(
                new_id, TransactionUpdate(amount=Decimal("900.00"))
            )
            updated = await dal.list_transactions("u1")
            await dal.delete_transaction(new_id)
            return updated, await dal.list_transactions("u1")

        updated, remaining = asyncio.run(scenario())
        assert updated[0].amount == Decimal("900.00")
        assert remaining == []


class TestUsers:

    def test_save_update_delete(self, remote_store, local_store):
        dal = ResilientDataAccess(remote_store, local_store)

        async def scenario():
            await dal.save_user(_user())
            await dal.update_user("u1", UserUpdate(role=UserRole.ADMIN))
            users = await dal.list_users()
            await dal.delete_user("u1")
            return users, await dal.list_users()

        users, remaining = asyncio.run(scenario())
        assert users[0].role == UserRole.ADMIN
        assert remaining == []

    def test_fallback_save_does_not_overwrite_existing(self, local_store):
        dal = ResilientDataAccess(None, local_store)

        async def scenario():
            await dal.save_user(_user())
            await dal.save_user(_user(email="other@example.com"))
            return await dal.list_users()

        users = asyncio.run(scenario())
        assert len(users) == 1
        assert users[0].email == "ana@example.com"


class TestCategories:

    def test_add_and_list(self, remote_store, local_store):
        dal = ResilientDataAccess(remote_store, local_store)

        async def scenario():
            await dal.add_category("  Pets  ")
            return await dal.list_categories()

        assert asyncio.run(scenario()) == ["Pets"]

    def test_blank_name_rejected(self, remote_store, local_store):
        dal = ResilientDataAccess(remote_store, local_store)
        with pytest.raises(ValueError):
            asyncio.run(dal.add_category("   "))

    def test_remove_deletes_every_duplicate(self, remote_store, local_store):
        remote_store.seed(
            Collection.CATEGORIES,
            {"id": "c1", "name": "Pets"},
            {"id": "c2", "name": "Pets"},
            {"id": "c3", "name": "Gym"},
        )
        dal = ResilientDataAccess(remote_store, local_store)

        async def scenario():
            await dal.remove_category("Pets")
            return await dal.list_categories()

        assert asyncio.run(scenario()) == ["Gym"]

    def test_remove_is_best_effort(self, remote_store, local_store):
        remote_store.seed(
            Collection.CATEGORIES,
            {"id": "c1", "name": "Pets"},
            {"id": "c2", "name": "Pets"},
        )
        remote_store.delete_failures["c1"] = StorageError("unavailable", code="503")
        dal = ResilientDataAccess(remote_store, local_store)

        asyncio.run(dal.remove_category("Pets"))

        assert list(remote_store.documents[Collection.CATEGORIES]) == ["c1"]
        assert dal.mode == StorageMode.REMOTE

    def test_delete_denied_after_listing_replays_locally(self, remote_store, local_store):
        remote_store.seed(
            Collection.CATEGORIES,
            {"id": "c1", "name": "Pets"},
            {"id": "c2", "name": "Gym"},
        )
        remote_store.delete_failures["c1"] = permission_denied()
        dal = ResilientDataAccess(remote_store, local_store)

        async def scenario():
            await local_store.add_document(
                Collection.CATEGORIES, {"id": "l1", "name": "Pets"}
            )
            await local_store.add_document(
                Collection.CATEGORIES, {"id": "l2", "name": "Gym"}
            )
            await dal.remove_category("Pets")
            return await dal.list_categories()

        assert asyncio.run(scenario()) == ["Gym"]
        assert dal.is_using_fallback
        assert ("list", Collection.CATEGORIES) in remote_store.calls
        assert "c1" in remote_store.documents[Collection.CATEGORIES]

    def test_denied_remove_falls_back(self, local_store):
        remote = InMemoryDocumentStore(fail_with=permission_denied())
        dal = ResilientDataAccess(remote, local_store)

        async def scenario():
            await local_store.add_document(
                Collection.CATEGORIES, {"id": "c1", "name": "Pets"}
            )
            await dal.remove_category("Pets")
            return await dal.list_categories()

        assert asyncio.run(scenario()) == []
        assert dal.is_using_fallback
