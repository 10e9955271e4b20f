"""
Integration tests for the ledger and account flows.

Flows run against an in-memory remote store and a temporary local store.
"""

import asyncio
import datetime as dt
from decimal import Decimal

import pytest

from conftest import InMemoryDocumentStore, make_transaction
from lume.audit import AuditLogger
from lume.config import AppSettings
from lume.models.finance import (
    ReserveMode,
    TransactionFilter,
    TransactionInput,
    TransactionType,
    UserForm,
    UserRole,
)
from lume.orchestrator import (
    AccountFlow,
    LedgerFlow,
    create_app_components,
    merge_categories,
)
from lume.services.data_access import ResilientDataAccess, StorageMode
from lume.services.passwords import verify_password
from lume.services.storage import Collection
from lume.validation import ValidationFailure


@pytest.fixture
def data_access(remote_store, local_store):
    return ResilientDataAccess(remote_store, local_store)


@pytest.fixture
def ledger(data_access, app_settings):
    return LedgerFlow(data_access, audit_logger=AuditLogger(), settings=app_settings)


@pytest.fixture
def accounts(data_access, app_settings):
    return AccountFlow(data_access, audit_logger=AuditLogger(), settings=app_settings)


class TestCategories:

    def test_merge_keeps_baseline_order(self):
        assert merge_categories(["A", "B"], ["C", "A"]) == ["A", "B", "C"]

    def test_load_merges_baseline_and_persisted(self, ledger, remote_store):
        remote_store.seed(
            Collection.CATEGORIES,
            {"id": "c1", "name": "Pets"},
            {"id": "c2", "name": "Lazer"},
        )
        categories = asyncio.run(ledger.load_categories())

        assert categories[:len(ledger.baseline_categories)] == ledger.baseline_categories
        assert categories.count("Lazer") == 1
        assert categories[-1] == "Pets"

    def test_adding_baseline_category_never_duplicates(self, ledger, remote_store):
        with pytest.raises(ValidationFailure):
            asyncio.run(ledger.add_category("Lazer"))

        categories = asyncio.run(ledger.load_categories())
        assert categories.count("Lazer") == 1
        assert remote_store.documents[Collection.CATEGORIES] == {}

    def test_add_category_persists(self, ledger, remote_store):
        categories = asyncio.run(ledger.add_category(" Pets "))

        assert categories[-1] == "Pets"
        assert [d["name"] for d in remote_store.documents[Collection.CATEGORIES].values()] == ["Pets"]

    def test_remove_category(self, ledger, remote_store):
        remote_store.seed(Collection.CATEGORIES, {"id": "c1", "name": "Pets"})

        async def scenario():
            existing = await ledger.load_categories()
            remaining = await ledger.remove_category("Pets", existing)
            return remaining, await ledger.load_categories()

        remaining, reloaded = asyncio.run(scenario())
        assert "Pets" not in remaining
        assert reloaded == ledger.baseline_categories


class TestTransactions:

    def _input(self, amount="50.00"):
        return TransactionInput(
            description="Cinema",
            amount=Decimal(amount),
            type=TransactionType.EXPENSE,
            category="Lazer",
            date=dt.date(2024, 4, 2),
        )

    def test_create_update_delete(self, ledger):
        async def scenario():
            created = await ledger.save_transaction("u1", self._input())
            updated = await ledger.save_transaction(
                "u1", self._input("75.00"), transaction_id=created.id
            )
            listed = await ledger.load_transactions("u1")
            await ledger.delete_transaction(created.id)
            return created, updated, listed, await ledger.load_transactions("u1")

        created, updated, listed, remaining = asyncio.run(scenario())

        assert created.user_id == "u1"
        assert updated.id == created.id
        assert [t.amount for t in listed] == [Decimal("75.00")]
        assert remaining == []


class TestDashboard:

    def test_build_dashboard(self, ledger):
        transactions = [
            make_transaction("1000", TransactionType.INCOME, "Salário", dt.date(2024, 1, 5)),
            make_transaction("1200", TransactionType.EXPENSE, "Moradia", dt.date(2024, 1, 9)),
            make_transaction("500", TransactionType.EXPENSE, "Lazer", dt.date(2023, 6, 1)),
        ]
        view = ledger.build_dashboard(
            transactions, TransactionFilter(year=2024), ReserveMode.MONTHLY
        )

        assert len(view.transactions) == 2
        assert view.summary.balance == Decimal("-200")
        assert view.reserve == Decimal("-900")
        assert view.reserve_mode == ReserveMode.MONTHLY
        assert len(view.insights) == 4
        assert [m.month for m in view.monthly_history] == ["2024-01"]
        assert view.expense_breakdown[0].name == "Moradia"

    def test_reserve_mode_defaults_to_settings(self, ledger):
        view = ledger.build_dashboard([])
        assert view.reserve_mode == ReserveMode.TOTAL
        assert view.insights == ["Your finances are healthy. Keep it up!"]


class TestSeedAdmin:

    def test_seed_admin_created_once(self, accounts):
        async def scenario():
            first, password = await accounts.ensure_seed_admin()
            second, again = await accounts.ensure_seed_admin()
            return first, password, second, again

        first, password, second, again = asyncio.run(scenario())

        assert password is None
        assert again is None
        assert [u.id for u in first] == ["admin-seed-01"]
        assert [u.id for u in second] == ["admin-seed-01"]
        assert first[0].role == UserRole.ADMIN
        assert verify_password("admin-pass", first[0].password_hash)

    def test_seed_admin_gets_generated_password(self, data_access):
        flow = AccountFlow(data_access, settings=AppSettings(seed_admin_password=None))
        users, password = asyncio.run(flow.ensure_seed_admin())

        assert password
        assert verify_password(password, users[0].password_hash)

    def test_existing_users_skip_seeding(self, accounts, remote_store):
        remote_store.seed(Collection.USERS, {
            "id": "u1",
            "name": "Ana",
            "email": "ana@example.com",
            "role": "user",
            "password_hash": "h",
        })
        users, password = asyncio.run(accounts.ensure_seed_admin())
        assert [u.id for u in users] == ["u1"]
        assert password is None


class TestAccounts:

    def _form(self, email="ana@example.com", password="secret"):
        return UserForm(name="Ana", email=email, password=password)

    def test_create_and_authenticate(self, accounts):
        async def scenario():
            user = await accounts.create_user(self._form())
            good = await accounts.authenticate("ANA@example.com", "secret")
            bad = await accounts.authenticate("ana@example.com", "wrong")
            return user, good, bad

        user, good, bad = asyncio.run(scenario())
        assert good is not None and good.id == user.id
        assert bad is None

    def test_duplicate_email_rejected(self, accounts):
        async def scenario():
            await accounts.create_user(self._form())
            await accounts.create_user(self._form())

        with pytest.raises(ValidationFailure) as exc_info:
            asyncio.run(scenario())
        assert exc_info.value.result.messages == ["This email is already registered"]

    def test_overlong_password_rejected_before_hashing(self, accounts, remote_store):
        with pytest.raises(ValidationFailure) as exc_info:
            asyncio.run(accounts.create_user(self._form(password="x" * 80), existing=[]))

        assert exc_info.value.issues[0].issue_type == "too_long"
        assert remote_store.documents[Collection.USERS] == {}

    def test_overlong_password_change_rejected(self, accounts):
        long_password = "x" * 80

        async def scenario():
            user = await accounts.create_user(self._form())
            await accounts.change_password(user, long_password, long_password)

        with pytest.raises(ValidationFailure):
            asyncio.run(scenario())

    def test_update_user(self, accounts):
        async def scenario():
            user = await accounts.create_user(self._form())
            form = UserForm(name="Ana Maria", email="ana@example.com",
                            password="new-secret", role=UserRole.ADMIN)
            return await accounts.update_user(user.id, form)

        updated = asyncio.run(scenario())
        assert updated.name == "Ana Maria"
        assert updated.is_admin
        assert verify_password("new-secret", updated.password_hash)

    def test_update_profile_name(self, accounts):
        async def scenario():
            user = await accounts.create_user(self._form())
            await accounts.update_profile_name(user, "Ana B")
            return await accounts.list_users()

        [user] = asyncio.run(scenario())
        assert user.name == "Ana B"

    def test_change_password_requires_confirmation(self, accounts):
        async def scenario():
            user = await accounts.create_user(self._form())
            await accounts.change_password(user, "one", "two")

        with pytest.raises(ValidationFailure):
            asyncio.run(scenario())

    def test_change_password(self, accounts):
        async def scenario():
            user = await accounts.create_user(self._form())
            await accounts.change_password(user, "brand-new", "brand-new")
            return await accounts.authenticate("ana@example.com", "brand-new")

        assert asyncio.run(scenario()) is not None

    def test_reset_password(self, accounts):
        async def scenario():
            await accounts.create_user(self._form())
            temporary = await accounts.reset_password("ana@example.com")
            login = await accounts.authenticate("ana@example.com", temporary)
            unknown = await accounts.reset_password("nobody@example.com")
            return temporary, login, unknown

        temporary, login, unknown = asyncio.run(scenario())
        assert len(temporary) == 10
        assert login is not None
        assert unknown is None

    def test_self_deletion_blocked(self, accounts):
        user = asyncio.run(accounts.create_user(self._form()))

        with pytest.raises(ValidationFailure):
            asyncio.run(accounts.delete_user(user.id, user))
        assert [u.id for u in asyncio.run(accounts.list_users())] == [user.id]

    def test_admin_deletes_other_user(self, accounts):
        async def scenario():
            admins, _ = await accounts.ensure_seed_admin()
            user = await accounts.create_user(self._form())
            await accounts.delete_user(user.id, admins[0])
            return await accounts.list_users()

        assert [u.id for u in asyncio.run(scenario())] == ["admin-seed-01"]


class TestAppComponents:

    def test_without_remote_runs_on_local_storage(self, tmp_path):
        ledger, accounts, data_access = create_app_components(
            use_remote=False, data_dir=str(tmp_path)
        )

        assert data_access.mode == StorageMode.LOCAL_FALLBACK
        assert ledger.storage_mode == StorageMode.LOCAL_FALLBACK

        categories = asyncio.run(ledger.add_category("Pets"))
        assert "Pets" in categories
        assert (tmp_path / "lume_categories_local_v1.json").exists()

    def test_denied_remote_flow_keeps_working(self, local_store, app_settings):
        remote = InMemoryDocumentStore(fail_with=PermissionError("permission denied"))
        data_access = ResilientDataAccess(remote, local_store)
        ledger = LedgerFlow(data_access, settings=app_settings)

        created = asyncio.run(ledger.save_transaction("u1", TransactionInput(
            description="Lunch",
            amount=Decimal("20.00"),
            type=TransactionType.EXPENSE,
            category="Alimentação",
            date=dt.date(2024, 5, 1),
        )))

        assert ledger.storage_mode == StorageMode.LOCAL_FALLBACK
        assert [t.id for t in asyncio.run(ledger.load_transactions("u1"))] == [created.id]
