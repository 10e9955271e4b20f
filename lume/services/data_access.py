"""
Resilient Data Access Layer

One asynchronous CRUD surface per collection (transactions, users,
categories), backed by a remote store and a local store.

DESIGN DECISION: Storage mode is a two-state machine held by an explicit
StorageSession:

    REMOTE ──(authorization denied)──> LOCAL_FALLBACK

The transition is one-way for the lifetime of the session. Every operation
goes through a single dispatch step that tries the remote store once and,
when the remote store refuses for lack of permission, switches the session
and replays the same operation once against the local store. There is no
path back to remote and no reconciliation of writes made offline.

FAILURE POLICY:
- Authorization denied: recovered by fallback, never surfaced
- Other storage failure on a read: logged, empty result returned
- Other storage failure on a write: raised as DataAccessError
- Anything that is not a storage failure propagates untouched
"""

import asyncio
from enum import Enum
from typing import Awaitable, Callable, Optional, TypeVar
from uuid import uuid4

import structlog
from pydantic import ValidationError

from lume.audit import AuditLogger
from lume.models.finance import (
    Transaction,
    TransactionDraft,
    TransactionUpdate,
    User,
    UserUpdate,
)
from lume.services.storage.interface import (
    Collection,
    DocumentStoreInterface,
    StorageError,
    is_authorization_denied,
)


T = TypeVar("T")

logger = structlog.get_logger(__name__)


class StorageMode(str, Enum):
    """Which physical store currently backs the data-access layer."""
    REMOTE = "remote"
    LOCAL_FALLBACK = "local-fallback"


class StorageSession:
    """
    Holds the storage mode for one data-access layer.

    Starts in REMOTE (or directly in LOCAL_FALLBACK when there is no remote
    store) and can only ever move to LOCAL_FALLBACK.
    """

    def __init__(self, mode: StorageMode = StorageMode.REMOTE):
        self._mode = StorageMode(mode)

    @property
    def mode(self) -> StorageMode:
        return self._mode

    @property
    def is_fallback(self) -> bool:
        return self._mode is StorageMode.LOCAL_FALLBACK

    def activate_fallback(self) -> bool:
        """
        Switch to LOCAL_FALLBACK.

        Returns True if this call performed the transition.
        """
        if self.is_fallback:
            return False
        self._mode = StorageMode.LOCAL_FALLBACK
        return True


class DataAccessError(Exception):
    """
    A storage operation failed for a reason other than authorization.

    The original StorageError is chained as __cause__.
    """

    def __init__(self, operation: str, error: Exception):
        super().__init__(f"{operation} failed: {error}")
        self.operation = operation
        self.code = getattr(error, "code", None)


def new_identifier() -> str:
    """Random identifier for entities created in fallback mode."""
    return uuid4().hex


class ResilientDataAccess:
    """
    Data-access layer with remote-first, local-on-refusal dispatch.

    All collections share the injected StorageSession, so a refusal on any
    collection moves every collection to local storage.
    """

    def __init__(
        self,
        remote: Optional[DocumentStoreInterface],
        local: DocumentStoreInterface,
        session: Optional[StorageSession] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        """
        Args:
            remote: Remote store. If None, the session starts in fallback.
            local: On-device store.
            session: Mode holder. A fresh one is created if omitted.
            audit_logger: Receives fallback and failure events.
        """
        if session is None:
            session = StorageSession(
                StorageMode.REMOTE if remote is not None else StorageMode.LOCAL_FALLBACK
            )
        elif remote is None:
            session.activate_fallback()

        self._remote = remote
        self._local = local
        self._session = session
        self._audit_logger = audit_logger

    # -------------------------------------------------------------------------
    # Mode
    # -------------------------------------------------------------------------

    @property
    def mode(self) -> StorageMode:
        """Current storage mode. For display only, no side effects."""
        return self._session.mode

    @property
    def is_using_fallback(self) -> bool:
        return self._session.is_fallback

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    async def _dispatch(
        self,
        operation: str,
        call: Callable[[DocumentStoreInterface], Awaitable[T]],
    ) -> T:
        """
        Run `call` against the store the current mode selects.

        In REMOTE mode the remote store is tried once; an authorization
        failure switches the session and the call is replayed once locally.
        """
        if not self._session.is_fallback:
            try:
                return await call(self._remote)
            except Exception as error:
                if not is_authorization_denied(error):
                    raise
                await self._enter_fallback(operation, error)

        return await call(self._local)

    async def _enter_fallback(self, operation: str, error: Exception) -> None:
        if not self._session.activate_fallback():
            return

        code = getattr(error, "code", None)
        logger.warning(
            "storage_fallback_activated",
            operation=operation,
            error_code=code,
            error=str(error),
        )
        if self._audit_logger:
            await self._audit_logger.log_fallback_activated(
                operation=operation,
                error_code=str(code) if code is not None else None,
                error_message=str(error),
            )

    async def _report_failure(self, operation: str, error: StorageError) -> None:
        logger.error(
            "data_access_failed",
            operation=operation,
            mode=self.mode.value,
            error_code=error.code,
            error=str(error),
        )
        if self._audit_logger:
            await self._audit_logger.log_data_access_failed(
                operation=operation,
                mode=self.mode.value,
                error_code=str(error.code) if error.code is not None else None,
                error_message=str(error),
            )

    async def _read(
        self,
        operation: str,
        call: Callable[[DocumentStoreInterface], Awaitable[list]],
    ) -> list:
        """Dispatch a read; storage failures degrade to an empty list."""
        try:
            return await self._dispatch(operation, call)
        except StorageError as error:
            await self._report_failure(operation, error)
            return []

    async def _write(
        self,
        operation: str,
        call: Callable[[DocumentStoreInterface], Awaitable[T]],
    ) -> T:
        """Dispatch a write; storage failures raise DataAccessError."""
        try:
            return await self._dispatch(operation, call)
        except StorageError as error:
            await self._report_failure(operation, error)
            raise DataAccessError(operation, error) from error

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def list_transactions(self, user_id: str) -> list[Transaction]:
        """A user's transactions, newest first."""
        documents = await self._read(
            "list_transactions",
            lambda store: store.list_documents(
                Collection.TRANSACTIONS, {"user_id": user_id}
            ),
        )

        transactions = []
        for document in documents:
            try:
                transactions.append(Transaction.model_validate(document))
            except ValidationError as e:
                logger.warning(
                    "malformed_document_skipped",
                    collection=Collection.TRANSACTIONS.value,
                    doc_id=document.get("id"),
                    error=str(e),
                )

        transactions.sort(key=lambda t: t.date, reverse=True)
        return transactions

    async def create_transaction(self, draft: TransactionDraft) -> str:
        """Persist a new transaction and return its identifier."""
        payload = draft.model_dump(mode="json")

        async def create(store: DocumentStoreInterface) -> str:
            document = dict(payload)
            if self._session.is_fallback:
                document["id"] = new_identifier()
            return await store.add_document(Collection.TRANSACTIONS, document)

        return await self._write("create_transaction", create)

    async def update_transaction(
        self,
        transaction_id: str,
        changes: TransactionUpdate,
    ) -> None:
        payload = changes.to_changes()
        await self._write(
            "update_transaction",
            lambda store: store.update_document(
                Collection.TRANSACTIONS, transaction_id, payload
            ),
        )

    async def delete_transaction(self, transaction_id: str) -> None:
        await self._write(
            "delete_transaction",
            lambda store: store.delete_document(
                Collection.TRANSACTIONS, transaction_id
            ),
        )

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    async def list_users(self) -> list[User]:
        documents = await self._read(
            "list_users",
            lambda store: store.list_documents(Collection.USERS),
        )

        users = []
        for document in documents:
            try:
                users.append(User.model_validate(document))
            except ValidationError as e:
                logger.warning(
                    "malformed_document_skipped",
                    collection=Collection.USERS.value,
                    doc_id=document.get("id"),
                    error=str(e),
                )
        return users

    async def save_user(self, user: User) -> None:
        """
        Write a user under its own id.

        In fallback mode an existing user with the same id is left untouched,
        which keeps seeding the default admin at-most-once.
        """
        payload = user.model_dump(mode="json")

        async def save(store: DocumentStoreInterface) -> None:
            if self._session.is_fallback:
                existing = await store.list_documents(
                    Collection.USERS, {"id": user.id}
                )
                if existing:
                    return
            await store.set_document(Collection.USERS, user.id, payload)

        await self._write("save_user", save)

    async def update_user(self, user_id: str, changes: UserUpdate) -> None:
        payload = changes.to_changes()
        await self._write(
            "update_user",
            lambda store: store.update_document(Collection.USERS, user_id, payload),
        )

    async def delete_user(self, user_id: str) -> None:
        await self._write(
            "delete_user",
            lambda store: store.delete_document(Collection.USERS, user_id),
        )

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    async def list_categories(self) -> list[str]:
        """Names of the persisted categories (baseline not included)."""
        documents = await self._read(
            "list_categories",
            lambda store: store.list_documents(Collection.CATEGORIES),
        )
        return [str(d["name"]) for d in documents if d.get("name")]

    async def add_category(self, name: str) -> None:
        name = name.strip()
        if not name:
            raise ValueError("Category name cannot be blank")

        async def add(store: DocumentStoreInterface) -> str:
            document = {"name": name}
            if self._session.is_fallback:
                document["id"] = new_identifier()
            return await store.add_document(Collection.CATEGORIES, document)

        await self._write("add_category", add)

    async def remove_category(self, name: str) -> None:
        """
        Delete every persisted category with this name.

        Duplicates are deleted concurrently. Best-effort: a failed delete
        is logged and does not fail the operation, unless the remote store
        refused it for lack of permission.
        """

        async def remove(store: DocumentStoreInterface) -> None:
            matches = await store.list_documents(
                Collection.CATEGORIES, {"name": name}
            )
            results = await asyncio.gather(
                *(
                    store.delete_document(Collection.CATEGORIES, d["id"])
                    for d in matches
                    if d.get("id")
                ),
                return_exceptions=True,
            )
            for result in results:
                if not isinstance(result, Exception):
                    continue
                if store is self._remote and is_authorization_denied(result):
                    raise result
                logger.warning(
                    "category_delete_failed",
                    category=name,
                    error=str(result),
                )

        await self._write("remove_category", remove)
