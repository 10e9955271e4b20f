"""
Abstract Storage Interface

DESIGN DECISION: Both physical stores speak one small document-store
contract. This allows us to:
1. Put the remote store and the on-device store behind one data-access layer
2. Replay the exact same operation against either store
3. Use in-memory stores for testing

The interface is intentionally simple - we're not building a full ORM.
Documents are plain JSON-compatible dicts keyed by an "id" field.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional, Union


class Collection(str, Enum):
    """The three logical collections."""
    TRANSACTIONS = "transactions"
    USERS = "users"
    CATEGORIES = "categories"


class DocumentStoreInterface(ABC):
    """
    Abstract interface for collection-scoped document storage.

    Any storage implementation (Google Sheets, local JSON, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def list_documents(
        self,
        collection: Collection,
        filters: Optional[dict[str, str]] = None,
    ) -> list[dict]:
        """
        List documents of a collection.

        Args:
            collection: Collection to read
            filters: Field equality filters, all must match

        Returns:
            Matching documents, each including its "id"

        Raises:
            StorageError: If the read fails
        """
        pass

    @abstractmethod
    async def add_document(self, collection: Collection, document: dict) -> str:
        """
        Insert a new document.

        Args:
            collection: Target collection
            document: Document body. If it carries an "id" it is kept,
                      otherwise the store may assign one.

        Returns:
            The identifier of the stored document

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def set_document(
        self,
        collection: Collection,
        doc_id: str,
        document: dict,
    ) -> None:
        """
        Write a document under a caller-chosen id, replacing any existing one.

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def update_document(
        self,
        collection: Collection,
        doc_id: str,
        changes: dict,
    ) -> None:
        """
        Merge changes into an existing document.

        Raises:
            NotFoundError: If the document doesn't exist
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete_document(self, collection: Collection, doc_id: str) -> None:
        """
        Delete a document. Deleting a missing document is not an error.

        Raises:
            StorageError: If the write fails
        """
        pass


class StorageError(Exception):
    """
    Base exception for storage operations.

    `code` carries the backend's own error code (HTTP status, gRPC status
    name, ...) so callers can classify failures without knowing the backend.
    """

    def __init__(self, message: str, code: Optional[Union[str, int]] = None):
        super().__init__(message)
        self.code = code


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass


AUTHORIZATION_DENIED_CODES = frozenset({
    "permission-denied",
    "permission_denied",
    "403",
})

AUTHORIZATION_DENIED_PATTERNS = (
    "missing or insufficient permissions",
    "permission",
)


def is_authorization_denied(error: BaseException) -> bool:
    """
    Tell whether a store refused an operation for lack of permission.

    Classification looks at the error code first, then the message text.
    The exception type is not considered.
    """
    code = getattr(error, "code", None)
    if code is not None and str(code).lower() in AUTHORIZATION_DENIED_CODES:
        return True

    message = str(error).lower()
    return any(pattern in message for pattern in AUTHORIZATION_DENIED_PATTERNS)
