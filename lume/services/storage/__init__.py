"""
Storage Services Package

Provides the abstract document-store interface and its two implementations:
Google Sheets as the remote store and JSON files as the on-device store.
"""

from lume.services.storage.interface import (
    Collection,
    ConnectionError,
    DocumentStoreInterface,
    NotFoundError,
    StorageError,
    is_authorization_denied,
)
from lume.services.storage.google_sheets import (
    COLLECTION_COLUMNS,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
)
from lume.services.storage.local_json import (
    STORAGE_KEYS,
    LocalJsonDocumentStore,
)

__all__ = [
    # Interfaces
    "Collection",
    "DocumentStoreInterface",
    "is_authorization_denied",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # Google Sheets implementation
    "COLLECTION_COLUMNS",
    "GoogleSheetsClient",
    "GoogleSheetsDocumentStore",
    # Local JSON implementation
    "STORAGE_KEYS",
    "LocalJsonDocumentStore",
]
