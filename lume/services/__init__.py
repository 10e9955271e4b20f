"""Services package."""

from lume.services.data_access import (
    DataAccessError,
    ResilientDataAccess,
    StorageMode,
    StorageSession,
)
from lume.services.passwords import (
    generate_temporary_password,
    hash_password,
    verify_password,
)
from lume.services.storage import (
    Collection,
    ConnectionError,
    DocumentStoreInterface,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
    LocalJsonDocumentStore,
    NotFoundError,
    StorageError,
    is_authorization_denied,
)

__all__ = [
    # Data access
    "DataAccessError",
    "ResilientDataAccess",
    "StorageMode",
    "StorageSession",
    # Passwords
    "generate_temporary_password",
    "hash_password",
    "verify_password",
    # Storage services
    "Collection",
    "ConnectionError",
    "DocumentStoreInterface",
    "GoogleSheetsClient",
    "GoogleSheetsDocumentStore",
    "LocalJsonDocumentStore",
    "NotFoundError",
    "StorageError",
    "is_authorization_denied",
]
