"""
Local JSON Storage Implementation

On-device store used once the remote store refuses us. Each collection is
one JSON array in its own file, named after a fixed key. Every mutation
reads the whole array, changes it in memory and rewrites the whole file.

The store never invents identifiers: documents must arrive with an "id".
The data-access layer assigns them, so ids stay unique across both stores.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from lume.config import get_settings
from lume.services.storage.interface import (
    Collection,
    DocumentStoreInterface,
    NotFoundError,
    StorageError,
)


# Fixed key (file stem) per collection. No schema version field:
# a format change needs a new key.
STORAGE_KEYS: dict[Collection, str] = {
    Collection.TRANSACTIONS: "lume_transactions_local_v1",
    Collection.USERS: "lume_users_list_v1",
    Collection.CATEGORIES: "lume_categories_local_v1",
}


class LocalJsonDocumentStore(DocumentStoreInterface):
    """
    JSON-file implementation of the document store.

    Assumes a single process owns the data directory.
    """

    def __init__(self, data_dir: Optional[Union[str, Path]] = None):
        if data_dir is None:
            data_dir = get_settings().local_store.data_path
        self._data_dir = Path(data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def path_for(self, collection: Collection) -> Path:
        return self._data_dir / f"{STORAGE_KEYS[collection]}.json"

    def _read(self, collection: Collection) -> list[dict]:
        """Load a whole collection. A missing file is an empty collection."""
        path = self.path_for(collection)
        if not path.exists():
            return []

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to read {path}: {e}")

        if not isinstance(data, list):
            raise StorageError(f"Expected a JSON array in {path}")
        return [item for item in data if isinstance(item, dict)]

    def _write(self, collection: Collection, documents: list[dict]) -> None:
        """Atomically replace a whole collection."""
        path = self.path_for(collection)
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{STORAGE_KEYS[collection]}_",
                suffix=".json",
                dir=self._data_dir,
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(documents, f, indent=2, ensure_ascii=False)
                os.replace(tmp_path, path)
            finally:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to write {path}: {e}")

    async def list_documents(
        self,
        collection: Collection,
        filters: Optional[dict[str, str]] = None,
    ) -> list[dict]:
        documents = self._read(collection)
        if filters:
            documents = [
                document for document in documents
                if all(
                    str(document.get(field)) == str(value)
                    for field, value in filters.items()
                )
            ]
        return documents

    async def add_document(self, collection: Collection, document: dict) -> str:
        doc_id = document.get("id")
        if not doc_id:
            raise StorageError(
                f"Local store requires an id when adding to {collection.value}"
            )

        documents = self._read(collection)
        documents.append(dict(document))
        self._write(collection, documents)
        return str(doc_id)

    async def set_document(
        self,
        collection: Collection,
        doc_id: str,
        document: dict,
    ) -> None:
        new_document = {**document, "id": doc_id}
        documents = self._read(collection)
        for idx, existing in enumerate(documents):
            if existing.get("id") == doc_id:
                documents[idx] = new_document
                break
        else:
            documents.append(new_document)
        self._write(collection, documents)

    async def update_document(
        self,
        collection: Collection,
        doc_id: str,
        changes: dict,
    ) -> None:
        documents = self._read(collection)
        for document in documents:
            if document.get("id") == doc_id:
                document.update(changes)
                document["id"] = doc_id
                break
        else:
            raise NotFoundError(f"{collection.value}/{doc_id} not found")
        self._write(collection, documents)

    async def delete_document(self, collection: Collection, doc_id: str) -> None:
        documents = self._read(collection)
        remaining = [d for d in documents if d.get("id") != doc_id]
        if len(remaining) != len(documents):
            self._write(collection, remaining)
