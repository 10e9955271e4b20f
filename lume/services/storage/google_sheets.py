"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is the remote document store because:
1. Users can view their data directly in Sheets
2. No database setup required
3. Sharing and permissions are managed by Google

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions (each mutation is a single row operation)
- Limited query capabilities (we filter in Python)

Each collection lives in its own worksheet: a header row followed by one
document per row. A permission error from Google surfaces as a StorageError
whose code is PERMISSION_DENIED / 403, which the data-access layer uses to
switch to local storage.
"""

from typing import Optional
from uuid import uuid4

import gspread
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from lume.config import GoogleSheetsSettings, get_settings
from lume.services.storage.interface import (
    Collection,
    ConnectionError,
    DocumentStoreInterface,
    NotFoundError,
    StorageError,
)


# Column layout per collection. "id" is always the first column.
COLLECTION_COLUMNS: dict[Collection, list[str]] = {
    Collection.TRANSACTIONS: [
        "id",
        "user_id",
        "description",
        "amount",
        "type",
        "category",
        "date",
    ],
    Collection.USERS: [
        "id",
        "name",
        "email",
        "role",
        "password_hash",
        "avatar",
    ],
    Collection.CATEGORIES: [
        "id",
        "name",
    ],
}


def _error_code(error: Exception) -> Optional[str]:
    """Extract the Google API status (or HTTP code) from an exception."""
    details = getattr(error, "error", None)
    if isinstance(details, dict) and details.get("status"):
        return str(details["status"])
    code = getattr(error, "code", None)
    return str(code) if code is not None else None


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication, worksheet lookup and retry logic for connecting.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._worksheets: dict[Collection, gspread.Worksheet] = {}
        self._settings = settings or get_settings().google_sheets

    # Synchronous retry: the backoff sleeps block the event loop of the calling store method
    @retry(
        retry=retry_if_exception_type(ConnectionError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(
                    f"Failed to connect to Google Sheets: {e}",
                    code=_error_code(e),
                )

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
            except gspread.exceptions.APIError as e:
                raise StorageError(
                    f"Failed to open spreadsheet: {e}",
                    code=_error_code(e),
                )
        return self._spreadsheet

    def sheet_name(self, collection: Collection) -> str:
        return {
            Collection.TRANSACTIONS: self._settings.transactions_sheet_name,
            Collection.USERS: self._settings.users_sheet_name,
            Collection.CATEGORIES: self._settings.categories_sheet_name,
        }[collection]

    def get_worksheet(self, collection: Collection) -> gspread.Worksheet:
        """Get or create the worksheet backing a collection."""
        if collection in self._worksheets:
            return self._worksheets[collection]

        spreadsheet = self.get_spreadsheet()
        columns = COLLECTION_COLUMNS[collection]
        title = self.sheet_name(collection)
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)

        self._worksheets[collection] = sheet
        return sheet


class GoogleSheetsDocumentStore(DocumentStoreInterface):
    """
    Google Sheets implementation of the document store.

    Documents are stored as rows in the collection's worksheet, one
    document per row, every value as a string. Empty cells are left out
    of the returned documents.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _document_to_row(self, collection: Collection, document: dict) -> list:
        """Convert a document to a spreadsheet row."""
        return [
            "" if document.get(column) is None else str(document[column])
            for column in COLLECTION_COLUMNS[collection]
        ]

    def _row_to_document(self, collection: Collection, row: list) -> dict:
        """Convert a spreadsheet row to a document."""
        document = {}
        for index, column in enumerate(COLLECTION_COLUMNS[collection]):
            if index < len(row) and row[index] != "":
                document[column] = row[index]
        return document

    def _find_row(self, rows: list[list], doc_id: str) -> Optional[int]:
        """1-based sheet row number of a document (row 1 is the header)."""
        for idx, row in enumerate(rows[1:], start=2):
            if row and row[0] == doc_id:
                return idx
        return None

    async def list_documents(
        self,
        collection: Collection,
        filters: Optional[dict[str, str]] = None,
    ) -> list[dict]:
        """List documents with optional equality filters."""
        try:
            sheet = self._client.get_worksheet(collection)
            all_rows = sheet.get_all_values()[1:]  # Skip header

            documents = []
            for row in all_rows:
                if not row or not row[0]:  # Skip empty rows
                    continue

                document = self._row_to_document(collection, row)
                if filters and any(
                    document.get(field) != str(value)
                    for field, value in filters.items()
                ):
                    continue

                documents.append(document)

            return documents
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(
                f"Failed to list {collection.value}: {e}",
                code=_error_code(e),
            )

    async def add_document(self, collection: Collection, document: dict) -> str:
        """Append a document, assigning an id if it has none."""
        try:
            doc_id = str(document.get("id") or uuid4().hex)
            sheet = self._client.get_worksheet(collection)
            row = self._document_to_row(collection, {**document, "id": doc_id})
            sheet.append_row(row, value_input_option="RAW")
            return doc_id
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(
                f"Failed to add to {collection.value}: {e}",
                code=_error_code(e),
            )

    async def set_document(
        self,
        collection: Collection,
        doc_id: str,
        document: dict,
    ) -> None:
        """Write a document under doc_id, replacing the row if it exists."""
        try:
            sheet = self._client.get_worksheet(collection)
            row = self._document_to_row(collection, {**document, "id": doc_id})
            idx = self._find_row(sheet.get_all_values(), doc_id)

            if idx is None:
                sheet.append_row(row, value_input_option="RAW")
            else:
                sheet.update(
                    range_name=f"A{idx}",
                    values=[row],
                    value_input_option="RAW",
                )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(
                f"Failed to set {collection.value}/{doc_id}: {e}",
                code=_error_code(e),
            )

    async def update_document(
        self,
        collection: Collection,
        doc_id: str,
        changes: dict,
    ) -> None:
        """Merge changes into an existing row."""
        try:
            sheet = self._client.get_worksheet(collection)
            all_rows = sheet.get_all_values()
            idx = self._find_row(all_rows, doc_id)

            if idx is None:
                raise NotFoundError(f"{collection.value}/{doc_id} not found")

            document = self._row_to_document(collection, all_rows[idx - 1])
            document.update(changes)
            document["id"] = doc_id
            sheet.update(
                range_name=f"A{idx}",
                values=[self._document_to_row(collection, document)],
                value_input_option="RAW",
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(
                f"Failed to update {collection.value}/{doc_id}: {e}",
                code=_error_code(e),
            )

    async def delete_document(self, collection: Collection, doc_id: str) -> None:
        """Delete the row holding doc_id, if any."""
        try:
            sheet = self._client.get_worksheet(collection)
            idx = self._find_row(sheet.get_all_values(), doc_id)
            if idx is not None:
                sheet.delete_rows(idx)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(
                f"Failed to delete {collection.value}/{doc_id}: {e}",
                code=_error_code(e),
            )
