"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the document store because:
1. The user can view and fix receipts directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions (a receipt is a single appended row, so it is never half-written)
- Limited query capabilities (we filter and sort in Python)

Each collection is one worksheet. Known fields get their own column; nested
values are JSON-encoded and unknown keys are kept together in `extra_json`
so nothing the workflow sends is lost.
"""

import asyncio
import json
from typing import Any, Optional
from uuid import uuid4

import gspread
from google.oauth2.service_account import Credentials
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from receipt_sorter.config import GoogleSheetsSettings, get_settings
from receipt_sorter.models.receipt import (
    AUDIT_COLLECTION,
    CATEGORIES_COLLECTION,
    RECEIPTS_COLLECTION,
)
from receipt_sorter.services.storage.interface import (
    ConnectionError,
    DocumentStoreInterface,
    NotFoundError,
    StorageError,
    sort_documents,
)


EXTRA_COLUMN = "extra_json"

# Column layout per collection. `id` is always first.
COLLECTION_COLUMNS: dict[str, list[str]] = {
    RECEIPTS_COLLECTION: [
        "id",
        "vendor",
        "date",
        "total",
        "category",
        "currency",
        "tax",
        "subtotal",
        "payment_method",
        "items",
        "processed_at",
        "status",
        "source",
        EXTRA_COLUMN,
    ],
    CATEGORIES_COLLECTION: [
        "id",
        "name",
        "color",
        "icon",
        "created_at",
        "updated_at",
        EXTRA_COLUMN,
    ],
    AUDIT_COLLECTION: [
        "id",
        "event_id",
        "timestamp",
        "event_type",
        "severity",
        "entity_type",
        "entity_id",
        "correlation_id",
        "description",
        "details",
        "error_message",
        EXTRA_COLUMN,
    ],
}

NUMERIC_COLUMNS = {"total", "tax", "subtotal"}


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and maps collection names to worksheets.
    All methods are blocking; the document store runs them in a thread.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
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
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

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
        return self._spreadsheet

    def sheet_title(self, collection: str) -> str:
        titles = {
            RECEIPTS_COLLECTION: self._settings.receipts_sheet_name,
            CATEGORIES_COLLECTION: self._settings.categories_sheet_name,
            AUDIT_COLLECTION: self._settings.audit_sheet_name,
        }
        return titles.get(collection, collection)

    def get_worksheet(self, collection: str) -> gspread.Worksheet:
        """Get or create the worksheet backing a collection."""
        spreadsheet = self.get_spreadsheet()
        title = self.sheet_title(collection)
        columns = columns_for(collection)
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=5000 if collection == AUDIT_COLLECTION else 1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet


def columns_for(collection: str) -> list[str]:
    return COLLECTION_COLUMNS.get(collection, ["id", EXTRA_COLUMN])


def _encode_cell(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    if isinstance(value, bool):
        return str(value).lower()
    return value


def _decode_cell(column: str, value: str) -> Any:
    if column in NUMERIC_COLUMNS:
        try:
            return float(value)
        except ValueError:
            return value
    if value[:1] in ("{", "["):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    return value


def document_to_row(collection: str, document_id: str, data: dict[str, Any]) -> list:
    """Convert a document to a spreadsheet row."""
    columns = columns_for(collection)
    known = set(columns)
    extra = {
        key: value
        for key, value in data.items()
        if key not in known
    }

    row = []
    for column in columns:
        if column == "id":
            row.append(document_id)
        elif column == EXTRA_COLUMN:
            row.append(json.dumps(extra) if extra else "")
        else:
            row.append(_encode_cell(data.get(column)))
    return row


def row_to_document(collection: str, header: list[str], row: list) -> dict[str, Any]:
    """Convert a spreadsheet row back to a document. Empty cells are omitted."""
    columns = header or columns_for(collection)
    document: dict[str, Any] = {}
    extra: dict[str, Any] = {}

    for index, column in enumerate(columns):
        value = row[index] if index < len(row) else ""
        if value == "":
            continue
        if column == EXTRA_COLUMN:
            extra = json.loads(value)
        elif column == "id":
            document["id"] = value
        else:
            document[column] = _decode_cell(column, value)

    for key, value in extra.items():
        document.setdefault(key, value)
    return document


class GoogleSheetsDocumentStore(DocumentStoreInterface):
    """
    Google Sheets implementation of the document store.

    Documents are stored as rows, one document per row.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _read_all(self, collection: str) -> tuple[gspread.Worksheet, list[str], list[list]]:
        sheet = self._client.get_worksheet(collection)
        values = sheet.get_all_values()
        if not values:
            return sheet, columns_for(collection), []
        return sheet, values[0], values[1:]

    def _documents(self, collection: str) -> list[dict[str, Any]]:
        _, header, rows = self._read_all(collection)
        return [
            row_to_document(collection, header, row)
            for row in rows
            if row and row[0]  # Skip empty rows
        ]

    def _find_row(self, collection: str, document_id: str):
        """Locate a document's row. Returns (sheet, header, row_number, row)."""
        sheet, header, rows = self._read_all(collection)
        for row_number, row in enumerate(rows, start=2):  # Row 1 is header
            if row and row[0] == document_id:
                return sheet, header, row_number, row
        return sheet, header, None, None

    def _append(self, collection: str, data: dict[str, Any]) -> str:
        document_id = uuid4().hex
        sheet = self._client.get_worksheet(collection)
        sheet.append_row(
            document_to_row(collection, document_id, data),
            value_input_option="RAW",
        )
        return document_id

    def _update(self, collection: str, document_id: str, updates: dict[str, Any]) -> None:
        sheet, header, row_number, row = self._find_row(collection, document_id)
        if row_number is None:
            raise NotFoundError(f"Document not found: {collection}/{document_id}")

        current = row_to_document(collection, header, row)
        current.pop("id", None)
        current.update({key: value for key, value in updates.items() if key != "id"})
        sheet.update(
            range_name=f"A{row_number}",
            values=[document_to_row(collection, document_id, current)],
            value_input_option="RAW",
        )

    def _delete(self, collection: str, document_id: str) -> bool:
        sheet, _, row_number, _ = self._find_row(collection, document_id)
        if row_number is None:
            return False
        sheet.delete_rows(row_number)
        return True

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def add_document(self, collection: str, data: dict[str, Any]) -> str:
        """Append a document as a new row."""
        try:
            return await asyncio.to_thread(self._append, collection, data)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to add document to {collection}: {e}") from e

    async def get_documents(
        self,
        collection: str,
        order_by: Optional[str] = None,
        descending: bool = True,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        try:
            documents = await asyncio.to_thread(self._documents, collection)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read {collection}: {e}") from e

        documents = sort_documents(documents, order_by, descending)
        if limit is not None:
            documents = documents[:limit]
        return documents

    async def get_documents_where(
        self,
        collection: str,
        field: str,
        value: Any,
        order_by: Optional[str] = None,
        descending: bool = True,
    ) -> list[dict[str, Any]]:
        documents = await self.get_documents(collection)
        matching = [doc for doc in documents if doc.get(field) == value]
        return sort_documents(matching, order_by, descending)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(NotFoundError),
        reraise=True,
    )
    async def update_document(
        self,
        collection: str,
        document_id: str,
        updates: dict[str, Any],
    ) -> None:
        try:
            await asyncio.to_thread(self._update, collection, document_id, updates)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {collection}/{document_id}: {e}") from e

    async def delete_document(self, collection: str, document_id: str) -> bool:
        try:
            return await asyncio.to_thread(self._delete, collection, document_id)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete {collection}/{document_id}: {e}") from e

    async def count_documents(self, collection: str) -> int:
        documents = await self.get_documents(collection)
        return len(documents)
