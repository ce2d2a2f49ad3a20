"""Services package."""

from receipt_sorter.services.storage import (
    ConnectionError,
    DocumentStoreInterface,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
    InMemoryDocumentStore,
    NotFoundError,
    ReceiptRepository,
    StorageError,
)

__all__ = [
    "ConnectionError",
    "DocumentStoreInterface",
    "GoogleSheetsClient",
    "GoogleSheetsDocumentStore",
    "InMemoryDocumentStore",
    "NotFoundError",
    "ReceiptRepository",
    "StorageError",
]
