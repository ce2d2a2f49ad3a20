"""
Storage Services Package

Provides the abstract document-store interface and its implementations.
Google Sheets is the production backend; the in-memory store backs tests
and unconfigured installs.
"""

from receipt_sorter.services.storage.interface import (
    ConnectionError,
    DocumentStoreInterface,
    NotFoundError,
    StorageError,
)
from receipt_sorter.services.storage.memory import InMemoryDocumentStore
from receipt_sorter.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
)
from receipt_sorter.services.storage.receipts import ReceiptRepository

__all__ = [
    # Interface
    "DocumentStoreInterface",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # Implementations
    "GoogleSheetsClient",
    "GoogleSheetsDocumentStore",
    "InMemoryDocumentStore",
    # Repository
    "ReceiptRepository",
]
