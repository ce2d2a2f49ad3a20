"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract document-store interface.
This allows us to:
1. Swap Google Sheets for a real document database later
2. Use in-memory storage for testing
3. Keep business logic decoupled from storage implementation

The store is used as a set of collections of JSON-shaped documents keyed
by generated IDs: append, read all (optionally ordered), read by equality
on one field, update by ID, delete by ID, count. Nothing more.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


class DocumentStoreInterface(ABC):
    """
    Abstract interface for document storage operations.

    Any storage implementation (Google Sheets, Firestore, etc.)
    must implement these methods. Returned documents always carry
    their store-assigned `id`.
    """

    @abstractmethod
    async def add_document(
        self,
        collection: str,
        data: dict[str, Any],
    ) -> str:
        """
        Append a new document to a collection.

        Args:
            collection: Collection name
            data: Document fields (any `id` key is ignored)

        Returns:
            The store-assigned document ID

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def get_documents(
        self,
        collection: str,
        order_by: Optional[str] = None,
        descending: bool = True,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """
        Read every document in a collection.

        Args:
            collection: Collection name
            order_by: Field to sort by (insertion order when None)
            descending: Sort direction when `order_by` is given
            limit: Maximum number of documents to return

        Returns:
            List of documents
        """
        pass

    @abstractmethod
    async def get_documents_where(
        self,
        collection: str,
        field: str,
        value: Any,
        order_by: Optional[str] = None,
        descending: bool = True,
    ) -> list[dict[str, Any]]:
        """
        Read the documents whose `field` equals `value`.
        """
        pass

    @abstractmethod
    async def update_document(
        self,
        collection: str,
        document_id: str,
        updates: dict[str, Any],
    ) -> None:
        """
        Merge `updates` into an existing document.

        Raises:
            NotFoundError: If the document doesn't exist
            StorageError: If the update fails
        """
        pass

    @abstractmethod
    async def delete_document(
        self,
        collection: str,
        document_id: str,
    ) -> bool:
        """
        Hard-delete a document.

        Returns:
            True if a document was deleted, False if it didn't exist
        """
        pass

    @abstractmethod
    async def count_documents(self, collection: str) -> int:
        """Number of documents in a collection."""
        pass


def sort_documents(
    documents: list[dict[str, Any]],
    order_by: Optional[str],
    descending: bool,
) -> list[dict[str, Any]]:
    """
    Order documents by one field the way a document store would.

    Documents missing the field sort after those that have it.
    """
    if not order_by:
        return documents

    present = [doc for doc in documents if doc.get(order_by) is not None]
    missing = [doc for doc in documents if doc.get(order_by) is None]
    present.sort(key=lambda doc: str(doc[order_by]), reverse=descending)
    return present + missing


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
