"""
In-Memory Storage Implementation

Used by the test suite and as the fallback backend when Google Sheets is
not configured. Data lives only as long as the process.
"""

import copy
from typing import Any, Optional
from uuid import uuid4

from receipt_sorter.services.storage.interface import (
    DocumentStoreInterface,
    NotFoundError,
    sort_documents,
)


class InMemoryDocumentStore(DocumentStoreInterface):
    """
    Dict-backed document store.

    Documents are deep-copied on the way in and out so callers can never
    mutate stored state by accident.
    """

    def __init__(self):
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}

    def _collection(self, name: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(name, {})

    @staticmethod
    def _with_id(document_id: str, data: dict[str, Any]) -> dict[str, Any]:
        document = copy.deepcopy(data)
        document["id"] = document_id
        return document

    async def add_document(self, collection: str, data: dict[str, Any]) -> str:
        document_id = uuid4().hex
        stored = copy.deepcopy(data)
        stored.pop("id", None)
        self._collection(collection)[document_id] = stored
        return document_id

    async def get_documents(
        self,
        collection: str,
        order_by: Optional[str] = None,
        descending: bool = True,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        documents = [
            self._with_id(document_id, data)
            for document_id, data in self._collection(collection).items()
        ]
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
        documents = [
            self._with_id(document_id, data)
            for document_id, data in self._collection(collection).items()
            if data.get(field) == value
        ]
        return sort_documents(documents, order_by, descending)

    async def update_document(
        self,
        collection: str,
        document_id: str,
        updates: dict[str, Any],
    ) -> None:
        documents = self._collection(collection)
        if document_id not in documents:
            raise NotFoundError(f"Document not found: {collection}/{document_id}")
        changes = copy.deepcopy(updates)
        changes.pop("id", None)
        documents[document_id].update(changes)

    async def delete_document(self, collection: str, document_id: str) -> bool:
        return self._collection(collection).pop(document_id, None) is not None

    async def count_documents(self, collection: str) -> int:
        return len(self._collection(collection))
