"""
Receipt Repository

Receipt- and category-level operations on top of any DocumentStoreInterface.
Business code talks to this class, never to the raw store.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Optional, Union

import structlog

from receipt_sorter.models.receipt import (
    CATEGORIES_COLLECTION,
    DEFAULT_CATEGORIES,
    RECEIPTS_COLLECTION,
    Category,
)
from receipt_sorter.reports.summary import (
    UNCATEGORIZED,
    as_label,
    parse_receipt_date,
    to_decimal,
)
from receipt_sorter.services.storage.interface import DocumentStoreInterface


logger = structlog.get_logger(__name__)


class ReceiptRepository:
    """
    Receipts and categories, stored as documents.

    Receipts are listed newest-processed first. Categories are seeded with
    the default set the first time they are read from an empty collection.
    """

    def __init__(self, store: DocumentStoreInterface):
        self.store = store

    # =========================================================================
    # RECEIPTS
    # =========================================================================

    async def save_receipt(self, data: dict[str, Any]) -> str:
        """Write a receipt document. Returns the store-assigned ID."""
        receipt_id = await self.store.add_document(RECEIPTS_COLLECTION, data)
        logger.info("receipt_stored", receipt_id=receipt_id, vendor=data.get("vendor"))
        return receipt_id

    async def list_receipts(self, limit: Optional[int] = None) -> list[dict[str, Any]]:
        return await self.store.get_documents(
            RECEIPTS_COLLECTION,
            order_by="processed_at",
            descending=True,
            limit=limit,
        )

    async def get_receipt(self, receipt_id: str) -> Optional[dict[str, Any]]:
        """One receipt by ID, or None. Scans the collection (small, personal-scale data)."""
        for receipt in await self.list_receipts():
            if receipt["id"] == receipt_id:
                return receipt
        return None

    async def list_receipts_by_category(self, category: str) -> list[dict[str, Any]]:
        return await self.store.get_documents_where(
            RECEIPTS_COLLECTION,
            "category",
            category,
            order_by="processed_at",
            descending=True,
        )

    async def update_receipt(self, receipt_id: str, updates: dict[str, Any]) -> None:
        await self.store.update_document(RECEIPTS_COLLECTION, receipt_id, updates)

    async def delete_receipt(self, receipt_id: str) -> bool:
        return await self.store.delete_document(RECEIPTS_COLLECTION, receipt_id)

    async def count_receipts(self) -> int:
        return await self.store.count_documents(RECEIPTS_COLLECTION)

    async def spending_by_category(
        self,
        start: Optional[Union[date, datetime]] = None,
        end: Optional[Union[date, datetime]] = None,
    ) -> dict[str, float]:
        """
        Total spend per category, rounded to cents.

        When a bound is given, receipts without a parseable date are skipped.
        """
        first_day = parse_receipt_date(start) if start else None
        last_day = parse_receipt_date(end) if end else None

        totals: dict[str, Decimal] = {}
        for receipt in await self.list_receipts():
            if first_day or last_day:
                receipt_date = parse_receipt_date(receipt.get("date"))
                if receipt_date is None:
                    continue
                if first_day and receipt_date < first_day:
                    continue
                if last_day and receipt_date > last_day:
                    continue
            category = as_label(receipt.get("category"), UNCATEGORIZED)
            totals[category] = totals.get(category, Decimal("0")) + to_decimal(receipt.get("total"))

        return {
            category: float(amount.quantize(Decimal("0.01")))
            for category, amount in totals.items()
        }

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    async def get_categories(self) -> list[dict[str, Any]]:
        """
        All categories sorted by name.

        An empty collection is seeded with the default set first.
        """
        categories = await self.store.get_documents(
            CATEGORIES_COLLECTION,
            order_by="name",
            descending=False,
        )
        if categories:
            return categories

        logger.info("seeding_default_categories", count=len(DEFAULT_CATEGORIES))
        seeded = []
        for default in DEFAULT_CATEGORIES:
            category = Category(**default)
            document = category.model_dump(exclude={"id"})
            category_id = await self.store.add_document(CATEGORIES_COLLECTION, document)
            seeded.append({"id": category_id, **document})
        return seeded

    async def add_category(self, name: str, color: Optional[str] = None, icon: Optional[str] = None) -> str:
        fields: dict[str, Any] = {"name": name}
        if color:
            fields["color"] = color
        if icon:
            fields["icon"] = icon
        category = Category(**fields)
        return await self.store.add_document(
            CATEGORIES_COLLECTION,
            category.model_dump(exclude={"id"}),
        )

    async def update_category(self, category_id: str, updates: dict[str, Any]) -> None:
        changes = dict(updates)
        changes["updated_at"] = datetime.now(timezone.utc).isoformat()
        await self.store.update_document(CATEGORIES_COLLECTION, category_id, changes)

    async def delete_category(self, category_id: str) -> bool:
        return await self.store.delete_document(CATEGORIES_COLLECTION, category_id)
