"""
Tests for the document stores and the receipt repository.

Google Sheets is never contacted: its row mapping is tested as pure
functions, and the store itself with a fake worksheet.
"""

from datetime import date, datetime, timezone

import pytest

from receipt_sorter.services.storage import (
    GoogleSheetsDocumentStore,
    NotFoundError,
)
from receipt_sorter.services.storage.google_sheets import (
    EXTRA_COLUMN,
    columns_for,
    document_to_row,
    row_to_document,
)


class FakeWorksheet:
    """The few gspread.Worksheet methods the store uses, backed by a list."""

    def __init__(self, header):
        self.values = [list(header)]

    def get_all_values(self):
        return [list(row) for row in self.values]

    def append_row(self, row, value_input_option=None):
        self.values.append([str(cell) if cell != "" else "" for cell in row])

    def update(self, range_name, values, value_input_option=None):
        row_number = int(range_name[1:])
        self.values[row_number - 1] = [str(cell) if cell != "" else "" for cell in values[0]]

    def delete_rows(self, row_number):
        del self.values[row_number - 1]


class FakeSheetsClient:
    def __init__(self):
        self.sheets = {}

    def get_worksheet(self, collection):
        if collection not in self.sheets:
            self.sheets[collection] = FakeWorksheet(columns_for(collection))
        return self.sheets[collection]


class TestInMemoryStore:
    """Behaviour every document store shares."""

    async def test_add_and_read(self, store):
        document_id = await store.add_document("receipts", {"vendor": "Steam", "id": "ignored"})
        documents = await store.get_documents("receipts")
        assert documents == [{"vendor": "Steam", "id": document_id}]

    async def test_returned_documents_are_copies(self, store):
        await store.add_document("receipts", {"items": [{"name": "a"}]})
        documents = await store.get_documents("receipts")
        documents[0]["items"].append({"name": "b"})
        assert len((await store.get_documents("receipts"))[0]["items"]) == 1

    async def test_order_and_limit(self, store):
        for stamp in ("2024-01-02", "2024-01-03", "2024-01-01"):
            await store.add_document("receipts", {"processed_at": stamp})
        await store.add_document("receipts", {"vendor": "no stamp"})

        documents = await store.get_documents("receipts", order_by="processed_at")
        assert [d.get("processed_at") for d in documents] == ["2024-01-03", "2024-01-02", "2024-01-01", None]

        ascending = await store.get_documents("receipts", order_by="processed_at", descending=False, limit=2)
        assert [d["processed_at"] for d in ascending] == ["2024-01-01", "2024-01-02"]

    async def test_where(self, store):
        await store.add_document("receipts", {"category": "Games"})
        await store.add_document("receipts", {"category": "Food"})
        matching = await store.get_documents_where("receipts", "category", "Games")
        assert [d["category"] for d in matching] == ["Games"]

    async def test_update_and_delete(self, store):
        document_id = await store.add_document("receipts", {"vendor": "A"})
        await store.update_document("receipts", document_id, {"vendor": "B"})
        assert (await store.get_documents("receipts"))[0]["vendor"] == "B"

        assert await store.delete_document("receipts", document_id) is True
        assert await store.delete_document("receipts", document_id) is False
        assert await store.count_documents("receipts") == 0

    async def test_update_missing(self, store):
        with pytest.raises(NotFoundError):
            await store.update_document("receipts", "nope", {"vendor": "B"})


class TestSheetsRowMapping:
    """Documents to spreadsheet rows and back."""

    def test_round_trip_keeps_types_and_extras(self):
        document = {
            "vendor": "Chipotle",
            "total": 11.75,
            "items": [{"name": "Burrito", "price": 9.25}],
            "store_number": "42",
        }
        row = document_to_row("receipts", "abc", document)
        header = columns_for("receipts")
        assert row[0] == "abc"
        assert row[header.index(EXTRA_COLUMN)] == '{"store_number": "42"}'

        restored = row_to_document("receipts", header, [str(cell) for cell in row])
        assert restored == {"id": "abc", **document}

    def test_empty_cells_omitted(self):
        header = columns_for("receipts")
        restored = row_to_document("receipts", header, ["abc", "Steam"])
        assert restored == {"id": "abc", "vendor": "Steam"}

    def test_unknown_collection_keeps_everything_in_extras(self):
        row = document_to_row("notes", "n1", {"text": "hi"})
        assert row == ["n1", '{"text": "hi"}']


class TestSheetsDocumentStore:
    """The Sheets store over a fake worksheet."""

    @pytest.fixture
    def sheets_store(self):
        return GoogleSheetsDocumentStore(FakeSheetsClient())

    async def test_add_update_delete(self, sheets_store):
        document_id = await sheets_store.add_document(
            "receipts", {"vendor": "A", "total": 10, "processed_at": "2024-01-01"}
        )
        await sheets_store.add_document("receipts", {"vendor": "B", "total": 5, "processed_at": "2024-01-02"})

        documents = await sheets_store.get_documents("receipts", order_by="processed_at")
        assert [d["vendor"] for d in documents] == ["B", "A"]
        assert documents[1]["total"] == 10.0

        await sheets_store.update_document("receipts", document_id, {"category": "Games"})
        updated = await sheets_store.get_documents_where("receipts", "category", "Games")
        assert [d["id"] for d in updated] == [document_id]

        assert await sheets_store.delete_document("receipts", document_id) is True
        assert await sheets_store.count_documents("receipts") == 1

    async def test_update_missing(self, sheets_store):
        with pytest.raises(NotFoundError):
            await sheets_store.update_document("receipts", "nope", {"vendor": "B"})

    async def test_delete_missing(self, sheets_store):
        assert await sheets_store.delete_document("receipts", "nope") is False


class TestReceiptRepository:
    """Receipt and category operations."""

    async def test_list_newest_first(self, repository):
        await repository.save_receipt({"vendor": "old", "processed_at": "2024-01-01T00:00:00+00:00"})
        await repository.save_receipt({"vendor": "new", "processed_at": "2024-02-01T00:00:00+00:00"})
        receipts = await repository.list_receipts()
        assert [r["vendor"] for r in receipts] == ["new", "old"]
        assert len(await repository.list_receipts(limit=1)) == 1

    async def test_by_category(self, repository):
        await repository.save_receipt({"vendor": "A", "category": "Games"})
        await repository.save_receipt({"vendor": "B", "category": "Food"})
        assert [r["vendor"] for r in await repository.list_receipts_by_category("Food")] == ["B"]

    async def test_update_delete_count(self, repository):
        receipt_id = await repository.save_receipt({"vendor": "A"})
        await repository.update_receipt(receipt_id, {"category": "Games"})
        assert (await repository.list_receipts())[0]["category"] == "Games"
        assert await repository.count_receipts() == 1
        assert await repository.delete_receipt(receipt_id)
        assert await repository.count_receipts() == 0

    async def test_spending_by_category(self, repository):
        await repository.save_receipt({"category": "Food", "total": 0.1, "date": "2024-05-01"})
        await repository.save_receipt({"category": "Food", "total": 0.2, "date": "2024-06-01"})
        await repository.save_receipt({"total": 5, "date": "2024-06-02"})
        await repository.save_receipt({"category": "Food", "total": 100})

        assert await repository.spending_by_category() == {"Food": 100.3, "Uncategorized": 5.0}

        june = await repository.spending_by_category(
            start=datetime(2024, 6, 1, tzinfo=timezone.utc),
            end=datetime(2024, 6, 30, tzinfo=timezone.utc),
        )
        assert june == {"Food": 0.2, "Uncategorized": 5.0}

        by_day = await repository.spending_by_category(start=date(2024, 6, 2), end=date(2024, 6, 2))
        assert by_day == {"Uncategorized": 5.0}

    async def test_get_receipt(self, repository):
        receipt_id = await repository.save_receipt({"vendor": "A", "total": 1})
        receipt = await repository.get_receipt(receipt_id)
        assert receipt["id"] == receipt_id
        assert receipt["vendor"] == "A"
        assert await repository.get_receipt("missing") is None

    async def test_categories_seeded_once(self, repository, store):
        categories = await repository.get_categories()
        assert len(categories) == 8
        assert all(category["id"] for category in categories)

        again = await repository.get_categories()
        assert [c["name"] for c in again] == sorted(c["name"] for c in categories)
        assert await store.count_documents("categories") == 8

    async def test_category_crud(self, repository):
        category_id = await repository.add_category("Pets", icon="🐾")
        categories = await repository.get_categories()
        assert [c["name"] for c in categories] == ["Pets"]
        assert categories[0]["icon"] == "🐾"
        assert categories[0]["color"] == "#667eea"

        await repository.update_category(category_id, {"color": "#000000"})
        updated = (await repository.get_categories())[0]
        assert updated["color"] == "#000000"
        assert "updated_at" in updated

        assert await repository.delete_category(category_id)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
