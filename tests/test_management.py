"""
Tests for receipt and category management: edits, deletes, categories.
"""

from datetime import date

import pytest

from receipt_sorter.errors import ClientError, DependencyError, RecordNotFoundError
from receipt_sorter.orchestrator import ReceiptManagementFlow
from receipt_sorter.services.storage import ReceiptRepository


@pytest.fixture()
def management(repository, audit_logger):
    return ReceiptManagementFlow(repository=repository, audit_logger=audit_logger)


@pytest.fixture()
async def stored_id(repository, valid_payload):
    return await repository.save_receipt(dict(valid_payload))


class TestEditReceipt:
    """Edits are checked before anything is written."""

    async def test_edit_merges_and_persists(self, management, repository, stored_id):
        receipt = await management.edit_receipt(stored_id, {"total": "12.5", "category": "Lunch"})
        assert receipt["total"] == 12.5
        assert receipt["category"] == "Lunch"
        assert receipt["vendor"] == "Chipotle"

        stored = await repository.get_receipt(stored_id)
        assert stored["total"] == 12.5
        assert stored["payment_method"] == "Visa"

    async def test_non_editable_fields_ignored(self, management, repository, stored_id):
        await management.edit_receipt(stored_id, {"vendor": "Qdoba", "status": "failed", "id": "x"})
        stored = await repository.get_receipt(stored_id)
        assert stored["vendor"] == "Qdoba"
        assert "status" not in stored

    async def test_nothing_to_edit(self, management, stored_id):
        with pytest.raises(ClientError, match="Nothing to update"):
            await management.edit_receipt(stored_id, {"status": "failed"})

    async def test_unknown_receipt(self, management):
        with pytest.raises(RecordNotFoundError) as exc_info:
            await management.edit_receipt("missing", {"total": 1})
        assert str(exc_info.value) == "Receipt not found: missing"

    @pytest.mark.parametrize("changes, message", [
        ({"total": -3}, "total"),
        ({"total": "abc"}, "total"),
        ({"category": 5}, "category"),
        ({"items": [{"price": 1}]}, "items.0.name"),
    ])
    async def test_wrong_shape_rejected(self, management, repository, stored_id, changes, message):
        with pytest.raises(ClientError, match=message):
            await management.edit_receipt(stored_id, changes)
        assert (await repository.get_receipt(stored_id))["total"] == 11.75

    async def test_blanking_required_field_rejected(self, management, stored_id):
        with pytest.raises(ClientError, match="Missing required fields: date, total"):
            await management.edit_receipt(stored_id, {"date": "", "total": 0})

    async def test_items_normalised(self, management, stored_id):
        receipt = await management.edit_receipt(stored_id, {"items": [{"name": "Taco", "price": 3}]})
        assert receipt["items"] == [{"name": "Taco", "price": 3.0, "quantity": 1.0}]

    async def test_edit_audited(self, management, store, stored_id):
        await management.edit_receipt(stored_id, {"vendor": "Qdoba", "total": 9})
        events = await store.get_documents("audit_log")
        updated = [e for e in events if e["event_type"] == "receipt_updated"]
        assert len(updated) == 1
        assert updated[0]["entity_id"] == stored_id
        assert updated[0]["details"]["changed_fields"] == ["total", "vendor"]


class TestDeleteReceipt:
    """Deletes are audited; unknown ids are reported."""

    async def test_delete(self, management, repository, store, stored_id):
        await management.delete_receipt(stored_id)
        assert await repository.count_receipts() == 0
        events = await store.get_documents("audit_log")
        assert any(
            e["event_type"] == "receipt_deleted" and e["details"]["reason"] == "deleted by user"
            for e in events
        )

    async def test_delete_unknown(self, management):
        with pytest.raises(RecordNotFoundError):
            await management.delete_receipt("missing")


class TestListingAndSpending:
    """Read paths used by the dashboard and the CLI."""

    async def test_list_by_category_with_limit(self, management, repository):
        for vendor in ("A", "B", "C"):
            await repository.save_receipt({"vendor": vendor, "category": "Games"})
        await repository.save_receipt({"vendor": "D", "category": "Food"})

        assert len(await management.list_receipts()) == 4
        assert len(await management.list_receipts(category="Games")) == 3
        assert len(await management.list_receipts(category="Games", limit=2)) == 2

    async def test_spending_between_dates(self, management, repository):
        await repository.save_receipt({"category": "Food", "total": 4, "date": "2024-06-10"})
        await repository.save_receipt({"category": 7, "total": 6, "date": "2024-06-11"})
        await repository.save_receipt({"category": "Food", "total": 50, "date": "2024-07-01"})

        spending = await management.spending_by_category(date(2024, 6, 1), date(2024, 6, 30))
        assert spending == {"Food": 4.0, "7": 6.0}

    async def test_reversed_range_rejected(self, management):
        with pytest.raises(ClientError):
            await management.spending_by_category(date(2024, 7, 1), date(2024, 6, 1))

    async def test_store_failure_is_dependency_error(self, failing_store, audit_logger):
        flow = ReceiptManagementFlow(ReceiptRepository(failing_store), audit_logger=audit_logger)
        with pytest.raises(DependencyError):
            await flow.list_receipts()


class TestCategories:
    """Category names are unique ignoring case."""

    async def test_add_category(self, management):
        category_id = await management.add_category("  Pets ", color="#fab005", icon="🐾")
        pets = [c for c in await management.list_categories() if c["id"] == category_id]
        assert pets[0]["name"] == "Pets"
        assert pets[0]["color"] == "#fab005"

    @pytest.mark.parametrize("name", ["", "   ", "groceries", "GAS"])
    async def test_invalid_names_rejected(self, management, name):
        with pytest.raises(ClientError):
            await management.add_category(name)

    async def test_update_category(self, management):
        category_id = await management.add_category("Pets")
        await management.update_category(category_id, {"name": " Animals ", "color": None, "extra": 1})
        animals = [c for c in await management.list_categories() if c["id"] == category_id]
        assert animals[0]["name"] == "Animals"
        assert animals[0]["color"] == "#667eea"

    async def test_update_needs_a_field(self, management):
        category_id = await management.add_category("Pets")
        with pytest.raises(ClientError):
            await management.update_category(category_id, {"color": None})
        with pytest.raises(ClientError):
            await management.update_category(category_id, {"name": "  "})

    async def test_update_unknown_category(self, management):
        with pytest.raises(RecordNotFoundError, match="Category not found: missing"):
            await management.update_category("missing", {"name": "X"})

    async def test_delete_category(self, management):
        category_id = await management.add_category("Pets")
        await management.delete_category(category_id)
        assert category_id not in [c["id"] for c in await management.list_categories()]
        with pytest.raises(RecordNotFoundError):
            await management.delete_category(category_id)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
