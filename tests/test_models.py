"""
Tests for Receipt Sorter models

Test strategy:
1. Unit tests for individual components (models, validators, engines)
2. Integration tests for flows (in-memory store, stub model clients)
3. No real API calls in tests
"""

from uuid import uuid4

import pytest

from receipt_sorter.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from receipt_sorter.models.receipt import (
    DEFAULT_CATEGORIES,
    Category,
    CategoryCreateRequest,
    CategoryUpdateRequest,
    IngestedReceiptEcho,
    IngestionResponse,
    Receipt,
    ReceiptItem,
    ReceiptStatus,
)
from receipt_sorter.models.reports import (
    BudgetRequest,
    CategorySpend,
    InsightResult,
    InsightsRequest,
    SavingAdviceRequest,
)


class TestReceiptModels:
    """Tests for receipt-related Pydantic models."""

    def test_receipt_creation(self):
        """Test Receipt model creation."""
        receipt = Receipt(
            vendor="Steam",
            date="2024-06-28",
            total=59.99,
            category="Games",
            items=[ReceiptItem(name="Elden Ring", price=59.99)],
        )
        assert receipt.vendor == "Steam"
        assert receipt.currency == "USD"
        assert receipt.status == ReceiptStatus.PROCESSED

    def test_receipt_strips_whitespace(self):
        """Test that whitespace is stripped from vendor name."""
        receipt = Receipt(vendor="  Netflix  ", total=15.99)
        assert receipt.vendor == "Netflix"

    def test_receipt_rejects_negative_total(self):
        """Test that negative totals are rejected."""
        with pytest.raises(ValueError):
            Receipt(vendor="Test", total=-1)

    def test_receipt_keeps_unknown_fields(self):
        """Workflow payloads may carry extra keys; they are kept."""
        receipt = Receipt(vendor="Spotify", total=9.99, store_number="42")
        assert receipt.to_document()["store_number"] == "42"

    def test_to_document_drops_id_and_none(self):
        receipt = Receipt(id="abc", vendor="Spotify", total=9.99)
        document = receipt.to_document()
        assert "id" not in document
        assert "tax" not in document
        assert document["status"] == "processed"

    def test_item_quantity_defaults_to_one(self):
        assert ReceiptItem(name="Burrito", price=9.25).quantity == 1


class TestCategoryModels:
    """Tests for categories."""

    def test_default_categories(self):
        names = [category["name"] for category in DEFAULT_CATEGORIES]
        assert names == [
            "Groceries",
            "Restaurants",
            "Gas",
            "Shopping",
            "Utilities",
            "Healthcare",
            "Entertainment",
            "Other",
        ]

    def test_category_defaults(self):
        category = Category(name="Pets")
        assert category.color == "#667eea"
        assert category.icon == "📄"
        assert category.created_at

    def test_category_requires_name(self):
        with pytest.raises(ValueError):
            Category(name="")

    def test_category_create_request_strips_name(self):
        assert CategoryCreateRequest(name="  Pets ").name == "Pets"
        with pytest.raises(ValueError):
            CategoryCreateRequest(name="   ")

    def test_category_update_request_omits_unset(self):
        request = CategoryUpdateRequest(color="#000000")
        assert request.model_dump(exclude_none=True) == {"color": "#000000"}


class TestIngestionResponse:
    """The ingestion response body only carries what the outcome needs."""

    def test_success_body(self):
        response = IngestionResponse(
            success=True,
            id="abc",
            message="Receipt stored",
            data=IngestedReceiptEcho(vendor="Chipotle", total=11.75, date="2024-06-25"),
        )
        assert response.to_body() == {
            "success": True,
            "id": "abc",
            "message": "Receipt stored",
            "data": {"vendor": "Chipotle", "total": 11.75, "date": "2024-06-25"},
        }

    def test_status_code_not_in_body(self):
        response = IngestionResponse(status_code=400, success=False, error="Missing required fields")
        body = response.to_body()
        assert "status_code" not in body
        assert response.status_code == 400


class TestReportRequests:
    """Request bodies accept the camelCase names the client sends."""

    def test_category_spend_alias(self):
        entry = CategorySpend.model_validate({"category": "Dining", "lastThreeMonthTotal": 300})
        assert entry.last_three_month_total == 300

    def test_category_spend_by_field_name(self):
        entry = CategorySpend(category="Dining", last_three_month_total=90)
        assert entry.last_three_month_total == 90

    def test_insights_request_alias(self):
        request = InsightsRequest.model_validate({"receipts": [{"vendor": "A"}], "maxInsights": 7})
        assert request.max_insights == 7

    def test_saving_advice_request_defaults(self):
        request = SavingAdviceRequest()
        assert request.receipts is None
        assert request.max_tips is None

    def test_budget_request_rejects_blank_category(self):
        with pytest.raises(ValueError):
            BudgetRequest.model_validate({"categories": [{"category": "", "lastThreeMonthTotal": 1}]})

    def test_fallback_reason_not_serialized(self):
        result = InsightResult(insights="- a", fallback=True, provider="heuristic", fallback_reason="timeout")
        assert "fallback_reason" not in result.model_dump()


class TestAuditModels:
    """Tests for audit models."""

    def test_audit_event_creation(self):
        """Test AuditEvent creation."""
        event = AuditEvent(
            event_type=AuditEventType.RECEIPT_RECEIVED,
            description="Test event",
        )
        assert event.event_type == AuditEventType.RECEIPT_RECEIVED
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        correlation_id = uuid4()
        event = AuditEvent(
            event_type=AuditEventType.RECEIPT_SAVED,
            description="Saved",
            correlation_id=correlation_id,
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "receipt_saved"
        assert log_dict["correlation_id"] == str(correlation_id)

    def test_audit_event_to_document_drops_none(self):
        event = AuditEvent(event_type=AuditEventType.SYSTEM_ERROR, description="Boom")
        document = event.to_document()
        assert "error_message" not in document
        assert "entity_id" not in document
        assert document["description"] == "Boom"

    def test_builder_validation_failed(self):
        """Test AuditEventBuilder for validation failures."""
        event = AuditEventBuilder.validation_failed(
            missing_fields=["vendor", "total"],
            received_fields=["date", "category"],
            correlation_id=uuid4(),
        )
        assert event.event_type == AuditEventType.VALIDATION_FAILED
        assert event.severity == AuditSeverity.WARNING
        assert event.details["missing_fields"] == ["vendor", "total"]
        assert "vendor, total" in event.description

    def test_builder_receipt_saved(self):
        event = AuditEventBuilder.receipt_saved(
            receipt_id="abc",
            vendor="Steam",
            total=59.99,
            correlation_id=uuid4(),
        )
        assert event.entity_id == "abc"
        assert event.details["total"] == "59.99"

    def test_builder_receipt_updated(self):
        event = AuditEventBuilder.receipt_updated(receipt_id="abc", changed_fields=["total", "vendor"])
        assert event.event_type == AuditEventType.RECEIPT_UPDATED
        assert event.entity_id == "abc"
        assert event.description == "Receipt updated: total, vendor"
        assert event.details == {"changed_fields": ["total", "vendor"]}

    def test_builder_generated(self):
        event = AuditEventBuilder.generated(
            event_type=AuditEventType.INSIGHTS_GENERATED,
            provider="heuristic",
            input_count=3,
            correlation_id=uuid4(),
        )
        assert event.description == "Insights generated by heuristic"
        assert event.details["input_count"] == 3


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
