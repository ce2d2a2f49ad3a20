"""
Main Orchestrator for Receipt Sorter

This module ties together all the components and defines the
end-to-end flows for:
1. Ingestion (workflow payload → validate → stamp → store)
2. Reporting (store → summary / CSV / analytics)
3. Advice (receipts → insights, budget suggestions, saving tips)
4. Management (edit or delete receipts, maintain categories)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing is written unless all required fields are present
- Ingestion is not idempotent: every accepted payload becomes a new receipt
- AI failures never surface as errors, only as `fallback=True`
- Every step is audited

The HTTP layer and the dashboard only translate requests and responses;
all decisions are made here.
"""

from datetime import date, datetime, timezone
from typing import Any, Awaitable, Mapping, NamedTuple, Optional, TypeVar, Union
from uuid import UUID

import structlog
from pydantic import ValidationError

from receipt_sorter.agents import BudgetAdvisor, InsightEngine, create_text_client
from receipt_sorter.agents.llm import TextGenerationClient
from receipt_sorter.audit import AuditLogger, create_correlation_id
from receipt_sorter.config import get_settings
from receipt_sorter.errors import (
    ClientError,
    DependencyError,
    InvalidPeriodError,
    RecordNotFoundError,
)
from receipt_sorter.models.audit import AuditEventType
from receipt_sorter.models.receipt import (
    IngestedReceiptEcho,
    IngestionResponse,
    Receipt,
    ReceiptStatus,
)
from receipt_sorter.models.reports import (
    AdviceResult,
    BudgetResult,
    CategorySpend,
    CsvExport,
    InsightResult,
    SpendingAnomaly,
    SpendingForecast,
    SummaryExport,
)
from receipt_sorter.reports import (
    detect_anomalies,
    filter_by_period,
    last_three_month_totals,
    predict_next_month_spend,
    summarize,
    to_csv,
)
from receipt_sorter.reports.summary import PERIOD_MONTHS, parse_receipt_date
from receipt_sorter.services.storage import (
    DocumentStoreInterface,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
    InMemoryDocumentStore,
    NotFoundError,
    ReceiptRepository,
)
from receipt_sorter.validation import ReceiptValidator


logger = structlog.get_logger(__name__)

T = TypeVar("T")


UPSTREAM_ERROR_MESSAGE = "Invalid receipt data received from workflow"
MISSING_FIELDS_MESSAGE = "Missing required fields"
STORED_MESSAGE = "Receipt stored"


class ReceiptIngestionFlow:
    """
    Orchestrates receipt ingestion.

    Flow:
    1. Receive → Record which fields arrived
    2. Upstream check → Reject payloads the workflow marked as failed
    3. Validate → All of vendor, date, total, category must be truthy
    4. Stamp → Server-side id, processed_at, status, source
    5. Save → One document write

    Failures at steps 2-3 are client errors (400) and write nothing.
    A failed write at step 5 is reported (500) and not retried here;
    the workflow owns retry policy.
    """

    def __init__(
        self,
        repository: ReceiptRepository,
        validator: Optional[ReceiptValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        source: Optional[str] = None,
    ):
        self._repository = repository
        self._validator = validator or ReceiptValidator()
        self._audit = audit_logger or AuditLogger()
        self._source = source or get_settings().app.ingestion_source

    async def ingest(
        self,
        payload: Mapping[str, Any],
        correlation_id: Optional[UUID] = None,
    ) -> IngestionResponse:
        """
        Ingest one receipt payload from the workflow.

        Returns:
            IngestionResponse carrying the HTTP status to use
        """
        correlation_id = correlation_id or create_correlation_id()
        received_fields = list(payload.keys())
        await self._audit.log_receipt_received(received_fields, correlation_id)

        # Step 1: The workflow reports extraction failures in-band
        if payload.get("error"):
            await self._audit.log_upstream_error(payload.get("error"), correlation_id)
            return IngestionResponse(
                status_code=400,
                success=False,
                error=UPSTREAM_ERROR_MESSAGE,
                details=payload.get("error"),
            )

        # Step 2: Required fields
        validation = self._validator.validate(payload)
        if not validation.is_valid:
            await self._audit.log_validation_failed(
                missing_fields=validation.missing_fields,
                received_fields=received_fields,
                correlation_id=correlation_id,
            )
            return IngestionResponse(
                status_code=400,
                success=False,
                error=MISSING_FIELDS_MESSAGE,
                missing_fields=validation.missing_fields,
                received_fields=received_fields,
            )

        # Step 3: Server-assigned fields always win
        document = dict(payload)
        document.pop("id", None)
        document["processed_at"] = datetime.now(timezone.utc).isoformat()
        document["status"] = ReceiptStatus.PROCESSED.value
        document["source"] = self._source

        # Step 4: Persist
        try:
            receipt_id = await self._repository.save_receipt(document)
        except Exception as e:
            await self._audit.log_save_failed(str(e), correlation_id)
            return IngestionResponse(
                status_code=500,
                success=False,
                error=str(e),
                timestamp=datetime.now(timezone.utc).isoformat(),
            )

        await self._audit.log_receipt_saved(
            receipt_id=receipt_id,
            vendor=document.get("vendor"),
            total=document.get("total"),
            correlation_id=correlation_id,
        )

        return IngestionResponse(
            success=True,
            id=receipt_id,
            message=STORED_MESSAGE,
            data=IngestedReceiptEcho(
                vendor=document.get("vendor"),
                total=document.get("total"),
                date=document.get("date"),
            ),
        )


class ReportingFlow:
    """
    Orchestrates every read-side operation.

    Exports and analytics read from the repository. Insight, budget and
    advice generation take their input from the caller, which is how the
    reporting client works: it sends the receipts it already has.
    """

    def __init__(
        self,
        repository: ReceiptRepository,
        insight_engine: Optional[InsightEngine] = None,
        budget_advisor: Optional[BudgetAdvisor] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._repository = repository
        self._insights = insight_engine or InsightEngine()
        self._budget = budget_advisor or BudgetAdvisor()
        self._audit = audit_logger or AuditLogger()
        self._default_limit = get_settings().app.export_default_limit

    async def _load_receipts(self, limit: Optional[int]) -> list[dict[str, Any]]:
        try:
            return await self._repository.list_receipts(limit or self._default_limit)
        except Exception as e:
            await self._audit.log_external_service_error("store", str(e))
            raise DependencyError("store", str(e)) from e

    # =========================================================================
    # EXPORTS
    # =========================================================================

    async def export_csv(
        self,
        limit: Optional[int] = None,
        period: str = "all",
        now: Optional[datetime] = None,
    ) -> Optional[CsvExport]:
        """
        CSV export of the most recent receipts, filtered by period.

        Returns:
            The export, or None if the store holds no receipts

        Raises:
            InvalidPeriodError: If the period name is unknown
            DependencyError: If the store can't be read
        """
        if period != "all" and period not in PERIOD_MONTHS:
            raise InvalidPeriodError(period)

        now = now or datetime.now(timezone.utc)
        receipts = await self._load_receipts(limit)
        if not receipts:
            return None

        filtered = filter_by_period(receipts, period, now=now)
        correlation_id = create_correlation_id()
        await self._audit.log_export_generated("csv", len(filtered), period, correlation_id)

        return CsvExport(
            csv=to_csv(filtered),
            summary=summarize(filtered, now=now),
            filename=f"receipts-export-{now:%Y-%m-%d}.csv",
            period=period,
            receipts_count=len(filtered),
        )

    async def export_summary(
        self,
        limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> Optional[SummaryExport]:
        """
        JSON summary of the most recent receipts.

        Returns:
            The export, or None if the store holds no receipts
        """
        now = now or datetime.now(timezone.utc)
        receipts = await self._load_receipts(limit)
        if not receipts:
            return None

        correlation_id = create_correlation_id()
        await self._audit.log_export_generated("summary", len(receipts), "all", correlation_id)

        return SummaryExport(
            summary=summarize(receipts, now=now),
            filename=f"receipts-summary-{now:%Y-%m-%d}.json",
            receipts_count=len(receipts),
        )

    # =========================================================================
    # AI-BACKED GENERATORS
    # =========================================================================

    async def _record_generation(
        self,
        event_type: AuditEventType,
        operation: str,
        result: Any,
        input_count: int,
    ) -> None:
        correlation_id = create_correlation_id()
        if result.fallback:
            await self._audit.log_ai_fallback(
                operation=operation,
                reason=result.fallback_reason or "unknown",
                correlation_id=correlation_id,
            )
        await self._audit.log_generated(
            event_type=event_type,
            provider=result.provider,
            input_count=input_count,
            correlation_id=correlation_id,
        )

    async def generate_insights(
        self,
        receipts: Optional[list[dict[str, Any]]],
        max_insights: Optional[int] = None,
    ) -> InsightResult:
        result = await self._insights.generate(receipts, max_insights)
        await self._record_generation(
            AuditEventType.INSIGHTS_GENERATED, "insights", result, len(receipts or [])
        )
        return result

    async def suggest_budgets(
        self,
        categories: Optional[list[Any]],
    ) -> BudgetResult:
        result = await self._budget.suggest_budgets(categories)
        await self._record_generation(
            AuditEventType.BUDGET_SUGGESTED, "budget", result, len(categories or [])
        )
        return result

    async def saving_advice(
        self,
        receipts: Optional[list[dict[str, Any]]],
        max_tips: Optional[int] = None,
    ) -> AdviceResult:
        result = await self._budget.saving_advice(receipts, max_tips)
        await self._record_generation(
            AuditEventType.ADVICE_GENERATED, "saving_advice", result, len(receipts or [])
        )
        return result

    # =========================================================================
    # STORE-BACKED VIEWS
    # =========================================================================

    async def list_receipts(self, limit: Optional[int] = None) -> list[dict[str, Any]]:
        return await self._load_receipts(limit)

    async def anomalies(
        self,
        limit: Optional[int] = None,
    ) -> tuple[list[SpendingAnomaly], float, float]:
        """Receipts above 3x the average, with the threshold and average used."""
        return detect_anomalies(await self._load_receipts(limit))

    async def prediction(self, limit: Optional[int] = None) -> SpendingForecast:
        return predict_next_month_spend(await self._load_receipts(limit))

    async def budget_inputs(
        self,
        limit: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> list[CategorySpend]:
        """Per-category spend over the last three calendar months."""
        return last_three_month_totals(await self._load_receipts(limit), now=now)

    async def categories(self) -> list[dict[str, Any]]:
        try:
            return await self._repository.get_categories()
        except Exception as e:
            await self._audit.log_external_service_error("store", str(e))
            raise DependencyError("store", str(e)) from e


class ReceiptManagementFlow:
    """
    Orchestrates edits to stored receipts and categories.

    Used by the dashboard, the maintenance CLI and the management routes.
    Edits are checked against the receipt model and the required-field
    rule before anything is written, so an edit can never leave a receipt
    that ingestion would have rejected.
    """

    EDITABLE_FIELDS = (
        "vendor",
        "date",
        "total",
        "category",
        "currency",
        "tax",
        "subtotal",
        "payment_method",
        "items",
    )
    CATEGORY_FIELDS = ("name", "color", "icon")

    def __init__(
        self,
        repository: ReceiptRepository,
        validator: Optional[ReceiptValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._repository = repository
        self._validator = validator or ReceiptValidator()
        self._audit = audit_logger or AuditLogger()

    async def _store_call(self, kind: str, record_id: Optional[str], call: Awaitable[T]) -> T:
        try:
            return await call
        except NotFoundError as e:
            raise RecordNotFoundError(kind, record_id or "") from e
        except Exception as e:
            await self._audit.log_external_service_error("store", str(e))
            raise DependencyError("store", str(e)) from e

    # =========================================================================
    # RECEIPTS
    # =========================================================================

    async def list_receipts(
        self,
        category: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        if category:
            receipts = await self._store_call(
                "receipt", None, self._repository.list_receipts_by_category(category)
            )
            return receipts[:limit] if limit else receipts
        return await self._store_call("receipt", None, self._repository.list_receipts(limit))

    async def edit_receipt(self, receipt_id: str, changes: Mapping[str, Any]) -> dict[str, Any]:
        """
        Apply user edits to a stored receipt.

        Returns:
            The receipt as stored after the edit

        Raises:
            ClientError: No editable field given, a value of the wrong shape,
                or the edit would blank a required field
            RecordNotFoundError: Unknown receipt id
            DependencyError: If the store can't be read or written
        """
        updates = {key: value for key, value in changes.items() if key in self.EDITABLE_FIELDS}
        if not updates:
            raise ClientError(
                f"Nothing to update. Editable fields: {', '.join(self.EDITABLE_FIELDS)}"
            )

        current = await self._store_call("receipt", receipt_id, self._repository.get_receipt(receipt_id))
        if current is None:
            raise RecordNotFoundError("receipt", receipt_id)

        try:
            checked = Receipt.model_validate(updates)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in e.errors()
            )
            raise ClientError(f"Invalid receipt fields: {problems}") from e
        updates = checked.model_dump(mode="json", include=set(updates))

        merged = {**current, **updates}
        validation = self._validator.validate(merged)
        if not validation.is_valid:
            raise ClientError(
                f"{MISSING_FIELDS_MESSAGE}: {', '.join(validation.missing_fields)}"
            )

        await self._store_call(
            "receipt", receipt_id, self._repository.update_receipt(receipt_id, updates)
        )
        await self._audit.log_receipt_updated(receipt_id, sorted(updates))
        return merged

    async def delete_receipt(self, receipt_id: str, reason: str = "deleted by user") -> None:
        deleted = await self._store_call(
            "receipt", receipt_id, self._repository.delete_receipt(receipt_id)
        )
        if not deleted:
            raise RecordNotFoundError("receipt", receipt_id)
        await self._audit.log_receipt_deleted(receipt_id=receipt_id, reason=reason)

    async def spending_by_category(
        self,
        start: Optional[Union[date, datetime]] = None,
        end: Optional[Union[date, datetime]] = None,
    ) -> dict[str, float]:
        """Total spend per category between two dates, both inclusive."""
        if start and end and parse_receipt_date(start) > parse_receipt_date(end):
            raise ClientError("start must not be after end")
        return await self._store_call(
            "receipt", None, self._repository.spending_by_category(start, end)
        )

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    async def list_categories(self) -> list[dict[str, Any]]:
        return await self._store_call("category", None, self._repository.get_categories())

    async def add_category(
        self,
        name: str,
        color: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> str:
        """
        Add a category. Names are unique, ignoring case.

        Returns:
            The new category's ID
        """
        name = (name or "").strip()
        if not name:
            raise ClientError("Category name is required")
        existing = await self.list_categories()
        if any(str(category.get("name", "")).lower() == name.lower() for category in existing):
            raise ClientError(f"Category already exists: {name}")

        category_id = await self._store_call(
            "category", None, self._repository.add_category(name, color=color, icon=icon)
        )
        logger.info("category_added", category_id=category_id, name=name)
        return category_id

    async def update_category(self, category_id: str, changes: Mapping[str, Any]) -> None:
        updates = {
            key: value for key, value in changes.items()
            if key in self.CATEGORY_FIELDS and value is not None
        }
        if not updates:
            raise ClientError("Nothing to update. Editable fields: name, color, icon")
        if "name" in updates:
            updates["name"] = str(updates["name"]).strip()
            if not updates["name"]:
                raise ClientError("Category name is required")

        await self._store_call(
            "category", category_id, self._repository.update_category(category_id, updates)
        )
        logger.info("category_updated", category_id=category_id, fields=sorted(updates))

    async def delete_category(self, category_id: str) -> None:
        """Remove a category label. Receipts already filed under it keep the label."""
        deleted = await self._store_call(
            "category", category_id, self._repository.delete_category(category_id)
        )
        if not deleted:
            raise RecordNotFoundError("category", category_id)
        logger.info("category_deleted", category_id=category_id)


class AppComponents(NamedTuple):
    ingestion_flow: ReceiptIngestionFlow
    reporting_flow: ReportingFlow
    management_flow: ReceiptManagementFlow
    repository: ReceiptRepository
    audit_logger: AuditLogger
    storage_backend: str


def create_app_components(
    use_storage: bool = True,
    store: Optional[DocumentStoreInterface] = None,
    text_client: Optional[TextGenerationClient] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False to run on the in-memory store.
        store: Explicit document store (tests). Overrides use_storage.
        text_client: Explicit language model client (tests).
                    If None, built from settings (None when no API key).

    Returns:
        AppComponents
    """
    backend = "custom"
    if store is None:
        store = InMemoryDocumentStore()
        backend = "memory"
        if use_storage:
            try:
                store = GoogleSheetsDocumentStore(GoogleSheetsClient())
                backend = "google_sheets"
            except Exception as e:
                # Storage not configured - continue with in-memory store
                logger.warning("storage_not_configured", error=str(e))

    if text_client is None:
        text_client = create_text_client()

    repository = ReceiptRepository(store)
    audit_logger = AuditLogger(store)

    ingestion_flow = ReceiptIngestionFlow(
        repository=repository,
        audit_logger=audit_logger,
    )
    reporting_flow = ReportingFlow(
        repository=repository,
        insight_engine=InsightEngine.from_client(text_client),
        budget_advisor=BudgetAdvisor(text_client),
        audit_logger=audit_logger,
    )
    management_flow = ReceiptManagementFlow(
        repository=repository,
        audit_logger=audit_logger,
    )

    return AppComponents(
        ingestion_flow=ingestion_flow,
        reporting_flow=reporting_flow,
        management_flow=management_flow,
        repository=repository,
        audit_logger=audit_logger,
        storage_backend=backend,
    )
