"""
Data Models Package

This package contains the Pydantic models used in Receipt Sorter.
"""

from receipt_sorter.models.receipt import (
    AUDIT_COLLECTION,
    CATEGORIES_COLLECTION,
    DEFAULT_CATEGORIES,
    RECEIPTS_COLLECTION,
    Category,
    CategoryCreateRequest,
    CategoryUpdateRequest,
    IngestedReceiptEcho,
    IngestionResponse,
    Receipt,
    ReceiptItem,
    ReceiptStatus,
    ValidationResult,
)
from receipt_sorter.models.reports import (
    AdviceResult,
    BudgetRequest,
    BudgetResult,
    BudgetSuggestion,
    CategorySpend,
    CategoryTotal,
    CsvExport,
    CsvExportRequest,
    InsightResult,
    InsightsRequest,
    MonthTotal,
    ReportPeriod,
    ReportTotals,
    SavingAdviceRequest,
    SpendingAnomaly,
    SpendingForecast,
    SpendingSummary,
    SummaryExport,
    SummaryExportRequest,
)
from receipt_sorter.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Receipt models
    "AUDIT_COLLECTION",
    "CATEGORIES_COLLECTION",
    "DEFAULT_CATEGORIES",
    "RECEIPTS_COLLECTION",
    "Category",
    "CategoryCreateRequest",
    "CategoryUpdateRequest",
    "IngestedReceiptEcho",
    "IngestionResponse",
    "Receipt",
    "ReceiptItem",
    "ReceiptStatus",
    "ValidationResult",
    # Report models
    "AdviceResult",
    "BudgetRequest",
    "BudgetResult",
    "BudgetSuggestion",
    "CategorySpend",
    "CategoryTotal",
    "CsvExport",
    "CsvExportRequest",
    "InsightResult",
    "InsightsRequest",
    "MonthTotal",
    "ReportPeriod",
    "ReportTotals",
    "SavingAdviceRequest",
    "SpendingAnomaly",
    "SpendingForecast",
    "SpendingSummary",
    "SummaryExport",
    "SummaryExportRequest",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
