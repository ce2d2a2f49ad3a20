"""
Reporting Models

Summary structures produced by the report engine, request bodies accepted
by the reporting endpoints, and the results of the AI-backed generators.

Request bodies keep the camelCase names the reporting client already sends
(`maxInsights`, `lastThreeMonthTotal`) as aliases.
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


ReportPeriodName = Literal["all", "month", "quarter", "year"]


# =============================================================================
# SUMMARY
# =============================================================================

class ReportPeriod(BaseModel):
    """Earliest and latest parseable receipt dates, or "N/A"."""

    start: str = "N/A"
    end: str = "N/A"


class ReportTotals(BaseModel):
    receipts: int = Field(ge=0)
    amount: float
    average: float


class CategoryTotal(BaseModel):
    category: str
    amount: float


class MonthTotal(BaseModel):
    month: str = Field(description="YYYY-MM")
    amount: float


class SpendingSummary(BaseModel):
    """
    Aggregate view over a receipt collection.

    `by_category` is sorted by descending amount, `by_month` by descending
    month key (most recent first).
    """

    report_generated: str
    period: ReportPeriod
    totals: ReportTotals
    by_category: list[CategoryTotal] = Field(default_factory=list)
    by_month: list[MonthTotal] = Field(default_factory=list)


# =============================================================================
# BUDGETS
# =============================================================================

class CategorySpend(BaseModel):
    """Trailing three-month spend for one category."""

    model_config = ConfigDict(populate_by_name=True)

    category: str = Field(..., min_length=1)
    last_three_month_total: float = Field(
        default=0.0,
        alias="lastThreeMonthTotal",
    )


class BudgetSuggestion(BaseModel):
    """One suggested monthly budget, in whole currency units."""

    category: str
    suggested_budget: int


# =============================================================================
# GENERATOR RESULTS
# =============================================================================

class InsightResult(BaseModel):
    insights: str
    fallback: bool = False
    provider: str
    fallback_reason: Optional[str] = Field(default=None, exclude=True)


class BudgetResult(BaseModel):
    suggestions: list[BudgetSuggestion] = Field(default_factory=list)
    fallback: bool = False
    provider: str
    fallback_reason: Optional[str] = Field(default=None, exclude=True)


class AdviceResult(BaseModel):
    advice: str
    fallback: bool = False
    provider: str
    fallback_reason: Optional[str] = Field(default=None, exclude=True)


# =============================================================================
# REQUEST BODIES
# =============================================================================

class CsvExportRequest(BaseModel):
    limit: int = Field(default=1000, ge=1)
    period: str = Field(default="all")


class SummaryExportRequest(BaseModel):
    limit: int = Field(default=1000, ge=1)


class InsightsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    receipts: Optional[list[dict[str, Any]]] = None
    max_insights: Optional[int] = Field(default=None, alias="maxInsights")


class BudgetRequest(BaseModel):
    categories: Optional[list[CategorySpend]] = None


class SavingAdviceRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    receipts: Optional[list[dict[str, Any]]] = None
    max_tips: Optional[int] = Field(default=None, alias="maxTips")


# =============================================================================
# ANALYTICS
# =============================================================================

class SpendingAnomaly(BaseModel):
    """A receipt whose total is far above the collection average."""

    id: Optional[str] = None
    vendor: str
    total: float
    date: Any = None


class SpendingForecast(BaseModel):
    predicted_amount: float
    months_used: list[str] = Field(default_factory=list)


# =============================================================================
# EXPORTS
# =============================================================================

class CsvExport(BaseModel):
    csv: str
    summary: SpendingSummary
    filename: str
    period: str
    receipts_count: int


class SummaryExport(BaseModel):
    summary: SpendingSummary
    filename: str
    receipts_count: int
