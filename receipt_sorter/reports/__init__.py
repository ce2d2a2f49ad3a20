"""Reporting package - pure aggregation over receipt collections."""

from receipt_sorter.reports.analytics import (
    detect_anomalies,
    last_three_month_totals,
    monthly_totals,
    predict_next_month_spend,
)
from receipt_sorter.reports.summary import (
    CSV_HEADERS,
    as_label,
    filter_by_period,
    format_receipt_date,
    parse_receipt_date,
    summarize,
    to_csv,
    to_decimal,
)

__all__ = [
    "CSV_HEADERS",
    "as_label",
    "detect_anomalies",
    "filter_by_period",
    "format_receipt_date",
    "last_three_month_totals",
    "monthly_totals",
    "parse_receipt_date",
    "predict_next_month_spend",
    "summarize",
    "to_csv",
    "to_decimal",
]
