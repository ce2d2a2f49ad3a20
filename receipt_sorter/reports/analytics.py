"""
Spending Analytics

Small deterministic views used by the AI hub alongside the generated text:
- anomaly detection (receipts far above the average)
- next-month spend projection
- trailing three-month totals per category, the input of budget suggestions
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from dateutil.relativedelta import relativedelta

from receipt_sorter.models.reports import CategorySpend, SpendingAnomaly, SpendingForecast
from receipt_sorter.reports.summary import (
    UNCATEGORIZED,
    UNKNOWN_VENDOR,
    as_label,
    parse_receipt_date,
    to_decimal,
)


ANOMALY_FACTOR = 3
FORECAST_MONTHS = 3


def average_total(receipts: list[dict[str, Any]]) -> Decimal:
    if not receipts:
        return Decimal("0")
    return sum((to_decimal(r.get("total")) for r in receipts), Decimal("0")) / len(receipts)


def detect_anomalies(
    receipts: list[dict[str, Any]],
    factor: float = ANOMALY_FACTOR,
) -> tuple[list[SpendingAnomaly], float, float]:
    """
    Flag receipts whose total is strictly above `factor` times the average.

    Returns:
        (anomalies in input order, threshold, average)
    """
    average = average_total(receipts)
    threshold = average * Decimal(str(factor))

    anomalies = [
        SpendingAnomaly(
            id=receipt.get("id"),
            vendor=as_label(receipt.get("vendor"), UNKNOWN_VENDOR),
            total=float(to_decimal(receipt.get("total"))),
            date=receipt.get("date"),
        )
        for receipt in receipts
        if to_decimal(receipt.get("total")) > threshold
    ]
    return anomalies, float(threshold), float(average)


def monthly_totals(receipts: list[dict[str, Any]]) -> dict[str, Decimal]:
    """Spend per YYYY-MM over receipts with a parseable date."""
    totals: dict[str, Decimal] = {}
    for receipt in receipts:
        receipt_date = parse_receipt_date(receipt.get("date"))
        if receipt_date is None:
            continue
        month = f"{receipt_date:%Y-%m}"
        totals[month] = totals.get(month, Decimal("0")) + to_decimal(receipt.get("total"))
    return totals


def predict_next_month_spend(receipts: list[dict[str, Any]]) -> SpendingForecast:
    """
    Project next month's spend as the mean of the three most recent months
    that have any receipts.
    """
    totals = monthly_totals(receipts)
    recent = sorted(totals)[-FORECAST_MONTHS:]
    if not recent:
        return SpendingForecast(predicted_amount=0.0, months_used=[])

    mean = sum((totals[month] for month in recent), Decimal("0")) / len(recent)
    return SpendingForecast(
        predicted_amount=float(mean.quantize(Decimal("0.01"))),
        months_used=recent,
    )


def last_three_month_totals(
    receipts: list[dict[str, Any]],
    now: Optional[datetime] = None,
) -> list[CategorySpend]:
    """
    Spend per category over the current and the two previous calendar months.

    Categories appear in first-seen order.
    """
    now = now or datetime.now(timezone.utc)
    today = now.date() if isinstance(now, datetime) else now
    first_of_month = date(today.year, today.month, 1)
    months = {
        f"{first_of_month - relativedelta(months=offset):%Y-%m}"
        for offset in range(3)
    }

    totals: dict[str, Decimal] = {}
    for receipt in receipts:
        receipt_date = parse_receipt_date(receipt.get("date"))
        if receipt_date is None or f"{receipt_date:%Y-%m}" not in months:
            continue
        category = as_label(receipt.get("category"), UNCATEGORIZED)
        totals[category] = totals.get(category, Decimal("0")) + to_decimal(receipt.get("total"))

    return [
        CategorySpend(category=category, last_three_month_total=float(total))
        for category, total in totals.items()
    ]
