"""
Summary Engine

Pure aggregation over an in-memory list of receipts:
- CSV projection for spreadsheet export
- Totals, category and month breakdowns, date-range bounds
- Period filtering (month / quarter / year / all)

DESIGN DECISION: Receipts arrive here as plain dicts exactly as they were
stored. Nothing in this module rejects a receipt. Bad data is normalised
where it is found:
- a missing or non-numeric total counts as 0
- an unparseable date is left out of date-based views
- a missing category is reported as "Uncategorized"
- categories and vendors that are not strings are rendered as text

Money is summed as Decimal so totals are exact and do not depend on the
order of the input. Results are converted to float at the boundary.

Period bounds are compared on parsed dates and rendered as ISO
YYYY-MM-DD, so string order and calendar order agree.
"""

import csv
import io
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional, Union

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from receipt_sorter.errors import InvalidPeriodError
from receipt_sorter.models.reports import (
    CategoryTotal,
    MonthTotal,
    ReportPeriod,
    ReportTotals,
    SpendingSummary,
)


CSV_HEADERS = [
    "Date",
    "Vendor",
    "Amount",
    "Currency",
    "Category",
    "Payment Method",
    "Tax",
    "Status",
]

UNCATEGORIZED = "Uncategorized"
UNKNOWN_VENDOR = "Unknown"

# Length of each bounded period, in calendar months
PERIOD_MONTHS = {
    "month": 1,
    "quarter": 3,
    "year": 12,
}


# =============================================================================
# NORMALISATION
# =============================================================================

def to_decimal(value: Any) -> Decimal:
    """Read a money amount. Anything that isn't a finite number is 0."""
    if value is None or isinstance(value, bool):
        return Decimal("0")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float)):
        amount = Decimal(str(value))
    elif isinstance(value, str):
        try:
            amount = Decimal(value.strip())
        except InvalidOperation:
            return Decimal("0")
    else:
        return Decimal("0")

    if not amount.is_finite():
        return Decimal("0")
    return amount


def parse_receipt_date(value: Any) -> Optional[date]:
    """
    Parse a receipt date leniently.

    Accepts date/datetime objects, ISO-8601 strings, free-form date strings,
    and timestamp mappings ({"seconds": ...} or {"_seconds": ...}).

    Returns:
        The calendar date, or None if the value can't be parsed
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        if isinstance(seconds, (int, float)) and not isinstance(seconds, bool):
            try:
                return datetime.fromtimestamp(seconds, tz=timezone.utc).date()
            except (OverflowError, OSError, ValueError):
                return None
        return None
    if not isinstance(value, str):
        return None

    text = value.strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return date_parser.parse(text).date()
    except (ValueError, OverflowError):
        return None


def format_receipt_date(value: Any) -> str:
    """Render a date for CSV as "Jun 28, 2024"."""
    if not value:
        return "Unknown Date"
    parsed = parse_receipt_date(value)
    if parsed is None:
        return "Invalid Date"
    return f"{parsed:%b} {parsed.day}, {parsed.year}"


def _csv_number(value: Any) -> Union[int, float]:
    amount = to_decimal(value)
    if amount == amount.to_integral_value():
        return int(amount)
    return float(amount)


def as_label(value: Any, default: str) -> str:
    """Text label for a category, vendor or other free-form field. Falsy means default."""
    return str(value) if value else default


# =============================================================================
# CSV
# =============================================================================

def to_csv(receipts: Iterable[dict[str, Any]]) -> str:
    """
    Render receipts as CSV, one row per receipt in input order.

    Text cells are always quoted (embedded quotes doubled), numbers are bare.
    Rows are joined by newlines with no trailing newline.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")

    for receipt in receipts:
        writer.writerow([
            format_receipt_date(receipt.get("date")),
            as_label(receipt.get("vendor"), UNKNOWN_VENDOR),
            _csv_number(receipt.get("total")),
            as_label(receipt.get("currency"), "USD"),
            as_label(receipt.get("category"), UNCATEGORIZED),
            as_label(receipt.get("payment_method"), "Unknown"),
            _csv_number(receipt.get("tax")),
            as_label(receipt.get("status"), "processed"),
        ])

    lines = [",".join(CSV_HEADERS)]
    body = buffer.getvalue()
    if body:
        lines.append(body.removesuffix("\n"))
    return "\n".join(lines)


# =============================================================================
# SUMMARY
# =============================================================================

def summarize(
    receipts: list[dict[str, Any]],
    now: Optional[datetime] = None,
) -> SpendingSummary:
    """
    Aggregate a receipt collection.

    The empty collection yields zero totals, empty breakdowns and an
    "N/A" period.
    """
    now = now or datetime.now(timezone.utc)

    amount = Decimal("0")
    by_category: dict[str, Decimal] = {}
    by_month: dict[str, Decimal] = {}
    dates: list[date] = []

    for receipt in receipts:
        total = to_decimal(receipt.get("total"))
        amount += total

        category = as_label(receipt.get("category"), UNCATEGORIZED)
        by_category[category] = by_category.get(category, Decimal("0")) + total

        receipt_date = parse_receipt_date(receipt.get("date"))
        if receipt_date is None:
            continue
        dates.append(receipt_date)
        month = f"{receipt_date:%Y-%m}"
        by_month[month] = by_month.get(month, Decimal("0")) + total

    count = len(receipts)
    average = amount / count if count else Decimal("0")

    # sorted() is stable, so equal amounts keep first-seen order
    category_totals = sorted(by_category.items(), key=lambda item: item[1], reverse=True)
    month_totals = sorted(by_month.items(), key=lambda item: item[0], reverse=True)

    period = ReportPeriod()
    if dates:
        period = ReportPeriod(start=min(dates).isoformat(), end=max(dates).isoformat())

    return SpendingSummary(
        report_generated=now.isoformat(),
        period=period,
        totals=ReportTotals(
            receipts=count,
            amount=float(amount),
            average=float(average),
        ),
        by_category=[
            CategoryTotal(category=category, amount=float(total))
            for category, total in category_totals
        ],
        by_month=[
            MonthTotal(month=month, amount=float(total))
            for month, total in month_totals
        ],
    )


# =============================================================================
# PERIOD FILTER
# =============================================================================

def period_start(period: str, today: date) -> date:
    """First day included in a bounded period ending today."""
    if period not in PERIOD_MONTHS:
        raise InvalidPeriodError(period)
    return today - relativedelta(months=PERIOD_MONTHS[period])


def filter_by_period(
    receipts: list[dict[str, Any]],
    period: str,
    now: Optional[datetime] = None,
) -> list[dict[str, Any]]:
    """
    Keep the receipts dated within the period.

    "all" returns the input unchanged. Bounded periods keep receipts whose
    date lies in [now - N months, now], compared by calendar date.
    Receipts without a parseable date are dropped.

    Raises:
        InvalidPeriodError: If the period name is unknown
    """
    if period == "all":
        return receipts

    now = now or datetime.now(timezone.utc)
    today = now.date() if isinstance(now, datetime) else now
    start = period_start(period, today)

    kept = []
    for receipt in receipts:
        receipt_date = parse_receipt_date(receipt.get("date"))
        if receipt_date is not None and start <= receipt_date <= today:
            kept.append(receipt)
    return kept
