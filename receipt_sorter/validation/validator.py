"""
Receipt Validation Gate

DESIGN DECISION: A receipt is accepted only if all four required fields
carry a truthy value: vendor, date, total, category.

"Missing" means absent, None, empty string, or any other falsy value.
That includes a numeric total of exactly 0, so a zero-value receipt is
rejected as if the total were absent. Deployments that want to accept
zero totals set APP_ALLOW_ZERO_TOTAL; nothing else about the rule changes.

The validator is pure. It never fixes data and never touches storage:
it reports which fields are missing, in a fixed order, and the ingestion
flow decides what to do with that.
"""

from typing import Any, Mapping, Optional

from receipt_sorter.config import get_settings
from receipt_sorter.models.receipt import ValidationResult


REQUIRED_FIELDS = ("vendor", "date", "total", "category")


class ReceiptValidator:
    """
    Checks a candidate receipt for its required fields.
    """

    def __init__(self, allow_zero_total: Optional[bool] = None):
        """
        Initialize validator.

        Args:
            allow_zero_total: Accept a numeric zero total.
                              If None, read from settings.
        """
        if allow_zero_total is None:
            allow_zero_total = get_settings().app.allow_zero_total
        self.allow_zero_total = allow_zero_total

    def _is_missing(self, field: str, value: Any) -> bool:
        if (
            field == "total"
            and self.allow_zero_total
            and isinstance(value, (int, float))
            and not isinstance(value, bool)
            and value == 0
        ):
            return False
        return not value

    def validate(self, record: Mapping[str, Any]) -> ValidationResult:
        """
        Validate a candidate receipt.

        Returns:
            ValidationResult with the missing field names in the order
            vendor, date, total, category.
        """
        missing = [
            field
            for field in REQUIRED_FIELDS
            if self._is_missing(field, record.get(field))
        ]
        return ValidationResult(is_valid=not missing, missing_fields=missing)
