"""Validation package."""

from receipt_sorter.validation.validator import REQUIRED_FIELDS, ReceiptValidator

__all__ = [
    "REQUIRED_FIELDS",
    "ReceiptValidator",
]
