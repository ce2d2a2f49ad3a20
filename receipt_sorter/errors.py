"""
Error taxonomy for Receipt Sorter.

ClientError     - bad or missing input. Reported verbatim, never retried.
                  RecordNotFoundError is the 404 case.
DependencyError - the store or the language model failed. Reported for
                  ingestion, absorbed into heuristic fallbacks for AI paths.

Data-quality problems (unparseable dates, non-numeric totals, thin AI
output) are NOT exceptions. They are normalised where they are found.
"""


class ReceiptSorterError(Exception):
    """Base exception for the service."""
    pass


class ClientError(ReceiptSorterError):
    """The caller sent invalid or incomplete input (4xx)."""
    pass


class EmptyInputError(ClientError):
    """A required array input was missing or empty."""

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"{field} array is required and must not be empty")


class InvalidPeriodError(ClientError):
    """Unknown reporting period."""

    def __init__(self, period: str):
        self.period = period
        super().__init__(
            f"Unknown period '{period}'. Use one of: all, month, quarter, year"
        )


class DependencyError(ReceiptSorterError):
    """An external collaborator (store, language model) failed."""

    def __init__(self, service: str, message: str):
        self.service = service
        super().__init__(f"{service}: {message}")


class RecordNotFoundError(ClientError):
    """A receipt or category id that does not exist (404)."""

    def __init__(self, kind: str, record_id: str):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"{kind.capitalize()} not found: {record_id}")
