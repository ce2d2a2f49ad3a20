"""
Core Data Models for Receipt Sorter

These models describe the canonical shape of the data flowing through the
system. Receipts travel through the core as JSON-shaped dicts (that is what
the upstream workflow sends and what the store returns), so the models
here are deliberately lenient: they document the shape and are used where
typed access helps, but aggregation never depends on them.

DESIGN DECISION: Required-field enforcement lives in the validator, not in
the model. The ingestion contract reports *which* fields are missing, and a
pydantic error would not preserve the falsy-means-missing rule.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
)


# =============================================================================
# COLLECTION NAMES
# =============================================================================

RECEIPTS_COLLECTION = "receipts"
CATEGORIES_COLLECTION = "categories"
AUDIT_COLLECTION = "audit_log"


# =============================================================================
# ENUMS
# =============================================================================

class ReceiptStatus(str, Enum):
    """
    Receipt processing status.

    Ingestion always sets PROCESSED. The other values exist for records
    written by other tooling.
    """
    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"


# =============================================================================
# RECEIPT
# =============================================================================

class ReceiptItem(BaseModel):
    """
    A single line on a receipt.

    No invariant ties the item prices to the receipt total.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="allow")

    name: str = Field(
        default="",
        max_length=200,
        description="Item description"
    )
    price: float = Field(
        default=0.0,
        description="Line price"
    )
    quantity: float = Field(
        default=1,
        ge=0,
        description="Quantity purchased"
    )


class Receipt(BaseModel):
    """
    A stored purchase receipt.

    `id` and `processed_at` are assigned server-side. A receipt is only
    ever created whole: there is no draft state visible to readers.
    """
    model_config = ConfigDict(str_strip_whitespace=True, extra="allow")

    id: Optional[str] = Field(
        default=None,
        description="Store-assigned identifier"
    )

    # Required at ingestion (checked by the validator)
    vendor: str = Field(
        default="",
        max_length=200,
        description="Vendor name"
    )
    date: Optional[str] = Field(
        default=None,
        description="Purchase date, ISO-8601 preferred"
    )
    total: float = Field(
        default=0.0,
        ge=0,
        description="Total paid, in `currency`"
    )
    category: str = Field(
        default="",
        description="Free-form category label"
    )

    # Optional fields
    currency: str = Field(default="USD", max_length=10)
    tax: Optional[float] = Field(default=None, ge=0)
    subtotal: Optional[float] = Field(default=None, ge=0)
    payment_method: Optional[str] = None
    items: list[ReceiptItem] = Field(default_factory=list)

    # Server-assigned
    processed_at: Optional[str] = None
    status: ReceiptStatus = ReceiptStatus.PROCESSED
    source: Optional[str] = None

    def to_document(self) -> dict[str, Any]:
        """Convert to the JSON-shaped dict stored in the receipts collection."""
        return self.model_dump(mode="json", exclude={"id"}, exclude_none=True)


# =============================================================================
# CATEGORIES
# =============================================================================

class Category(BaseModel):
    """A category label stored in the side collection."""

    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=100)
    color: str = "#667eea"
    icon: str = "📄"
    created_at: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )


class CategoryCreateRequest(BaseModel):
    """Body of POST /categories."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=100)
    color: Optional[str] = None
    icon: Optional[str] = None


class CategoryUpdateRequest(BaseModel):
    """Body of PATCH /categories/{id}. Omitted fields are left as they are."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    color: Optional[str] = None
    icon: Optional[str] = None


DEFAULT_CATEGORIES: list[dict[str, str]] = [
    {"name": "Groceries", "color": "#51cf66", "icon": "🛒"},
    {"name": "Restaurants", "color": "#fd7e14", "icon": "🍽️"},
    {"name": "Gas", "color": "#fa5252", "icon": "⛽"},
    {"name": "Shopping", "color": "#e64980", "icon": "🛍️"},
    {"name": "Utilities", "color": "#339af0", "icon": "⚡"},
    {"name": "Healthcare", "color": "#37b24d", "icon": "🏥"},
    {"name": "Entertainment", "color": "#ae3ec9", "icon": "🎬"},
    {"name": "Other", "color": "#868e96", "icon": "📄"},
]


# =============================================================================
# VALIDATION
# =============================================================================

class ValidationResult(BaseModel):
    """
    Outcome of the required-field check.

    Either valid, or carrying the exact list of missing field names.
    """

    is_valid: bool
    missing_fields: list[str] = Field(default_factory=list)


# =============================================================================
# INGESTION BOUNDARY
# =============================================================================

class IngestedReceiptEcho(BaseModel):
    """Subset of the stored receipt echoed back to the workflow."""

    vendor: Any = None
    total: Any = None
    date: Any = None


class IngestionResponse(BaseModel):
    """
    Response of the ingestion endpoint.

    Only the fields relevant to the outcome are populated; the HTTP layer
    drops the rest with `exclude_none`.
    """

    status_code: int = Field(default=200, exclude=True)

    success: bool
    id: Optional[str] = None
    message: Optional[str] = None
    data: Optional[IngestedReceiptEcho] = None

    error: Optional[str] = None
    details: Any = None
    missing_fields: Optional[list[str]] = None
    received_fields: Optional[list[str]] = None
    timestamp: Optional[str] = None

    def to_body(self) -> dict[str, Any]:
        """JSON body for the HTTP response."""
        return self.model_dump(mode="json", exclude_none=True)
