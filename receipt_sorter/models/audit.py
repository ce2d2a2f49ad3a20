"""
Audit Models for Receipt Sorter

Every significant action in the system is logged for audit purposes.
This provides:
1. Complete traceability of ingested receipts
2. Debugging information when the workflow sends bad data
3. Visibility into when AI paths fell back to heuristics

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Ingestion
    RECEIPT_RECEIVED = "receipt_received"
    UPSTREAM_ERROR_RECEIVED = "upstream_error_received"
    VALIDATION_FAILED = "validation_failed"
    RECEIPT_SAVED = "receipt_saved"
    SAVE_FAILED = "save_failed"

    # Maintenance
    RECEIPT_UPDATED = "receipt_updated"
    RECEIPT_DELETED = "receipt_deleted"

    # Reporting
    EXPORT_GENERATED = "export_generated"
    INSIGHTS_GENERATED = "insights_generated"
    BUDGET_SUGGESTED = "budget_suggested"
    ADVICE_GENERATED = "advice_generated"
    AI_FALLBACK_USED = "ai_fallback_used"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'receipt', 'export', 'insights')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Store ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate the events of one request"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_document(self) -> dict:
        """
        Convert to a document for the audit_log collection.

        The event id travels as a field; the store assigns its own document id.
        """
        document = self.to_log_dict()
        return {key: value for key, value in document.items() if value is not None}


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.receipt_saved(receipt_id, vendor, total, correlation_id)
    """

    @staticmethod
    def receipt_received(
        received_fields: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_RECEIVED,
            entity_type="receipt",
            correlation_id=correlation_id,
            description=f"Receipt payload received with {len(received_fields)} fields",
            details={"received_fields": received_fields},
        )

    @staticmethod
    def upstream_error(
        details: Any,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.UPSTREAM_ERROR_RECEIVED,
            severity=AuditSeverity.WARNING,
            entity_type="receipt",
            correlation_id=correlation_id,
            description="Workflow reported an extraction error",
            details={"upstream_error": details},
        )

    @staticmethod
    def validation_failed(
        missing_fields: list[str],
        received_fields: list[str],
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="receipt",
            correlation_id=correlation_id,
            description=f"Receipt rejected: missing {', '.join(missing_fields)}",
            details={
                "missing_fields": missing_fields,
                "received_fields": received_fields,
            },
        )

    @staticmethod
    def receipt_saved(
        receipt_id: str,
        vendor: str,
        total: Any,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_SAVED,
            entity_type="receipt",
            entity_id=receipt_id,
            correlation_id=correlation_id,
            description=f"Receipt saved: {vendor} - ${total}",
            details={
                "vendor": vendor,
                "total": str(total),
            },
        )

    @staticmethod
    def save_failed(
        error_message: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="receipt",
            correlation_id=correlation_id,
            description="Receipt could not be written to the store",
            error_message=error_message,
        )

    @staticmethod
    def receipt_updated(
        receipt_id: str,
        changed_fields: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_UPDATED,
            entity_type="receipt",
            entity_id=receipt_id,
            description=f"Receipt updated: {', '.join(changed_fields)}",
            details={"changed_fields": changed_fields},
        )

    @staticmethod
    def receipt_deleted(
        receipt_id: str,
        reason: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_DELETED,
            severity=AuditSeverity.WARNING,
            entity_type="receipt",
            entity_id=receipt_id,
            description=f"Receipt deleted: {reason}",
            details={"reason": reason},
        )

    @staticmethod
    def export_generated(
        export_type: str,
        receipts_count: int,
        period: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPORT_GENERATED,
            entity_type="export",
            correlation_id=correlation_id,
            description=f"{export_type.upper()} export generated for {receipts_count} receipts",
            details={
                "export_type": export_type,
                "receipts_count": receipts_count,
                "period": period,
            },
        )

    @staticmethod
    def generated(
        event_type: AuditEventType,
        provider: str,
        input_count: int,
        correlation_id: UUID,
    ) -> AuditEvent:
        """Insights, budget suggestions or advice were produced."""
        return AuditEvent(
            event_type=event_type,
            entity_type="report",
            correlation_id=correlation_id,
            description=f"{event_type.value.replace('_', ' ').capitalize()} by {provider}",
            details={
                "provider": provider,
                "input_count": input_count,
            },
        )

    @staticmethod
    def ai_fallback(
        operation: str,
        reason: str,
        correlation_id: UUID,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AI_FALLBACK_USED,
            severity=AuditSeverity.WARNING,
            entity_type="report",
            correlation_id=correlation_id,
            description=f"AI path for {operation} fell back to heuristics",
            details={
                "operation": operation,
                "reason": reason,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
