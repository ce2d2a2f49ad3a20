"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Complete traceability of what the workflow sent us
2. Debugging capability when a receipt is rejected
3. A record of when the AI paths fell back to heuristics

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
import sys
from typing import Any, Optional
from uuid import UUID, uuid4

import structlog

from receipt_sorter.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from receipt_sorter.models.receipt import AUDIT_COLLECTION
from receipt_sorter.services.storage import DocumentStoreInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(debug: bool = False) -> None:
    """
    Route stdlib logging (and therefore structlog) to stdout.

    Called once by each entry point (HTTP server, CLI).
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.DEBUG if debug else logging.INFO,
    )


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit_log collection of the document store, when one is attached
    """

    def __init__(
        self,
        store: Optional[DocumentStoreInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            store: Document store for persistence.
                   If None, only logs locally.
        """
        self._store = store
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to the store if available.

        Returns True if the store write succeeded (or no store configured).
        """
        # Always log locally
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._store is None:
            return True

        try:
            await self._store.add_document(AUDIT_COLLECTION, event.to_document())
            return True
        except Exception as e:
            # Audit persistence must never break the request it describes
            self._logger.error(
                "audit_storage_failed",
                error=str(e),
                event_id=str(event.event_id),
            )
            return False

    async def log_receipt_received(
        self,
        received_fields: list[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.receipt_received(
            received_fields=received_fields,
            correlation_id=correlation_id,
        ))

    async def log_upstream_error(
        self,
        details: Any,
        correlation_id: UUID,
    ) -> None:
        """Log an extraction error reported by the workflow."""
        await self.log(AuditEventBuilder.upstream_error(
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_validation_failed(
        self,
        missing_fields: list[str],
        received_fields: list[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.validation_failed(
            missing_fields=missing_fields,
            received_fields=received_fields,
            correlation_id=correlation_id,
        ))

    async def log_receipt_saved(
        self,
        receipt_id: str,
        vendor: str,
        total: Any,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.receipt_saved(
            receipt_id=receipt_id,
            vendor=vendor,
            total=total,
            correlation_id=correlation_id,
        ))

    async def log_save_failed(
        self,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.save_failed(
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_receipt_updated(self, receipt_id: str, changed_fields: list[str]) -> None:
        await self.log(AuditEventBuilder.receipt_updated(
            receipt_id=receipt_id,
            changed_fields=changed_fields,
        ))

    async def log_receipt_deleted(self, receipt_id: str, reason: str) -> None:
        await self.log(AuditEventBuilder.receipt_deleted(
            receipt_id=receipt_id,
            reason=reason,
        ))

    async def log_export_generated(
        self,
        export_type: str,
        receipts_count: int,
        period: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.export_generated(
            export_type=export_type,
            receipts_count=receipts_count,
            period=period,
            correlation_id=correlation_id,
        ))

    async def log_generated(
        self,
        event_type: AuditEventType,
        provider: str,
        input_count: int,
        correlation_id: UUID,
    ) -> None:
        """Log insights, budget suggestions or advice being produced."""
        await self.log(AuditEventBuilder.generated(
            event_type=event_type,
            provider=provider,
            input_count=input_count,
            correlation_id=correlation_id,
        ))

    async def log_ai_fallback(
        self,
        operation: str,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.ai_fallback(
            operation=operation,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of each request (e.g., a receipt arriving).
    Pass it through all subsequent operations.
    """
    return uuid4()
