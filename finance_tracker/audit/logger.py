"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Complete traceability of a user's ledger
2. Debugging capability
3. A record of every confirmed destructive action

The audit logger:
- Is async to not block main flow
- Gracefully handles storage failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from finance_tracker.models.audit import AuditEvent, AuditEventBuilder
from finance_tracker.services.storage import AuditStorageInterface


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
    """Route stdlib logging (and therefore structlog) to stderr."""
    logging.basicConfig(
        format="%(message)s",
        level=logging.DEBUG if debug else logging.INFO,
    )


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An audit storage backend, if one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_session_changed(
        self,
        previous_owner: Optional[str],
        owner: Optional[str],
    ) -> None:
        await self.log(AuditEventBuilder.session_changed(previous_owner, owner))

    async def log_transactions_loaded(self, owner: Optional[str], count: int) -> None:
        await self.log(AuditEventBuilder.transactions_loaded(owner, count))

    async def log_stale_load_discarded(
        self,
        owner: Optional[str],
        sequence: int,
        latest: int,
    ) -> None:
        await self.log(AuditEventBuilder.stale_load_discarded(owner, sequence, latest))

    async def log_validation_failed(
        self,
        operation: str,
        issues: list[dict],
        owner: Optional[str] = None,
    ) -> None:
        """Log validation failure."""
        await self.log(AuditEventBuilder.validation_failed(operation, issues, owner))

    async def log_attachment_uploaded(
        self,
        filename: str,
        size_bytes: int,
        url: str,
        owner: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.attachment_uploaded(
            filename=filename,
            size_bytes=size_bytes,
            url=url,
            owner=owner,
            correlation_id=correlation_id,
        ))

    async def log_upload_failed(
        self,
        filename: str,
        error_message: str,
        owner: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.upload_failed(
            filename=filename,
            error_message=error_message,
            owner=owner,
            correlation_id=correlation_id,
        ))

    async def log_transaction_added(
        self,
        transaction_id: str,
        owner: str,
        text: str,
        amount: str,
        has_attachment: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log transaction save."""
        await self.log(AuditEventBuilder.transaction_added(
            transaction_id=transaction_id,
            owner=owner,
            text=text,
            amount=amount,
            has_attachment=has_attachment,
            correlation_id=correlation_id,
        ))

    async def log_transaction_updated(
        self,
        transaction_id: str,
        owner: Optional[str],
        changes: dict,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_updated(transaction_id, owner, changes))

    async def log_transaction_deleted(
        self,
        transaction_id: str,
        owner: Optional[str],
    ) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(transaction_id, owner))

    async def log_save_failed(
        self,
        operation: str,
        error_message: str,
        owner: Optional[str],
        transaction_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.save_failed(
            operation=operation,
            error_message=error_message,
            owner=owner,
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        ))

    async def log_confirmation_requested(
        self,
        message: str,
        correlation_id: UUID,
        owner: Optional[str] = None,
    ) -> None:
        await self.log(AuditEventBuilder.confirmation_requested(message, correlation_id, owner))

    async def log_user_confirmed(
        self,
        message: str,
        correlation_id: Optional[UUID],
        owner: Optional[str] = None,
    ) -> None:
        """Log user confirmation."""
        await self.log(AuditEventBuilder.user_confirmed(message, correlation_id, owner))

    async def log_user_cancelled(
        self,
        message: str,
        correlation_id: Optional[UUID],
        owner: Optional[str] = None,
    ) -> None:
        await self.log(AuditEventBuilder.user_cancelled(message, correlation_id, owner))

    async def log_confirmed_action_failed(
        self,
        message: str,
        error_message: str,
        correlation_id: Optional[UUID],
        owner: Optional[str] = None,
    ) -> None:
        await self.log(AuditEventBuilder.confirmed_action_failed(
            message=message,
            error_message=error_message,
            correlation_id=correlation_id,
            owner=owner,
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

    Use this at the start of a new user action (e.g., an add with an attachment).
    Pass it through all subsequent operations.
    """
    return uuid4()
