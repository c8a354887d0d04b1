"""
Audit Models for Finance Tracker

Every significant action in the system is logged for audit purposes.
This provides:
1. Complete traceability of all operations
2. Debugging information when things go wrong
3. Ability to reconstruct the history of a user's ledger

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from finance_tracker.models.transaction import utcnow


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Session
    SESSION_CHANGED = "session_changed"
    TRANSACTIONS_LOADED = "transactions_loaded"
    STALE_LOAD_DISCARDED = "stale_load_discarded"

    # Validation
    VALIDATION_FAILED = "validation_failed"

    # Attachments
    ATTACHMENT_UPLOADED = "attachment_uploaded"
    UPLOAD_FAILED = "upload_failed"

    # Persistence
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    SAVE_FAILED = "save_failed"

    # Confirmation workflow
    CONFIRMATION_REQUESTED = "confirmation_requested"
    USER_CONFIRMED = "user_confirmed"
    USER_CANCELLED = "user_cancelled"
    CONFIRMED_ACTION_FAILED = "confirmed_action_failed"

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
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
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
        description="Type of entity (e.g., 'transaction', 'attachment', 'session')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )
    owner: Optional[str] = Field(
        default=None,
        description="Owner the event happened on behalf of"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., upload then save of one add)"
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

    # Error information (if applicable)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

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
            "owner": self.owner,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         owner, correlation_id, description, details_json, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            self.owner or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details, default=str) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_added(tx_id, owner, text, amount)
        event = AuditEventBuilder.user_confirmed(message, correlation_id)
    """

    @staticmethod
    def session_changed(
        previous_owner: Optional[str],
        owner: Optional[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_CHANGED,
            entity_type="session",
            owner=owner,
            description="Signed in" if owner else "Signed out",
            details={"previous_owner": previous_owner},
            is_user_action=True,
        )

    @staticmethod
    def transactions_loaded(owner: Optional[str], count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTIONS_LOADED,
            entity_type="session",
            owner=owner,
            description=f"Loaded {count} transactions",
            details={"count": count},
        )

    @staticmethod
    def stale_load_discarded(
        owner: Optional[str],
        sequence: int,
        latest: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STALE_LOAD_DISCARDED,
            severity=AuditSeverity.WARNING,
            entity_type="session",
            owner=owner,
            description="Discarded a load result superseded by a newer load",
            details={"sequence": sequence, "latest": latest},
        )

    @staticmethod
    def validation_failed(
        operation: str,
        issues: list[dict],
        owner: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            owner=owner,
            description=f"Validation failed for {operation} with {len(issues)} issues",
            details={"operation": operation, "issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def attachment_uploaded(
        filename: str,
        size_bytes: int,
        url: str,
        owner: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ATTACHMENT_UPLOADED,
            entity_type="attachment",
            owner=owner,
            correlation_id=correlation_id,
            description=f"Attachment uploaded: {filename}",
            details={"filename": filename, "size_bytes": size_bytes, "url": url},
            is_user_action=True,
        )

    @staticmethod
    def upload_failed(
        filename: str,
        error_message: str,
        owner: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.UPLOAD_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="attachment",
            owner=owner,
            correlation_id=correlation_id,
            description=f"Attachment upload failed: {filename}",
            error_message=error_message,
            details={"filename": filename},
        )

    @staticmethod
    def transaction_added(
        transaction_id: str,
        owner: str,
        text: str,
        amount: str,
        has_attachment: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            entity_type="transaction",
            entity_id=transaction_id,
            owner=owner,
            correlation_id=correlation_id,
            description=f"Transaction added: {text} ({amount})",
            details={"text": text, "amount": amount, "has_attachment": has_attachment},
            is_user_action=True,
        )

    @staticmethod
    def transaction_updated(
        transaction_id: str,
        owner: Optional[str],
        changes: dict[str, Any],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            owner=owner,
            description="Transaction updated",
            details=changes,
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: str,
        owner: Optional[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            owner=owner,
            description="Transaction deleted",
            is_user_action=True,
        )

    @staticmethod
    def save_failed(
        operation: str,
        error_message: str,
        owner: Optional[str],
        transaction_id: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="transaction",
            entity_id=transaction_id,
            owner=owner,
            correlation_id=correlation_id,
            description=f"Document store {operation} failed",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def confirmation_requested(
        message: str,
        correlation_id: UUID,
        owner: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONFIRMATION_REQUESTED,
            entity_type="confirmation",
            owner=owner,
            correlation_id=correlation_id,
            description=f"Confirmation requested: {message}",
            is_user_action=True,
        )

    @staticmethod
    def user_confirmed(
        message: str,
        correlation_id: Optional[UUID],
        owner: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_CONFIRMED,
            entity_type="confirmation",
            owner=owner,
            correlation_id=correlation_id,
            description=f"User confirmed: {message}",
            is_user_action=True,
        )

    @staticmethod
    def user_cancelled(
        message: str,
        correlation_id: Optional[UUID],
        owner: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_CANCELLED,
            entity_type="confirmation",
            owner=owner,
            correlation_id=correlation_id,
            description=f"User cancelled: {message}",
            is_user_action=True,
        )

    @staticmethod
    def confirmed_action_failed(
        message: str,
        error_message: str,
        correlation_id: Optional[UUID],
        owner: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONFIRMED_ACTION_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="confirmation",
            owner=owner,
            correlation_id=correlation_id,
            description=f"Confirmed action failed: {message}",
            error_message=error_message,
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
        correlation_id: Optional[UUID] = None
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
