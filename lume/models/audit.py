"""
Audit Models for Lume Finance

Every significant action in the system is logged for audit purposes.
This provides:
1. Traceability of every write to either store
2. A visible record of when and why the app went offline
3. Debugging information when things go wrong

DESIGN DECISION: Audit events carry no secrets. Passwords, hashes and
temporary credentials never appear in details.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Storage
    STORAGE_FALLBACK_ACTIVATED = "storage_fallback_activated"
    DATA_ACCESS_FAILED = "data_access_failed"

    # Transactions
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"

    # Categories
    CATEGORY_ADDED = "category_added"
    CATEGORY_REMOVED = "category_removed"

    # Accounts
    SEED_ADMIN_CREATED = "seed_admin_created"
    USER_CREATED = "user_created"
    USER_UPDATED = "user_updated"
    USER_DELETED = "user_deleted"
    LOGIN_SUCCEEDED = "login_succeeded"
    LOGIN_FAILED = "login_failed"
    PASSWORD_CHANGED = "password_changed"
    PASSWORD_RESET = "password_reset"

    # Caller-side checks
    VALIDATION_FAILED = "validation_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


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
        default_factory=_utcnow,
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
        description="Type of entity (e.g., 'transaction', 'user', 'category')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one user action)"
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
    error_code: Optional[str] = None
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
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.fallback_activated("list_transactions", "403")
        event = AuditEventBuilder.transaction_created(tx_id, user_id, correlation_id)
    """

    @staticmethod
    def fallback_activated(
        operation: str,
        error_code: Optional[str],
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_FALLBACK_ACTIVATED,
            severity=AuditSeverity.WARNING,
            description="Remote store denied access, switched to local storage",
            details={"operation": operation},
            error_code=error_code,
            error_message=error_message,
        )

    @staticmethod
    def data_access_failed(
        operation: str,
        mode: str,
        error_code: Optional[str],
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_ACCESS_FAILED,
            severity=AuditSeverity.ERROR,
            description=f"Data access failed: {operation}",
            details={"operation": operation, "mode": mode},
            error_code=error_code,
            error_message=error_message,
        )

    @staticmethod
    def transaction_created(
        transaction_id: str,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Transaction created",
            details={"user_id": user_id},
            is_user_action=True,
        )

    @staticmethod
    def transaction_updated(
        transaction_id: str,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Transaction updated",
            details={"fields": fields},
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Transaction deleted",
            is_user_action=True,
        )

    @staticmethod
    def category_added(name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_ADDED,
            entity_type="category",
            entity_id=name,
            description=f"Category added: {name}",
            is_user_action=True,
        )

    @staticmethod
    def category_removed(name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_REMOVED,
            entity_type="category",
            entity_id=name,
            description=f"Category removed: {name}",
            is_user_action=True,
        )

    @staticmethod
    def seed_admin_created(user_id: str, email: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SEED_ADMIN_CREATED,
            severity=AuditSeverity.WARNING,
            entity_type="user",
            entity_id=user_id,
            description="User collection was empty, seed admin created",
            details={"email": email},
        )

    @staticmethod
    def user_saved(
        user_id: str,
        created: bool,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.USER_CREATED if created else AuditEventType.USER_UPDATED
            ),
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="User created" if created else "User updated",
            is_user_action=True,
        )

    @staticmethod
    def user_deleted(user_id: str, deleted_by: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_DELETED,
            entity_type="user",
            entity_id=user_id,
            description="User deleted",
            details={"deleted_by": deleted_by},
            is_user_action=True,
        )

    @staticmethod
    def login(email: str, user_id: Optional[str]) -> AuditEvent:
        succeeded = user_id is not None
        return AuditEvent(
            event_type=(
                AuditEventType.LOGIN_SUCCEEDED if succeeded else AuditEventType.LOGIN_FAILED
            ),
            severity=AuditSeverity.INFO if succeeded else AuditSeverity.WARNING,
            entity_type="user",
            entity_id=user_id,
            description="Login succeeded" if succeeded else "Login failed",
            details={"email": email},
            is_user_action=True,
        )

    @staticmethod
    def password_changed(user_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PASSWORD_CHANGED,
            entity_type="user",
            entity_id=user_id,
            description="Password changed",
            is_user_action=True,
        )

    @staticmethod
    def password_reset(user_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PASSWORD_RESET,
            severity=AuditSeverity.WARNING,
            entity_type="user",
            entity_id=user_id,
            description="Temporary password issued",
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(
        action: str,
        issues: list[dict],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            description=f"Validation failed for {action} with {len(issues)} issues",
            details={"action": action, "issues": issues},
            is_user_action=True,
        )
