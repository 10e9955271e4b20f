"""
Audit Logger

DESIGN DECISION: Every write and every storage-mode change is logged.
This provides:
1. Traceability of who changed what
2. A record of when the app dropped to local storage, and why
3. Debugging capability

The audit logger:
- Is async so flows can await it uniformly
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from lume.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


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


class AuditLogger:
    """
    Central audit logging service.

    Writes every event to the structured log at the level matching its
    severity.
    """

    def __init__(self, logger_name: str = "lume.audit"):
        self._logger = structlog.get_logger(logger_name)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the event could not be written. Never raises.
        """
        log_dict = event.to_log_dict()

        try:
            if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception:
            return False

        return True

    async def log_fallback_activated(
        self,
        operation: str,
        error_code: Optional[str],
        error_message: str,
    ) -> None:
        """Log the switch from the remote store to local storage."""
        event = AuditEventBuilder.fallback_activated(
            operation=operation,
            error_code=error_code,
            error_message=error_message,
        )
        await self.log(event)

    async def log_data_access_failed(
        self,
        operation: str,
        mode: str,
        error_code: Optional[str],
        error_message: str,
    ) -> None:
        event = AuditEventBuilder.data_access_failed(
            operation=operation,
            mode=mode,
            error_code=error_code,
            error_message=error_message,
        )
        await self.log(event)

    async def log_transaction_created(
        self,
        transaction_id: str,
        user_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.transaction_created(
            transaction_id=transaction_id,
            user_id=user_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_updated(
        self,
        transaction_id: str,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.transaction_updated(
            transaction_id=transaction_id,
            fields=fields,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_transaction_deleted(
        self,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.transaction_deleted(
            transaction_id=transaction_id,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_category_added(self, name: str) -> None:
        await self.log(AuditEventBuilder.category_added(name))

    async def log_category_removed(self, name: str) -> None:
        await self.log(AuditEventBuilder.category_removed(name))

    async def log_seed_admin_created(self, user_id: str, email: str) -> None:
        await self.log(AuditEventBuilder.seed_admin_created(user_id, email))

    async def log_user_saved(
        self,
        user_id: str,
        created: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        event = AuditEventBuilder.user_saved(
            user_id=user_id,
            created=created,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_user_deleted(self, user_id: str, deleted_by: str) -> None:
        await self.log(AuditEventBuilder.user_deleted(user_id, deleted_by))

    async def log_login(self, email: str, user_id: Optional[str]) -> None:
        """Log a login attempt. user_id is None when it failed."""
        await self.log(AuditEventBuilder.login(email, user_id))

    async def log_password_changed(self, user_id: str) -> None:
        await self.log(AuditEventBuilder.password_changed(user_id))

    async def log_password_reset(self, user_id: str) -> None:
        await self.log(AuditEventBuilder.password_reset(user_id))

    async def log_validation_failed(
        self,
        action: str,
        issues: list[dict],
    ) -> None:
        """Log a caller-side validation failure."""
        event = AuditEventBuilder.validation_failed(
            action=action,
            issues=issues,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a new user action (e.g., saving a transaction).
    Pass it through all subsequent operations.
    """
    return uuid4()
