"""
Data Models Package

This package contains all Pydantic models used in Lume Finance.
All data flowing through the system must conform to these schemas.
"""

from lume.models.finance import (
    ALL,
    BalanceSummary,
    CategoryTotal,
    DashboardView,
    MonthlyTotals,
    ReserveMode,
    Transaction,
    TransactionDraft,
    TransactionFilter,
    TransactionInput,
    TransactionType,
    TransactionUpdate,
    User,
    UserForm,
    UserRole,
    UserUpdate,
    ValidationIssue,
    ValidationResult,
)
from lume.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Finance models
    "ALL",
    "BalanceSummary",
    "CategoryTotal",
    "DashboardView",
    "MonthlyTotals",
    "ReserveMode",
    "Transaction",
    "TransactionDraft",
    "TransactionFilter",
    "TransactionInput",
    "TransactionType",
    "TransactionUpdate",
    "User",
    "UserForm",
    "UserRole",
    "UserUpdate",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
