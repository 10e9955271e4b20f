"""
Core Data Models for Lume Finance

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for both the remote and the local store
4. Form the validation boundary in front of the data-access layer

DESIGN DECISION: Amounts are Decimal, never float.
Summaries and reserve figures must add up exactly.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# Filter value meaning "do not filter on this field"
ALL = "all"


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """
    Direction of a transaction.

    DESIGN DECISION: The direction lives here, never in the sign of the amount.
    """
    INCOME = "income"
    EXPENSE = "expense"


class UserRole(str, Enum):
    """Roles a user account can hold."""
    ADMIN = "admin"
    USER = "user"


class ReserveMode(str, Enum):
    """How the recommended reserve is displayed."""
    MONTHLY = "monthly"  # Averaged over the months in view
    TOTAL = "total"      # Accumulated over the whole view


# =============================================================================
# TRANSACTIONS
# =============================================================================

class TransactionInput(BaseModel):
    """
    The editable fields of a transaction, as entered by the user.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="What the money was for"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
        description="Non-negative amount; direction is given by type"
    )
    type: TransactionType = Field(
        ...,
        description="Income or expense"
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Category label"
    )
    date: dt.date = Field(
        ...,
        description="Calendar date of the transaction"
    )


class TransactionDraft(TransactionInput):
    """A transaction that is about to be created (no id yet)."""

    user_id: str = Field(
        ...,
        min_length=1,
        description="Owning user"
    )


class Transaction(TransactionDraft):
    """
    A persisted transaction.

    Owned by exactly one user. Created, edited and deleted only through
    the data-access layer.
    """

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque identifier assigned on creation"
    )

    @property
    def month_key(self) -> str:
        """Year-month key, e.g. '2024-03'."""
        return self.date.strftime("%Y-%m")


class TransactionUpdate(BaseModel):
    """
    Partial update of a transaction.

    Only the fields that are set are written.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    description: Optional[str] = Field(default=None, min_length=1, max_length=200)
    amount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    type: Optional[TransactionType] = None
    category: Optional[str] = Field(default=None, min_length=1, max_length=100)
    date: Optional[dt.date] = None

    def to_changes(self) -> dict:
        """Serializable dict with only the fields that were set."""
        return self.model_dump(mode="json", exclude_none=True)


# =============================================================================
# USERS
# =============================================================================

class User(BaseModel):
    """
    A user account.

    SECURITY: Only the salted bcrypt hash of the password is ever stored.
    Email uniqueness is checked by the caller before saving.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Opaque identifier"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Display name"
    )
    email: str = Field(
        ...,
        min_length=3,
        max_length=254,
        description="Login email, unique across users"
    )
    role: UserRole = Field(
        default=UserRole.USER,
        description="Account role"
    )
    password_hash: str = Field(
        ...,
        min_length=1,
        description="bcrypt hash of the password"
    )
    avatar: Optional[str] = Field(
        default=None,
        description="Avatar URL"
    )

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: str) -> str:
        """Emails compare case-insensitively."""
        if "@" not in v:
            raise ValueError(f"Invalid email address: {v}")
        return v.lower()

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


class UserUpdate(BaseModel):
    """Partial update of a user account."""
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[str] = Field(default=None, min_length=3, max_length=254)
    role: Optional[UserRole] = None
    password_hash: Optional[str] = Field(default=None, min_length=1)
    avatar: Optional[str] = None

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if "@" not in v:
            raise ValueError(f"Invalid email address: {v}")
        return v.lower()

    def to_changes(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


class UserForm(BaseModel):
    """
    Raw account form input.

    Fields may be blank here; the account validator reports what is missing.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = ""
    email: str = ""
    role: UserRole = UserRole.USER
    password: str = ""


# =============================================================================
# ANALYTICS MODELS
# =============================================================================

class CategoryTotal(BaseModel):
    """Sum of amounts for one category."""

    name: str
    value: Decimal = Decimal("0")


class BalanceSummary(BaseModel):
    """
    Aggregated view of a transaction subset.

    Derived, never persisted, recomputed on every call.
    """

    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
    avg_income: Decimal = Decimal("0")
    avg_expense: Decimal = Decimal("0")
    max_category_income: CategoryTotal = Field(
        default_factory=lambda: CategoryTotal(name="-")
    )
    max_category_expense: CategoryTotal = Field(
        default_factory=lambda: CategoryTotal(name="-")
    )
    month_count: int = Field(
        default=1,
        ge=1,
        description="Distinct (year, month) pairs in the subset, at least 1"
    )


class TransactionFilter(BaseModel):
    """
    Filter configuration for the transaction views.

    All four predicates are combined with AND. "all" disables a predicate.
    Text values are matched exactly as given, whitespace included.
    """

    query: str = Field(
        default="",
        description="Case-insensitive substring of the description"
    )
    category: str = Field(
        default=ALL,
        description="Exact category label or 'all'"
    )
    month: Union[int, Literal["all"]] = Field(
        default=ALL,
        description="Calendar month 1-12 or 'all'"
    )
    year: Union[int, Literal["all"]] = Field(
        default=ALL,
        description="Four-digit year or 'all'"
    )

    @field_validator('month')
    @classmethod
    def validate_month(cls, v: Union[int, str]) -> Union[int, str]:
        if v != ALL and not 1 <= v <= 12:
            raise ValueError(f"Month must be between 1 and 12, got {v}")
        return v


class MonthlyTotals(BaseModel):
    """Income and expense of one calendar month."""

    month: str = Field(..., description="Year-month key, e.g. '2024-03'")
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")


class DashboardView(BaseModel):
    """Everything the dashboard renders for one filter configuration."""

    transactions: list[Transaction] = Field(default_factory=list)
    summary: BalanceSummary
    reserve: Decimal
    reserve_mode: ReserveMode
    insights: list[str] = Field(default_factory=list)
    monthly_history: list[MonthlyTotals] = Field(default_factory=list)
    expense_breakdown: list[CategoryTotal] = Field(default_factory=list)
    income_breakdown: list[CategoryTotal] = Field(default_factory=list)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'duplicate', 'mismatch')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """Outcome of a caller-side validation check."""

    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    @property
    def messages(self) -> list[str]:
        return [issue.message for issue in self.issues]
