"""
Main Orchestrator for Lume Finance

This module ties together all the components and defines the
end-to-end flows for:
1. Ledger (categories, transactions, dashboard)
2. Accounts (seed admin, login, user management, passwords)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Input is validated before any data-access call
- Analytics only ever see what the data-access layer returned
- Every write is audited

The UI calls these flows and never touches storage directly.
"""

from typing import Optional, Union

import structlog

from lume.analytics import (
    calculate_reserve,
    category_breakdown,
    filter_transactions,
    generate_insights,
    monthly_history,
    summarize,
)
from lume.audit import AuditLogger, create_correlation_id
from lume.config import AppSettings, get_settings
from lume.models.finance import (
    DashboardView,
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
    ValidationResult,
)
from lume.services.data_access import (
    ResilientDataAccess,
    StorageMode,
    new_identifier,
)
from lume.services.passwords import (
    generate_temporary_password,
    hash_password,
    verify_password,
)
from lume.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
    LocalJsonDocumentStore,
)
from lume.validation import InputValidator, ValidationFailure


logger = structlog.get_logger(__name__)


def merge_categories(baseline: list[str], persisted: list[str]) -> list[str]:
    """Baseline first, then persisted extras; no duplicates, order kept."""
    return list(dict.fromkeys([*baseline, *persisted]))


class _Flow:
    """Shared wiring for flows."""

    def __init__(
        self,
        data_access: ResilientDataAccess,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[InputValidator] = None,
        settings: Optional[AppSettings] = None,
    ):
        self._data_access = data_access
        self._audit_logger = audit_logger
        self._validator = validator or InputValidator()
        self._settings = settings or get_settings().app

    @property
    def storage_mode(self) -> StorageMode:
        """For the offline-mode indicator."""
        return self._data_access.mode

    async def _ensure_valid(self, action: str, result: ValidationResult) -> None:
        if not result.has_errors:
            return
        if self._audit_logger:
            await self._audit_logger.log_validation_failed(
                action=action,
                issues=[
                    {"field": i.field, "type": i.issue_type, "message": i.message}
                    for i in result.issues
                ],
            )
        raise ValidationFailure(result)


class LedgerFlow(_Flow):
    """
    Orchestrates categories, transactions and the dashboard view.

    Flow:
    1. Load categories (baseline ∪ persisted) and the user's transactions
    2. Mutate through the data-access layer
    3. Build the dashboard from the in-memory transactions
    """

    @property
    def baseline_categories(self) -> list[str]:
        return self._settings.default_categories_list

    async def load_categories(self) -> list[str]:
        persisted = await self._data_access.list_categories()
        return merge_categories(self.baseline_categories, persisted)

    async def add_category(
        self,
        name: str,
        existing: Optional[list[str]] = None,
    ) -> list[str]:
        """
        Persist a new category.

        Returns:
            The merged category list including the new one

        Raises:
            ValidationFailure: Blank name or already listed
        """
        if existing is None:
            existing = await self.load_categories()

        await self._ensure_valid(
            "add_category",
            self._validator.validate_category_name(name, existing),
        )

        name = name.strip()
        await self._data_access.add_category(name)
        if self._audit_logger:
            await self._audit_logger.log_category_added(name)
        return merge_categories(existing, [name])

    async def remove_category(
        self,
        name: str,
        existing: Optional[list[str]] = None,
    ) -> list[str]:
        """
        Remove a category.

        Baseline categories have no persisted entry and come back on the
        next load; only the returned in-memory list drops them.
        """
        if existing is None:
            existing = await self.load_categories()

        await self._data_access.remove_category(name)
        if self._audit_logger:
            await self._audit_logger.log_category_removed(name)
        return [category for category in existing if category != name]

    async def load_transactions(self, user_id: str) -> list[Transaction]:
        return await self._data_access.list_transactions(user_id)

    async def save_transaction(
        self,
        user_id: str,
        data: TransactionInput,
        transaction_id: Optional[str] = None,
    ) -> Transaction:
        """
        Create a transaction, or update it when transaction_id is given.

        Returns:
            The transaction as it now stands
        """
        correlation_id = create_correlation_id()
        fields = data.model_dump()

        if transaction_id:
            await self._data_access.update_transaction(
                transaction_id, TransactionUpdate(**fields)
            )
            if self._audit_logger:
                await self._audit_logger.log_transaction_updated(
                    transaction_id=transaction_id,
                    fields=sorted(fields),
                    correlation_id=correlation_id,
                )
            return Transaction(id=transaction_id, user_id=user_id, **fields)

        draft = TransactionDraft(user_id=user_id, **fields)
        new_id = await self._data_access.create_transaction(draft)
        if self._audit_logger:
            await self._audit_logger.log_transaction_created(
                transaction_id=new_id,
                user_id=user_id,
                correlation_id=correlation_id,
            )
        return Transaction(id=new_id, **draft.model_dump())

    async def delete_transaction(self, transaction_id: str) -> None:
        await self._data_access.delete_transaction(transaction_id)
        if self._audit_logger:
            await self._audit_logger.log_transaction_deleted(transaction_id)

    def build_dashboard(
        self,
        transactions: list[Transaction],
        filters: Optional[TransactionFilter] = None,
        reserve_mode: Optional[Union[ReserveMode, str]] = None,
    ) -> DashboardView:
        """
        Everything the dashboard shows for one filter configuration.

        Pure computation over the given transactions.
        """
        filters = filters or TransactionFilter()
        mode = ReserveMode(reserve_mode or self._settings.default_reserve_mode)

        subset = filter_transactions(transactions, filters)
        summary = summarize(subset)
        reserve = calculate_reserve(summary, mode)

        return DashboardView(
            transactions=subset,
            summary=summary,
            reserve=reserve,
            reserve_mode=mode,
            insights=generate_insights(summary, reserve),
            monthly_history=monthly_history(subset),
            expense_breakdown=category_breakdown(subset, TransactionType.EXPENSE),
            income_breakdown=category_breakdown(subset, TransactionType.INCOME),
        )


class AccountFlow(_Flow):
    """
    Orchestrates user accounts.

    SECURITY: passwords are hashed before they reach the data-access layer.
    Temporary passwords are returned to the caller once and never logged.
    """

    async def list_users(self) -> list[User]:
        return await self._data_access.list_users()

    async def ensure_seed_admin(self) -> tuple[list[User], Optional[str]]:
        """
        Create the seed admin if there are no users at all.

        Returns:
            (users, generated_password). generated_password is set only when
            the admin was created without a configured password.
        """
        users = await self._data_access.list_users()
        if users:
            return users, None

        password = self._settings.seed_admin_password
        generated = None
        if not password:
            generated = password = generate_temporary_password()

        admin = User(
            id=self._settings.seed_admin_id,
            name=self._settings.seed_admin_name,
            email=self._settings.seed_admin_email,
            role=UserRole.ADMIN,
            password_hash=hash_password(password),
        )
        await self._data_access.save_user(admin)
        if self._audit_logger:
            await self._audit_logger.log_seed_admin_created(admin.id, admin.email)
        return [admin], generated

    async def authenticate(self, email: str, password: str) -> Optional[User]:
        """Check credentials against the current user list."""
        email = email.strip().lower()
        users = await self._data_access.list_users()

        found = next(
            (
                user for user in users
                if user.email == email and verify_password(password, user.password_hash)
            ),
            None,
        )
        if self._audit_logger:
            await self._audit_logger.log_login(email, found.id if found else None)
        return found

    async def create_user(
        self,
        form: UserForm,
        existing: Optional[list[User]] = None,
    ) -> User:
        """
        Register a new user.

        Raises:
            ValidationFailure: Missing fields or email already registered
        """
        if existing is None:
            existing = await self._data_access.list_users()

        await self._ensure_valid(
            "create_user",
            self._validator.validate_user_form(form, existing),
        )

        user = User(
            id=new_identifier(),
            name=form.name,
            email=form.email,
            role=form.role,
            password_hash=hash_password(form.password),
        )
        await self._data_access.save_user(user)
        if self._audit_logger:
            await self._audit_logger.log_user_saved(user.id, created=True)
        return user

    async def update_user(
        self,
        user_id: str,
        form: UserForm,
        existing: Optional[list[User]] = None,
    ) -> Optional[User]:
        """
        Overwrite name, email, role and password of a user.

        Returns:
            The updated user, or None if it was not in `existing`
        """
        if existing is None:
            existing = await self._data_access.list_users()

        await self._ensure_valid(
            "update_user",
            self._validator.validate_user_form(form, existing, editing_user_id=user_id),
        )

        changes = UserUpdate(
            name=form.name,
            email=form.email,
            role=form.role,
            password_hash=hash_password(form.password),
        )
        await self._data_access.update_user(user_id, changes)
        if self._audit_logger:
            await self._audit_logger.log_user_saved(user_id, created=False)

        current = next((user for user in existing if user.id == user_id), None)
        if current is None:
            return None
        return current.model_copy(update=changes.model_dump(exclude_none=True))

    async def update_profile_name(self, user: User, name: str) -> User:
        await self._ensure_valid(
            "update_profile_name",
            self._validator.validate_profile_name(name),
        )

        changes = UserUpdate(name=name)
        await self._data_access.update_user(user.id, changes)
        if self._audit_logger:
            await self._audit_logger.log_user_saved(user.id, created=False)
        return user.model_copy(update={"name": changes.name})

    async def delete_user(self, user_id: str, acting_user: Optional[User]) -> None:
        """
        Raises:
            ValidationFailure: acting_user tried to delete itself
        """
        await self._ensure_valid(
            "delete_user",
            self._validator.validate_user_deletion(user_id, acting_user),
        )

        await self._data_access.delete_user(user_id)
        if self._audit_logger:
            await self._audit_logger.log_user_deleted(
                user_id, acting_user.id if acting_user else "system"
            )

    async def change_password(
        self,
        user: User,
        new_password: str,
        confirmation: str,
    ) -> User:
        """
        Raises:
            ValidationFailure: Empty or mismatched confirmation
        """
        await self._ensure_valid(
            "change_password",
            self._validator.validate_password_change(new_password, confirmation),
        )

        password_hash = hash_password(new_password)
        await self._data_access.update_user(
            user.id, UserUpdate(password_hash=password_hash)
        )
        if self._audit_logger:
            await self._audit_logger.log_password_changed(user.id)
        return user.model_copy(update={"password_hash": password_hash})

    async def reset_password(self, email: str) -> Optional[str]:
        """
        Issue a temporary password for the account with this email.

        Returns:
            The temporary password, or None if no account matches
        """
        email = email.strip().lower()
        users = await self._data_access.list_users()
        user = next((u for u in users if u.email == email), None)
        if user is None:
            return None

        temporary = generate_temporary_password()
        await self._data_access.update_user(
            user.id, UserUpdate(password_hash=hash_password(temporary))
        )
        if self._audit_logger:
            await self._audit_logger.log_password_reset(user.id)
        return temporary


def create_app_components(
    use_remote: bool = True,
    data_dir: Optional[str] = None,
) -> tuple[LedgerFlow, AccountFlow, ResilientDataAccess]:
    """
    Factory function to create all application components.

    Args:
        use_remote: Whether to try the Google Sheets store.
                    Without it the data-access layer starts in fallback.
        data_dir: Override for the local store directory.

    Returns:
        (ledger_flow, account_flow, data_access)
    """
    audit_logger = AuditLogger()

    remote = None
    if use_remote:
        try:
            remote = GoogleSheetsDocumentStore(GoogleSheetsClient())
        except Exception as e:
            # Remote store not configured - continue on local storage
            logger.warning("remote_store_not_configured", error=str(e))

    local = LocalJsonDocumentStore(data_dir)
    data_access = ResilientDataAccess(remote, local, audit_logger=audit_logger)

    ledger_flow = LedgerFlow(data_access, audit_logger=audit_logger)
    account_flow = AccountFlow(data_access, audit_logger=audit_logger)

    return ledger_flow, account_flow, data_access
