"""
Caller-Side Validation

DESIGN DECISION: Form-level rules are checked BEFORE any data-access call:
- Required fields
- Duplicate emails and category names
- Password confirmation
- Deleting the account you are logged in with

The data-access layer never sees a payload that failed here. Shape rules
(types, ranges) live on the pydantic models themselves.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the caller can show them.
"""

from typing import Iterable, Optional

from lume.models.finance import (
    User,
    UserForm,
    ValidationIssue,
    ValidationResult,
)
from lume.services.passwords import MAX_PASSWORD_BYTES, is_password_too_long


class ValidationFailure(Exception):
    """
    Input was rejected before reaching storage.

    Carries the full ValidationResult for display.
    """

    def __init__(self, result: ValidationResult):
        super().__init__("; ".join(result.messages) or "Validation failed")
        self.result = result

    @property
    def issues(self) -> list[ValidationIssue]:
        return self.result.issues


def _missing(field: str, label: str) -> ValidationIssue:
    return ValidationIssue(
        field=field,
        issue_type="missing",
        message=f"{label} is required",
    )


def _too_long_password() -> ValidationIssue:
    return ValidationIssue(
        field="password",
        issue_type="too_long",
        message=f"Password must be at most {MAX_PASSWORD_BYTES} bytes long",
    )


class InputValidator:
    """
    Validates user input for categories and accounts.
    """

    def validate_category_name(
        self,
        name: str,
        existing: Iterable[str],
    ) -> ValidationResult:
        """A new category must be non-blank and not already listed."""
        issues = []
        name = name.strip()

        if not name:
            issues.append(_missing("name", "Category name"))
        elif name in set(existing):
            issues.append(ValidationIssue(
                field="name",
                issue_type="duplicate",
                message=f"Category already exists: {name}",
            ))

        return ValidationResult(issues=issues)

    def validate_user_form(
        self,
        form: UserForm,
        existing_users: Iterable[User],
        editing_user_id: Optional[str] = None,
    ) -> ValidationResult:
        """
        Check an account form.

        Email must not belong to any other user. When editing, the user
        being edited is not counted as "other".
        """
        issues = []

        if not form.name:
            issues.append(_missing("name", "Name"))
        if not form.email:
            issues.append(_missing("email", "Email"))
        elif "@" not in form.email:
            issues.append(ValidationIssue(
                field="email",
                issue_type="invalid_format",
                message=f"Invalid email address: {form.email}",
            ))
        if not form.password:
            issues.append(_missing("password", "Password"))
        elif is_password_too_long(form.password):
            issues.append(_too_long_password())

        if form.email:
            email = form.email.lower()
            if any(
                user.email == email and user.id != editing_user_id
                for user in existing_users
            ):
                issues.append(ValidationIssue(
                    field="email",
                    issue_type="duplicate",
                    message="This email is already registered",
                ))

        return ValidationResult(issues=issues)

    def validate_profile_name(self, name: str) -> ValidationResult:
        if not name.strip():
            return ValidationResult(issues=[_missing("name", "Name")])
        return ValidationResult()

    def validate_password_change(
        self,
        new_password: str,
        confirmation: str,
    ) -> ValidationResult:
        issues = []
        if not new_password:
            issues.append(_missing("password", "New password"))
        elif is_password_too_long(new_password):
            issues.append(_too_long_password())
        elif new_password != confirmation:
            issues.append(ValidationIssue(
                field="confirmation",
                issue_type="mismatch",
                message="Passwords do not match",
            ))
        return ValidationResult(issues=issues)

    def validate_user_deletion(
        self,
        target_user_id: str,
        acting_user: Optional[User],
    ) -> ValidationResult:
        """Users cannot delete the account they are logged in with."""
        if acting_user is not None and acting_user.id == target_user_id:
            return ValidationResult(issues=[ValidationIssue(
                field="id",
                issue_type="self_deletion",
                message="You cannot delete your own user",
            )])
        return ValidationResult()

    def ensure_valid(self, result: ValidationResult) -> None:
        """Raise ValidationFailure if the result has errors."""
        if result.has_errors:
            raise ValidationFailure(result)

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        One line per issue, ready to show to the user.
        """
        if not result.issues:
            return "All checks passed."

        lines = ["Please fix the following:"]
        for issue in result.issues:
            lines.append(f"   • {issue.message}")
        return "\n".join(lines)
