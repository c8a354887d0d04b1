"""
Transaction Input Validation

Runs before anything touches the network. A submission that fails here
never reaches the attachment uploader or the document store, and the
in-memory ledger is left exactly as it was.

Checks:
- text present (after stripping whitespace) and not too long
- amount parses as a finite number
- an owner is known (the user is signed in)
- an attachment, if given, is non-empty and within the upload limit

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the user can correct the form.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from finance_tracker.config import AppSettings, get_settings
from finance_tracker.models.transaction import (
    Attachment,
    ValidationIssue,
    ValidationResult,
)

MAX_TEXT_LENGTH = 200


class ValidationError(Exception):
    """A transaction submission failed validation. Nothing was persisted."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = [issue.message for issue in result.issues if issue.severity == "error"]
        super().__init__("; ".join(messages) or "Invalid transaction")

    @property
    def issues(self) -> list[ValidationIssue]:
        return self.result.issues


def parse_amount(raw: Any) -> Decimal:
    """
    Parse a user-entered amount into a finite Decimal.

    Accepts ints, floats, Decimals and numeric strings.
    Raises ValueError for anything else, including NaN and infinities.
    """
    if raw is None or isinstance(raw, bool):
        raise ValueError("Amount is required")

    if isinstance(raw, Decimal):
        value = raw
    elif isinstance(raw, (int, float)):
        # str() first so 0.1 stays 0.1 instead of its binary expansion
        value = Decimal(str(raw))
    elif isinstance(raw, str):
        cleaned = raw.strip()
        if not cleaned:
            raise ValueError("Amount is required")
        try:
            value = Decimal(cleaned)
        except InvalidOperation:
            raise ValueError(f"Amount is not a number: {raw!r}")
    else:
        raise ValueError(f"Amount is not a number: {raw!r}")

    if not value.is_finite():
        raise ValueError(f"Amount must be a finite number: {raw!r}")
    return value


class TransactionValidator:
    """Validates add/edit submissions for the transaction store."""

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def validate(
        self,
        text: Any,
        amount: Any,
        owner_id: Optional[str] = None,
        attachment: Optional[Attachment] = None,
        require_owner: bool = True,
    ) -> ValidationResult:
        """
        Validate one submission.

        Args:
            text: Label entered by the user
            amount: Amount entered by the user (string or number)
            owner_id: Current user's id
            attachment: Optional file to upload
            require_owner: False for edits, where the owner is already on the record

        Returns:
            ValidationResult with cleaned values when valid
        """
        issues = []

        cleaned_text = text.strip() if isinstance(text, str) else ""
        if not cleaned_text:
            issues.append(ValidationIssue(
                field="text",
                issue_type="missing",
                message="Please enter a description",
                suggested_fix="Describe the transaction, e.g. 'Salary' or 'Coffee'",
            ))
        elif len(cleaned_text) > MAX_TEXT_LENGTH:
            issues.append(ValidationIssue(
                field="text",
                issue_type="too_long",
                message=f"Description is longer than {MAX_TEXT_LENGTH} characters",
            ))

        parsed_amount = None
        try:
            parsed_amount = parse_amount(amount)
        except ValueError as e:
            is_missing = amount is None or (isinstance(amount, str) and not amount.strip())
            issues.append(ValidationIssue(
                field="amount",
                issue_type="missing" if is_missing else "invalid_format",
                message="Please enter an amount" if is_missing else str(e),
                suggested_fix="Use a negative number for expenses, e.g. -50",
            ))

        if require_owner and not owner_id:
            issues.append(ValidationIssue(
                field="owner",
                issue_type="missing",
                message="Please sign in before adding transactions",
            ))

        if attachment is not None:
            issues.extend(self._validate_attachment(attachment))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return ValidationResult(
            is_valid=is_valid,
            issues=issues,
            text=cleaned_text if is_valid else None,
            amount=parsed_amount if is_valid else None,
        )

    def _validate_attachment(self, attachment: Attachment) -> list[ValidationIssue]:
        issues = []
        if attachment.size_bytes == 0:
            issues.append(ValidationIssue(
                field="attachment",
                issue_type="empty",
                message=f"Attachment '{attachment.filename}' is empty",
            ))
        elif attachment.size_bytes > self._settings.max_upload_size_bytes:
            issues.append(ValidationIssue(
                field="attachment",
                issue_type="too_large",
                message=(
                    f"Attachment '{attachment.filename}' is larger than "
                    f"{self._settings.max_upload_size_mb} MB"
                ),
                suggested_fix="Attach a smaller file or leave it out",
            ))
        return issues

    def ensure_valid(
        self,
        text: Any,
        amount: Any,
        owner_id: Optional[str] = None,
        attachment: Optional[Attachment] = None,
        require_owner: bool = True,
    ) -> tuple[str, Decimal]:
        """
        Validate and return the cleaned (text, amount).

        Raises:
            ValidationError: If any error-level issue was found
        """
        result = self.validate(
            text,
            amount,
            owner_id=owner_id,
            attachment=attachment,
            require_owner=require_owner,
        )
        if not result.is_valid:
            raise ValidationError(result)
        return result.text, result.amount

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """Generate the message shown in the blocking prompt."""
        if result.is_valid:
            return "✅ All checks passed!"

        lines = ["❌ Please fix the following:"]
        for issue in result.issues:
            if issue.severity == "error":
                lines.append(f"   • {issue.message}")
                if issue.suggested_fix:
                    lines.append(f"     💡 {issue.suggested_fix}")
        return "\n".join(lines)
