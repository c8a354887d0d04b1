"""
Core Data Models for Finance Tracker

These models define the schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Provide clear validation error messages
3. Be serializable for the document store and for logging

DESIGN DECISION: Amounts are Decimals, never floats.
The sign of the amount carries the direction: positive is income,
negative is expense, and exactly zero is neither.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================

class TransactionKind(str, Enum):
    """Direction of a transaction, derived from the sign of its amount."""
    INCOME = "income"
    EXPENSE = "expense"
    ZERO = "zero"  # Counted in neither income nor expense


# =============================================================================
# SESSION
# =============================================================================

class User(BaseModel):
    """The authenticated user a session belongs to."""
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    id: str = Field(
        ...,
        min_length=1,
        description="Stable identifier, used as the owner of transactions"
    )
    display_name: str = Field(
        default="",
        description="Name shown in the header"
    )
    email: Optional[str] = None


# =============================================================================
# TRANSACTION
# =============================================================================

class Transaction(BaseModel):
    """
    A single income or expense entry.

    Records in the document store carry every field except `id`,
    which is the document key. `file_url` is stored as `fileUrl`.
    """
    model_config = ConfigDict(
        str_strip_whitespace=True,
        populate_by_name=True,
    )

    id: str = Field(
        ...,
        min_length=1,
        description="Identifier assigned by the document store"
    )
    text: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display label"
    )
    amount: Decimal = Field(
        ...,
        description="Signed amount: positive = income, negative = expense"
    )
    owner: str = Field(
        ...,
        min_length=1,
        description="Id of the user this transaction belongs to"
    )
    file_url: Optional[str] = Field(
        default=None,
        alias="fileUrl",
        description="Direct-download URL of the attachment, if any"
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        description="When the transaction was created (UTC)"
    )

    @field_validator('file_url', mode='before')
    @classmethod
    def empty_url_is_none(cls, v: Any) -> Any:
        """Row-based stores hand back empty strings for missing cells."""
        if v == "":
            return None
        return v

    @field_validator('created_at')
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Timestamps without an offset are UTC, so they sort against aware ones."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @property
    def kind(self) -> TransactionKind:
        if self.amount > 0:
            return TransactionKind.INCOME
        if self.amount < 0:
            return TransactionKind.EXPENSE
        return TransactionKind.ZERO

    @property
    def is_income(self) -> bool:
        return self.kind == TransactionKind.INCOME

    @property
    def is_expense(self) -> bool:
        return self.kind == TransactionKind.EXPENSE

    def to_record(self) -> dict[str, Any]:
        """Convert to a document store record (everything but the id)."""
        return self.model_dump(by_alias=True, exclude={"id"})

    @classmethod
    def from_record(cls, doc_id: str, record: dict[str, Any]) -> "Transaction":
        """Build a Transaction from a document id and its stored record."""
        return cls.model_validate({**record, "id": doc_id})

    def with_changes(self, text: str, amount: Decimal) -> "Transaction":
        """Copy with a new label and amount. The attachment is untouched."""
        return self.model_copy(update={"text": text, "amount": amount})


# =============================================================================
# ATTACHMENTS
# =============================================================================

class Attachment(BaseModel):
    """A file picked by the user, before it is uploaded."""

    filename: str = Field(
        ...,
        min_length=1,
        max_length=255,
        description="Original file name"
    )
    content: bytes = Field(
        ...,
        description="Raw file bytes"
    )
    mime_type: str = Field(
        default="application/octet-stream",
        description="MIME type reported by the browser"
    )

    @field_validator('filename')
    @classmethod
    def strip_directories(cls, v: str) -> str:
        """Keep only the base name; uploaders choose the destination folder."""
        name = v.replace("\\", "/").rsplit("/", 1)[-1].strip()
        if not name:
            raise ValueError("Attachment filename is empty")
        return name

    @property
    def size_bytes(self) -> int:
        return len(self.content)


# =============================================================================
# AGGREGATES
# =============================================================================

class Aggregates(BaseModel):
    """
    Derived totals over the current transaction sequence.

    Never persisted. `expense` keeps its sign, so it is always <= 0.
    """
    model_config = ConfigDict(frozen=True)

    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")
    count: int = Field(default=0, ge=0)


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
        description="Type of issue (e.g., 'missing', 'invalid_format', 'too_large')"
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
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of validating a transaction form submission.

    When valid, `text` and `amount` hold the cleaned values that
    are safe to persist.
    """

    validated_at: datetime = Field(
        default_factory=utcnow
    )
    is_valid: bool = Field(
        ...,
        description="Overall validation result"
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )

    # Cleaned values
    text: Optional[str] = None
    amount: Optional[Decimal] = None

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
