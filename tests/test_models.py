"""
Tests for Finance Tracker

Test strategy:
1. Unit tests for individual components (models, validators)
2. Integration tests for flows (with fake external services)
3. No real API calls in tests (use fakes and mock transports)
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

from finance_tracker.models.transaction import (
    Aggregates,
    Attachment,
    Transaction,
    TransactionKind,
    User,
    ValidationIssue,
    ValidationResult,
)
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestTransactionModels:
    """Tests for transaction-related Pydantic models."""

    def test_transaction_creation(self):
        """Test Transaction model creation."""
        tx = Transaction(id="t1", text="Salary", amount=Decimal("1000"), owner="alice")
        assert tx.text == "Salary"
        assert tx.amount == Decimal("1000")
        assert tx.file_url is None
        assert tx.created_at.tzinfo is not None

    def test_transaction_strips_whitespace(self):
        """Test that whitespace is stripped from the text."""
        tx = Transaction(id="t1", text="  Coffee  ", amount=Decimal("-50"), owner="alice")
        assert tx.text == "Coffee"

    def test_transaction_rejects_empty_text(self):
        """Test that whitespace-only text is rejected."""
        with pytest.raises(ValueError):
            Transaction(id="t1", text="   ", amount=Decimal("1"), owner="alice")

    def test_transaction_kind_follows_sign(self):
        """Test income/expense/zero classification."""
        income = Transaction(id="a", text="Salary", amount=Decimal("1000"), owner="alice")
        expense = Transaction(id="b", text="Coffee", amount=Decimal("-50"), owner="alice")
        zero = Transaction(id="c", text="Zero", amount=Decimal("0"), owner="alice")

        assert income.kind == TransactionKind.INCOME and income.is_income
        assert expense.kind == TransactionKind.EXPENSE and expense.is_expense
        assert zero.kind == TransactionKind.ZERO
        assert not zero.is_income and not zero.is_expense

    def test_to_record_uses_stored_field_names(self):
        """Test conversion to a document store record."""
        tx = Transaction(
            id="t1",
            text="Rent",
            amount=Decimal("-500"),
            owner="alice",
            file_url="https://files.example.com/lease.pdf?dl=1",
        )
        record = tx.to_record()
        assert "id" not in record
        assert record["fileUrl"] == "https://files.example.com/lease.pdf?dl=1"
        assert record["owner"] == "alice"

    def test_from_record_reads_sheet_strings(self):
        """Test that string cells from a row store are parsed."""
        tx = Transaction.from_record("t1", {
            "text": "Salary",
            "amount": "1000.50",
            "owner": "alice",
            "fileUrl": "",
            "created_at": "2024-03-01T10:00:00",
        })
        assert tx.id == "t1"
        assert tx.amount == Decimal("1000.50")
        assert tx.file_url is None
        assert tx.created_at == datetime(2024, 3, 1, 10, 0, tzinfo=timezone.utc)

    def test_with_changes_keeps_attachment(self):
        """Test that editing text/amount leaves the rest untouched."""
        tx = Transaction(
            id="t1",
            text="Rent",
            amount=Decimal("-500"),
            owner="alice",
            file_url="https://files.example.com/lease.pdf?dl=1",
        )
        changed = tx.with_changes("Rent (March)", Decimal("-20"))
        assert changed.text == "Rent (March)"
        assert changed.amount == Decimal("-20")
        assert changed.file_url == tx.file_url
        assert changed.created_at == tx.created_at
        assert tx.text == "Rent"

    def test_attachment_strips_directories(self):
        """Test that only the base file name is kept."""
        attachment = Attachment(filename="C:\\Users\\me\\receipt.jpg", content=b"jpeg")
        assert attachment.filename == "receipt.jpg"
        assert attachment.size_bytes == 4
        assert attachment.mime_type == "application/octet-stream"

    def test_user_is_frozen(self):
        """Test that a User cannot be changed after creation."""
        user = User(id="alice")
        with pytest.raises(ValueError):
            user.id = "bob"

    def test_aggregates_defaults(self):
        """Test empty Aggregates."""
        totals = Aggregates()
        assert totals.income == totals.expense == totals.balance == Decimal("0")
        assert totals.count == 0


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            description="Test transaction added",
        )
        assert event.event_type == AuditEventType.TRANSACTION_ADDED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            description="Transaction added",
            details={"text": "Salary", "amount": "1000"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "transaction_added"
        assert log_dict["details"]["text"] == "Salary"

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.USER_CONFIRMED,
            description="User confirmed delete",
            owner="alice",
            is_user_action=True,
        )
        row = event.to_sheets_row()
        assert len(row) == 12  # Expected number of columns
        assert row[2] == "user_confirmed"  # event_type
        assert row[6] == "alice"  # owner
        assert row[11] == "True"  # is_user_action

    def test_audit_event_builder_transaction_added(self):
        """Test AuditEventBuilder.transaction_added."""
        correlation_id = uuid4()

        event = AuditEventBuilder.transaction_added(
            transaction_id="t1",
            owner="alice",
            text="Salary",
            amount="1000",
            has_attachment=True,
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.TRANSACTION_ADDED
        assert event.entity_id == "t1"
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True

    def test_audit_event_builder_user_confirmed(self):
        """Test AuditEventBuilder.user_confirmed."""
        correlation_id = uuid4()

        event = AuditEventBuilder.user_confirmed(
            'Delete "Coffee"?',
            correlation_id,
            "alice",
        )

        assert event.event_type == AuditEventType.USER_CONFIRMED
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True

    def test_audit_event_builder_stale_load_is_warning(self):
        """Test that discarded loads are logged as warnings."""
        event = AuditEventBuilder.stale_load_discarded("alice", 1, 2)
        assert event.severity == AuditSeverity.WARNING
        assert event.details == {"sequence": 1, "latest": 2}


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="missing",
                    message="Please enter an amount",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            is_valid=True,
            issues=[
                ValidationIssue(
                    field="attachment",
                    issue_type="large",
                    message="Attachment is large",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0

    def test_validation_issue_rejects_unknown_severity(self):
        """Test the severity pattern."""
        with pytest.raises(ValueError):
            ValidationIssue(field="text", issue_type="x", message="x", severity="fatal")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
