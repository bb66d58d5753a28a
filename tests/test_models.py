"""
Tests for Pocket Ledger models

Test strategy:
1. Unit tests for the entity models (construction-time validation)
2. Unit tests for the result and audit models
3. No storage or network access (see test_storage / test_orchestrator)
"""

import pytest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from pocket_ledger.models.ledger import (
    Category,
    SYSTEM_CATEGORIES,
    Transaction,
    TransactionFilter,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    Wallet,
    WalletType,
    to_finite_decimal,
)
from pocket_ledger.models.reports import (
    BusinessSummary,
    CreditStatus,
    SpendingComparison,
    Totals,
    WalletSummary,
)
from pocket_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestWalletModel:
    """Tests for the Wallet model."""

    def test_wallet_creation(self):
        """Test Wallet model creation with defaults."""
        wallet = Wallet(name="Ví MoMo", type=WalletType.E_WALLET)
        assert wallet.name == "Ví MoMo"
        assert wallet.initial_balance == Decimal("0")
        assert wallet.credit_limit == Decimal("0")
        assert wallet.id

    def test_wallet_ids_are_unique(self):
        """Test that generated ids are never reused."""
        assert Wallet(name="A").id != Wallet(name="A").id

    def test_wallet_strips_whitespace(self):
        """Test that whitespace is stripped from the name."""
        wallet = Wallet(name="  Tiền mặt  ")
        assert wallet.name == "Tiền mặt"

    def test_e_wallet_value(self):
        """Test the E-WALLET spelling used in storage."""
        assert WalletType("E-WALLET") == WalletType.E_WALLET

    def test_credit_limit_zeroed_for_non_credit(self):
        """Test that only CREDIT wallets keep a credit limit."""
        wallet = Wallet(name="Bank", type=WalletType.BANK, credit_limit=Decimal("5000000"))
        assert wallet.credit_limit == Decimal("0")

    def test_credit_limit_kept_for_credit(self):
        wallet = Wallet(name="Card", type="CREDIT", credit_limit=Decimal("5000000"))
        assert wallet.credit_limit == Decimal("5000000")
        assert wallet.is_credit is True

    def test_negative_credit_limit_rejected(self):
        """Test that a negative limit is rejected."""
        with pytest.raises(ValidationError):
            Wallet(name="Card", type=WalletType.CREDIT, credit_limit=Decimal("-1"))

    def test_negative_initial_balance_allowed(self):
        """Test that a wallet may start in debt."""
        wallet = Wallet(name="Card", type=WalletType.CREDIT, initial_balance=Decimal("-200000"))
        assert wallet.initial_balance == Decimal("-200000")

    def test_empty_name_rejected(self):
        with pytest.raises(ValidationError):
            Wallet(name="   ")

    def test_wallet_is_frozen(self):
        """Test that a wallet cannot be mutated in place."""
        wallet = Wallet(name="Cash")
        with pytest.raises(ValidationError):
            wallet.name = "Other"


class TestTransactionModel:
    """Tests for the Transaction model."""

    def test_transaction_creation(self):
        """Test Transaction model creation."""
        tx = Transaction(
            amount=Decimal("50000"),
            type=TransactionType.EXPENSE,
            category=Category.FOOD,
            date=datetime(2024, 3, 1, 8, 30),
            wallet_id="cash",
        )
        assert tx.amount == Decimal("50000")
        assert tx.category == "Ăn uống"
        assert tx.day == date(2024, 3, 1)

    def test_negative_amount_rejected(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValueError):
            Transaction(amount=Decimal("-100"), type=TransactionType.EXPENSE)

    def test_zero_amount_allowed(self):
        tx = Transaction(amount=0, type=TransactionType.INCOME)
        assert tx.amount == Decimal("0")

    def test_float_amount_has_no_binary_noise(self):
        """Test that floats are converted through their decimal text."""
        tx = Transaction(amount=0.1, type=TransactionType.INCOME)
        assert tx.amount == Decimal("0.1")

    def test_date_only_means_midnight(self):
        """Test that a bare date becomes the start of that day."""
        tx = Transaction(amount=1, type=TransactionType.INCOME, date=date(2024, 3, 1))
        assert tx.date == datetime(2024, 3, 1, 0, 0)

    def test_iso_string_date_parsed(self):
        tx = Transaction(amount=1, type=TransactionType.INCOME, date="2024-03-01T10:15:00")
        assert tx.date == datetime(2024, 3, 1, 10, 15)

    def test_utc_z_suffix_parsed(self):
        """Test the JavaScript toISOString form, with milliseconds and a Z."""
        tx = Transaction(amount=1, type=TransactionType.INCOME, date="2024-03-01T10:15:00.000Z")
        assert tx.date == datetime(2024, 3, 1, 10, 15)
        assert tx.date.tzinfo is None

    def test_aware_date_normalized_to_utc(self):
        """Test that aware timestamps are stored as naive UTC."""
        ict = timezone(timedelta(hours=7))
        tx = Transaction(
            amount=1,
            type=TransactionType.INCOME,
            date=datetime(2024, 3, 1, 7, 0, tzinfo=ict),
        )
        assert tx.date == datetime(2024, 3, 1, 0, 0)
        assert tx.date.tzinfo is None

    def test_unparsable_date_rejected(self):
        """Test that garbage dates fail at construction."""
        with pytest.raises(ValidationError, match="Unparsable transaction date"):
            Transaction(amount=1, type=TransactionType.INCOME, date="not a date")

    def test_empty_wallet_id_means_unassigned(self):
        tx = Transaction(amount=1, type=TransactionType.INCOME, wallet_id="")
        assert tx.wallet_id is None

    def test_signed_amount(self):
        """Test that direction comes from the type."""
        income = Transaction(amount=100, type=TransactionType.INCOME)
        expense = Transaction(amount=100, type=TransactionType.EXPENSE)
        assert income.signed_amount == Decimal("100")
        assert expense.signed_amount == Decimal("-100")

    def test_business_and_system_flags(self):
        selling = Transaction(amount=1, type=TransactionType.INCOME, category=Category.SELLING)
        fee = Transaction(amount=1, type=TransactionType.EXPENSE, category=Category.TRANSFER_FEE)
        assert selling.is_business is True
        assert selling.is_system is False
        assert fee.is_system is True

    def test_free_text_category(self):
        """Test that users may invent their own categories."""
        tx = Transaction(amount=1, type=TransactionType.EXPENSE, category="Nuôi mèo")
        assert tx.category == "Nuôi mèo"


class TestToFiniteDecimal:
    """Tests for user-supplied number conversion."""

    def test_accepts_numbers(self):
        assert to_finite_decimal(0.1) == Decimal("0.1")
        assert to_finite_decimal("250000") == Decimal("250000")
        assert to_finite_decimal(Decimal("-3.5")) == Decimal("-3.5")

    @pytest.mark.parametrize(
        "value",
        [float("nan"), float("inf"), Decimal("-Infinity"), Decimal("sNaN"), "1,000", "", None],
    )
    def test_rejects_non_finite_and_junk(self, value):
        with pytest.raises(ValueError):
            to_finite_decimal(value)


class TestTransactionFilter:
    """Tests for the transaction book filter."""

    def test_all_marker_means_unset(self):
        """Test that the UI's ALL value disables a predicate."""
        criteria = TransactionFilter(type="ALL", category="ALL", wallet_id="")
        assert criteria.type is None
        assert criteria.category is None
        assert criteria.wallet_id is None

    def test_datetimes_reduced_to_days(self):
        criteria = TransactionFilter(start_date=datetime(2024, 3, 1, 18, 0))
        assert criteria.start_date == date(2024, 3, 1)

    def test_category_enum_accepted(self):
        criteria = TransactionFilter(category=Category.SELLING)
        assert criteria.category == "Bán hàng/Kinh doanh"


class TestReportModels:
    """Tests for derived result models."""

    def test_totals_net(self):
        totals = Totals(income=Decimal("300"), expense=Decimal("500"))
        assert totals.net == Decimal("-200")

    def test_business_summary_margin(self):
        summary = BusinessSummary(revenue=Decimal("500000"), cost=Decimal("300000"))
        assert summary.profit == Decimal("200000")
        assert summary.margin == Decimal("0.4")
        assert summary.margin_percent == Decimal("40")

    def test_business_summary_without_revenue(self):
        """Test that no revenue gives a zero margin, not a division error."""
        summary = BusinessSummary(cost=Decimal("1000"))
        assert summary.margin == Decimal("0")
        assert summary.profit == Decimal("-1000")

    def test_credit_status_without_limit(self):
        status = CreditStatus(credit_limit=Decimal("0"), balance=Decimal("-100"))
        assert status.utilization == Decimal("0")
        assert status.available_credit == Decimal("-100")

    def test_wallet_summary_display_amount(self):
        """Test that credit cards display their available credit."""
        card = Wallet(name="Card", type=WalletType.CREDIT, credit_limit=Decimal("1000"))
        summary = WalletSummary(
            wallet=card,
            balance=Decimal("-300"),
            credit=CreditStatus(credit_limit=Decimal("1000"), balance=Decimal("-300")),
        )
        assert summary.display_amount == Decimal("700")

    def test_spending_comparison_direction(self):
        comparison = SpendingComparison(
            today=date(2024, 3, 15),
            yesterday=date(2024, 3, 14),
            today_expense=Decimal("150"),
            yesterday_expense=Decimal("100"),
            percent_change=50,
        )
        assert comparison.difference == Decimal("50")
        assert comparison.is_spending_more is True


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.WALLET_CREATED,
            description="Wallet created",
        )
        assert event.event_type == AuditEventType.WALLET_CREATED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            description="Expense recorded",
            details={"category": "Ăn uống", "amount": "50000"},
        )
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "transaction_created"
        assert log_dict["details"]["amount"] == "50000"

    def test_audit_event_to_sheets_row(self):
        """Test conversion to sheets row."""
        event = AuditEvent(
            event_type=AuditEventType.BALANCE_RECONCILED,
            description="Balance reconciled",
            entity_id="cash",
            is_user_action=True,
        )
        row = event.to_sheets_row()
        assert len(row) == 11  # Expected number of columns
        assert row[2] == "balance_reconciled"
        assert row[5] == "cash"
        assert row[10] == "True"

    def test_audit_event_builder_transfer_completed(self):
        """Test AuditEventBuilder.transfer_completed."""
        correlation_id = uuid4()
        event = AuditEventBuilder.transfer_completed(
            batch_id="batch-1",
            from_wallet_id="cash",
            to_wallet_id="bank",
            amount="200000",
            fee="5000",
            leg_ids=["a", "b", "c"],
            correlation_id=correlation_id,
        )
        assert event.event_type == AuditEventType.TRANSFER_COMPLETED
        assert event.entity_type == "transfer"
        assert event.entity_id == "batch-1"
        assert event.details["leg_ids"] == ["a", "b", "c"]
        assert event.correlation_id == correlation_id
        assert event.is_user_action is True

    def test_audit_event_builder_wallet_deleted_with_transactions(self):
        """Test that deleting a wallet with history is a warning."""
        event = AuditEventBuilder.wallet_deleted("cash", "cascade", 4)
        assert event.severity == AuditSeverity.WARNING
        assert event.details["affected_transactions"] == 4

    def test_audit_event_builder_operation_rejected(self):
        event = AuditEventBuilder.operation_rejected("transfer", "Cannot transfer a wallet to itself")
        assert event.event_type == AuditEventType.OPERATION_REJECTED
        assert event.error_message == "Cannot transfer a wallet to itself"
        assert event.is_user_action is False


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            entity_type="transaction",
            entity_id="tx-1",
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="wallet_id",
                    issue_type="unknown_wallet",
                    message="Wallet missing",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1
        assert result.error_messages == ["Wallet missing"]

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            entity_type="transaction",
            entity_id="tx-1",
            is_valid=True,
            issues=[
                ValidationIssue(
                    field="date",
                    issue_type="future_date",
                    message="Date in future",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0

    def test_invalid_severity_rejected(self):
        with pytest.raises(ValidationError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")


class TestCategories:
    """Tests for the category enum."""

    def test_system_categories(self):
        """Test the categories written by the engines."""
        assert SYSTEM_CATEGORIES == {
            "Chuyển đi",
            "Phí giao dịch",
            "Nhận tiền",
            "Điều chỉnh số dư",
        }

    def test_business_category_values(self):
        assert Category.SELLING.value == "Bán hàng/Kinh doanh"
        assert Category.BUSINESS_COST.value == "Chi phí Kinh doanh"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
