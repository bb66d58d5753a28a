"""
Ledger Validation

DESIGN DECISION: The engine trusts well-formed input, so integrity checks
that need the whole ledger happen here, before anything is written:

ENTITY CHECKS (pydantic, at construction):
- Types, non-negative amounts, parsable dates

LEDGER CHECKS (this module):
- Wallet references resolve
- Ids are unique
- System categories are not entered by hand
- Dates are not absurdly far in the future

IMPORTANT: Validation NEVER silently fixes issues.
It reports them; the ledger service decides whether to proceed.
"""

from datetime import datetime, timedelta
from typing import Optional, Sequence

from pocket_ledger.config import get_settings
from pocket_ledger.models.ledger import (
    Transaction,
    ValidationIssue,
    ValidationResult,
    Wallet,
)


class LedgerValidator:
    """
    Validates wallets and transactions against the current ledger.

    Errors block the write; warnings are passed on for display.
    """

    def __init__(self, future_date_tolerance_days: Optional[int] = None):
        """
        Initialize validator.

        Args:
            future_date_tolerance_days: How far ahead a transaction may be dated.
                                        Defaults to the configured value.
        """
        if future_date_tolerance_days is None:
            future_date_tolerance_days = get_settings().ledger.future_date_tolerance_days
        self._future_tolerance = timedelta(days=future_date_tolerance_days)

    def validate_transaction(
        self,
        transaction: Transaction,
        wallets: Sequence[Wallet],
        transactions: Sequence[Transaction] = (),
        *,
        now: Optional[datetime] = None,
        is_update: bool = False,
        allow_system_category: bool = False,
    ) -> ValidationResult:
        """
        Check a transaction before it is appended (or replaces an existing one).

        Args:
            transaction: The transaction to check
            wallets: Current wallet list
            transactions: Current transaction list (for duplicate ids)
            now: Reference time for the future-date check
            is_update: The transaction replaces one with the same id
            allow_system_category: Set by the engines that own those categories
        """
        issues = []
        now = now or datetime.now()

        if transaction.wallet_id is not None:
            if not any(w.id == transaction.wallet_id for w in wallets):
                issues.append(ValidationIssue(
                    field="wallet_id",
                    issue_type="unknown_wallet",
                    message=f"Wallet {transaction.wallet_id} does not exist",
                    severity="error",
                    suggested_fix="Pick an existing wallet or leave it unassigned",
                ))

        id_taken = any(t.id == transaction.id for t in transactions)
        if id_taken and not is_update:
            issues.append(ValidationIssue(
                field="id",
                issue_type="duplicate_id",
                message=f"A transaction with id {transaction.id} already exists",
                severity="error",
            ))
        elif is_update and not id_taken:
            issues.append(ValidationIssue(
                field="id",
                issue_type="not_found",
                message=f"Transaction {transaction.id} does not exist",
                severity="error",
            ))

        if transaction.is_system and not allow_system_category:
            issues.append(ValidationIssue(
                field="category",
                issue_type="system_category",
                message=f"Category '{transaction.category}' is normally written by transfers or reconciliation",
                severity="warning",
                suggested_fix="Use the transfer or balance adjustment action instead",
            ))

        if transaction.date > now + self._future_tolerance:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Transaction date ({transaction.day}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        return self._result("transaction", transaction.id, issues)

    def validate_wallet(
        self,
        wallet: Wallet,
        wallets: Sequence[Wallet],
        *,
        is_update: bool = False,
    ) -> ValidationResult:
        """Check a wallet before it is added (or replaces an existing one)."""
        issues = []

        id_taken = any(w.id == wallet.id for w in wallets)
        if id_taken and not is_update:
            issues.append(ValidationIssue(
                field="id",
                issue_type="duplicate_id",
                message=f"A wallet with id {wallet.id} already exists",
                severity="error",
            ))

        same_name = [
            w for w in wallets
            if w.name.lower() == wallet.name.lower() and w.id != wallet.id
        ]
        if same_name:
            issues.append(ValidationIssue(
                field="name",
                issue_type="duplicate_name",
                message=f"Another wallet is already called '{wallet.name}'",
                severity="warning",
                suggested_fix="Use a distinct name so transfers are easy to read",
            ))

        return self._result("wallet", wallet.id, issues)

    def _result(self, entity_type: str, entity_id: str, issues: list[ValidationIssue]) -> ValidationResult:
        return ValidationResult(
            entity_type=entity_type,
            entity_id=entity_id,
            is_valid=not any(issue.severity == "error" for issue in issues),
            issues=issues,
            warnings=[issue.message for issue in issues if issue.severity == "warning"],
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """
        Generate a user-friendly summary of validation results.
        """
        if result.is_valid and not result.warnings:
            return "✅ All checks passed."

        lines = []

        if not result.is_valid:
            lines.append("❌ This cannot be saved:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)


def find_orphaned_transactions(
    wallets: Sequence[Wallet],
    transactions: Sequence[Transaction],
) -> list[Transaction]:
    """Transactions whose wallet_id points at no wallet (unassigned ones are fine)."""
    known = {w.id for w in wallets}
    return [t for t in transactions if t.wallet_id is not None and t.wallet_id not in known]
