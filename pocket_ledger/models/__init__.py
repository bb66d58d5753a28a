"""
Data Models Package

This package contains all Pydantic models used in Pocket Ledger.
All data flowing through the engine must conform to these schemas.
"""

from pocket_ledger.models.ledger import (
    BUSINESS_CATEGORIES,
    SYSTEM_CATEGORIES,
    ZERO,
    Category,
    Granularity,
    SortOrder,
    Transaction,
    TransactionFilter,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    Wallet,
    WalletDeletionPolicy,
    WalletType,
    new_id,
)
from pocket_ledger.models.reports import (
    BalancePoint,
    BusinessBucket,
    BusinessSummary,
    CategoryTotal,
    CreditStatus,
    DailyNet,
    DailySpend,
    DayGroup,
    IntensityBar,
    MonthSpendingProfile,
    PeriodBucket,
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

__all__ = [
    # Ledger models
    "BUSINESS_CATEGORIES",
    "SYSTEM_CATEGORIES",
    "ZERO",
    "Category",
    "Granularity",
    "SortOrder",
    "Transaction",
    "TransactionFilter",
    "TransactionType",
    "ValidationIssue",
    "ValidationResult",
    "Wallet",
    "WalletDeletionPolicy",
    "WalletType",
    "new_id",
    # Report models
    "BalancePoint",
    "BusinessBucket",
    "BusinessSummary",
    "CategoryTotal",
    "CreditStatus",
    "DailyNet",
    "DailySpend",
    "DayGroup",
    "IntensityBar",
    "MonthSpendingProfile",
    "PeriodBucket",
    "SpendingComparison",
    "Totals",
    "WalletSummary",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
