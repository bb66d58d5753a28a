"""
Ledger Engine Package

Pure functions over caller-owned wallet and transaction lists.
Nothing in here stores state or writes anywhere: operations either
return a derived value or a batch of new transactions to append.
"""

from pocket_ledger.ledger.balance import (
    balance_history,
    balance_of,
    balances,
    credit_status,
    total_wealth,
    wallet_summary,
)
from pocket_ledger.ledger.errors import (
    InvalidReconciliationError,
    InvalidTransferError,
    LedgerError,
    TransactionNotFoundError,
    UnknownWalletError,
    WalletInUseError,
)
from pocket_ledger.ledger.reconciliation import build_reconciliation
from pocket_ledger.ledger.transfer import build_transfer, validate_transfer

__all__ = [
    # Balance derivation
    "balance_history",
    "balance_of",
    "balances",
    "credit_status",
    "total_wealth",
    "wallet_summary",
    # Multi-leg builders
    "build_reconciliation",
    "build_transfer",
    "validate_transfer",
    # Errors
    "InvalidReconciliationError",
    "InvalidTransferError",
    "LedgerError",
    "TransactionNotFoundError",
    "UnknownWalletError",
    "WalletInUseError",
]
