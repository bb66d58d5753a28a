"""
Ledger Errors

Raised synchronously, before anything is produced. Because the engine
only returns new transactions and never writes them itself, a raised
error always means "nothing to append".
"""


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class InvalidTransferError(LedgerError):
    """Self-transfer, non-positive amount, negative fee or unknown wallet."""
    pass


class InvalidReconciliationError(LedgerError):
    """Reconciliation requested for a wallet that does not exist."""
    pass


class UnknownWalletError(LedgerError):
    """A wallet id resolved to no wallet."""
    pass


class TransactionNotFoundError(LedgerError):
    """A transaction id resolved to no transaction."""
    pass


class WalletInUseError(LedgerError):
    """Wallet deletion blocked because transactions still reference it."""

    def __init__(self, wallet_id: str, transaction_count: int):
        self.wallet_id = wallet_id
        self.transaction_count = transaction_count
        super().__init__(
            f"Wallet {wallet_id} is referenced by {transaction_count} transactions"
        )
