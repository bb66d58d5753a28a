"""
Ledger Service for Pocket Ledger

This module ties together the pure engine, validation, storage and audit,
and defines the end-to-end flows for:
1. Wallets (add → validate → save, metadata updates, deletion policy)
2. Transactions (add/edit/delete with validation)
3. Transfers and reconciliations (engine batch → one atomic append)
4. Reads (balances, wallet summaries, the filtered transaction book, charts)

DESIGN DECISION: The service enforces the boundaries the engine leaves
to its host:
- Every mutation runs under one lock, so a reconciliation never reads
  a balance that a concurrent append is about to change
- Multi-leg batches are written with a single append_transactions call
- Every mutation (and every refusal) is audited

The engine functions stay pure; this is the only place that reads
from and writes to storage.
"""

import asyncio
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, Sequence, Union
from uuid import UUID

import structlog
from pydantic import ValidationError

from pocket_ledger.audit import AuditLogger, create_correlation_id
from pocket_ledger.config import get_settings
from pocket_ledger.config.settings import LedgerSettings
from pocket_ledger.ledger import (
    LedgerError,
    TransactionNotFoundError,
    UnknownWalletError,
    WalletInUseError,
    balance_of,
    balances,
    build_reconciliation,
    build_transfer,
    total_wealth,
    wallet_summary,
)
from pocket_ledger.models.ledger import (
    ZERO,
    Granularity,
    SortOrder,
    Transaction,
    TransactionFilter,
    ValidationResult,
    Wallet,
    WalletDeletionPolicy,
    to_decimal,
)
from pocket_ledger.models.reports import (
    BusinessBucket,
    IntensityBar,
    PeriodBucket,
    SpendingComparison,
    WalletSummary,
)
from pocket_ledger.queries import (
    business_buckets,
    intensity_window,
    period_buckets,
    query_transactions,
    spending_comparison,
)
from pocket_ledger.services.storage import (
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    StorageError,
)
from pocket_ledger.validation import LedgerValidator


Amount = Union[Decimal, int, str, float]

# Wallet fields that identify it or anchor its balance history
IMMUTABLE_WALLET_FIELDS = frozenset({"id", "initial_balance"})


class LedgerService:
    """
    Coordinates every read and write of one ledger.

    Writers are serialised by an asyncio.Lock: the ledger is single-user,
    but an async host (web server, bot) may still interleave requests.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[LedgerValidator] = None,
        settings: Optional[LedgerSettings] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().ledger
        self._validator = validator or LedgerValidator(
            self._settings.future_date_tolerance_days
        )
        self._lock = asyncio.Lock()
        self._logger = structlog.get_logger(__name__)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def _snapshot(self) -> tuple[list[Wallet], list[Transaction]]:
        wallets = await self._storage.load_wallets()
        transactions = await self._storage.load_transactions()
        return wallets, transactions

    async def _reject(
        self,
        operation: str,
        error: Exception,
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> None:
        self._logger.info("operation_rejected", operation=operation, reason=str(error))
        if self._audit_logger:
            await self._audit_logger.log_operation_rejected(
                operation=operation,
                reason=str(error),
                details=details,
                correlation_id=correlation_id,
            )

    async def _storage_failed(
        self,
        operation: str,
        error: StorageError,
        correlation_id: UUID,
    ) -> None:
        self._logger.error("storage_failed", operation=operation, error=str(error))
        if self._audit_logger:
            await self._audit_logger.log_storage_error(
                operation=operation,
                error_message=str(error),
                correlation_id=correlation_id,
            )

    async def _raise_if_invalid(
        self,
        operation: str,
        result: ValidationResult,
        correlation_id: UUID,
    ) -> None:
        """Turn validation errors into the matching ledger exception."""
        if result.is_valid:
            return

        issue_types = {issue.issue_type for issue in result.issues if issue.severity == "error"}
        message = "; ".join(result.error_messages)
        if "unknown_wallet" in issue_types:
            error: LedgerError = UnknownWalletError(message)
        elif "not_found" in issue_types:
            error = TransactionNotFoundError(message)
        else:
            error = LedgerError(message)

        await self._reject(
            operation,
            error,
            correlation_id,
            details={"issues": [issue.model_dump() for issue in result.issues]},
        )
        raise error

    @staticmethod
    def _find_wallet(wallets: Sequence[Wallet], wallet_id: str) -> Optional[Wallet]:
        return next((w for w in wallets if w.id == wallet_id), None)

    # -------------------------------------------------------------------------
    # Wallets
    # -------------------------------------------------------------------------

    async def add_wallet(
        self,
        wallet: Wallet,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Wallet, ValidationResult]:
        """
        Add a new wallet.

        Returns:
            (wallet, validation) - validation carries any warnings

        Raises:
            LedgerError: If the wallet id is already taken
        """
        correlation_id = correlation_id or create_correlation_id()

        async with self._lock:
            wallets = await self._storage.load_wallets()
            result = self._validator.validate_wallet(wallet, wallets)
            await self._raise_if_invalid("add_wallet", result, correlation_id)

            try:
                await self._storage.save_wallet(wallet)
            except StorageError as e:
                await self._storage_failed("add_wallet", e, correlation_id)
                raise

        if self._audit_logger:
            await self._audit_logger.log_wallet_created(wallet, correlation_id)
        return wallet, result

    async def update_wallet(
        self,
        wallet_id: str,
        correlation_id: Optional[UUID] = None,
        **changes: Any,
    ) -> Wallet:
        """
        Change a wallet's metadata (name, type, limit, bank details, color).

        Raises:
            LedgerError: If id or initial_balance is in `changes`, a field
                         name is unknown or a new value is invalid
            UnknownWalletError: If no wallet has that id
        """
        correlation_id = correlation_id or create_correlation_id()

        forbidden = sorted(IMMUTABLE_WALLET_FIELDS.intersection(changes))
        if forbidden:
            error = LedgerError(
                f"Wallet fields cannot be changed: {', '.join(forbidden)}. "
                "Use a balance reconciliation to correct the balance."
            )
            await self._reject("update_wallet", error, correlation_id)
            raise error

        unknown = sorted(set(changes).difference(Wallet.model_fields))
        if unknown:
            error = LedgerError(f"Unknown wallet fields: {', '.join(unknown)}")
            await self._reject("update_wallet", error, correlation_id)
            raise error

        async with self._lock:
            wallets = await self._storage.load_wallets()
            current = self._find_wallet(wallets, wallet_id)
            if current is None:
                error = UnknownWalletError(f"Unknown wallet: {wallet_id}")
                await self._reject("update_wallet", error, correlation_id)
                raise error

            try:
                updated = Wallet(**{**current.model_dump(), **changes})
            except ValidationError as e:
                error = LedgerError(f"Invalid wallet update: {e}")
                await self._reject(
                    "update_wallet",
                    error,
                    correlation_id,
                    details={"wallet_id": wallet_id, "fields": sorted(changes)},
                )
                raise error
            result = self._validator.validate_wallet(updated, wallets, is_update=True)
            await self._raise_if_invalid("update_wallet", result, correlation_id)

            changed_fields = [
                name for name in Wallet.model_fields
                if getattr(current, name) != getattr(updated, name)
            ]
            try:
                await self._storage.update_wallet(updated)
            except StorageError as e:
                await self._storage_failed("update_wallet", e, correlation_id)
                raise

        if self._audit_logger:
            await self._audit_logger.log_wallet_updated(wallet_id, changed_fields, correlation_id)
        return updated

    async def delete_wallet(
        self,
        wallet_id: str,
        policy: Optional[WalletDeletionPolicy] = None,
        correlation_id: Optional[UUID] = None,
    ) -> int:
        """
        Delete a wallet, handling its transactions according to `policy`.

        BLOCK (default) refuses while transactions reference the wallet.
        DETACH clears wallet_id on those transactions, CASCADE deletes them.

        Returns:
            Number of transactions detached or deleted

        Raises:
            UnknownWalletError: If no wallet has that id
            WalletInUseError: Under BLOCK, when transactions reference the wallet
        """
        correlation_id = correlation_id or create_correlation_id()
        policy = WalletDeletionPolicy(policy or self._settings.wallet_deletion_policy)

        async with self._lock:
            wallets, transactions = await self._snapshot()
            if self._find_wallet(wallets, wallet_id) is None:
                error = UnknownWalletError(f"Unknown wallet: {wallet_id}")
                await self._reject("delete_wallet", error, correlation_id)
                raise error

            referencing = [t for t in transactions if t.wallet_id == wallet_id]

            if referencing and policy == WalletDeletionPolicy.BLOCK:
                error = WalletInUseError(wallet_id, len(referencing))
                await self._reject(
                    "delete_wallet",
                    error,
                    correlation_id,
                    details={"wallet_id": wallet_id, "transactions": len(referencing)},
                )
                raise error

            try:
                if referencing and policy == WalletDeletionPolicy.CASCADE:
                    await self._storage.delete_transactions([t.id for t in referencing])
                elif referencing and policy == WalletDeletionPolicy.DETACH:
                    for t in referencing:
                        await self._storage.update_transaction(
                            t.model_copy(update={"wallet_id": None})
                        )
                await self._storage.delete_wallet(wallet_id)
            except StorageError as e:
                await self._storage_failed("delete_wallet", e, correlation_id)
                raise

        if self._audit_logger:
            await self._audit_logger.log_wallet_deleted(
                wallet_id, policy.value, len(referencing), correlation_id
            )
        return len(referencing)

    # -------------------------------------------------------------------------
    # Transactions
    # -------------------------------------------------------------------------

    async def add_transaction(
        self,
        transaction: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Transaction, ValidationResult]:
        """
        Append one user-entered transaction.

        Returns:
            (transaction, validation) - validation carries any warnings

        Raises:
            UnknownWalletError: If wallet_id resolves to no wallet
            LedgerError: If the id is already taken
        """
        correlation_id = correlation_id or create_correlation_id()

        async with self._lock:
            wallets, transactions = await self._snapshot()
            result = self._validator.validate_transaction(transaction, wallets, transactions)
            await self._raise_if_invalid("add_transaction", result, correlation_id)

            try:
                await self._storage.append_transactions([transaction])
            except StorageError as e:
                await self._storage_failed("add_transaction", e, correlation_id)
                raise

        if self._audit_logger:
            await self._audit_logger.log_transaction_created(transaction, correlation_id)
        return transaction, result

    async def update_transaction(
        self,
        transaction: Transaction,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Transaction, ValidationResult]:
        """
        Replace the stored transaction that has the same id.

        Raises:
            TransactionNotFoundError: If no transaction has that id
            UnknownWalletError: If the new wallet_id resolves to no wallet
        """
        correlation_id = correlation_id or create_correlation_id()

        async with self._lock:
            wallets, transactions = await self._snapshot()
            result = self._validator.validate_transaction(
                transaction,
                wallets,
                transactions,
                is_update=True,
                allow_system_category=True,
            )
            await self._raise_if_invalid("update_transaction", result, correlation_id)

            previous = next(t for t in transactions if t.id == transaction.id)
            changed_fields = [
                name for name in Transaction.model_fields
                if getattr(previous, name) != getattr(transaction, name)
            ]
            try:
                await self._storage.update_transaction(transaction)
            except StorageError as e:
                await self._storage_failed("update_transaction", e, correlation_id)
                raise

        if self._audit_logger:
            await self._audit_logger.log_transaction_updated(
                transaction.id, changed_fields, correlation_id
            )
        return transaction, result

    async def delete_transaction(
        self,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """
        Remove one transaction.

        Raises:
            TransactionNotFoundError: If no transaction has that id
        """
        correlation_id = correlation_id or create_correlation_id()

        async with self._lock:
            try:
                deleted = await self._storage.delete_transactions([transaction_id])
            except StorageError as e:
                await self._storage_failed("delete_transaction", e, correlation_id)
                raise

            if not deleted:
                error = TransactionNotFoundError(f"Transaction not found: {transaction_id}")
                await self._reject("delete_transaction", error, correlation_id)
                raise error

        if self._audit_logger:
            await self._audit_logger.log_transaction_deleted(transaction_id, correlation_id)

    # -------------------------------------------------------------------------
    # Multi-leg operations
    # -------------------------------------------------------------------------

    async def transfer(
        self,
        from_wallet_id: str,
        to_wallet_id: str,
        amount: Amount,
        fee: Amount = ZERO,
        note: str = "",
        *,
        at: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[Transaction]:
        """
        Move money between two wallets.

        The legs are appended with ONE storage call; if it fails,
        nothing was written.

        Raises:
            InvalidTransferError: If a precondition fails
            StorageError: If the batch could not be written
        """
        correlation_id = correlation_id or create_correlation_id()

        async with self._lock:
            wallets = await self._storage.load_wallets()
            try:
                legs = build_transfer(
                    from_wallet_id,
                    to_wallet_id,
                    amount,
                    fee,
                    note,
                    wallets=wallets,
                    at=at,
                )
            except LedgerError as e:
                await self._reject(
                    "transfer",
                    e,
                    correlation_id,
                    details={
                        "from_wallet_id": from_wallet_id,
                        "to_wallet_id": to_wallet_id,
                        "amount": str(amount),
                        "fee": str(fee),
                    },
                )
                raise

            try:
                await self._storage.append_transactions(legs)
            except StorageError as e:
                await self._storage_failed("transfer", e, correlation_id)
                raise

        if self._audit_logger:
            await self._audit_logger.log_transfer_completed(
                legs,
                from_wallet_id=from_wallet_id,
                to_wallet_id=to_wallet_id,
                amount=str(to_decimal(amount)),
                fee=str(to_decimal(fee)),
                correlation_id=correlation_id,
            )
        return legs

    async def reconcile(
        self,
        wallet_id: str,
        actual_balance: Amount,
        *,
        at: Optional[datetime] = None,
        correlation_id: Optional[UUID] = None,
    ) -> list[Transaction]:
        """
        Bring a wallet's derived balance to `actual_balance`.

        Returns:
            The appended adjustment, or an empty list if none was needed

        Raises:
            InvalidReconciliationError: If the wallet doesn't exist
        """
        correlation_id = correlation_id or create_correlation_id()

        async with self._lock:
            wallets, transactions = await self._snapshot()
            try:
                adjustment = build_reconciliation(
                    wallet_id, actual_balance, wallets, transactions, at=at
                )
            except LedgerError as e:
                await self._reject("reconcile", e, correlation_id, details={"wallet_id": wallet_id})
                raise

            previous = balance_of(self._find_wallet(wallets, wallet_id), transactions)
            if adjustment:
                try:
                    await self._storage.append_transactions(adjustment)
                except StorageError as e:
                    await self._storage_failed("reconcile", e, correlation_id)
                    raise

        if self._audit_logger:
            await self._audit_logger.log_balance_reconciled(
                wallet_id=wallet_id,
                previous_balance=str(previous),
                actual_balance=str(to_decimal(actual_balance)),
                adjustment_id=adjustment[0].id if adjustment else None,
                correlation_id=correlation_id,
            )
        return adjustment

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def wallets(self) -> list[Wallet]:
        return await self._storage.load_wallets()

    async def transactions(self) -> list[Transaction]:
        return await self._storage.load_transactions()

    async def balances(self) -> dict[str, Decimal]:
        """Derived balance of every wallet, keyed by wallet id."""
        wallets, transactions = await self._snapshot()
        return balances(wallets, transactions)

    async def wallet_summaries(self) -> list[WalletSummary]:
        """Balance and credit view of every wallet, in wallet order."""
        wallets, transactions = await self._snapshot()
        return [wallet_summary(w, transactions) for w in wallets]

    async def total_wealth(self) -> Decimal:
        wallets, transactions = await self._snapshot()
        return total_wealth(wallets, transactions)

    async def query(
        self,
        criteria: Optional[TransactionFilter] = None,
        order: SortOrder = SortOrder.DATE_DESC,
    ) -> list[Transaction]:
        """The transaction book: filter then sort the stored transactions."""
        return query_transactions(await self._storage.load_transactions(), criteria, order)

    async def period_buckets(
        self,
        periods: Optional[int] = None,
        granularity: Granularity = Granularity.MONTH,
        *,
        now: Optional[datetime] = None,
    ) -> list[PeriodBucket]:
        """Cash-flow chart buckets; `periods` defaults to default_period_months."""
        if periods is None:
            periods = self._settings.default_period_months
        return period_buckets(
            await self._storage.load_transactions(),
            periods,
            now or datetime.now(),
            granularity,
        )

    async def business_buckets(
        self,
        months: Optional[int] = None,
        *,
        now: Optional[datetime] = None,
    ) -> list[BusinessBucket]:
        """Monthly business P&L; `months` defaults to default_period_months."""
        if months is None:
            months = self._settings.default_period_months
        return business_buckets(
            await self._storage.load_transactions(), months, now or datetime.now()
        )

    async def intensity_window(
        self,
        size: Optional[int] = None,
        min_weight: Optional[int] = None,
    ) -> list[IntensityBar]:
        """Recent-activity bars sized by recent_window_size and intensity_min_weight."""
        if size is None:
            size = self._settings.recent_window_size
        if min_weight is None:
            min_weight = self._settings.intensity_min_weight
        return intensity_window(await self._storage.load_transactions(), size, min_weight)

    async def spending_comparison(self, *, now: Optional[datetime] = None) -> SpendingComparison:
        return spending_comparison(await self._storage.load_transactions(), now or datetime.now())


def create_ledger_service(
    use_storage: bool = True,
) -> LedgerService:
    """
    Factory function to create the ledger service.

    Args:
        use_storage: Whether to use the configured storage backend.
                    Set to False for an in-memory ledger (tests, demos).

    Returns:
        A LedgerService wired to its storage and audit logger
    """
    settings = get_settings().ledger

    if use_storage and settings.storage_backend == "google_sheets":
        try:
            from pocket_ledger.services.storage.google_sheets import (
                GoogleSheetsAuditStorage,
                GoogleSheetsClient,
                GoogleSheetsLedgerStorage,
            )

            sheets_client = GoogleSheetsClient()
            return LedgerService(
                storage=GoogleSheetsLedgerStorage(sheets_client),
                audit_logger=AuditLogger(GoogleSheetsAuditStorage(sheets_client)),
                settings=settings,
            )
        except Exception as e:
            # Storage not configured - continue in memory
            structlog.get_logger(__name__).warning(
                "storage_not_configured", error=str(e), fallback="memory"
            )

    return LedgerService(
        storage=InMemoryLedgerStorage(),
        audit_logger=AuditLogger(InMemoryAuditStorage()),
        settings=settings,
    )
