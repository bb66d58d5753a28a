"""
In-Memory Storage Implementation

Used by tests and by hosts that persist elsewhere (they load the lists,
hand them to the ledger service, and dump them on shutdown).

Every write builds a new list and swaps it in with one assignment, so a
reader sees either the whole batch or none of it.
"""

from typing import Iterable, Optional, Sequence
from uuid import UUID

from pocket_ledger.models.audit import AuditEvent
from pocket_ledger.models.ledger import Transaction, Wallet
from pocket_ledger.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
)


class InMemoryLedgerStorage(LedgerStorageInterface):
    """Wallets and transactions kept in two Python lists."""

    def __init__(
        self,
        wallets: Optional[Iterable[Wallet]] = None,
        transactions: Optional[Iterable[Transaction]] = None,
    ):
        self._wallets: list[Wallet] = list(wallets or [])
        self._transactions: list[Transaction] = list(transactions or [])

    async def load_wallets(self) -> list[Wallet]:
        return list(self._wallets)

    async def load_transactions(self) -> list[Transaction]:
        return list(self._transactions)

    async def save_wallet(self, wallet: Wallet) -> bool:
        if any(w.id == wallet.id for w in self._wallets):
            raise DuplicateError(f"Wallet already exists: {wallet.id}")
        self._wallets = self._wallets + [wallet]
        return True

    async def update_wallet(self, wallet: Wallet) -> bool:
        if not any(w.id == wallet.id for w in self._wallets):
            raise NotFoundError(f"Wallet not found: {wallet.id}")
        self._wallets = [wallet if w.id == wallet.id else w for w in self._wallets]
        return True

    async def delete_wallet(self, wallet_id: str) -> bool:
        remaining = [w for w in self._wallets if w.id != wallet_id]
        deleted = len(remaining) != len(self._wallets)
        self._wallets = remaining
        return deleted

    async def append_transactions(self, transactions: Sequence[Transaction]) -> bool:
        existing = {t.id for t in self._transactions}
        batch_ids = [t.id for t in transactions]
        if len(set(batch_ids)) != len(batch_ids) or existing.intersection(batch_ids):
            raise DuplicateError("Transaction id already stored")
        self._transactions = self._transactions + list(transactions)
        return True

    async def update_transaction(self, transaction: Transaction) -> bool:
        if not any(t.id == transaction.id for t in self._transactions):
            raise NotFoundError(f"Transaction not found: {transaction.id}")
        self._transactions = [
            transaction if t.id == transaction.id else t for t in self._transactions
        ]
        return True

    async def delete_transactions(self, transaction_ids: Sequence[str]) -> int:
        doomed = set(transaction_ids)
        remaining = [t for t in self._transactions if t.id not in doomed]
        deleted = len(self._transactions) - len(remaining)
        self._transactions = remaining
        return deleted


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only audit log in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_events_by_entity(self, entity_type: str, entity_id: str) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        return sorted(self._events, key=lambda e: e.timestamp, reverse=True)[:limit]
