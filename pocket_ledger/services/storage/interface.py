"""
Abstract Storage Interface

DESIGN DECISION: The ledger engine owns no storage. The host persists the
wallet list and the transaction list through this interface, which allows us to:
1. Keep Google Sheets as the user-visible store
2. Use in-memory storage for testing
3. Swap in a real database later without touching the engine

CRITICAL: append_transactions takes a whole batch. Implementations must make
the batch visible all at once (one write), because a transfer's legs are only
correct together.
"""

from abc import ABC, abstractmethod
from typing import Sequence
from uuid import UUID

from pocket_ledger.models.audit import AuditEvent
from pocket_ledger.models.ledger import Transaction, Wallet


class LedgerStorageInterface(ABC):
    """
    Abstract interface for wallet and transaction storage.

    Any storage implementation (Google Sheets, PostgreSQL, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def load_wallets(self) -> list[Wallet]:
        """
        Load every wallet, in creation order.

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def load_transactions(self) -> list[Transaction]:
        """
        Load every transaction, in the order they were appended.

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def save_wallet(self, wallet: Wallet) -> bool:
        """
        Add a new wallet.

        Raises:
            DuplicateError: If a wallet with the same id exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def update_wallet(self, wallet: Wallet) -> bool:
        """
        Replace the wallet with the same id.

        Raises:
            NotFoundError: If the wallet doesn't exist
            StorageError: If update fails
        """
        pass

    @abstractmethod
    async def delete_wallet(self, wallet_id: str) -> bool:
        """
        Delete a wallet by id.

        Returns:
            True if a wallet was deleted, False if none had that id
        """
        pass

    @abstractmethod
    async def append_transactions(self, transactions: Sequence[Transaction]) -> bool:
        """
        Append a batch of transactions as one unit.

        Either every transaction of the batch is stored or none is.

        Raises:
            DuplicateError: If an id is already stored
            StorageError: If the write fails (nothing was stored)
        """
        pass

    @abstractmethod
    async def update_transaction(self, transaction: Transaction) -> bool:
        """
        Replace the transaction with the same id.

        Raises:
            NotFoundError: If the transaction doesn't exist
            StorageError: If update fails
        """
        pass

    @abstractmethod
    async def delete_transactions(self, transaction_ids: Sequence[str]) -> int:
        """
        Delete transactions by id, as one unit.

        Returns:
            Number of transactions deleted (unknown ids are ignored)
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one transfer).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Args:
            entity_type: Type of entity (e.g., 'wallet', 'transaction')
            entity_id: The entity's ID

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
