"""
Tests for the audit logger.
"""

import pytest
from decimal import Decimal

from pocket_ledger.audit import AuditLogger, create_correlation_id
from pocket_ledger.models.audit import AuditEventBuilder, AuditEventType
from pocket_ledger.models.ledger import Wallet
from pocket_ledger.services.storage import AuditStorageInterface, InMemoryAuditStorage


class BrokenAuditStorage(AuditStorageInterface):
    """Audit storage that is always down."""

    async def append_event(self, event):
        raise ConnectionRefusedError("sheets unreachable")

    async def get_events_by_correlation_id(self, correlation_id):
        return []

    async def get_events_by_entity(self, entity_type, entity_id):
        return []

    async def get_recent_events(self, limit=100):
        return []


class TestAuditLogger:
    """Tests for local logging plus persistence."""

    @pytest.mark.asyncio
    async def test_log_persists_event(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        event = AuditEventBuilder.transaction_deleted("tx-1")

        assert await logger.log(event) is True
        assert await storage.get_recent_events() == [event]

    @pytest.mark.asyncio
    async def test_local_only_logger(self):
        """Test that a logger without storage still succeeds."""
        assert await AuditLogger().log(AuditEventBuilder.transaction_deleted("tx-1")) is True

    @pytest.mark.asyncio
    async def test_storage_failure_is_not_raised(self):
        """Test that a failed audit write never breaks the caller."""
        logger = AuditLogger(BrokenAuditStorage())
        assert await logger.log(AuditEventBuilder.transaction_deleted("tx-1")) is False

    @pytest.mark.asyncio
    async def test_correlated_events(self):
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        correlation_id = create_correlation_id()
        wallet = Wallet(id="w", name="Ví", initial_balance=Decimal("10"))

        await logger.log_wallet_created(wallet, correlation_id)
        await logger.log_balance_reconciled("w", "10", "25", "adj-1", correlation_id)

        events = await storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_type for e in events] == [
            AuditEventType.WALLET_CREATED,
            AuditEventType.BALANCE_RECONCILED,
        ]
        assert events[0].details["initial_balance"] == "10"
        assert events[1].details["adjustment_id"] == "adj-1"

    def test_correlation_ids_are_unique(self):
        assert create_correlation_id() != create_correlation_id()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
