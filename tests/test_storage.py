"""
Tests for storage backends.

The in-memory backend is tested directly. The Google Sheets backend is
tested against a fake worksheet so no network call is made.
"""

import pytest
from datetime import datetime
from decimal import Decimal

from pocket_ledger.models.ledger import Category, TransactionType, Wallet, WalletType
from pocket_ledger.services.storage import (
    DuplicateError,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    NotFoundError,
    StorageError,
)
from pocket_ledger.services.storage.google_sheets import (
    GoogleSheetsLedgerStorage,
    TRANSACTION_COLUMNS,
    WALLET_COLUMNS,
    row_to_transaction,
    row_to_wallet,
    transaction_to_row,
    wallet_to_row,
)
from pocket_ledger.models.audit import AuditEventBuilder


class TestInMemoryLedgerStorage:
    """Tests for the list-backed ledger store."""

    @pytest.mark.asyncio
    async def test_batch_append_is_all_or_nothing(self, make_tx):
        """Test that a batch with a clashing id stores nothing."""
        storage = InMemoryLedgerStorage(transactions=[make_tx(1, id="a")])
        with pytest.raises(DuplicateError):
            await storage.append_transactions([make_tx(2, id="b"), make_tx(3, id="a")])
        assert [t.id for t in await storage.load_transactions()] == ["a"]

    @pytest.mark.asyncio
    async def test_batch_append_keeps_order(self, make_tx):
        storage = InMemoryLedgerStorage()
        await storage.append_transactions([make_tx(1, id="x"), make_tx(2, id="y")])
        assert [t.id for t in await storage.load_transactions()] == ["x", "y"]

    @pytest.mark.asyncio
    async def test_loaded_list_is_a_copy(self, make_tx):
        storage = InMemoryLedgerStorage(transactions=[make_tx(1)])
        loaded = await storage.load_transactions()
        loaded.clear()
        assert len(await storage.load_transactions()) == 1

    @pytest.mark.asyncio
    async def test_update_missing_transaction(self, make_tx):
        storage = InMemoryLedgerStorage()
        with pytest.raises(NotFoundError):
            await storage.update_transaction(make_tx(1))

    @pytest.mark.asyncio
    async def test_delete_transactions_counts(self, make_tx):
        storage = InMemoryLedgerStorage(transactions=[make_tx(1, id="a"), make_tx(2, id="b")])
        assert await storage.delete_transactions(["a", "zzz"]) == 1
        assert [t.id for t in await storage.load_transactions()] == ["b"]

    @pytest.mark.asyncio
    async def test_wallet_lifecycle(self, cash_wallet):
        storage = InMemoryLedgerStorage()
        await storage.save_wallet(cash_wallet)
        with pytest.raises(DuplicateError):
            await storage.save_wallet(cash_wallet)

        renamed = cash_wallet.model_copy(update={"name": "Ví tiền"})
        await storage.update_wallet(renamed)
        assert (await storage.load_wallets())[0].name == "Ví tiền"

        assert await storage.delete_wallet("cash") is True
        assert await storage.delete_wallet("cash") is False


class TestInMemoryAuditStorage:
    """Tests for the list-backed audit log."""

    @pytest.mark.asyncio
    async def test_queries(self):
        storage = InMemoryAuditStorage()
        first = AuditEventBuilder.wallet_created("cash", "Tiền mặt", "0")
        second = AuditEventBuilder.wallet_updated("cash", ["name"], correlation_id=first.event_id)
        await storage.append_event(first)
        await storage.append_event(second)

        by_entity = await storage.get_events_by_entity("wallet", "cash")
        assert [e.event_id for e in by_entity] == [first.event_id, second.event_id]
        assert await storage.get_events_by_correlation_id(first.event_id) == [second]
        assert len(await storage.get_recent_events(limit=1)) == 1


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the ledger storage."""

    def __init__(self, header):
        self.rows = [list(header)]
        self.append_rows_calls = 0

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_rows(self, rows, value_input_option=None):
        self.append_rows_calls += 1
        self.rows.extend(rows)


class FakeSheetsClient:
    def __init__(self):
        self.transactions = FakeWorksheet(TRANSACTION_COLUMNS)
        self.wallets = FakeWorksheet(WALLET_COLUMNS)

    def get_wallets_sheet(self):
        return self.wallets

    def get_transactions_sheet(self):
        return self.transactions


class TestGoogleSheetsConversion:
    """Tests for row conversion."""

    def test_transaction_row(self, make_tx):
        tx = make_tx(
            Decimal("1234.50"),
            TransactionType.EXPENSE,
            Category.TRANSFER_OUT,
            datetime(2024, 3, 15, 9, 30),
            note='Chuyển "gấp"',
            batch_id="batch-1",
        )
        row = transaction_to_row(tx)
        assert row[1] == "2024-03-15T09:30:00"
        assert row[4] == "1234.50"
        assert row_to_transaction(row) == tx

    def test_short_row_defaults(self):
        """Test that trailing empty cells (dropped by Sheets) read as unset."""
        tx = row_to_transaction(["t1", "2024-03-01T00:00:00", "INCOME", "Lương", "500"])
        assert tx.note == ""
        assert tx.wallet_id is None
        assert tx.batch_id is None

    def test_wallet_row(self):
        wallet = Wallet(
            id="card",
            name="Thẻ",
            type=WalletType.CREDIT,
            initial_balance=Decimal("-100"),
            credit_limit=Decimal("5000000"),
            color="#ff0000",
        )
        assert row_to_wallet(wallet_to_row(wallet)) == wallet


class TestGoogleSheetsLedgerStorage:
    """Tests for the Sheets backend against a fake worksheet."""

    @pytest.mark.asyncio
    async def test_batch_written_in_one_call(self, make_tx):
        """Test that every leg of a batch goes out in one append_rows call."""
        client = FakeSheetsClient()
        storage = GoogleSheetsLedgerStorage(client=client)
        legs = [make_tx(1, id="a"), make_tx(2, id="b"), make_tx(3, id="c")]

        await storage.append_transactions(legs)

        assert client.transactions.append_rows_calls == 1
        assert [t.id for t in await storage.load_transactions()] == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_malformed_transaction_row_fails_load(self):
        """Test that an unreadable amount is reported, never dropped."""
        client = FakeSheetsClient()
        client.transactions.rows.append(["t1", "2024-03-01T00:00:00", "EXPENSE", "x", "100", "", "cash"])
        client.transactions.rows.append(["t2", "2024-03-02T00:00:00", "EXPENSE", "x", "1,000", "", "cash"])
        storage = GoogleSheetsLedgerStorage(client=client)

        with pytest.raises(StorageError, match=r"row 3 \(id t2\) in transactions"):
            await storage.load_transactions()

    @pytest.mark.asyncio
    async def test_malformed_date_fails_load(self):
        client = FakeSheetsClient()
        client.transactions.rows.append(["bad", "not a date", "INCOME", "x", "1"])
        storage = GoogleSheetsLedgerStorage(client=client)

        with pytest.raises(StorageError, match="id bad"):
            await storage.load_transactions()

    @pytest.mark.asyncio
    async def test_malformed_wallet_row_fails_load(self):
        client = FakeSheetsClient()
        client.wallets.rows.append(["w1", "Ví", "PIGGY", "0"])
        storage = GoogleSheetsLedgerStorage(client=client)

        with pytest.raises(StorageError, match="wallets"):
            await storage.load_wallets()

    @pytest.mark.asyncio
    async def test_blank_rows_ignored(self):
        client = FakeSheetsClient()
        client.transactions.rows.append([])
        client.transactions.rows.append(["good", "2024-03-01T00:00:00", "INCOME", "x", "1"])
        storage = GoogleSheetsLedgerStorage(client=client)
        assert [t.id for t in await storage.load_transactions()] == ["good"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
