"""
Shared fixtures for Pocket Ledger tests.

Every time-dependent test uses the fixed NOW below instead of the clock.
"""

from datetime import datetime
from decimal import Decimal
from itertools import count

import pytest

from pocket_ledger.models.ledger import (
    Category,
    Transaction,
    TransactionType,
    Wallet,
    WalletType,
)


NOW = datetime(2024, 3, 15, 12, 0)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def cash_wallet():
    return Wallet(
        id="cash",
        name="Tiền mặt",
        type=WalletType.CASH,
        initial_balance=Decimal("1000000"),
    )


@pytest.fixture
def bank_wallet():
    return Wallet(
        id="bank",
        name="Vietcombank",
        type=WalletType.BANK,
        initial_balance=Decimal("0"),
        bank_name="Vietcombank",
    )


@pytest.fixture
def credit_wallet():
    return Wallet(
        id="card",
        name="Thẻ tín dụng",
        type=WalletType.CREDIT,
        credit_limit=Decimal("10000000"),
    )


@pytest.fixture
def wallets(cash_wallet, bank_wallet, credit_wallet):
    return [cash_wallet, bank_wallet, credit_wallet]


@pytest.fixture
def id_factory():
    """Predictable ids: id-1, id-2, ..."""
    counter = count(1)
    return lambda: f"id-{next(counter)}"


@pytest.fixture
def make_tx():
    """Build a transaction with sensible defaults."""
    counter = count(1)

    def _make(
        amount,
        type=TransactionType.EXPENSE,
        category=Category.FOOD,
        date=NOW,
        wallet_id="cash",
        note="",
        **extra,
    ):
        return Transaction(
            id=extra.pop("id", f"tx-{next(counter)}"),
            amount=Decimal(str(amount)),
            type=type,
            category=category,
            date=date,
            wallet_id=wallet_id,
            note=note,
            **extra,
        )

    return _make
