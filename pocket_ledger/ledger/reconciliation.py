"""
Reconciliation Engine

Forces a wallet's derived balance to match a balance observed outside
the system (a bank statement, the cash in hand) by producing a single
adjustment transaction. initial_balance is never touched.
"""

from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional, Sequence, Union

import structlog

from pocket_ledger.ledger.balance import balance_of
from pocket_ledger.ledger.errors import InvalidReconciliationError
from pocket_ledger.models.ledger import (
    Category,
    Transaction,
    TransactionType,
    Wallet,
    new_id,
    to_finite_decimal,
)


logger = structlog.get_logger(__name__)

RECONCILIATION_NOTE = "Cân bằng số dư thực tế"


def build_reconciliation(
    wallet_id: str,
    actual_balance: Union[Decimal, int, str, float],
    wallets: Sequence[Wallet],
    transactions: Sequence[Transaction],
    *,
    at: Optional[datetime] = None,
    id_factory: Optional[Callable[[], str]] = None,
) -> list[Transaction]:
    """
    Build the adjustment that reconciles a wallet to `actual_balance`.

    Returns:
        An empty list when the derived balance already matches,
        otherwise exactly one transaction of |difference|:
        INCOME when the actual balance is higher, EXPENSE when lower.

    Raises:
        InvalidReconciliationError: If wallet_id resolves to no wallet or
            actual_balance is not a finite number
    """
    wallet = next((w for w in wallets if w.id == wallet_id), None)
    if wallet is None:
        raise InvalidReconciliationError(f"Unknown wallet: {wallet_id}")

    try:
        target = to_finite_decimal(actual_balance)
    except ValueError as e:
        raise InvalidReconciliationError(f"Invalid actual balance: {e}")
    current = balance_of(wallet, transactions)
    diff = target - current

    if diff == 0:
        logger.debug("reconciliation_not_needed", wallet_id=wallet_id, balance=str(current))
        return []

    adjustment = Transaction(
        id=(id_factory or new_id)(),
        amount=abs(diff),
        type=TransactionType.INCOME if diff > 0 else TransactionType.EXPENSE,
        category=Category.BALANCE_ADJUSTMENT,
        note=RECONCILIATION_NOTE,
        date=at or datetime.now(),
        wallet_id=wallet_id,
    )

    logger.debug(
        "reconciliation_built",
        wallet_id=wallet_id,
        previous_balance=str(current),
        actual_balance=str(target),
        adjustment=str(diff),
    )
    return [adjustment]
