"""
Balance Derivation

A wallet's balance is ALWAYS:

    initial_balance + sum(INCOME amounts) - sum(EXPENSE amounts)

over the transactions currently held whose wallet_id is the wallet's id.
Nothing here is cached; every call is one pass over the collection.
Callers that read repeatedly should cache by (wallet id, ledger version).
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from pocket_ledger.models.ledger import ZERO, Transaction, TransactionType, Wallet
from pocket_ledger.models.reports import BalancePoint, CreditStatus, WalletSummary
from pocket_ledger.periods import month_bounds, month_label, trailing_months


def _sum_for_wallet(
    wallet_id: str,
    transactions: Iterable[Transaction],
    before: Optional[datetime] = None,
) -> Decimal:
    total = ZERO
    for t in transactions:
        if t.wallet_id != wallet_id:
            continue
        if before is not None and t.date >= before:
            continue
        if t.type == TransactionType.INCOME:
            total += t.amount
        else:
            total -= t.amount
    return total


def balance_of(wallet: Wallet, transactions: Iterable[Transaction]) -> Decimal:
    """Derived balance of a wallet over the full transaction collection."""
    return wallet.initial_balance + _sum_for_wallet(wallet.id, transactions)


def balances(
    wallets: Sequence[Wallet],
    transactions: Sequence[Transaction],
) -> dict[str, Decimal]:
    """Derived balance of every wallet, keyed by wallet id."""
    return {w.id: balance_of(w, transactions) for w in wallets}


def credit_status(
    wallet: Wallet,
    transactions: Iterable[Transaction],
) -> Optional[CreditStatus]:
    """Credit-card view of a wallet, None for non-CREDIT wallets."""
    if not wallet.is_credit:
        return None
    return CreditStatus(
        credit_limit=wallet.credit_limit,
        balance=balance_of(wallet, transactions),
    )


def wallet_summary(wallet: Wallet, transactions: Sequence[Transaction]) -> WalletSummary:
    balance = balance_of(wallet, transactions)
    credit = None
    if wallet.is_credit:
        credit = CreditStatus(credit_limit=wallet.credit_limit, balance=balance)
    return WalletSummary(wallet=wallet, balance=balance, credit=credit)


def total_wealth(wallets: Sequence[Wallet], transactions: Sequence[Transaction]) -> Decimal:
    """
    Sum of every wallet's derived balance.

    Credit-card debt is included: a negative card balance reduces wealth.
    """
    return sum((balance_of(w, transactions) for w in wallets), ZERO)


def balance_history(
    wallet: Wallet,
    transactions: Sequence[Transaction],
    months: int,
    now: datetime,
) -> list[BalancePoint]:
    """
    Month-end balances for the last `months` months, oldest first.

    The last point is the month containing `now`. Each point counts
    every transaction dated before the first day of the following month.
    """
    points = []
    for year, month in trailing_months(now.year, now.month, months):
        first_day, last_day = month_bounds(year, month)
        cutoff = datetime.combine(last_day + timedelta(days=1), datetime.min.time())
        points.append(BalancePoint(
            month_start=first_day,
            label=month_label(year, month),
            balance=wallet.initial_balance + _sum_for_wallet(wallet.id, transactions, before=cutoff),
        ))
    return points
