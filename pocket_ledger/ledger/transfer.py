"""
Transfer Engine

Moving money between two wallets is expressed as a batch of linked
transactions, always in this order:

1. EXPENSE of `amount` from the source        (category "Chuyển đi")
2. EXPENSE of `fee` from the source, if fee>0 (category "Phí giao dịch")
3. INCOME of `amount` into the destination    (category "Nhận tiền")

The destination always receives the full amount; the fee is an extra
deduction from the source and is not mirrored anywhere.

CRITICAL: The returned legs are ONE unit. The caller must append them
in a single write so no reader ever sees money that left the source
but has not yet reached the destination.
"""

from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional, Sequence, Union

import structlog

from pocket_ledger.ledger.errors import InvalidTransferError
from pocket_ledger.models.ledger import (
    ZERO,
    Category,
    Transaction,
    TransactionType,
    Wallet,
    new_id,
    to_finite_decimal,
)


logger = structlog.get_logger(__name__)

Amount = Union[Decimal, int, str, float]


def _wallet_label(wallet_id: str, wallets: Optional[Sequence[Wallet]]) -> str:
    if wallets:
        for w in wallets:
            if w.id == wallet_id:
                return w.name
    return wallet_id


def validate_transfer(
    from_wallet_id: str,
    to_wallet_id: str,
    amount: Decimal,
    fee: Decimal,
    wallets: Optional[Sequence[Wallet]] = None,
) -> None:
    """
    Check transfer preconditions.

    Raises:
        InvalidTransferError: on the first violated precondition
    """
    if not from_wallet_id or not to_wallet_id:
        raise InvalidTransferError("Both source and destination wallets are required")
    if from_wallet_id == to_wallet_id:
        raise InvalidTransferError("Cannot transfer a wallet to itself")
    if not amount.is_finite() or not fee.is_finite():
        raise InvalidTransferError("Transfer amount and fee must be finite numbers")
    if amount <= 0:
        raise InvalidTransferError(f"Transfer amount must be positive, got {amount}")
    if fee < 0:
        raise InvalidTransferError(f"Transfer fee cannot be negative, got {fee}")

    if wallets is not None:
        known = {w.id for w in wallets}
        for wallet_id in (from_wallet_id, to_wallet_id):
            if wallet_id not in known:
                raise InvalidTransferError(f"Unknown wallet: {wallet_id}")


def build_transfer(
    from_wallet_id: str,
    to_wallet_id: str,
    amount: Amount,
    fee: Amount = ZERO,
    note: str = "",
    *,
    wallets: Optional[Sequence[Wallet]] = None,
    at: Optional[datetime] = None,
    id_factory: Optional[Callable[[], str]] = None,
) -> list[Transaction]:
    """
    Build the linked transactions of one transfer.

    Args:
        from_wallet_id: Wallet the money leaves
        to_wallet_id: Wallet the money arrives in
        amount: Amount moved (> 0), received in full by the destination
        fee: Extra charge taken from the source (>= 0)
        note: Free text appended to the leg notes
        wallets: When given, ids are checked against it and wallet
                 names are used in the leg notes
        at: Logical instant of the transfer, shared by every leg
        id_factory: Id generator for the legs and the batch

    Returns:
        The 2 or 3 legs, in the fixed order documented above

    Raises:
        InvalidTransferError: If a precondition fails (nothing is produced)
    """
    try:
        amount = to_finite_decimal(amount)
    except ValueError as e:
        raise InvalidTransferError(f"Invalid transfer amount: {e}")
    try:
        fee = to_finite_decimal(fee)
    except ValueError as e:
        raise InvalidTransferError(f"Invalid transfer fee: {e}")
    validate_transfer(from_wallet_id, to_wallet_id, amount, fee, wallets)

    make_id = id_factory or new_id
    at = at or datetime.now()
    batch_id = make_id()
    source = _wallet_label(from_wallet_id, wallets)
    destination = _wallet_label(to_wallet_id, wallets)

    legs = [
        Transaction(
            id=make_id(),
            amount=amount,
            type=TransactionType.EXPENSE,
            category=Category.TRANSFER_OUT,
            note=f"Chuyển đến {destination}: {note}",
            date=at,
            wallet_id=from_wallet_id,
            batch_id=batch_id,
        )
    ]

    if fee > 0:
        legs.append(Transaction(
            id=make_id(),
            amount=fee,
            type=TransactionType.EXPENSE,
            category=Category.TRANSFER_FEE,
            note=f"Phí chuyển tiền đến {destination}",
            date=at,
            wallet_id=from_wallet_id,
            batch_id=batch_id,
        ))

    legs.append(Transaction(
        id=make_id(),
        amount=amount,
        type=TransactionType.INCOME,
        category=Category.TRANSFER_IN,
        note=f"Nhận từ {source}: {note}",
        date=at,
        wallet_id=to_wallet_id,
        batch_id=batch_id,
    ))

    logger.debug(
        "transfer_built",
        batch_id=batch_id,
        from_wallet_id=from_wallet_id,
        to_wallet_id=to_wallet_id,
        amount=str(amount),
        fee=str(fee),
        legs=len(legs),
    )
    return legs
