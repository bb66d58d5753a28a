"""
CSV Export

Writes the (already filtered and sorted) transaction book as a CSV file
that Excel opens correctly:
- UTF-8 with a byte order mark, so Vietnamese labels survive
- Every text cell quoted, embedded quotes doubled; amounts left bare
- Amounts as plain decimal strings, dates as YYYY-MM-DD
"""

import csv
import io
from datetime import date
from pathlib import Path
from typing import Sequence, Union

import structlog

from pocket_ledger.models.ledger import Transaction, TransactionType


logger = structlog.get_logger(__name__)

BOM = "\ufeff"

HEADERS = ["Ngày", "Loại giao dịch", "Danh mục", "Số tiền", "Ghi chú"]

TYPE_LABELS = {
    TransactionType.INCOME: "Thu nhập",
    TransactionType.EXPENSE: "Chi tiêu",
}


def _row(transaction: Transaction) -> list:
    # amount stays a Decimal so QUOTE_NONNUMERIC writes it unquoted
    return [
        transaction.day.isoformat(),
        TYPE_LABELS[transaction.type],
        transaction.category,
        transaction.amount,
        transaction.note,
    ]


def transactions_to_csv(transactions: Sequence[Transaction]) -> str:
    """
    Render transactions as CSV text, in the order given.

    Rows end with a bare newline; the result starts with a BOM.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    writer.writerow(HEADERS)
    writer.writerows(_row(t) for t in transactions)
    return BOM + buffer.getvalue()


def export_filename(today: date) -> str:
    """File name the transaction book offers for download."""
    return f"mymoney_filtered_export_{today.isoformat()}.csv"


def write_csv(path: Union[str, Path], transactions: Sequence[Transaction]) -> Path:
    """Write the CSV to disk and return the path written."""
    path = Path(path)
    # newline="" keeps the "\n" terminators exactly as rendered
    with path.open("w", encoding="utf-8", newline="") as handle:
        handle.write(transactions_to_csv(transactions))
    logger.info("csv_exported", path=str(path), rows=len(transactions))
    return path
