"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the storage backend because:
1. The user can read and fix their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (we're fine for a personal ledger)
- No multi-statement transactions, so every batch goes out as ONE API call
  (append_rows for new legs, a single batch_update for deletions)
- Limited query capabilities (the engine filters in Python anyway)

Amounts are written as plain decimal strings with RAW input so Sheets
never reformats or rounds them.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional, Sequence, TypeVar
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, retry_if_not_exception_type, stop_after_attempt, wait_exponential

from pocket_ledger.config import get_settings
from pocket_ledger.models.audit import AuditEvent, AuditEventType, AuditSeverity
from pocket_ledger.models.ledger import Transaction, TransactionType, Wallet, WalletType
from pocket_ledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)


logger = structlog.get_logger("pocket_ledger.storage")

# Duplicates and missing rows are answers, not transient failures
sheets_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
    reraise=True,
)

Record = TypeVar("Record")


# Column mappings for Wallets sheet
WALLET_COLUMNS = [
    "id",
    "name",
    "type",
    "initial_balance",
    "credit_limit",
    "bank_name",
    "account_number",
    "description",
    "color",
]

# Column mappings for Transactions sheet
TRANSACTION_COLUMNS = [
    "id",
    "date",
    "type",
    "category",
    "amount",
    "note",
    "wallet_id",
    "batch_id",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


def _safe_getter(row: list):
    """Read cells of a row that may be shorter than the header."""
    def safe_get(index: int, default: str = "") -> str:
        try:
            return row[index] if row[index] else default
        except IndexError:
            return default
    return safe_get


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create(self, title: str, columns: list[str], rows: int) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(title=title, rows=rows, cols=len(columns))
            sheet.append_row(columns)
        return sheet

    def get_wallets_sheet(self) -> gspread.Worksheet:
        """Get or create the Wallets worksheet."""
        return self._get_or_create(self._settings.wallets_sheet_name, WALLET_COLUMNS, 100)

    def get_transactions_sheet(self) -> gspread.Worksheet:
        """Get or create the Transactions worksheet."""
        return self._get_or_create(
            self._settings.transactions_sheet_name, TRANSACTION_COLUMNS, 5000
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self._get_or_create(self._settings.audit_sheet_name, AUDIT_COLUMNS, 5000)


def wallet_to_row(wallet: Wallet) -> list:
    """Convert a Wallet to a spreadsheet row."""
    return [
        wallet.id,
        wallet.name,
        wallet.type.value,
        str(wallet.initial_balance),
        str(wallet.credit_limit),
        wallet.bank_name or "",
        wallet.account_number or "",
        wallet.description or "",
        wallet.color or "",
    ]


def row_to_wallet(row: list) -> Wallet:
    """Convert a spreadsheet row to a Wallet."""
    safe_get = _safe_getter(row)
    return Wallet(
        id=safe_get(0),
        name=safe_get(1),
        type=WalletType(safe_get(2, WalletType.BANK.value)),
        initial_balance=Decimal(safe_get(3, "0")),
        credit_limit=Decimal(safe_get(4, "0")),
        bank_name=safe_get(5) or None,
        account_number=safe_get(6) or None,
        description=safe_get(7) or None,
        color=safe_get(8) or None,
    )


def transaction_to_row(transaction: Transaction) -> list:
    """Convert a Transaction to a spreadsheet row."""
    return [
        transaction.id,
        transaction.date.isoformat(),
        transaction.type.value,
        transaction.category,
        str(transaction.amount),
        transaction.note,
        transaction.wallet_id or "",
        transaction.batch_id or "",
    ]


def row_to_transaction(row: list) -> Transaction:
    """Convert a spreadsheet row to a Transaction."""
    safe_get = _safe_getter(row)
    return Transaction(
        id=safe_get(0),
        date=safe_get(1),
        type=TransactionType(safe_get(2)),
        category=safe_get(3),
        amount=Decimal(safe_get(4)),
        note=safe_get(5),
        wallet_id=safe_get(6) or None,
        batch_id=safe_get(7) or None,
    )


class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """
    Google Sheets implementation of ledger storage.

    One wallet per row in the Wallets sheet, one transaction per row in the
    Transactions sheet. The first column is always the id.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _find_row(self, sheet: gspread.Worksheet, entity_id: str) -> Optional[int]:
        """1-based sheet row of an id, or None (row 1 is the header)."""
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):
            if row and row[0] == entity_id:
                return idx
        return None

    @staticmethod
    def _parse_rows(
        rows: list[list[str]],
        parse: Callable[[list[str]], Record],
        sheet_name: str,
    ) -> list[Record]:
        """
        Parse data rows, failing on the first malformed one.

        Derived balances need every row, so a bad row stops the load
        and is named in the error.
        """
        records = []
        for row_number, row in enumerate(rows, start=2):
            if not row or not row[0]:
                continue
            try:
                records.append(parse(row))
            except Exception as e:
                logger.error(
                    "malformed_row", sheet=sheet_name, row=row_number, row_id=row[0], error=str(e)
                )
                raise StorageError(
                    f"Malformed row {row_number} (id {row[0]}) in {sheet_name} sheet: {e}"
                )
        return records

    def _delete_rows(self, sheet: gspread.Worksheet, row_numbers: list[int]) -> None:
        """Delete rows in one batch_update, bottom-up so indexes stay valid."""
        requests = [
            {
                "deleteDimension": {
                    "range": {
                        "sheetId": sheet.id,
                        "dimension": "ROWS",
                        "startIndex": number - 1,
                        "endIndex": number,
                    }
                }
            }
            for number in sorted(row_numbers, reverse=True)
        ]
        self._client.get_spreadsheet().batch_update({"requests": requests})

    async def load_wallets(self) -> list[Wallet]:
        """Load every wallet row."""
        try:
            rows = self._client.get_wallets_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to load wallets: {e}")

        return self._parse_rows(rows, row_to_wallet, "wallets")

    async def load_transactions(self) -> list[Transaction]:
        """Load every transaction row."""
        try:
            rows = self._client.get_transactions_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to load transactions: {e}")

        return self._parse_rows(rows, row_to_transaction, "transactions")

    @sheets_retry
    async def save_wallet(self, wallet: Wallet) -> bool:
        """Append a wallet row."""
        try:
            sheet = self._client.get_wallets_sheet()
            if self._find_row(sheet, wallet.id) is not None:
                raise DuplicateError(f"Wallet already exists: {wallet.id}")
            sheet.append_row(wallet_to_row(wallet), value_input_option="RAW")
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save wallet: {e}")

    async def update_wallet(self, wallet: Wallet) -> bool:
        """Overwrite a wallet row in place."""
        try:
            sheet = self._client.get_wallets_sheet()
            idx = self._find_row(sheet, wallet.id)
            if idx is None:
                raise NotFoundError(f"Wallet not found: {wallet.id}")
            sheet.update(
                range_name=f"A{idx}",
                values=[wallet_to_row(wallet)],
                value_input_option="RAW",
            )
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update wallet: {e}")

    async def delete_wallet(self, wallet_id: str) -> bool:
        """Delete a wallet row by id."""
        try:
            sheet = self._client.get_wallets_sheet()
            idx = self._find_row(sheet, wallet_id)
            if idx is None:
                return False
            sheet.delete_rows(idx)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete wallet: {e}")

    @sheets_retry
    async def append_transactions(self, transactions: Sequence[Transaction]) -> bool:
        """Append every leg of a batch with a single append_rows call."""
        if not transactions:
            return True
        try:
            sheet = self._client.get_transactions_sheet()
            existing = {row[0] for row in sheet.get_all_values()[1:] if row}
            if existing.intersection(t.id for t in transactions):
                raise DuplicateError("Transaction id already stored")
            sheet.append_rows(
                [transaction_to_row(t) for t in transactions],
                value_input_option="RAW",
            )
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to append transactions: {e}")

    async def update_transaction(self, transaction: Transaction) -> bool:
        """Overwrite a transaction row in place."""
        try:
            sheet = self._client.get_transactions_sheet()
            idx = self._find_row(sheet, transaction.id)
            if idx is None:
                raise NotFoundError(f"Transaction not found: {transaction.id}")
            sheet.update(
                range_name=f"A{idx}",
                values=[transaction_to_row(transaction)],
                value_input_option="RAW",
            )
            return True
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update transaction: {e}")

    async def delete_transactions(self, transaction_ids: Sequence[str]) -> int:
        """Delete every matching transaction row in one request."""
        doomed = set(transaction_ids)
        if not doomed:
            return 0
        try:
            sheet = self._client.get_transactions_sheet()
            row_numbers = [
                idx
                for idx, row in enumerate(sheet.get_all_values()[1:], start=2)
                if row and row[0] in doomed
            ]
            if row_numbers:
                self._delete_rows(sheet, row_numbers)
            return len(row_numbers)
        except Exception as e:
            raise StorageError(f"Failed to delete transactions: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        safe_get = _safe_getter(row)
        return AuditEvent(
            event_id=UUID(safe_get(0)),
            timestamp=datetime.fromisoformat(safe_get(1)),
            event_type=AuditEventType(safe_get(2)),
            severity=AuditSeverity(safe_get(3)),
            entity_type=safe_get(4) or None,
            entity_id=safe_get(5) or None,
            correlation_id=UUID(safe_get(6)) if safe_get(6) else None,
            description=safe_get(7),
            details=json.loads(safe_get(8)) if safe_get(8) else {},
            error_message=safe_get(9) or None,
            is_user_action=safe_get(10).lower() == "true",
        )

    def _read_events(self, keep) -> list[AuditEvent]:
        try:
            rows = self._client.get_audit_sheet().get_all_values()[1:]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")

        events = []
        for row in rows:
            if not row or not row[0] or not keep(row):
                continue
            try:
                events.append(self._row_to_event(row))
            except Exception as e:
                logger.warning("skipping_malformed_row", sheet="audit", row_id=row[0], error=str(e))
        return events

    @sheets_retry
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception as e:
            raise StorageError(f"Failed to write audit event: {e}")

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        events = self._read_events(lambda row: len(row) > 6 and row[6] == str(correlation_id))
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: str,
    ) -> list[AuditEvent]:
        """Get events by entity."""
        events = self._read_events(
            lambda row: len(row) > 5 and row[4] == entity_type and row[5] == entity_id
        )
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events."""
        events = self._read_events(lambda row: True)
        # Newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
