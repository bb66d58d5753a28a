"""
Core Ledger Models for Pocket Ledger

These models define the two entities everything else is derived from:
wallets and transactions. They are designed to:
1. Reject malformed data at construction (negative amounts, bad dates)
2. Stay immutable once built (frozen models)
3. Be serializable for storage and export

DESIGN DECISION: A wallet NEVER stores its own balance.
Balances are always derived from the transaction history.
See pocket_ledger.ledger.balance.

DESIGN DECISION: Amounts are Decimal, never float.
Invariants such as "transfer moves exactly N" must hold with
plain equality, without epsilon comparisons.
"""

from datetime import date, datetime, time, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


ZERO = Decimal("0")


def new_id() -> str:
    """Generate an opaque unique identifier."""
    return uuid4().hex


def to_decimal(value: Any) -> Decimal:
    """Convert a number to Decimal without picking up float noise."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def to_finite_decimal(value: Any) -> Decimal:
    """
    Convert a user-supplied number, rejecting NaN, infinities and junk.

    Raises:
        ValueError: If the value is not a finite number
    """
    try:
        amount = to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValueError(f"Not a number: {value!r}")
    if not amount.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return amount


def normalize_timestamp(value: Any) -> Any:
    """
    Normalize the accepted timestamp inputs to a naive datetime.

    - date        -> midnight of that day
    - ISO string  -> parsed with datetime.fromisoformat (a trailing Z means UTC)
    - aware value -> converted to UTC and made naive

    Anything else is handed to pydantic, which rejects it.
    """
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)
    if isinstance(value, date) and not isinstance(value, datetime):
        value = datetime.combine(value, time())
    if isinstance(value, datetime) and value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class WalletType(str, Enum):
    """Kinds of money source/sink a wallet can be."""
    CASH = "CASH"
    BANK = "BANK"
    E_WALLET = "E-WALLET"
    CREDIT = "CREDIT"


class TransactionType(str, Enum):
    """
    Direction of a transaction.

    CRITICAL: Direction lives here, never in the sign of the amount.
    """
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class Category(str, Enum):
    """
    Known transaction categories.

    Transaction.category is free text, so users may add their own.
    The members below the SYSTEM marker are written by the engine itself
    and carry meaning (transfer legs, fees, reconciliation).
    SELLING and BUSINESS_COST drive the business profit/loss view.
    """
    # Essentials
    FOOD = "Ăn uống"
    TRANSPORT = "Di chuyển"
    HOUSING = "Nhà cửa"
    BILLS = "Hóa đơn & Tiện ích"
    HEALTH = "Sức khỏe"
    EDUCATION = "Giáo dục"
    GROCERIES = "Đi chợ/Siêu thị"

    # Personal
    SHOPPING = "Mua sắm"
    ENTERTAINMENT = "Giải trí"
    BEAUTY = "Làm đẹp"
    TRAVEL = "Du lịch"
    GIVING = "Hiếu hỉ/Từ thiện"

    # Financial
    INSURANCE = "Bảo hiểm"
    LOAN_INTEREST = "Trả lãi vay"
    INVESTMENT_LOSS = "Lỗ đầu tư"

    # Business
    BUSINESS_COST = "Chi phí Kinh doanh"
    SELLING = "Bán hàng/Kinh doanh"

    # Income
    SALARY = "Lương"
    BONUS = "Thưởng"
    INVESTMENT_RETURN = "Lợi nhuận đầu tư"
    OTHER = "Khác"

    # SYSTEM - written by the transfer and reconciliation engines
    TRANSFER_OUT = "Chuyển đi"
    TRANSFER_FEE = "Phí giao dịch"
    TRANSFER_IN = "Nhận tiền"
    BALANCE_ADJUSTMENT = "Điều chỉnh số dư"


SYSTEM_CATEGORIES = frozenset({
    Category.TRANSFER_OUT.value,
    Category.TRANSFER_FEE.value,
    Category.TRANSFER_IN.value,
    Category.BALANCE_ADJUSTMENT.value,
})

BUSINESS_CATEGORIES = frozenset({
    Category.SELLING.value,
    Category.BUSINESS_COST.value,
})


class SortOrder(str, Enum):
    """Orderings supported by the transaction book."""
    DATE_DESC = "DATE_DESC"
    DATE_ASC = "DATE_ASC"
    AMOUNT_DESC = "AMOUNT_DESC"
    AMOUNT_ASC = "AMOUNT_ASC"


class Granularity(str, Enum):
    """Bucket width for period aggregation."""
    DAY = "day"
    MONTH = "month"


class WalletDeletionPolicy(str, Enum):
    """
    What happens to transactions when their wallet is deleted.

    BLOCK refuses the deletion while any transaction references the wallet.
    DETACH keeps the transactions but clears their wallet_id.
    CASCADE deletes them together with the wallet.
    """
    BLOCK = "block"
    DETACH = "detach"
    CASCADE = "cascade"


# =============================================================================
# CORE ENTITIES
# =============================================================================

class Wallet(BaseModel):
    """
    A named money source/sink.

    initial_balance is the balance at the moment the wallet's history
    starts. It is set once and never changed by normal operation;
    balance changes only through new transactions.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Opaque unique identifier (never reused)"
    )
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Display label"
    )
    type: WalletType = Field(
        default=WalletType.BANK,
        description="Wallet type"
    )
    initial_balance: Decimal = Field(
        default=ZERO,
        description="Signed starting balance"
    )
    credit_limit: Decimal = Field(
        default=ZERO,
        ge=0,
        description="Credit limit, only meaningful for CREDIT wallets"
    )

    # Display metadata, no behavioral effect
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    description: Optional[str] = None
    color: Optional[str] = None

    @field_validator("initial_balance", "credit_limit", mode="before")
    @classmethod
    def coerce_amount(cls, v: Any) -> Any:
        if isinstance(v, float):
            return to_decimal(v)
        return v

    @model_validator(mode="before")
    @classmethod
    def zero_limit_for_non_credit(cls, data: Any) -> Any:
        """Only CREDIT wallets carry a credit limit."""
        if isinstance(data, dict):
            wallet_type = data.get("type", WalletType.BANK)
            if wallet_type not in (WalletType.CREDIT, WalletType.CREDIT.value):
                data = {**data, "credit_limit": ZERO}
        return data

    @property
    def is_credit(self) -> bool:
        return self.type == WalletType.CREDIT


class Transaction(BaseModel):
    """
    One money movement.

    amount is always a non-negative magnitude; type carries direction.
    A transaction without wallet_id is global: it counts in category
    aggregates (e.g. business P&L) but in no wallet balance.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Opaque unique identifier"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Non-negative magnitude"
    )
    type: TransactionType
    category: str = Field(
        default=Category.OTHER.value,
        min_length=1,
        max_length=100,
        description="Free-form category label"
    )
    note: str = Field(
        default="",
        max_length=1000,
    )
    date: datetime = Field(
        default_factory=datetime.now,
        description="When the money moved"
    )
    wallet_id: Optional[str] = Field(
        default=None,
        description="Owning wallet, None for unassigned transactions"
    )
    batch_id: Optional[str] = Field(
        default=None,
        description="Shared by every leg produced by one transfer"
    )

    @field_validator("amount", mode="before")
    @classmethod
    def coerce_amount(cls, v: Any) -> Any:
        if isinstance(v, float):
            return to_decimal(v)
        return v

    @field_validator("category", mode="before")
    @classmethod
    def category_to_text(cls, v: Any) -> Any:
        if isinstance(v, Enum):
            return v.value
        return v

    @field_validator("date", mode="before")
    @classmethod
    def parse_date(cls, v: Any) -> Any:
        try:
            return normalize_timestamp(v)
        except ValueError:
            raise ValueError(f"Unparsable transaction date: {v!r}")

    @field_validator("wallet_id", "batch_id", mode="before")
    @classmethod
    def empty_to_none(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def day(self):
        """Calendar day of the transaction, ignoring time of day."""
        return self.date.date()

    @property
    def signed_amount(self) -> Decimal:
        """Amount with direction applied (+income, -expense)."""
        return self.amount if self.type == TransactionType.INCOME else -self.amount

    @property
    def is_business(self) -> bool:
        return self.category in BUSINESS_CATEGORIES

    @property
    def is_system(self) -> bool:
        return self.category in SYSTEM_CATEGORIES


# =============================================================================
# QUERY MODELS
# =============================================================================

class TransactionFilter(BaseModel):
    """
    Predicates for the transaction book.

    All predicates are ANDed. An unset predicate always matches.
    "ALL" and empty strings are treated as unset, as the UI sends them.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    search_text: Optional[str] = None
    type: Optional[TransactionType] = None
    category: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    wallet_id: Optional[str] = None

    @field_validator("search_text", "type", "category", "wallet_id", mode="before")
    @classmethod
    def unset_markers(cls, v: Any) -> Any:
        if isinstance(v, Enum) and not isinstance(v, TransactionType):
            v = v.value
        if isinstance(v, str) and v.strip() in ("", "ALL"):
            return None
        return v

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def day_only(cls, v: Any) -> Any:
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str) and not v.strip():
            return None
        return v


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'unknown_wallet', 'duplicate_id')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of validating an entity before it enters the ledger.

    Errors block the operation; warnings are shown but do not block.
    """

    entity_type: str = Field(
        ...,
        description="'wallet' or 'transaction'"
    )
    entity_id: str
    validated_at: datetime = Field(
        default_factory=datetime.now
    )
    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def error_messages(self) -> list[str]:
        return [issue.message for issue in self.issues if issue.severity == "error"]
