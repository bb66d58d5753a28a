"""
Report Models for Pocket Ledger

Every read-side computation returns one of these shapes.
All of them have a well-formed zero value: "no data yet" is a
normal state, so an empty ledger yields zeros, never an error.
"""

from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from pocket_ledger.models.ledger import ZERO, Transaction, TransactionType, Wallet


HUNDRED = Decimal("100")


class Totals(BaseModel):
    """Income, expense and their difference over some set of transactions."""

    income: Decimal = ZERO
    expense: Decimal = ZERO

    @property
    def net(self) -> Decimal:
        return self.income - self.expense


class DayGroup(BaseModel):
    """Transactions of one calendar day, in input order."""

    day: date
    transactions: list[Transaction] = Field(default_factory=list)
    income: Decimal = ZERO
    expense: Decimal = ZERO

    @property
    def net(self) -> Decimal:
        return self.income - self.expense


class DailyNet(BaseModel):
    """One point of the per-day net series."""

    day: date
    net: Decimal = ZERO


class PeriodBucket(BaseModel):
    """
    Sums for one day or one month.

    Buckets are emitted even when no transaction falls inside,
    so chart axes stay continuous.
    """

    start: date = Field(..., description="First day of the period")
    end: date = Field(..., description="Last day of the period (inclusive)")
    label: str = Field(..., description="YYYY-MM for months, YYYY-MM-DD for days")
    income: Decimal = ZERO
    expense: Decimal = ZERO

    @property
    def net(self) -> Decimal:
        return self.income - self.expense

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


class BusinessSummary(BaseModel):
    """
    Business profit and loss.

    margin is a ratio (0.4 means 40 %). It is 0 when there is
    no revenue, never a division error.
    """

    revenue: Decimal = ZERO
    cost: Decimal = ZERO

    @property
    def profit(self) -> Decimal:
        return self.revenue - self.cost

    @property
    def margin(self) -> Decimal:
        if self.revenue <= 0:
            return ZERO
        return self.profit / self.revenue

    @property
    def margin_percent(self) -> Decimal:
        return self.margin * HUNDRED


class BusinessBucket(BaseModel):
    """Business revenue and cost for one month."""

    start: date
    label: str
    revenue: Decimal = ZERO
    cost: Decimal = ZERO

    @property
    def profit(self) -> Decimal:
        return self.revenue - self.cost


class CategoryTotal(BaseModel):
    """Total spent in one category and its share of all spending."""

    category: str
    total: Decimal = ZERO
    share: Decimal = Field(
        default=ZERO,
        description="Fraction of the overall total (0-1)"
    )


class IntensityBar(BaseModel):
    """A recent transaction scaled against the largest one in its window."""

    transaction_id: str
    amount: Decimal
    type: TransactionType
    weight: Decimal = Field(
        ...,
        description="Percentage of the window maximum, floored at the minimum weight"
    )


class CreditStatus(BaseModel):
    """
    Credit-card view of a CREDIT wallet.

    balance is usually <= 0: spending on the card pushes it negative.
    """

    credit_limit: Decimal = ZERO
    balance: Decimal = ZERO

    @property
    def available_credit(self) -> Decimal:
        return self.credit_limit + self.balance

    @property
    def utilization(self) -> Decimal:
        """|balance| / credit_limit, 0 when there is no limit."""
        if self.credit_limit <= 0:
            return ZERO
        return abs(self.balance) / self.credit_limit

    @property
    def utilization_percent(self) -> Decimal:
        return self.utilization * HUNDRED

    @property
    def is_near_limit(self) -> bool:
        return self.utilization > Decimal("0.9")


class WalletSummary(BaseModel):
    """A wallet together with its derived state."""

    wallet: Wallet
    balance: Decimal = ZERO
    credit: Optional[CreditStatus] = None

    @property
    def display_amount(self) -> Decimal:
        """Available limit for credit cards, balance for everything else."""
        if self.credit is not None:
            return self.credit.available_credit
        return self.balance


class BalancePoint(BaseModel):
    """Derived balance of a wallet at the end of a month."""

    month_start: date
    label: str
    balance: Decimal = ZERO


class SpendingComparison(BaseModel):
    """Today's spending against yesterday's."""

    today: date
    yesterday: date
    today_expense: Decimal = ZERO
    yesterday_expense: Decimal = ZERO
    percent_change: int = Field(
        default=0,
        description="Rounded |difference| / yesterday; 100 when yesterday had no spending"
    )

    @property
    def difference(self) -> Decimal:
        return self.today_expense - self.yesterday_expense

    @property
    def is_spending_more(self) -> bool:
        return self.difference > 0


class DailySpend(BaseModel):
    """Expense of one day inside a month profile."""

    day: int = Field(..., ge=1, le=31)
    amount: Decimal = ZERO
    cumulative: Optional[Decimal] = Field(
        default=None,
        description="Running total, None for days that have not happened yet"
    )
    is_future: bool = False


class MonthSpendingProfile(BaseModel):
    """Day-by-day spending statistics for one calendar month."""

    year: int
    month: int = Field(..., ge=1, le=12)
    days: list[DailySpend] = Field(default_factory=list)
    total: Decimal = ZERO
    days_elapsed: int = 0
    average_daily: Decimal = ZERO
    max_day: Optional[int] = None
    no_spend_days: int = 0
    weekday_totals: dict[int, Decimal] = Field(
        default_factory=dict,
        description="Monday=0 ... Sunday=6"
    )
