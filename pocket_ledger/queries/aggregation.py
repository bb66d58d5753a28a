"""
Aggregation Engine

Read-side bucketing, filtering and sorting over a transaction collection.

GUARANTEES:
- Pure: the same inputs always give the same output, inputs are never mutated
- Total: empty input gives zero-valued results, never an exception
- Deterministic time: every time-bucketed operation takes an explicit `now`
  instead of reading the wall clock
- Stable: sorting keeps input order among equal keys
"""

from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional, Sequence

from pocket_ledger.models.ledger import (
    ZERO,
    Category,
    Granularity,
    SortOrder,
    Transaction,
    TransactionFilter,
    TransactionType,
)
from pocket_ledger.models.reports import (
    HUNDRED,
    BusinessBucket,
    BusinessSummary,
    CategoryTotal,
    DailyNet,
    DailySpend,
    DayGroup,
    IntensityBar,
    MonthSpendingProfile,
    PeriodBucket,
    SpendingComparison,
    Totals,
)
from pocket_ledger.periods import month_bounds, month_label, trailing_months


# =============================================================================
# FILTER & SORT
# =============================================================================

def _amount_text(amount: Decimal) -> str:
    """Plain digits of an amount, as a user would type it (no exponent, no trailing zeros)."""
    return format(amount.normalize(), "f")


def matches(t: Transaction, criteria: TransactionFilter) -> bool:
    """Does a transaction satisfy every set predicate of `criteria`?"""
    if criteria.search_text:
        needle = criteria.search_text
        if needle.lower() not in t.note.lower() and needle not in _amount_text(t.amount):
            return False

    if criteria.type is not None and t.type != criteria.type:
        return False

    if criteria.category is not None and t.category != criteria.category:
        return False

    if criteria.wallet_id is not None and t.wallet_id != criteria.wallet_id:
        return False

    # Day granularity: time of day never matters
    if criteria.start_date is not None and t.day < criteria.start_date:
        return False
    if criteria.end_date is not None and t.day > criteria.end_date:
        return False

    return True


def filter_transactions(
    transactions: Iterable[Transaction],
    criteria: Optional[TransactionFilter] = None,
) -> list[Transaction]:
    """Transactions matching `criteria`, in input order."""
    if criteria is None:
        return list(transactions)
    return [t for t in transactions if matches(t, criteria)]


def sort_transactions(
    transactions: Iterable[Transaction],
    order: SortOrder = SortOrder.DATE_DESC,
) -> list[Transaction]:
    """
    Sort by date or amount.

    sorted() is stable in both directions, so ties keep input order
    for descending orders as well.
    """
    if order == SortOrder.DATE_DESC:
        return sorted(transactions, key=lambda t: t.date, reverse=True)
    if order == SortOrder.DATE_ASC:
        return sorted(transactions, key=lambda t: t.date)
    if order == SortOrder.AMOUNT_DESC:
        return sorted(transactions, key=lambda t: t.amount, reverse=True)
    return sorted(transactions, key=lambda t: t.amount)


def query_transactions(
    transactions: Iterable[Transaction],
    criteria: Optional[TransactionFilter] = None,
    order: SortOrder = SortOrder.DATE_DESC,
) -> list[Transaction]:
    """Filter then sort, as the transaction book does."""
    return sort_transactions(filter_transactions(transactions, criteria), order)


# =============================================================================
# TOTALS & DAY GROUPING
# =============================================================================

def totals(transactions: Iterable[Transaction]) -> Totals:
    income = ZERO
    expense = ZERO
    for t in transactions:
        if t.type == TransactionType.INCOME:
            income += t.amount
        else:
            expense += t.amount
    return Totals(income=income, expense=expense)


def group_by_day(transactions: Iterable[Transaction]) -> list[DayGroup]:
    """
    Partition by calendar day, newest day first.

    Inside a group transactions keep their input order.
    """
    grouped: dict[date, list[Transaction]] = defaultdict(list)
    for t in transactions:
        grouped[t.day].append(t)

    groups = []
    for day in sorted(grouped, reverse=True):
        day_totals = totals(grouped[day])
        groups.append(DayGroup(
            day=day,
            transactions=grouped[day],
            income=day_totals.income,
            expense=day_totals.expense,
        ))
    return groups


def net_by_day(transactions: Iterable[Transaction]) -> list[DailyNet]:
    """Per-day net (income - expense) for days that have transactions, oldest first."""
    nets: dict[date, Decimal] = defaultdict(lambda: ZERO)
    for t in transactions:
        nets[t.day] += t.signed_amount
    return [DailyNet(day=day, net=nets[day]) for day in sorted(nets)]


# =============================================================================
# PERIOD BUCKETING
# =============================================================================

def _empty_buckets(periods: int, now: datetime, granularity: Granularity) -> list[PeriodBucket]:
    if granularity == Granularity.DAY:
        today = now.date()
        days = [today - timedelta(days=offset) for offset in range(periods - 1, -1, -1)]
        return [PeriodBucket(start=d, end=d, label=d.isoformat()) for d in days]

    buckets = []
    for year, month in trailing_months(now.year, now.month, periods):
        first_day, last_day = month_bounds(year, month)
        buckets.append(PeriodBucket(start=first_day, end=last_day, label=month_label(year, month)))
    return buckets


def _bucket_key(day: date, granularity: Granularity):
    if granularity == Granularity.DAY:
        return day
    return (day.year, day.month)


def period_buckets(
    transactions: Iterable[Transaction],
    periods: int,
    now: datetime,
    granularity: Granularity = Granularity.MONTH,
) -> list[PeriodBucket]:
    """
    Income and expense for the last `periods` days or months ending at `now`.

    Always returns exactly `periods` buckets (none for periods <= 0),
    oldest first. Periods without transactions are present with zeros.
    """
    if periods <= 0:
        return []

    buckets = _empty_buckets(periods, now, granularity)
    income: dict = defaultdict(lambda: ZERO)
    expense: dict = defaultdict(lambda: ZERO)
    keys = {_bucket_key(b.start, granularity) for b in buckets}

    for t in transactions:
        key = _bucket_key(t.day, granularity)
        if key not in keys:
            continue
        if t.type == TransactionType.INCOME:
            income[key] += t.amount
        else:
            expense[key] += t.amount

    return [
        b.model_copy(update={
            "income": income[_bucket_key(b.start, granularity)],
            "expense": expense[_bucket_key(b.start, granularity)],
        })
        for b in buckets
    ]


def transactions_in_month(
    transactions: Iterable[Transaction],
    year: int,
    month: int,
) -> list[Transaction]:
    return [t for t in transactions if t.date.year == year and t.date.month == month]


def month_totals(transactions: Iterable[Transaction], year: int, month: int) -> Totals:
    """Income, expense and net of one calendar month (the dashboard header)."""
    return totals(transactions_in_month(transactions, year, month))


# =============================================================================
# BUSINESS P&L
# =============================================================================

def business_transactions(transactions: Iterable[Transaction]) -> list[Transaction]:
    """SELLING and BUSINESS_COST transactions, newest first."""
    return sort_transactions((t for t in transactions if t.is_business), SortOrder.DATE_DESC)


def business_summary(transactions: Iterable[Transaction]) -> BusinessSummary:
    """
    Revenue (SELLING) against cost (BUSINESS_COST).

    Unassigned transactions count too: this is a category view, not a wallet view.
    """
    revenue = ZERO
    cost = ZERO
    for t in transactions:
        if t.category == Category.SELLING.value:
            revenue += t.amount
        elif t.category == Category.BUSINESS_COST.value:
            cost += t.amount
    return BusinessSummary(revenue=revenue, cost=cost)


def business_buckets(
    transactions: Iterable[Transaction],
    months: int,
    now: datetime,
) -> list[BusinessBucket]:
    """Monthly revenue and cost for the last `months` months, oldest first."""
    if months <= 0:
        return []

    by_month: dict[tuple[int, int], list[Transaction]] = defaultdict(list)
    for t in transactions:
        if t.is_business:
            by_month[(t.date.year, t.date.month)].append(t)

    buckets = []
    for year, month in trailing_months(now.year, now.month, months):
        summary = business_summary(by_month.get((year, month), []))
        buckets.append(BusinessBucket(
            start=date(year, month, 1),
            label=month_label(year, month),
            revenue=summary.revenue,
            cost=summary.cost,
        ))
    return buckets


# =============================================================================
# SPENDING INSIGHTS
# =============================================================================

def expense_by_category(transactions: Iterable[Transaction]) -> list[CategoryTotal]:
    """Expense per category, largest first; equal totals keep first-seen order."""
    by_category: dict[str, Decimal] = {}
    for t in transactions:
        if t.type != TransactionType.EXPENSE:
            continue
        by_category[t.category] = by_category.get(t.category, ZERO) + t.amount

    overall = sum(by_category.values(), ZERO)
    ranked = sorted(by_category.items(), key=lambda item: item[1], reverse=True)
    return [
        CategoryTotal(
            category=category,
            total=total,
            share=total / overall if overall > 0 else ZERO,
        )
        for category, total in ranked
    ]


def _expense_on(transactions: Iterable[Transaction], day: date) -> Decimal:
    return sum(
        (t.amount for t in transactions if t.type == TransactionType.EXPENSE and t.day == day),
        ZERO,
    )


def spending_comparison(transactions: Sequence[Transaction], now: datetime) -> SpendingComparison:
    """
    Today's expense against yesterday's, relative to `now`.

    percent_change is |today - yesterday| / yesterday, rounded half-up;
    it is 100 whenever yesterday had no expense.
    """
    today = now.date()
    yesterday = today - timedelta(days=1)
    today_expense = _expense_on(transactions, today)
    yesterday_expense = _expense_on(transactions, yesterday)

    if yesterday_expense > 0:
        ratio = abs(today_expense - yesterday_expense) / yesterday_expense * HUNDRED
        percent = int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    else:
        percent = 100

    return SpendingComparison(
        today=today,
        yesterday=yesterday,
        today_expense=today_expense,
        yesterday_expense=yesterday_expense,
        percent_change=percent,
    )


def month_spending_profile(
    transactions: Iterable[Transaction],
    year: int,
    month: int,
    now: datetime,
) -> MonthSpendingProfile:
    """
    Day-by-day expense statistics for one month.

    Days after `now` are marked as future and excluded from the average,
    the running total and the no-spend count.
    """
    first_day, last_day = month_bounds(year, month)
    days_in_month = last_day.day

    if (year, month) == (now.year, now.month):
        days_elapsed = now.day
    elif first_day > now.date():
        days_elapsed = 0
    else:
        days_elapsed = days_in_month

    per_day: dict[int, Decimal] = {d: ZERO for d in range(1, days_in_month + 1)}
    weekdays: dict[int, Decimal] = {wd: ZERO for wd in range(7)}
    for t in transactions_in_month(transactions, year, month):
        if t.type != TransactionType.EXPENSE:
            continue
        per_day[t.date.day] += t.amount
        weekdays[t.date.weekday()] += t.amount

    total = sum(per_day.values(), ZERO)
    days = []
    cumulative = ZERO
    for day_number in range(1, days_in_month + 1):
        elapsed = day_number <= days_elapsed
        if elapsed:
            cumulative += per_day[day_number]
        days.append(DailySpend(
            day=day_number,
            amount=per_day[day_number],
            cumulative=cumulative if elapsed else None,
            is_future=not elapsed,
        ))

    top = max(per_day.values())
    max_day = None
    if top > 0:
        max_day = next(d for d in range(1, days_in_month + 1) if per_day[d] == top)

    return MonthSpendingProfile(
        year=year,
        month=month,
        days=days,
        total=total,
        days_elapsed=days_elapsed,
        average_daily=total / max(1, days_elapsed),
        max_day=max_day,
        no_spend_days=sum(1 for d in range(1, days_elapsed + 1) if per_day[d] == 0),
        weekday_totals=weekdays,
    )


def intensity_window(
    transactions: Iterable[Transaction],
    size: int = 7,
    min_weight: int = 15,
) -> list[IntensityBar]:
    """
    The `size` most recent transactions scaled against the largest of them.

    Bars come oldest first (left to right on a sparkline). The maximum is
    never below 1, so an all-zero window does not divide by zero.
    """
    if size <= 0:
        return []

    window = sort_transactions(transactions, SortOrder.DATE_DESC)[:size]
    window.reverse()
    peak = max([t.amount for t in window] + [Decimal("1")])
    floor = Decimal(min_weight)

    return [
        IntensityBar(
            transaction_id=t.id,
            amount=t.amount,
            type=t.type,
            weight=max(floor, t.amount / peak * HUNDRED),
        )
        for t in window
    ]
