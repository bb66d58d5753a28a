"""Read-side aggregation package."""

from pocket_ledger.queries.aggregation import (
    business_buckets,
    business_summary,
    business_transactions,
    expense_by_category,
    filter_transactions,
    group_by_day,
    intensity_window,
    matches,
    month_spending_profile,
    month_totals,
    net_by_day,
    period_buckets,
    query_transactions,
    sort_transactions,
    spending_comparison,
    totals,
    transactions_in_month,
)

__all__ = [
    "business_buckets",
    "business_summary",
    "business_transactions",
    "expense_by_category",
    "filter_transactions",
    "group_by_day",
    "intensity_window",
    "matches",
    "month_spending_profile",
    "month_totals",
    "net_by_day",
    "period_buckets",
    "query_transactions",
    "sort_transactions",
    "spending_comparison",
    "totals",
    "transactions_in_month",
]
