"""
Aggregation Engine

Pure functions that derive read-only figures from a ledger whose entries
have already been through the retention filter.

There are no error conditions here. Input validation guarantees every
amount is a finite number before it reaches a ledger.
"""

from datetime import datetime, timedelta, timezone
from typing import Iterable

from src.models.ledger import (
    Entry,
    Ledger,
    LedgerSummary,
    TargetProgress,
)


TAX_RESERVE_RATE = 0.30
BURN_WINDOW = timedelta(days=90)
BURN_WINDOW_MONTHS = 3
RECURRING_SUFFIX = " (Recurring)"


def month_key(moment: datetime) -> str:
    """Calendar month of a timestamp as 'YYYY-MM' (UTC)."""
    return moment.astimezone(timezone.utc).strftime("%Y-%m")


def total(entries: Iterable[Entry]) -> float:
    return sum((entry.amount for entry in entries), 0.0)


def totals_by_category(
    entries: Iterable[Entry],
    split_recurring: bool = False,
) -> dict[str, float]:
    """
    Sum amounts per category.

    Keys appear in the order each category is first seen. With
    `split_recurring`, entries posted from recurring bills are grouped under
    '<category> (Recurring)' instead of their plain category.
    """
    totals: dict[str, float] = {}
    for entry in entries:
        key = entry.category
        if split_recurring and entry.is_recurring:
            key = f"{entry.category}{RECURRING_SUFFIX}"
        totals[key] = totals.get(key, 0.0) + entry.amount
    return totals


def entries_in_month(entries: Iterable[Entry], key: str) -> list[Entry]:
    return [entry for entry in entries if month_key(entry.date) == key]


def recent_entries(
    entries: Iterable[Entry],
    now: datetime,
    days: int = 14,
) -> list[Entry]:
    """Entries at most `days` days old, for the dashboard's recent lists."""
    window = timedelta(days=days)
    return [entry for entry in entries if now - entry.date <= window]


def rolling_expenses(expenses: Iterable[Entry], now: datetime) -> float:
    """Sum of expenses dated within the burn window before `now`."""
    return total(e for e in expenses if now - e.date <= BURN_WINDOW)


def runway(available_cash: float, monthly_burn_rate: float) -> float:
    """Months of solvency at the current burn rate; +inf with no burn."""
    if monthly_burn_rate == 0:
        return float("inf")
    return available_cash / monthly_burn_rate


def target_progress(ledger: Ledger, now: datetime) -> list[TargetProgress]:
    """Spend against each target set for the month containing `now`."""
    key = month_key(now)
    spent = totals_by_category(entries_in_month(ledger.expenses, key))

    return [
        TargetProgress(
            category=target.category,
            month=target.month,
            budget=target.amount,
            spent=spent.get(target.category, 0.0),
        )
        for target in ledger.targets
        if target.month == key
    ]


def summarize(
    ledger: Ledger,
    now: datetime,
    split_recurring: bool = False,
) -> LedgerSummary:
    """
    Compute every summary figure for a ledger at `now`.

    The ledger must already be retention-filtered. Nothing is mutated.
    """
    key = month_key(now)

    income_total = total(ledger.income)
    expense_total = total(ledger.expenses)
    net = income_total - expense_total

    monthly_income = total(entries_in_month(ledger.income, key))
    monthly_expenses = total(entries_in_month(ledger.expenses, key))

    rolling_90_day = rolling_expenses(ledger.expenses, now)
    burn_rate = rolling_90_day / BURN_WINDOW_MONTHS

    return LedgerSummary(
        as_of=now,
        month=key,
        income_total=income_total,
        expense_total=expense_total,
        net=net,
        income_by_category=totals_by_category(ledger.income),
        expense_by_category=totals_by_category(
            ledger.expenses, split_recurring=split_recurring
        ),
        monthly_income=monthly_income,
        monthly_expenses=monthly_expenses,
        rolling_90_day_expenses=rolling_90_day,
        monthly_burn_rate=burn_rate,
        runway_months=runway(net, burn_rate),
        tax_reserve=monthly_income * TAX_RESERVE_RATE,
        target_progress=target_progress(ledger, now),
    )
