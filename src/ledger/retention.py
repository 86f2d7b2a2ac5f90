"""
Retention Filter

Income, expenses and targets are kept for a rolling window of 14 calendar
months. The cutoff is recomputed from the clock on every access, so an entry
retained yesterday can be pruned today purely because time passed.

Recurring bills are never pruned.
"""

from datetime import datetime, timedelta
from typing import Iterable

from src.models.account import Account
from src.models.ledger import Entry, Ledger, Target, ensure_utc


RETENTION_MONTHS = 14


def compute_cutoff(now: datetime, months: int = RETENTION_MONTHS) -> datetime:
    """
    Midnight of (now.year, now.month - months, now.day) in now's timezone.

    A day that does not exist in the target month rolls over into the
    following month: 30 April 2025 gives 1 March 2024.
    """
    if now.tzinfo is None:
        now = ensure_utc(now)
    month_index = now.year * 12 + (now.month - 1) - months
    year, month = divmod(month_index, 12)
    first_of_month = datetime(year, month + 1, 1, tzinfo=now.tzinfo)
    return first_of_month + timedelta(days=now.day - 1)


def filter_retained(entries: Iterable[Entry], cutoff: datetime) -> list[Entry]:
    """Entries dated on or after the cutoff, in their original order."""
    return [entry for entry in entries if entry.date >= cutoff]


def filter_retained_targets(targets: Iterable[Target], cutoff: datetime) -> list[Target]:
    """Targets whose month starts on or after the cutoff."""
    return [target for target in targets if target.month_start >= cutoff]


def prune_ledger(ledger: Ledger, now: datetime) -> int:
    """
    Apply the retention window to a ledger in place.

    Returns the number of records dropped.
    """
    cutoff = compute_cutoff(now)

    income = filter_retained(ledger.income, cutoff)
    expenses = filter_retained(ledger.expenses, cutoff)
    targets = filter_retained_targets(ledger.targets, cutoff)

    dropped = (
        len(ledger.income) - len(income)
        + len(ledger.expenses) - len(expenses)
        + len(ledger.targets) - len(targets)
    )

    if dropped:
        ledger.income = income
        ledger.expenses = expenses
        ledger.targets = targets

    return dropped


def prune_accounts(accounts: dict[str, Account], now: datetime) -> dict[str, int]:
    """
    Prune every account's ledger before a save.

    Returns the number of records dropped per username (non-zero only).
    """
    dropped = {}
    for username, account in accounts.items():
        count = prune_ledger(account.ledger, now)
        if count:
            dropped[username] = count
    return dropped
