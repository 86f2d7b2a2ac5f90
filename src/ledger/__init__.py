"""Ledger engines: retention, recurring bills and aggregation."""

from src.ledger.aggregation import (
    RECURRING_SUFFIX,
    TAX_RESERVE_RATE,
    month_key,
    recent_entries,
    summarize,
    target_progress,
    totals_by_category,
)
from src.ledger.clock import Clock, fixed_clock, system_clock
from src.ledger.recurring import RecurringBillEngine, bill_state, is_due
from src.ledger.retention import (
    RETENTION_MONTHS,
    compute_cutoff,
    filter_retained,
    filter_retained_targets,
    prune_accounts,
    prune_ledger,
)

__all__ = [
    "Clock",
    "RECURRING_SUFFIX",
    "RETENTION_MONTHS",
    "RecurringBillEngine",
    "TAX_RESERVE_RATE",
    "bill_state",
    "compute_cutoff",
    "filter_retained",
    "filter_retained_targets",
    "fixed_clock",
    "is_due",
    "month_key",
    "prune_accounts",
    "prune_ledger",
    "recent_entries",
    "summarize",
    "system_clock",
    "target_progress",
    "totals_by_category",
]
