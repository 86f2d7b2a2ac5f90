"""
CSV Export

One row per income, expense and recurring bill, in that order, with a fixed
column layout. Income and expense rows leave the recurring-only columns blank.
"""

import csv
import io
from datetime import datetime
from typing import Optional

from src.models.ledger import Entry, Ledger, RecurringBill


CSV_COLUMNS = ["type", "category", "amount", "date", "frequency", "lastPaid"]


def format_amount(amount: float) -> str:
    """Whole amounts without a trailing '.0'."""
    if amount.is_integer():
        return str(int(amount))
    return repr(amount)


def _timestamp(moment: Optional[datetime]) -> str:
    return moment.isoformat() if moment else ""


def _entry_to_row(kind: str, entry: Entry) -> list:
    return [
        kind,
        entry.category,
        format_amount(entry.amount),
        _timestamp(entry.date),
        "",
        "",
    ]


def _bill_to_row(bill: RecurringBill) -> list:
    return [
        "recurring",
        bill.category,
        format_amount(bill.amount),
        _timestamp(bill.date),
        bill.frequency.value,
        _timestamp(bill.last_paid),
    ]


def export_csv(ledger: Ledger) -> str:
    """Render a ledger as CSV text, header row first."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)

    for entry in ledger.income:
        writer.writerow(_entry_to_row("income", entry))
    for entry in ledger.expenses:
        writer.writerow(_entry_to_row("expense", entry))
    for bill in ledger.recurring_bills:
        writer.writerow(_bill_to_row(bill))

    return buffer.getvalue()
