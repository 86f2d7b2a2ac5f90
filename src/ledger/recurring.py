"""
Recurring Bill Engine

A recurring bill has no stored status. Its state at any moment is derived
from its start date and lastPaid:

    PENDING  - now is before the start date
    DUE      - never paid, or a new period began since lastPaid
    SETTLED  - lastPaid covers the current period

Daily and weekly bills measure elapsed time since lastPaid (exact 24h / 7x24h
durations). Monthly bills compare calendar months instead, so a bill paid at
23:00 on 31 January is due again at 00:30 on 1 February.

DESIGN DECISION: What a DUE bill does on a tick is an explicit policy
(RecurringPolicy). AUTO_POST appends a matching expense; TRACK_ONLY just
advances lastPaid. The engine applies exactly one of them.

"Pay now" ignores the derived state entirely. Paying a bill that a tick
already settled posts a second expense for the same period.
"""

from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from src.models.ledger import (
    BillState,
    Entry,
    EntrySource,
    Frequency,
    Ledger,
    RecurringBill,
    RecurringPolicy,
    TickResult,
)


DAY = timedelta(days=1)
WEEK = timedelta(days=7)


def _new_period_started(bill: RecurringBill, now: datetime) -> bool:
    last_paid = bill.last_paid
    if last_paid is None:
        return True

    if bill.frequency == Frequency.DAILY:
        return now - last_paid >= DAY
    if bill.frequency == Frequency.WEEKLY:
        return now - last_paid >= WEEK
    if bill.frequency == Frequency.MONTHLY:
        # Calendar boundary, not elapsed time
        last_paid = last_paid.astimezone(now.tzinfo)
        return (now.year, now.month) != (last_paid.year, last_paid.month)

    return False


def bill_state(bill: RecurringBill, now: datetime) -> BillState:
    """Derive the state of a recurring bill at `now`."""
    if now < bill.date:
        return BillState.PENDING
    if _new_period_started(bill, now):
        return BillState.DUE
    return BillState.SETTLED


def is_due(bill: RecurringBill, now: datetime) -> bool:
    return bill_state(bill, now) == BillState.DUE


def expense_for(bill: RecurringBill, now: datetime) -> Entry:
    """The expense a bill posts when it is paid at `now`."""
    return Entry(
        amount=bill.amount,
        category=bill.category,
        date=now,
        source=EntrySource.RECURRING,
    )


class RecurringBillEngine:
    """
    Applies due recurring bills to a ledger.

    The engine is pure in-memory state transition: it mutates the ledger
    it is handed and never touches storage. Persisting the ledger after a
    tick is the caller's job.
    """

    def __init__(self, policy: RecurringPolicy = RecurringPolicy.AUTO_POST):
        self._policy = policy

    @property
    def policy(self) -> RecurringPolicy:
        return self._policy

    def tick(self, ledger: Ledger, now: datetime) -> TickResult:
        """
        Evaluate every bill once at `now`.

        Each DUE bill gets lastPaid = now and, under AUTO_POST, a matching
        expense. Running tick twice with the same `now` changes nothing the
        second time.
        """
        result = TickResult(ticked_at=now, policy=self._policy)

        for bill in ledger.recurring_bills:
            if not is_due(bill, now):
                continue

            if self._policy == RecurringPolicy.AUTO_POST:
                expense = expense_for(bill, now)
                ledger.expenses.append(expense)
                result.posted_expenses.append(expense)

            bill.last_paid = now
            result.settled_bill_ids.append(bill.id)

        return result

    def pay_now(
        self,
        ledger: Ledger,
        bill_id: UUID,
        now: datetime,
    ) -> Optional[Entry]:
        """
        Pay a bill immediately, whatever its state.

        Always posts an expense (the policy only governs ticks) and sets
        lastPaid = now. Returns None if the bill does not exist.
        """
        bill = ledger.find_bill(bill_id)
        if bill is None:
            return None

        expense = expense_for(bill, now)
        ledger.expenses.append(expense)
        bill.last_paid = now
        return expense
