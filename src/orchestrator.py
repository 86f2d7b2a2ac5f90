"""
Main Orchestrator for Budget Ledger

This module ties together all the components and defines the
end-to-end flow of every ledger access:

1. Load   - read all accounts from storage
2. Prune  - apply the retention window to the user's ledger
3. Tick   - apply due recurring bills (mutates the ledger)
4. Change - add / pay / delete, if the operation is a mutation
5. Save   - prune every account, then persist the whole document
6. Derive - compute read-only aggregates for display or export

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing reaches a ledger without passing EntryValidator
- Rejected input is dropped silently, but always logged and audited
- Every access ends with a save, even when nothing changed
"""

from datetime import datetime
from typing import Any, Optional, Union
from uuid import UUID

import structlog

from src.accounts import AccountService
from src.audit import AuditLogger
from src.config import LedgerSettings, get_settings
from src.export import export_csv, monthly_report
from src.ledger import (
    RecurringBillEngine,
    bill_state,
    compute_cutoff,
    prune_accounts,
    prune_ledger,
    recent_entries,
    summarize,
)
from src.ledger.clock import Clock, system_clock
from src.models.account import Account, normalize_username
from src.models.ledger import (
    Dashboard,
    Entry,
    EntryKind,
    Ledger,
    LedgerSummary,
    RecurringBill,
    Target,
    ValidationResult,
)
from src.services.storage import (
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    JsonFileLedgerStorage,
    JsonLinesAuditStorage,
    LedgerStorageInterface,
)
from src.validation import EntryValidator


logger = structlog.get_logger(__name__)

# Collections addressable by position, as the legacy form posts named them
POSITIONAL_COLLECTIONS = {
    "income": "income",
    "expenses": "expenses",
    "recurringBills": "recurring_bills",
}


def _as_uuid(raw: Union[UUID, str, None]) -> Optional[UUID]:
    if isinstance(raw, UUID):
        return raw
    try:
        return UUID(str(raw))
    except (TypeError, ValueError):
        return None


class LedgerService:
    """
    Orchestrates every operation on a user's ledger.

    Flow per call:
    1. Access → load, prune, tick (the ledger is now current)
    2. Mutate → validated change, or nothing
    3. Save   → always
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        engine: Optional[RecurringBillEngine] = None,
        validator: Optional[EntryValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Clock = system_clock,
        settings: Optional[LedgerSettings] = None,
        currency: Optional[str] = None,
    ):
        self._storage = storage
        self._settings = settings or get_settings().ledger
        self._engine = engine or RecurringBillEngine(self._settings.recurring_policy)
        self._validator = validator or EntryValidator()
        self._audit_logger = audit_logger
        self._clock = clock
        self._currency = currency or get_settings().app.currency_symbol

    @property
    def engine(self) -> RecurringBillEngine:
        return self._engine

    # -------------------------------------------------------------------------
    # Access / persist
    # -------------------------------------------------------------------------

    def _access(self, username: str) -> tuple[dict[str, Account], Account, datetime]:
        """
        Load the user's account and bring its ledger up to date.

        A user without an account record (a session whose account was lost
        to corrupt storage, for instance) gets an empty ledger.
        """
        username = normalize_username(username)
        now = self._clock()
        accounts = self._storage.load_accounts()

        account = accounts.get(username)
        if account is None:
            logger.info("ledger_created", username=username)
            account = Account(username=username)
            accounts[username] = account

        dropped = prune_ledger(account.ledger, now)
        if dropped and self._audit_logger:
            self._audit_logger.log_entries_pruned(username, dropped, compute_cutoff(now))

        result = self._engine.tick(account.ledger, now)
        if result.changed and self._audit_logger:
            self._audit_logger.log_tick(username, result)

        return accounts, account, now

    def _persist(self, accounts: dict[str, Account], now: datetime) -> None:
        """Prune every account, then overwrite storage."""
        dropped = prune_accounts(accounts, now)
        if dropped and self._audit_logger:
            cutoff = compute_cutoff(now)
            for username, count in dropped.items():
                self._audit_logger.log_entries_pruned(username, count, cutoff)

        self._storage.save_accounts(accounts)

    def _reject(self, username: str, kind: str, result: ValidationResult) -> None:
        issues = [
            {"field": i.field, "type": i.issue_type, "message": i.message}
            for i in result.issues
        ]
        logger.info("input_dropped", username=username, kind=kind, issues=issues)
        if self._audit_logger:
            self._audit_logger.log_entry_rejected(username, kind, issues)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def open_ledger(self, username: str) -> Ledger:
        """Access the ledger (prune, tick, save) and return it."""
        accounts, account, now = self._access(username)
        self._persist(accounts, now)
        return account.ledger

    def dashboard(self, username: str) -> Dashboard:
        """Access the ledger and derive everything the dashboard displays."""
        accounts, account, now = self._access(username)
        self._persist(accounts, now)

        ledger = account.ledger
        days = self._settings.recent_window_days
        return Dashboard(
            ledger=ledger,
            summary=self._summarize(ledger, now),
            recent_income=recent_entries(ledger.income, now, days),
            recent_expenses=recent_entries(ledger.expenses, now, days),
            bill_states={
                str(bill.id): bill_state(bill, now) for bill in ledger.recurring_bills
            },
        )

    def _summarize(self, ledger: Ledger, now: datetime) -> LedgerSummary:
        return summarize(
            ledger, now, split_recurring=self._settings.split_recurring_categories
        )

    def monthly_report(self, username: str) -> str:
        """Plain-text report for the current month."""
        accounts, account, now = self._access(username)
        self._persist(accounts, now)
        return monthly_report(self._summarize(account.ledger, now), now, self._currency)

    def export_csv(self, username: str) -> str:
        """The current ledger as CSV text."""
        accounts, account, now = self._access(username)
        self._persist(accounts, now)
        return export_csv(account.ledger)

    # -------------------------------------------------------------------------
    # Income / expenses
    # -------------------------------------------------------------------------

    def _add_entry(
        self,
        username: str,
        kind: EntryKind,
        amount: Any,
        category: Any,
        entry_date: Any,
    ) -> Optional[Entry]:
        accounts, account, now = self._access(username)

        result = self._validator.validate_entry(amount, category, entry_date, now)
        entry = None
        if result.is_valid:
            entry = result.record
            account.ledger.entries(kind).append(entry)
            if self._audit_logger:
                self._audit_logger.log_entry_added(
                    account.username, kind.value, entry.id, entry.amount, entry.category
                )
        else:
            self._reject(account.username, kind.value, result)

        self._persist(accounts, now)
        return entry

    def add_income(
        self,
        username: str,
        amount: Any,
        category: Any,
        entry_date: Any = None,
    ) -> Optional[Entry]:
        """Record income. Returns None (and stores nothing) for invalid input."""
        return self._add_entry(username, EntryKind.INCOME, amount, category, entry_date)

    def add_expense(
        self,
        username: str,
        amount: Any,
        category: Any,
        entry_date: Any = None,
    ) -> Optional[Entry]:
        """Record an expense. Returns None (and stores nothing) for invalid input."""
        return self._add_entry(username, EntryKind.EXPENSE, amount, category, entry_date)

    def _delete_entry(self, username: str, kind: EntryKind, entry_id: Any) -> bool:
        accounts, account, now = self._access(username)

        wanted = _as_uuid(entry_id)
        entries = account.ledger.entries(kind)
        index = next((i for i, e in enumerate(entries) if e.id == wanted), None)
        if index is not None:
            del entries[index]
            if self._audit_logger:
                self._audit_logger.log_entry_deleted(account.username, kind.value, str(wanted))

        self._persist(accounts, now)
        return index is not None

    def delete_income(self, username: str, entry_id: Any) -> bool:
        return self._delete_entry(username, EntryKind.INCOME, entry_id)

    def delete_expense(self, username: str, entry_id: Any) -> bool:
        return self._delete_entry(username, EntryKind.EXPENSE, entry_id)

    # -------------------------------------------------------------------------
    # Recurring bills
    # -------------------------------------------------------------------------

    def add_recurring_bill(
        self,
        username: str,
        amount: Any,
        category: Any,
        frequency: Any,
        start_date: Any,
    ) -> Optional[RecurringBill]:
        """
        Add a recurring bill.

        The new bill is evaluated by the next access's tick, not this one.
        """
        accounts, account, now = self._access(username)

        result = self._validator.validate_recurring_bill(
            amount, category, frequency, start_date, now
        )
        bill = None
        if result.is_valid:
            bill = result.record
            account.ledger.recurring_bills.append(bill)
            if self._audit_logger:
                self._audit_logger.log_recurring_bill_added(
                    account.username, bill.id, bill.category, bill.frequency.value
                )
        else:
            self._reject(account.username, "recurring_bill", result)

        self._persist(accounts, now)
        return bill

    def pay_recurring_bill(self, username: str, bill_id: Any) -> Optional[Entry]:
        """
        Pay a bill now, whatever its state.

        Returns the posted expense, or None for an unknown bill.
        """
        accounts, account, now = self._access(username)

        expense = None
        wanted = _as_uuid(bill_id)
        if wanted is not None:
            expense = self._engine.pay_now(account.ledger, wanted, now)
            if expense is not None and self._audit_logger:
                self._audit_logger.log_recurring_bill_paid(
                    account.username, wanted, expense.id, expense.amount
                )

        self._persist(accounts, now)
        return expense

    def delete_recurring_bill(self, username: str, bill_id: Any) -> bool:
        accounts, account, now = self._access(username)

        wanted = _as_uuid(bill_id)
        bills = account.ledger.recurring_bills
        remaining = [b for b in bills if b.id != wanted]
        deleted = len(remaining) < len(bills)
        if deleted:
            account.ledger.recurring_bills = remaining
            if self._audit_logger:
                self._audit_logger.log_recurring_bill_deleted(account.username, wanted)

        self._persist(accounts, now)
        return deleted

    def delete_entry_at(self, username: str, collection: str, index: Any) -> bool:
        """
        Delete by position in 'income', 'expenses' or 'recurringBills'.

        Positions refer to the ledger after this access's prune and tick.
        Out-of-range, negative and non-numeric indexes delete nothing.
        """
        accounts, account, now = self._access(username)

        deleted = False
        attribute = POSITIONAL_COLLECTIONS.get(collection)
        try:
            position = int(index)
        except (TypeError, ValueError):
            position = None

        if attribute is not None and position is not None:
            items = getattr(account.ledger, attribute)
            if 0 <= position < len(items):
                removed = items.pop(position)
                deleted = True
                if self._audit_logger:
                    if attribute == "recurring_bills":
                        self._audit_logger.log_recurring_bill_deleted(
                            account.username, removed.id
                        )
                    else:
                        kind = EntryKind.INCOME if attribute == "income" else EntryKind.EXPENSE
                        self._audit_logger.log_entry_deleted(
                            account.username, kind.value, str(removed.id)
                        )

        self._persist(accounts, now)
        return deleted

    # -------------------------------------------------------------------------
    # Targets
    # -------------------------------------------------------------------------

    def set_target(
        self,
        username: str,
        category: Any,
        month: Any,
        amount: Any,
    ) -> Optional[Target]:
        """Set (or overwrite) the target for a category and month."""
        accounts, account, now = self._access(username)

        result = self._validator.validate_target(category, month, amount, now)
        target = None
        if result.is_valid:
            record = result.record
            target = account.ledger.set_target(record.category, record.month, record.amount)
            if self._audit_logger:
                self._audit_logger.log_target_set(
                    account.username, target.category, target.month, target.amount
                )
        else:
            self._reject(account.username, "target", result)

        self._persist(accounts, now)
        return target

    def delete_target(self, username: str, category: str, month: str) -> bool:
        accounts, account, now = self._access(username)

        category = str(category or "").strip()
        month = str(month or "").strip()
        deleted = account.ledger.remove_target(category, month)
        if deleted and self._audit_logger:
            self._audit_logger.log_target_deleted(account.username, category, month)

        self._persist(accounts, now)
        return deleted


def create_app_components(
    use_storage: bool = True,
    clock: Clock = system_clock,
) -> tuple[AccountService, LedgerService, AuditLogger]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use the JSON files named in the settings.
                    Set to False for throwaway in-memory sessions.
        clock: Source of the current time

    Returns:
        (account_service, ledger_service, audit_logger)
    """
    settings = get_settings()

    if use_storage:
        audit_logger = AuditLogger(JsonLinesAuditStorage(settings.storage.audit_log_file))
        storage = JsonFileLedgerStorage(
            settings.storage.data_file,
            write_attempts=settings.storage.write_attempts,
            on_corrupt=audit_logger.log_storage_corrupt,
        )
    else:
        audit_logger = AuditLogger(InMemoryAuditStorage())
        storage = InMemoryLedgerStorage()

    account_service = AccountService(
        storage,
        audit_logger=audit_logger,
        clock=clock,
        settings=settings.auth,
    )
    ledger_service = LedgerService(
        storage,
        engine=RecurringBillEngine(settings.ledger.recurring_policy),
        audit_logger=audit_logger,
        clock=clock,
        settings=settings.ledger,
        currency=settings.app.currency_symbol,
    )

    return account_service, ledger_service, audit_logger
