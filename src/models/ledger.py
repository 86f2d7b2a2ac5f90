"""
Core Data Models for Budget Ledger

These models define the schemas for all data flowing through the ledger.
They are designed to:
1. Enforce type safety at runtime
2. Read and write the original camelCase JSON wire format unchanged
3. Keep every timestamp timezone-aware (UTC)
4. Give every entry a stable identity

DESIGN DECISION: Amounts stay plain floats. The ledger reproduces the
arithmetic of the data it inherits rather than switching to Decimal.

DESIGN DECISION: Categories are free text. They are grouping keys, compared
case-sensitively, and never constrained to an enum.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)
from pydantic.alias_generators import to_camel


def ensure_utc(value: datetime) -> datetime:
    """Normalize a datetime to UTC. Naive values are read as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class EntryKind(str, Enum):
    """Which collection of the ledger an entry belongs to."""
    INCOME = "income"
    EXPENSE = "expense"


class EntrySource(str, Enum):
    """
    Where an entry came from.

    RECURRING marks expenses posted by the recurring bill engine or by an
    explicit "pay now" on a recurring bill.
    """
    MANUAL = "manual"
    RECURRING = "recurring"


class Frequency(str, Enum):
    """How often a recurring bill falls due."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class BillState(str, Enum):
    """
    Derived state of a recurring bill at a given moment.

    Not stored: it is computed from the bill's start date and lastPaid.
    """
    PENDING = "pending"   # Start date not reached yet
    DUE = "due"           # A new period has begun since lastPaid
    SETTLED = "settled"   # lastPaid covers the current period


class RecurringPolicy(str, Enum):
    """
    What happens when a recurring bill becomes due on a tick.

    AUTO_POST appends a matching expense and advances lastPaid.
    TRACK_ONLY only advances lastPaid.
    """
    AUTO_POST = "auto_post"
    TRACK_ONLY = "track_only"


# =============================================================================
# LEDGER RECORDS
# =============================================================================

class LedgerRecord(BaseModel):
    """Base for everything persisted in a ledger (camelCase on the wire)."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        validate_assignment=True,
    )


class Entry(LedgerRecord):
    """
    A single income or expense entry.

    Entries are immutable once created except for deletion.
    Entries loaded from data written before identifiers existed
    receive a fresh id on load.
    """

    id: UUID = Field(
        default_factory=uuid4,
        description="Stable identifier assigned at creation"
    )
    amount: float = Field(
        ...,
        description="Amount in the ledger's currency"
    )
    category: str = Field(
        ...,
        min_length=1,
        description="Free-text grouping key"
    )
    date: datetime = Field(
        ...,
        description="When the money moved (UTC)"
    )
    source: EntrySource = Field(
        default=EntrySource.MANUAL,
        description="Manual entry or posted from a recurring bill"
    )

    @field_validator('date')
    @classmethod
    def normalize_date(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @property
    def is_recurring(self) -> bool:
        return self.source == EntrySource.RECURRING


class RecurringBill(LedgerRecord):
    """
    A bill that repeats daily, weekly or monthly.

    `date` is the start date: the bill is inactive before it.
    `last_paid` is advanced by the recurring bill engine and by "pay now".
    Recurring bills are never pruned by the retention window.
    """

    id: UUID = Field(default_factory=uuid4)
    amount: float
    category: str = Field(..., min_length=1)
    frequency: Frequency
    date: datetime = Field(
        ...,
        description="Start date (UTC)"
    )
    last_paid: Optional[datetime] = Field(
        default=None,
        description="When the bill was last settled (UTC)"
    )

    @field_validator('date', 'last_paid')
    @classmethod
    def normalize_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is None:
            return v
        return ensure_utc(v)


class Target(LedgerRecord):
    """Monthly spending goal for one category."""

    category: str = Field(..., min_length=1)
    month: str = Field(
        ...,
        pattern=r"^\d{4}-(0[1-9]|1[0-2])$",
        description="Month the target applies to (YYYY-MM)"
    )
    amount: float

    @property
    def month_start(self) -> datetime:
        """First instant of the target's month (UTC)."""
        year, month = self.month.split("-")
        return datetime(int(year), int(month), 1, tzinfo=timezone.utc)


class Ledger(LedgerRecord):
    """
    One user's ledger.

    Owns exactly one list each of income, expenses, recurring bills
    and targets. The lists are mutated in place by the engines.
    """

    income: list[Entry] = Field(default_factory=list)
    expenses: list[Entry] = Field(default_factory=list)
    recurring_bills: list[RecurringBill] = Field(default_factory=list)
    targets: list[Target] = Field(default_factory=list)

    def entries(self, kind: EntryKind) -> list[Entry]:
        """The income or expense list."""
        return self.income if kind == EntryKind.INCOME else self.expenses

    def find_bill(self, bill_id: UUID) -> Optional[RecurringBill]:
        for bill in self.recurring_bills:
            if bill.id == bill_id:
                return bill
        return None

    def set_target(self, category: str, month: str, amount: float) -> Target:
        """
        Set the target for (category, month).

        An existing target for the same pair is overwritten,
        never duplicated.
        """
        for target in self.targets:
            if target.category == category and target.month == month:
                target.amount = amount
                return target

        target = Target(category=category, month=month, amount=amount)
        self.targets.append(target)
        return target

    def remove_target(self, category: str, month: str) -> bool:
        before = len(self.targets)
        self.targets = [
            t for t in self.targets
            if not (t.category == category and t.month == month)
        ]
        return len(self.targets) < before


# =============================================================================
# DERIVED VIEWS (never persisted)
# =============================================================================

class TargetProgress(BaseModel):
    """Spend against one target for the current month."""

    category: str
    month: str
    budget: float
    spent: float

    @property
    def remaining(self) -> float:
        return self.budget - self.spent

    @property
    def over_budget(self) -> bool:
        return self.spent > self.budget


class LedgerSummary(BaseModel):
    """
    Read-only aggregates computed from a retention-filtered ledger.

    `runway_months` is +inf when there is no spending in the burn window.
    """

    as_of: datetime
    month: str = Field(
        ...,
        description="Month key (YYYY-MM) the monthly figures refer to"
    )

    income_total: float = 0.0
    expense_total: float = 0.0
    net: float = 0.0

    # Insertion order of first occurrence
    income_by_category: dict[str, float] = Field(default_factory=dict)
    expense_by_category: dict[str, float] = Field(default_factory=dict)

    monthly_income: float = 0.0
    monthly_expenses: float = 0.0

    rolling_90_day_expenses: float = 0.0
    monthly_burn_rate: float = 0.0
    runway_months: float = float("inf")
    tax_reserve: float = 0.0

    target_progress: list[TargetProgress] = Field(default_factory=list)

    @property
    def has_infinite_runway(self) -> bool:
        return self.runway_months == float("inf")


class Dashboard(BaseModel):
    """
    Everything the dashboard shows after one ledger access.

    `bill_states` is keyed by the bill id as a string.
    """

    ledger: Ledger
    summary: LedgerSummary
    recent_income: list[Entry] = Field(default_factory=list)
    recent_expenses: list[Entry] = Field(default_factory=list)
    bill_states: dict[str, BillState] = Field(default_factory=dict)


class TickResult(BaseModel):
    """What one pass of the recurring bill engine did."""

    ticked_at: datetime
    policy: RecurringPolicy
    settled_bill_ids: list[UUID] = Field(default_factory=list)
    posted_expenses: list[Entry] = Field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.settled_bill_ids)


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
        description="Type of issue (e.g., 'missing', 'invalid_format', 'out_of_window')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        default="error",
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """
    Result of validating one piece of user input.

    `record` holds the built Entry, RecurringBill or Target when the input
    is valid, and is None otherwise.
    """

    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)
    record: Optional[Entry | RecurringBill | Target] = None

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
