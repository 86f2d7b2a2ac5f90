"""
Data Models Package

This package contains all Pydantic models used in the Budget Ledger system.
All data flowing through the system must conform to these schemas.
"""

from src.models.ledger import (
    BillState,
    Dashboard,
    Entry,
    EntryKind,
    EntrySource,
    Frequency,
    Ledger,
    LedgerSummary,
    RecurringBill,
    RecurringPolicy,
    Target,
    TargetProgress,
    TickResult,
    ValidationIssue,
    ValidationResult,
    ensure_utc,
)
from src.models.account import (
    Account,
    AuthOutcome,
    normalize_username,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "BillState",
    "Dashboard",
    "Entry",
    "EntryKind",
    "EntrySource",
    "Frequency",
    "Ledger",
    "LedgerSummary",
    "RecurringBill",
    "RecurringPolicy",
    "Target",
    "TargetProgress",
    "TickResult",
    "ValidationIssue",
    "ValidationResult",
    "ensure_utc",
    # Account models
    "Account",
    "AuthOutcome",
    "normalize_username",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
