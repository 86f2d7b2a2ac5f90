"""
Audit Models for Budget Ledger

Every change to a ledger or an account is logged for audit purposes.
This provides:
1. A history of what was added, paid, pruned and deleted
2. Visibility for silently dropped input and corrupt storage
3. Debugging information when a recurring bill posts unexpectedly

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Accounts and sessions
    ACCOUNT_REGISTERED = "account_registered"
    REGISTRATION_REJECTED = "registration_rejected"
    LOGIN_SUCCEEDED = "login_succeeded"
    LOGIN_FAILED = "login_failed"
    LOGGED_OUT = "logged_out"
    LEGACY_LEDGER_IMPORTED = "legacy_ledger_imported"

    # Entries
    ENTRY_ADDED = "entry_added"
    ENTRY_REJECTED = "entry_rejected"
    ENTRY_DELETED = "entry_deleted"
    ENTRIES_PRUNED = "entries_pruned"

    # Recurring bills
    RECURRING_BILL_ADDED = "recurring_bill_added"
    RECURRING_BILL_DELETED = "recurring_bill_deleted"
    RECURRING_BILL_SETTLED = "recurring_bill_settled"
    RECURRING_BILL_PAID = "recurring_bill_paid"

    # Targets
    TARGET_SET = "target_set"
    TARGET_DELETED = "target_deleted"

    # Storage
    STORAGE_CORRUPT = "storage_corrupt"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Who and what
    username: Optional[str] = Field(
        default=None,
        description="Account the event belongs to"
    )
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'income', 'expense', 'recurring_bill', 'target')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "username": self.username,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_json_line(self) -> str:
        """One line of the JSON-lines audit file."""
        return json.dumps(self.to_log_dict(), default=str)


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entry_added("alice", "expense", entry_id, 12.5, "Food")
        event = AuditEventBuilder.login_failed("alice")
    """

    @staticmethod
    def account_registered(username: str, legacy_imported: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_REGISTERED,
            username=username,
            entity_type="account",
            entity_id=username,
            description=f"Account registered: {username}",
            details={"legacy_imported": legacy_imported},
            is_user_action=True,
        )

    @staticmethod
    def registration_rejected(username: str, reason: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REGISTRATION_REJECTED,
            severity=AuditSeverity.WARNING,
            username=username or None,
            entity_type="account",
            description="Registration rejected",
            details={"reason": reason},
            is_user_action=True,
        )

    @staticmethod
    def login_succeeded(username: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGIN_SUCCEEDED,
            username=username,
            entity_type="account",
            entity_id=username,
            description=f"Login succeeded: {username}",
            is_user_action=True,
        )

    @staticmethod
    def login_failed(username: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGIN_FAILED,
            severity=AuditSeverity.WARNING,
            username=username or None,
            entity_type="account",
            description="Login failed: invalid username or password",
            is_user_action=True,
        )

    @staticmethod
    def logged_out(username: Optional[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOGGED_OUT,
            username=username,
            entity_type="session",
            description="Session ended",
            is_user_action=True,
        )

    @staticmethod
    def legacy_ledger_imported(
        username: str,
        income: int,
        expenses: int,
        recurring_bills: int,
        targets: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEGACY_LEDGER_IMPORTED,
            username=username,
            entity_type="ledger",
            description=f"Legacy ledger imported into {username}",
            details={
                "income": income,
                "expenses": expenses,
                "recurring_bills": recurring_bills,
                "targets": targets,
            },
        )

    @staticmethod
    def entry_added(
        username: str,
        kind: str,
        entry_id: UUID,
        amount: float,
        category: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_ADDED,
            username=username,
            entity_type=kind,
            entity_id=str(entry_id),
            description=f"{kind.capitalize()} added: {category} {amount:.2f}",
            details={"amount": amount, "category": category},
            is_user_action=True,
        )

    @staticmethod
    def entry_rejected(
        username: str,
        kind: str,
        issues: list[dict],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_REJECTED,
            severity=AuditSeverity.WARNING,
            username=username,
            entity_type=kind,
            description=f"{kind.capitalize()} input dropped with {len(issues)} issues",
            details={"issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def entry_deleted(username: str, kind: str, entity_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_DELETED,
            username=username,
            entity_type=kind,
            entity_id=entity_id,
            description=f"{kind.capitalize()} deleted",
            is_user_action=True,
        )

    @staticmethod
    def entries_pruned(username: str, count: int, cutoff: datetime) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRIES_PRUNED,
            username=username,
            entity_type="ledger",
            description=f"{count} records older than {cutoff.date().isoformat()} pruned",
            details={"count": count, "cutoff": cutoff.isoformat()},
        )

    @staticmethod
    def recurring_bill_added(
        username: str,
        bill_id: UUID,
        category: str,
        frequency: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRING_BILL_ADDED,
            username=username,
            entity_type="recurring_bill",
            entity_id=str(bill_id),
            description=f"Recurring bill added: {category} ({frequency})",
            details={"category": category, "frequency": frequency},
            is_user_action=True,
        )

    @staticmethod
    def recurring_bill_settled(
        username: str,
        bill_id: UUID,
        policy: str,
        posted: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRING_BILL_SETTLED,
            username=username,
            entity_type="recurring_bill",
            entity_id=str(bill_id),
            description="Recurring bill fell due and was settled",
            details={"policy": policy, "expense_posted": posted},
        )

    @staticmethod
    def recurring_bill_paid(
        username: str,
        bill_id: UUID,
        entry_id: UUID,
        amount: float,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRING_BILL_PAID,
            username=username,
            entity_type="recurring_bill",
            entity_id=str(bill_id),
            description=f"Recurring bill paid now: {amount:.2f}",
            details={"expense_id": str(entry_id), "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def recurring_bill_deleted(username: str, bill_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECURRING_BILL_DELETED,
            username=username,
            entity_type="recurring_bill",
            entity_id=str(bill_id),
            description="Recurring bill deleted",
            is_user_action=True,
        )

    @staticmethod
    def target_deleted(username: str, category: str, month: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TARGET_DELETED,
            username=username,
            entity_type="target",
            entity_id=f"{category}@{month}",
            description=f"Target deleted: {category} {month}",
            is_user_action=True,
        )

    @staticmethod
    def target_set(username: str, category: str, month: str, amount: float) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TARGET_SET,
            username=username,
            entity_type="target",
            entity_id=f"{category}@{month}",
            description=f"Target set: {category} {month} = {amount:.2f}",
            details={"category": category, "month": month, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def storage_corrupt(source: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_CORRUPT,
            severity=AuditSeverity.ERROR,
            entity_type="storage",
            description=f"Stored data could not be parsed: {source}",
            error_message=error_message,
            details={"source": source},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        username: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            username=username,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
        )
