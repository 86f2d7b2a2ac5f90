"""
Audit Logger

DESIGN DECISION: Every change to a ledger or an account is logged.
This provides:
1. Complete traceability of additions, payments, deletions and pruning
2. Visibility for input that was silently dropped
3. A place to notice corrupt storage that was read as empty

The audit logger:
- Always writes to the structured local log
- Persists to audit storage when one is configured
- Gracefully handles failures (a failing audit store never breaks a ledger
  operation)
"""

import logging
from typing import Optional
from uuid import UUID

import structlog

from src.config import get_settings
from src.models.audit import AuditEvent, AuditEventBuilder
from src.models.ledger import TickResult
from src.services.storage import AuditStorageInterface


def configure_logging(level: Optional[str] = None) -> None:
    """Configure structlog for local JSON logging."""
    level_name = level or get_settings().app.log_level
    logging.basicConfig(format="%(message)s", level=getattr(logging, level_name))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence and user visibility)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def recent_events(self, limit: int = 20, username: Optional[str] = None) -> list[dict]:
        """Newest events from audit storage; empty without storage."""
        if not self._storage:
            return []
        return self._storage.get_recent_events(limit=limit, username=username)

    def log_entry_added(
        self,
        username: str,
        kind: str,
        entry_id: UUID,
        amount: float,
        category: str,
    ) -> None:
        self.log(AuditEventBuilder.entry_added(username, kind, entry_id, amount, category))

    def log_entry_rejected(
        self,
        username: str,
        kind: str,
        issues: list[dict],
    ) -> None:
        """Log input that was dropped by validation."""
        self.log(AuditEventBuilder.entry_rejected(username, kind, issues))

    def log_entry_deleted(self, username: str, kind: str, entity_id: str) -> None:
        self.log(AuditEventBuilder.entry_deleted(username, kind, entity_id))

    def log_entries_pruned(self, username: str, count: int, cutoff) -> None:
        self.log(AuditEventBuilder.entries_pruned(username, count, cutoff))

    def log_tick(self, username: str, result: TickResult) -> None:
        """Log every bill a recurring tick settled."""
        posted = bool(result.posted_expenses)
        for bill_id in result.settled_bill_ids:
            self.log(AuditEventBuilder.recurring_bill_settled(
                username, bill_id, result.policy.value, posted
            ))

    def log_recurring_bill_added(
        self,
        username: str,
        bill_id: UUID,
        category: str,
        frequency: str,
    ) -> None:
        self.log(AuditEventBuilder.recurring_bill_added(username, bill_id, category, frequency))

    def log_recurring_bill_paid(
        self,
        username: str,
        bill_id: UUID,
        entry_id: UUID,
        amount: float,
    ) -> None:
        self.log(AuditEventBuilder.recurring_bill_paid(username, bill_id, entry_id, amount))

    def log_recurring_bill_deleted(self, username: str, bill_id: UUID) -> None:
        self.log(AuditEventBuilder.recurring_bill_deleted(username, bill_id))

    def log_target_set(self, username: str, category: str, month: str, amount: float) -> None:
        self.log(AuditEventBuilder.target_set(username, category, month, amount))

    def log_target_deleted(self, username: str, category: str, month: str) -> None:
        self.log(AuditEventBuilder.target_deleted(username, category, month))

    def log_account_registered(self, username: str, legacy_imported: bool) -> None:
        self.log(AuditEventBuilder.account_registered(username, legacy_imported))

    def log_registration_rejected(self, username: str, reason: str) -> None:
        self.log(AuditEventBuilder.registration_rejected(username, reason))

    def log_login(self, username: str, success: bool) -> None:
        if success:
            self.log(AuditEventBuilder.login_succeeded(username))
        else:
            self.log(AuditEventBuilder.login_failed(username))

    def log_logout(self, username: Optional[str]) -> None:
        self.log(AuditEventBuilder.logged_out(username))

    def log_legacy_imported(self, username: str, income: int, expenses: int,
                            recurring_bills: int, targets: int) -> None:
        self.log(AuditEventBuilder.legacy_ledger_imported(
            username, income, expenses, recurring_bills, targets
        ))

    def log_storage_corrupt(self, source: str, error_message: str) -> None:
        """Suitable as the `on_corrupt` callback of JsonFileLedgerStorage."""
        self.log(AuditEventBuilder.storage_corrupt(source, error_message))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        username: Optional[str] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            username=username,
        ))
