"""
In-Memory Storage

Keeps everything in process memory, the way the browser-only variant of the
app kept its ledger in local storage. Used by the test suite and for
throwaway sessions.

Stored values are deep copies, so callers mutating a loaded account never
change what is stored until they save it.
"""

from typing import Optional

from src.models.account import Account
from src.models.audit import AuditEvent
from src.models.ledger import Ledger
from src.services.storage.interface import (
    AuditStorageInterface,
    LedgerStorageInterface,
)


class InMemoryLedgerStorage(LedgerStorageInterface):
    """Ledger storage backed by dictionaries."""

    def __init__(self, legacy_ledger: Optional[Ledger] = None):
        self._accounts: dict[str, Account] = {}
        self._sessions: dict[str, str] = {}
        self._legacy = legacy_ledger.model_copy(deep=True) if legacy_ledger else None
        self.save_count = 0

    def load_accounts(self) -> dict[str, Account]:
        return {
            username: account.model_copy(deep=True)
            for username, account in self._accounts.items()
        }

    def save_accounts(self, accounts: dict[str, Account]) -> None:
        self._accounts = {
            username: account.model_copy(deep=True)
            for username, account in accounts.items()
        }
        self.save_count += 1

    def load_sessions(self) -> dict[str, str]:
        return dict(self._sessions)

    def save_sessions(self, sessions: dict[str, str]) -> None:
        self._sessions = dict(sessions)

    def load_legacy_ledger(self) -> Optional[Ledger]:
        if self._legacy is None:
            return None
        return self._legacy.model_copy(deep=True)


class InMemoryAuditStorage(AuditStorageInterface):
    """Audit storage backed by a list."""

    def __init__(self):
        self.events: list[AuditEvent] = []

    def append_event(self, event: AuditEvent) -> bool:
        self.events.append(event)
        return True

    def get_recent_events(
        self,
        limit: int = 100,
        username: Optional[str] = None,
    ) -> list[dict]:
        events = [
            e.to_log_dict() for e in reversed(self.events)
            if username is None or e.username == username
        ]
        return events[:limit]
