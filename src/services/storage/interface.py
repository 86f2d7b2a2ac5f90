"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the JSON document store and browser-style in-memory storage
   interchangeable
2. Use in-memory storage for testing
3. Keep ledger logic decoupled from the storage medium

Persistence is "whole document overwrite": every save replaces all accounts
at once and the last writer wins. There is no locking or versioning.
"""

from abc import ABC, abstractmethod
from typing import Optional

from src.models.account import Account
from src.models.audit import AuditEvent
from src.models.ledger import Ledger


class LedgerStorageInterface(ABC):
    """
    Abstract interface for account and ledger storage.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    def load_accounts(self) -> dict[str, Account]:
        """
        Load every account, keyed by normalized username.

        Returns:
            The accounts; an empty dict when there is no data yet or the
            stored data cannot be parsed. Never raises for corrupt data.
        """
        pass

    @abstractmethod
    def save_accounts(self, accounts: dict[str, Account]) -> None:
        """
        Replace all stored accounts.

        Raises:
            StorageWriteError: If the write fails
        """
        pass

    @abstractmethod
    def load_sessions(self) -> dict[str, str]:
        """
        Load the session table (session token -> username).

        Returns an empty dict when nothing usable is stored.
        """
        pass

    @abstractmethod
    def save_sessions(self, sessions: dict[str, str]) -> None:
        """Replace the session table."""
        pass

    @abstractmethod
    def load_legacy_ledger(self) -> Optional[Ledger]:
        """
        Load the single-user ledger kept from before accounts existed.

        Returns:
            The legacy ledger, or None if there is none. The legacy data
            is never modified or deleted by the storage layer.
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
        username: Optional[str] = None,
    ) -> list[dict]:
        """
        Get the most recent audit events.

        Args:
            limit: Maximum number of events to return
            username: Only events belonging to this account

        Returns:
            Event dicts (as produced by AuditEvent.to_log_dict), newest first
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageWriteError(StorageError):
    """Data could not be written to the storage backend."""
    pass
