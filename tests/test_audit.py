"""Tests for the audit logger."""

import pytest
from datetime import datetime, timezone
from uuid import uuid4

from src.audit import AuditLogger
from src.models.audit import AuditEventBuilder, AuditEventType, AuditSeverity
from src.models.ledger import Entry, RecurringPolicy, TickResult
from src.services.storage import AuditStorageInterface, InMemoryAuditStorage


NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


class FailingAuditStorage(AuditStorageInterface):
    """Audit storage whose writes always fail."""

    def append_event(self, event):
        raise OSError("audit disk gone")

    def get_recent_events(self, limit=100, username=None):
        return []


class TestAuditLogger:
    """Tests for AuditLogger."""

    def test_persists_events(self):
        """Test that events reach the audit storage."""
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)

        logger.log_entry_added("alice", "expense", uuid4(), 12.5, "Food")

        assert [e.event_type for e in storage.events] == [AuditEventType.ENTRY_ADDED]
        assert storage.events[0].username == "alice"

    def test_storage_failure_is_swallowed(self):
        """Test that a failing audit store never breaks the caller."""
        logger = AuditLogger(FailingAuditStorage())
        logger.log_login("alice", success=True)

    def test_log_returns_false_on_storage_failure(self):
        """Test the return value of log."""
        logger = AuditLogger(FailingAuditStorage())
        assert logger.log(AuditEventBuilder.login_failed("alice")) is False
        assert AuditLogger().log(AuditEventBuilder.login_failed("alice")) is True

    def test_log_tick_one_event_per_bill(self):
        """Test that a tick logs each settled bill."""
        storage = InMemoryAuditStorage()
        result = TickResult(
            ticked_at=NOW,
            policy=RecurringPolicy.AUTO_POST,
            settled_bill_ids=[uuid4(), uuid4()],
            posted_expenses=[Entry(amount=1, category="x", date=NOW)],
        )

        AuditLogger(storage).log_tick("alice", result)

        assert len(storage.events) == 2
        assert all(e.details["expense_posted"] for e in storage.events)

    def test_storage_corrupt_is_error_severity(self):
        """Test the corruption callback."""
        storage = InMemoryAuditStorage()
        AuditLogger(storage).log_storage_corrupt("document", "Expecting value")

        event = storage.events[0]
        assert event.event_type == AuditEventType.STORAGE_CORRUPT
        assert event.severity == AuditSeverity.ERROR

    def test_recent_events(self):
        """Test reading back one account's events, newest first."""
        storage = InMemoryAuditStorage()
        logger = AuditLogger(storage)
        logger.log_login("alice", success=True)
        logger.log_login("bob", success=True)
        logger.log_logout("alice")

        events = logger.recent_events(username="alice")

        assert [e["event_type"] for e in events] == ["logged_out", "login_succeeded"]
        assert AuditLogger().recent_events() == []

    def test_log_error(self):
        """Test system errors."""
        storage = InMemoryAuditStorage()
        AuditLogger(storage).log_error("StorageWriteError", "disk full", username="alice")
        assert storage.events[0].event_type == AuditEventType.SYSTEM_ERROR


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
