"""Tests for the storage backends."""

import json
import os

import pytest
from datetime import datetime, timezone
from unittest.mock import patch

from src.models.account import Account
from src.models.audit import AuditEventBuilder
from src.models.ledger import Entry, Ledger, RecurringBill
from src.services.storage import (
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    JsonFileLedgerStorage,
    JsonLinesAuditStorage,
    StorageWriteError,
)


UTC = timezone.utc
T0 = datetime(2024, 5, 10, 9, 0, tzinfo=UTC)


def sample_account(username="alice") -> Account:
    return Account(
        username=username,
        salt="salt",
        password_hash="hash",
        ledger=Ledger(
            income=[Entry(amount=1000, category="Salary", date=T0)],
            expenses=[Entry(amount=40, category="Food", date=T0)],
            recurring_bills=[
                RecurringBill(amount=50, category="Internet", frequency="monthly", date=T0),
            ],
        ),
    )


class TestJsonFileLedgerStorage:
    """Tests for the JSON document backend."""

    def test_missing_file_is_empty(self, tmp_path):
        """Test that a fresh install has no accounts."""
        storage = JsonFileLedgerStorage(str(tmp_path / "data.json"))
        assert storage.load_accounts() == {}
        assert storage.load_sessions() == {}
        assert storage.load_legacy_ledger() is None

    def test_accounts_round_trip(self, tmp_path):
        """Test save then load of accounts."""
        storage = JsonFileLedgerStorage(str(tmp_path / "data.json"))
        account = sample_account()

        storage.save_accounts({"alice": account})
        loaded = storage.load_accounts()

        assert list(loaded) == ["alice"]
        assert loaded["alice"].password_hash == "hash"
        assert loaded["alice"].ledger == account.ledger

    def test_document_uses_original_key_names(self, tmp_path):
        """Test the on-disk layout."""
        path = tmp_path / "data.json"
        storage = JsonFileLedgerStorage(str(path))
        storage.save_accounts({"alice": sample_account()})

        document = json.loads(path.read_text())
        record = document["accounts"]["alice"]
        assert record["passwordHash"] == "hash"
        assert "recurringBills" in record
        assert record["recurringBills"][0]["lastPaid"] is None

    def test_sessions_kept_alongside_accounts(self, tmp_path):
        """Test that saving one section keeps the others."""
        storage = JsonFileLedgerStorage(str(tmp_path / "data.json"))
        storage.save_accounts({"alice": sample_account()})
        storage.save_sessions({"token-1": "alice"})

        assert storage.load_sessions() == {"token-1": "alice"}
        assert "alice" in storage.load_accounts()

    def test_corrupt_document_reads_as_empty(self, tmp_path):
        """Test that unparsable data is treated as empty and reported."""
        path = tmp_path / "data.json"
        path.write_text("{not json")
        reports = []
        storage = JsonFileLedgerStorage(
            str(path), on_corrupt=lambda source, error: reports.append(source)
        )

        assert storage.load_accounts() == {}
        assert reports == ["document"]

    def test_corrupt_account_record_reads_as_empty(self, tmp_path):
        """Test that an invalid record empties the account mapping."""
        path = tmp_path / "data.json"
        path.write_text(json.dumps({
            "accounts": {"alice": {"income": [{"amount": "x", "category": "", "date": "?"}]}},
        }))
        reports = []
        storage = JsonFileLedgerStorage(
            str(path), on_corrupt=lambda source, error: reports.append(source)
        )

        assert storage.load_accounts() == {}
        assert reports == ["accounts"]

    def test_legacy_section(self, tmp_path):
        """Test reading the pre-accounts ledger from legacyUsers."""
        path = tmp_path / "data.json"
        path.write_text(json.dumps({
            "accounts": {},
            "legacyUsers": {
                "legacy": {
                    "income": [{"amount": 10, "category": "Gift", "date": "2024-05-01T00:00:00.000Z"}],
                    "expenses": [],
                    "recurringBills": [],
                },
            },
        }))
        storage = JsonFileLedgerStorage(str(path))

        legacy = storage.load_legacy_ledger()

        assert legacy is not None
        assert [e.category for e in legacy.income] == ["Gift"]
        assert legacy.targets == []

    def test_top_level_single_user_document(self, tmp_path):
        """Test a document written before accounts existed."""
        path = tmp_path / "data.json"
        path.write_text(json.dumps({
            "income": [],
            "expenses": [{"amount": 5, "category": "Food", "date": "2024-05-01T00:00:00Z"}],
            "recurringBills": [],
        }))
        storage = JsonFileLedgerStorage(str(path))

        legacy = storage.load_legacy_ledger()

        assert [e.amount for e in legacy.expenses] == [5]

    def test_saving_accounts_keeps_legacy_section(self, tmp_path):
        """Test that the legacy data is never removed."""
        path = tmp_path / "data.json"
        path.write_text(json.dumps({"legacyUsers": {"legacy": {"income": [], "expenses": []}}}))
        storage = JsonFileLedgerStorage(str(path))

        storage.save_accounts({"alice": sample_account()})

        assert "legacyUsers" in json.loads(path.read_text())

    def test_write_failure_retried_then_raised(self, tmp_path):
        """Test that a persistent OSError becomes StorageWriteError."""
        storage = JsonFileLedgerStorage(str(tmp_path / "data.json"), write_attempts=2)

        with patch(
            "src.services.storage.json_file.os.replace",
            side_effect=OSError("disk full"),
        ) as replace:
            with pytest.raises(StorageWriteError):
                storage.save_accounts({"alice": sample_account()})

        assert replace.call_count == 2
        assert list(tmp_path.iterdir()) == []

    def test_transient_write_failure_recovers(self, tmp_path):
        """Test that one failed attempt is retried."""
        path = tmp_path / "data.json"
        storage = JsonFileLedgerStorage(str(path), write_attempts=3)

        real_replace = os.replace
        calls = []

        def flaky_replace(src, dst):
            calls.append(src)
            if len(calls) == 1:
                raise OSError("busy")
            return real_replace(src, dst)

        with patch("src.services.storage.json_file.os.replace", side_effect=flaky_replace):
            storage.save_accounts({"alice": sample_account()})

        assert len(calls) == 2
        assert "alice" in storage.load_accounts()


class TestInMemoryLedgerStorage:
    """Tests for the in-memory backend."""

    def test_loaded_accounts_are_copies(self):
        """Test that mutating a loaded account does not change storage."""
        storage = InMemoryLedgerStorage()
        storage.save_accounts({"alice": sample_account()})

        loaded = storage.load_accounts()
        loaded["alice"].ledger.expenses.clear()

        assert len(storage.load_accounts()["alice"].ledger.expenses) == 1
        assert storage.save_count == 1

    def test_legacy_ledger(self):
        """Test the optional legacy ledger."""
        assert InMemoryLedgerStorage().load_legacy_ledger() is None
        legacy = Ledger(income=[Entry(amount=1, category="Gift", date=T0)])
        assert InMemoryLedgerStorage(legacy).load_legacy_ledger() == legacy


class TestAuditStorage:
    """Tests for the audit backends."""

    def test_json_lines_newest_first(self, tmp_path):
        """Test append and filtered read-back."""
        storage = JsonLinesAuditStorage(str(tmp_path / "audit.jsonl"))
        storage.append_event(AuditEventBuilder.login_succeeded("alice"))
        storage.append_event(AuditEventBuilder.login_succeeded("bob"))
        storage.append_event(AuditEventBuilder.logged_out("alice"))

        events = storage.get_recent_events(username="alice")

        assert [e["event_type"] for e in events] == ["logged_out", "login_succeeded"]
        assert len(storage.get_recent_events(limit=1)) == 1

    def test_json_lines_missing_file(self, tmp_path):
        """Test reading before anything was written."""
        assert JsonLinesAuditStorage(str(tmp_path / "none.jsonl")).get_recent_events() == []

    def test_in_memory(self):
        """Test the in-memory audit store."""
        storage = InMemoryAuditStorage()
        storage.append_event(AuditEventBuilder.login_failed("alice"))
        assert storage.get_recent_events()[0]["event_type"] == "login_failed"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
