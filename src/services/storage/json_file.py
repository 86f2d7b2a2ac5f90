"""
JSON File Storage Implementation

DESIGN DECISION: A single JSON document is the storage backend because:
1. It is the format the original budget server already wrote (data.json)
2. No database setup is required for a single-user-per-session app
3. Users can inspect and back up their data with any text editor

TRADEOFFS:
- Every save rewrites the whole document (last writer wins)
- No transactions; writes go through a temp file and an atomic rename
- Not suitable for many concurrent writers (not a goal)

Document layout (camelCase, compatible with the original server):

    {
      "accounts": {
        "<username>": {"salt", "passwordHash", "income", "expenses",
                       "recurringBills", "targets"}
      },
      "sessions": {"<token>": "<username>"},
      "legacyUsers": {"legacy": {"income", "expenses", "recurringBills"}}
    }

A document holding only top-level "income"/"expenses"/"recurringBills" is a
pre-accounts single-user ledger and is served as the legacy ledger.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Callable, Optional

import structlog
from pydantic import ValidationError
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.config import get_settings
from src.models.account import Account
from src.models.audit import AuditEvent
from src.models.ledger import Ledger
from src.services.storage.interface import (
    AuditStorageInterface,
    LedgerStorageInterface,
    StorageWriteError,
)


LEDGER_KEYS = ("income", "expenses", "recurringBills", "targets")
LEGACY_SECTIONS = ("legacyUsers", "users")

logger = structlog.get_logger(__name__)

CorruptionCallback = Callable[[str, str], None]


def _ledger_from_record(record: dict) -> Ledger:
    """Build a Ledger from a stored record, tolerating missing lists."""
    return Ledger.model_validate({
        key: record.get(key) or [] for key in LEDGER_KEYS
    })


class JsonFileLedgerStorage(LedgerStorageInterface):
    """
    Accounts, sessions and the legacy ledger in one JSON document.

    Unreadable documents are treated as empty, reported through the
    structured log and the optional `on_corrupt(source, error)` callback.
    """

    def __init__(
        self,
        path: Optional[str] = None,
        write_attempts: Optional[int] = None,
        on_corrupt: Optional[CorruptionCallback] = None,
    ):
        settings = get_settings().storage
        self._path = Path(path or settings.data_file)
        self._write_attempts = write_attempts or settings.write_attempts
        self._on_corrupt = on_corrupt

    @property
    def path(self) -> Path:
        return self._path

    def _report_corrupt(self, source: str, error: Exception) -> None:
        logger.warning(
            "storage_corrupt",
            path=str(self._path),
            source=source,
            error=str(error),
        )
        if self._on_corrupt:
            self._on_corrupt(source, str(error))

    def _read_document(self) -> dict:
        """The whole document; {} when missing or unreadable."""
        if not self._path.exists():
            return {}

        try:
            with self._path.open("r", encoding="utf-8") as fh:
                document = json.load(fh)
        except (OSError, ValueError) as e:
            self._report_corrupt("document", e)
            return {}

        if not isinstance(document, dict):
            self._report_corrupt("document", ValueError("top level is not an object"))
            return {}

        return document

    def _write_document(self, document: dict) -> None:
        """Write the document atomically (temp file + rename)."""
        directory = self._path.parent
        directory.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.", suffix=".tmp", dir=directory
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(document, fh, indent=2)
            os.replace(tmp_name, self._path)
        except OSError:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    def _update_document(self, key: str, value: dict) -> None:
        """Replace one top-level section, keeping every other section as-is."""
        retrying = Retrying(
            stop=stop_after_attempt(self._write_attempts),
            wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
            retry=retry_if_exception_type(OSError),
            reraise=True,
        )
        try:
            for attempt in retrying:
                with attempt:
                    document = self._read_document()
                    document[key] = value
                    self._write_document(document)
        except OSError as e:
            logger.error("storage_write_failed", path=str(self._path), error=str(e))
            raise StorageWriteError(f"Failed to write {self._path}: {e}") from e

    def _account_to_record(self, account: Account) -> dict:
        """Convert an Account to its stored record."""
        record = {
            "salt": account.salt,
            "passwordHash": account.password_hash,
        }
        record.update(account.ledger.model_dump(mode="json", by_alias=True))
        return record

    def _record_to_account(self, username: str, record: dict) -> Account:
        """Convert a stored record back to an Account."""
        return Account(
            username=username,
            salt=record.get("salt") or "",
            password_hash=record.get("passwordHash") or "",
            ledger=_ledger_from_record(record),
        )

    def load_accounts(self) -> dict[str, Account]:
        section = self._read_document().get("accounts")
        if section is None:
            return {}
        if not isinstance(section, dict):
            self._report_corrupt("accounts", ValueError("accounts is not an object"))
            return {}

        accounts = {}
        try:
            for username, record in section.items():
                account = self._record_to_account(username, record or {})
                accounts[account.username] = account
        except (ValidationError, AttributeError, TypeError) as e:
            self._report_corrupt("accounts", e)
            return {}

        return accounts

    def save_accounts(self, accounts: dict[str, Account]) -> None:
        records = {
            username: self._account_to_record(account)
            for username, account in accounts.items()
        }
        self._update_document("accounts", records)

    def load_sessions(self) -> dict[str, str]:
        section = self._read_document().get("sessions")
        if not isinstance(section, dict):
            return {}
        return {
            str(token): str(username)
            for token, username in section.items()
            if username
        }

    def save_sessions(self, sessions: dict[str, str]) -> None:
        self._update_document("sessions", dict(sessions))

    def load_legacy_ledger(self) -> Optional[Ledger]:
        document = self._read_document()

        record = None
        for section in LEGACY_SECTIONS:
            users = document.get(section)
            if isinstance(users, dict) and users:
                record = users.get("legacy") or next(iter(users.values()))
                break

        if record is None and "accounts" not in document:
            if any(key in document for key in LEDGER_KEYS):
                record = document

        if not isinstance(record, dict):
            return None

        try:
            return _ledger_from_record(record)
        except ValidationError as e:
            self._report_corrupt("legacy", e)
            return None


class JsonLinesAuditStorage(AuditStorageInterface):
    """
    Append-only audit log, one JSON object per line.
    """

    def __init__(self, path: Optional[str] = None):
        self._path = Path(path or get_settings().storage.audit_log_file)

    def append_event(self, event: AuditEvent) -> bool:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("a", encoding="utf-8") as fh:
            fh.write(event.to_json_line() + "\n")
        return True

    def get_recent_events(
        self,
        limit: int = 100,
        username: Optional[str] = None,
    ) -> list[dict]:
        if not self._path.exists():
            return []

        with self._path.open("r", encoding="utf-8") as fh:
            lines = fh.readlines()

        events = []
        for line in reversed(lines):
            line = line.strip()
            if not line:
                continue
            try:
                event = json.loads(line)
            except ValueError:
                continue
            if username and event.get("username") != username:
                continue
            events.append(event)
            if len(events) >= limit:
                break

        return events
