"""
Shared fixtures.

No test depends on the real clock: services get a fixed clock and
in-memory storage unless a test needs the JSON file backend.
"""

import pytest
from datetime import datetime, timezone

from src.accounts import AccountService
from src.audit import AuditLogger
from src.config import AuthSettings, LedgerSettings
from src.ledger import RecurringBillEngine, fixed_clock
from src.models.ledger import RecurringPolicy
from src.orchestrator import LedgerService
from src.services.storage import InMemoryAuditStorage, InMemoryLedgerStorage


NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def storage():
    return InMemoryLedgerStorage()


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage)


@pytest.fixture
def auth_settings():
    # Low iteration count keeps hashing fast in tests
    return AuthSettings(pbkdf2_iterations=1000)


@pytest.fixture
def ledger_settings():
    return LedgerSettings(
        recurring_policy=RecurringPolicy.AUTO_POST,
        recent_window_days=14,
        split_recurring_categories=False,
    )


@pytest.fixture
def account_service(storage, audit_logger, auth_settings):
    return AccountService(
        storage,
        audit_logger=audit_logger,
        clock=fixed_clock(NOW),
        settings=auth_settings,
    )


@pytest.fixture
def ledger_service(storage, audit_logger, ledger_settings):
    return LedgerService(
        storage,
        engine=RecurringBillEngine(RecurringPolicy.AUTO_POST),
        audit_logger=audit_logger,
        clock=fixed_clock(NOW),
        settings=ledger_settings,
        currency="$",
    )
