"""
Account Service

Registration, login, logout and session lookup.

DESIGN DECISION: Authentication never raises for user mistakes. A wrong
password, a taken username or a malformed username comes back as an
AuthOutcome with a message for the login form.

Credentials are PBKDF2-HMAC-SHA512 hashes with a per-account salt, in the
same encoding the original budget server stored, so existing accounts keep
working.
"""

import hashlib
import hmac
from typing import Optional
from uuid import uuid4

import structlog

from src.audit import AuditLogger
from src.config import AuthSettings, get_settings
from src.ledger.clock import Clock, system_clock
from src.ledger.retention import prune_accounts, prune_ledger
from src.models.account import (
    USERNAME_PATTERN,
    Account,
    AuthOutcome,
    normalize_username,
)
from src.services.storage import LedgerStorageInterface


logger = structlog.get_logger(__name__)

USERNAME_RULES_MESSAGE = "Username must be 3-32 chars: letters, numbers, _, -, ."
USERNAME_TAKEN_MESSAGE = "That username is already taken."
INVALID_LOGIN_MESSAGE = "Invalid username or password."


def hash_password(password: str, salt: str, iterations: int, hash_bytes: int) -> str:
    """Hex-encoded PBKDF2-HMAC-SHA512 of `password`."""
    return hashlib.pbkdf2_hmac(
        "sha512",
        password.encode("utf-8"),
        salt.encode("utf-8"),
        iterations,
        dklen=hash_bytes,
    ).hex()


def verify_password(
    password: str,
    salt: str,
    expected_hash: str,
    iterations: int,
    hash_bytes: int,
) -> bool:
    """Constant-time comparison of a password against a stored hash."""
    computed = hash_password(password, salt, iterations, hash_bytes)
    return hmac.compare_digest(computed, expected_hash)


class AccountService:
    """
    Manages accounts and sessions on top of a ledger storage backend.

    The first account ever registered inherits the legacy single-user
    ledger, if storage has one. The legacy data itself is left untouched.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        clock: Clock = system_clock,
        settings: Optional[AuthSettings] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger
        self._clock = clock
        self._settings = settings or get_settings().auth

    def _hash(self, password: str, salt: str) -> str:
        return hash_password(
            password, salt, self._settings.pbkdf2_iterations, self._settings.hash_bytes
        )

    def _start_session(self, username: str, current_session: Optional[str]) -> str:
        """Replace the caller's current session (if any) with a new one."""
        sessions = self._storage.load_sessions()
        if current_session:
            sessions.pop(current_session, None)

        token = str(uuid4())
        sessions[token] = username
        self._storage.save_sessions(sessions)
        return token

    def _reject_registration(self, username: str, message: str) -> AuthOutcome:
        if self._audit_logger:
            self._audit_logger.log_registration_rejected(username, message)
        return AuthOutcome.failed(message)

    def register(
        self,
        username: str,
        password: str,
        current_session: Optional[str] = None,
    ) -> AuthOutcome:
        """
        Create an account and start a session for it.

        Returns a failed AuthOutcome (never raises) for a malformed
        username, an out-of-range password or a taken username.
        """
        username = normalize_username(username)
        password = str(password or "")

        if not USERNAME_PATTERN.match(username):
            return self._reject_registration(username, USERNAME_RULES_MESSAGE)

        minimum = self._settings.min_password_length
        maximum = self._settings.max_password_length
        if not minimum <= len(password) <= maximum:
            return self._reject_registration(
                username,
                f"Password must be between {minimum} and {maximum} characters.",
            )

        accounts = self._storage.load_accounts()
        if username in accounts:
            return self._reject_registration(username, USERNAME_TAKEN_MESSAGE)

        salt = str(uuid4())
        account = Account(
            username=username,
            salt=salt,
            password_hash=self._hash(password, salt),
        )

        now = self._clock()
        legacy_imported = False
        if not accounts:
            legacy = self._storage.load_legacy_ledger()
            if legacy is not None:
                prune_ledger(legacy, now)
                account.ledger = legacy
                legacy_imported = True
                if self._audit_logger:
                    self._audit_logger.log_legacy_imported(
                        username,
                        income=len(legacy.income),
                        expenses=len(legacy.expenses),
                        recurring_bills=len(legacy.recurring_bills),
                        targets=len(legacy.targets),
                    )

        accounts[username] = account
        prune_accounts(accounts, now)
        self._storage.save_accounts(accounts)

        token = self._start_session(username, current_session)

        logger.info("account_registered", username=username, legacy_imported=legacy_imported)
        if self._audit_logger:
            self._audit_logger.log_account_registered(username, legacy_imported)

        return AuthOutcome(success=True, username=username, session_token=token)

    def login(
        self,
        username: str,
        password: str,
        current_session: Optional[str] = None,
    ) -> AuthOutcome:
        """
        Check credentials and start a session.

        Unknown users, accounts without a credential and wrong passwords
        all get the same message.
        """
        username = normalize_username(username)
        password = str(password or "")

        account = self._storage.load_accounts().get(username)
        if (
            account is None
            or not account.has_credential
            or not verify_password(
                password,
                account.salt,
                account.password_hash,
                self._settings.pbkdf2_iterations,
                self._settings.hash_bytes,
            )
        ):
            if self._audit_logger:
                self._audit_logger.log_login(username, success=False)
            return AuthOutcome.failed(INVALID_LOGIN_MESSAGE)

        token = self._start_session(username, current_session)

        if self._audit_logger:
            self._audit_logger.log_login(username, success=True)

        return AuthOutcome(success=True, username=username, session_token=token)

    def logout(self, session_token: Optional[str]) -> bool:
        """End a session. Returns False if the token was not a live session."""
        if not session_token:
            return False

        sessions = self._storage.load_sessions()
        username = sessions.pop(session_token, None)
        if username is None:
            return False

        self._storage.save_sessions(sessions)
        if self._audit_logger:
            self._audit_logger.log_logout(username)
        return True

    def resolve_session(self, session_token: Optional[str]) -> Optional[str]:
        """Username owning the session, or None for an unknown token."""
        if not session_token:
            return None
        return self._storage.load_sessions().get(session_token)
