"""
Account Models for Budget Ledger

An account ties one normalized username to a credential and a ledger.
Authentication outcomes are plain values: failures carry a message for the
caller to show and are never raised.
"""

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.models.ledger import Ledger


USERNAME_PATTERN = re.compile(r"^[a-z0-9_\-.]{3,32}$")


def normalize_username(raw: Optional[str]) -> str:
    """Usernames are case-insensitive: trim and lowercase."""
    return str(raw or "").strip().lower()


class Account(BaseModel):
    """
    A registered user.

    The credential is a salted PBKDF2 hash. An account created implicitly
    for a session whose user has no record yet has an empty salt and hash
    and can never log in.
    """
    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(
        ...,
        description="Normalized (lowercase) username"
    )
    salt: str = Field(default="")
    password_hash: str = Field(default="", alias="passwordHash")
    ledger: Ledger = Field(default_factory=Ledger)

    @field_validator('username')
    @classmethod
    def validate_username(cls, v: str) -> str:
        v = normalize_username(v)
        if not v:
            raise ValueError("Username cannot be empty")
        return v

    @property
    def has_credential(self) -> bool:
        return bool(self.salt and self.password_hash)


class AuthOutcome(BaseModel):
    """
    Result of register / login.

    On success `session_token` identifies the new session. On failure
    `message` explains why, in words suitable for the login form.
    """

    success: bool
    username: Optional[str] = None
    session_token: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def failed(cls, message: str) -> "AuthOutcome":
        return cls(success=False, message=message)
