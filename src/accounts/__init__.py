"""Accounts and sessions package."""

from src.accounts.service import AccountService, hash_password, verify_password

__all__ = ["AccountService", "hash_password", "verify_password"]
