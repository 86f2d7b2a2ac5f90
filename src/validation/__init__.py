"""Input validation package."""

from src.validation.validator import EntryValidator, parse_amount, parse_timestamp

__all__ = ["EntryValidator", "parse_amount", "parse_timestamp"]
