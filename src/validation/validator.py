"""
Entry-Creation Validation

DESIGN DECISION: Raw form input is validated in two stages:

STAGE 1 - FIELD PARSING:
- Amount parses to a finite number
- Category is non-empty after trimming
- Dates parse to a timestamp
- Frequency belongs to the closed set {daily, weekly, monthly}

STAGE 2 - WINDOW CHECK:
- The resulting date is not older than the retention cutoff

Input that fails is NOT an error for the ledger. The ledger service drops it
silently (logging and auditing the drop); telling the user is the form
layer's job.
"""

import math
import re
from datetime import date, datetime, time
from typing import Any, Optional

from src.ledger.retention import compute_cutoff
from src.models.ledger import (
    Entry,
    Frequency,
    RecurringBill,
    Target,
    ValidationIssue,
    ValidationResult,
    ensure_utc,
)


MONTH_PATTERN = re.compile(r"^(?!0000)\d{4}-(0[1-9]|1[0-2])$")


def parse_amount(raw: Any) -> Optional[float]:
    """A finite float, or None. Blank strings, NaN, infinities and digit separators fail."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw or "_" in raw:
            return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


def parse_timestamp(raw: Any) -> Optional[datetime]:
    """
    Parse a date or timestamp into an aware UTC datetime.

    Accepts datetime and date objects, and ISO-8601 strings including the
    'Z' suffix and date-only values (read as midnight UTC). Values that fall
    outside the datetime range once moved to UTC give None.
    """
    try:
        if isinstance(raw, datetime):
            return ensure_utc(raw)
        if isinstance(raw, date):
            return ensure_utc(datetime.combine(raw, time.min))
        if not isinstance(raw, str) or not raw.strip():
            return None

        text = raw.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        return ensure_utc(datetime.fromisoformat(text))
    except (ValueError, OverflowError):
        return None


def _is_blank(raw: Any) -> bool:
    return raw is None or (isinstance(raw, str) and not raw.strip())


class EntryValidator:
    """
    Validates user input for income, expenses, recurring bills and targets.

    Every method returns a ValidationResult whose `record` is the built
    model when the input is valid.
    """

    def _check_amount(self, raw: Any, issues: list[ValidationIssue]) -> Optional[float]:
        amount = parse_amount(raw)
        if amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be a finite number",
            ))
        return amount

    def _check_category(self, raw: Any, issues: list[ValidationIssue]) -> Optional[str]:
        category = str(raw).strip() if raw is not None else ""
        if not category:
            issues.append(ValidationIssue(
                field="category",
                issue_type="missing",
                message="Category is required",
            ))
            return None
        return category

    def _check_window(
        self,
        field: str,
        moment: Optional[datetime],
        now: datetime,
        issues: list[ValidationIssue],
    ) -> None:
        if moment is None:
            return
        cutoff = compute_cutoff(now)
        if moment < cutoff:
            issues.append(ValidationIssue(
                field=field,
                issue_type="out_of_window",
                message=f"Date is older than the retention cutoff ({cutoff.date().isoformat()})",
            ))

    def validate_entry(
        self,
        amount: Any,
        category: Any,
        entry_date: Any,
        now: datetime,
    ) -> ValidationResult:
        """
        Validate an income or expense.

        A missing date defaults to `now`.
        """
        issues: list[ValidationIssue] = []

        # Stage 1: Field parsing
        parsed_amount = self._check_amount(amount, issues)
        parsed_category = self._check_category(category, issues)

        if _is_blank(entry_date):
            moment = now
        else:
            moment = parse_timestamp(entry_date)
            if moment is None:
                issues.append(ValidationIssue(
                    field="date",
                    issue_type="invalid_format",
                    message=f"Could not read date: {entry_date!r}",
                ))

        # Stage 2: Window check
        self._check_window("date", moment, now, issues)

        if issues:
            return ValidationResult(is_valid=False, issues=issues)

        return ValidationResult(
            is_valid=True,
            record=Entry(amount=parsed_amount, category=parsed_category, date=moment),
        )

    def validate_recurring_bill(
        self,
        amount: Any,
        category: Any,
        frequency: Any,
        start_date: Any,
        now: datetime,
    ) -> ValidationResult:
        """Validate a recurring bill. The start date is mandatory."""
        issues: list[ValidationIssue] = []

        parsed_amount = self._check_amount(amount, issues)
        parsed_category = self._check_category(category, issues)

        parsed_frequency = None
        if _is_blank(frequency):
            issues.append(ValidationIssue(
                field="frequency",
                issue_type="missing",
                message="Frequency is required",
            ))
        else:
            try:
                parsed_frequency = Frequency(str(frequency).strip().lower())
            except ValueError:
                issues.append(ValidationIssue(
                    field="frequency",
                    issue_type="invalid_value",
                    message="Frequency must be daily, weekly or monthly",
                ))

        moment = None
        if _is_blank(start_date):
            issues.append(ValidationIssue(
                field="date",
                issue_type="missing",
                message="Start date is required",
            ))
        else:
            moment = parse_timestamp(start_date)
            if moment is None:
                issues.append(ValidationIssue(
                    field="date",
                    issue_type="invalid_format",
                    message=f"Could not read date: {start_date!r}",
                ))

        self._check_window("date", moment, now, issues)

        if issues:
            return ValidationResult(is_valid=False, issues=issues)

        return ValidationResult(
            is_valid=True,
            record=RecurringBill(
                amount=parsed_amount,
                category=parsed_category,
                frequency=parsed_frequency,
                date=moment,
            ),
        )

    def validate_target(
        self,
        category: Any,
        month: Any,
        amount: Any,
        now: datetime,
    ) -> ValidationResult:
        """Validate a monthly target. The month is 'YYYY-MM'."""
        issues: list[ValidationIssue] = []

        parsed_category = self._check_category(category, issues)
        parsed_amount = self._check_amount(amount, issues)

        parsed_month = str(month).strip() if month is not None else ""
        if not MONTH_PATTERN.match(parsed_month):
            issues.append(ValidationIssue(
                field="month",
                issue_type="invalid_format",
                message="Month must look like YYYY-MM",
            ))
            parsed_month = None
        else:
            year, mon = parsed_month.split("-")
            self._check_window(
                "month",
                datetime(int(year), int(mon), 1, tzinfo=now.tzinfo),
                now,
                issues,
            )

        if issues:
            return ValidationResult(is_valid=False, issues=issues)

        return ValidationResult(
            is_valid=True,
            record=Target(category=parsed_category, month=parsed_month, amount=parsed_amount),
        )

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Short explanation of why input was not recorded.

        This is what the form layer shows next to the form.
        """
        if result.is_valid:
            return "Saved."

        lines = ["Not saved:"]
        for issue in result.issues:
            lines.append(f"   • {issue.message}")
        return "\n".join(lines)
