"""
Monthly Text Report

A plain-text summary of the month containing `now`: income, expenses, net,
tax reserve, burn rate, runway and one line per target set for that month.
Targets for other months are left out.
"""

from datetime import datetime

from src.ledger.aggregation import month_key
from src.models.ledger import LedgerSummary


INFINITY_SYMBOL = "∞"


def _money(amount: float, currency: str) -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}{currency}{abs(amount):,.2f}"


def _runway(summary: LedgerSummary) -> str:
    if summary.has_infinite_runway:
        return INFINITY_SYMBOL
    return f"{summary.runway_months:.1f} months"


def monthly_report(summary: LedgerSummary, now: datetime, currency: str = "$") -> str:
    """Render the monthly report for `summary` as text."""
    key = month_key(now)
    label = now.strftime("%B %Y")

    lines = [
        f"Monthly report: {label}",
        "",
        f"Income:       {_money(summary.monthly_income, currency)}",
        f"Expenses:     {_money(summary.monthly_expenses, currency)}",
        f"Net:          {_money(summary.monthly_income - summary.monthly_expenses, currency)}",
        f"Tax reserve:  {_money(summary.tax_reserve, currency)}",
        f"Burn rate:    {_money(summary.monthly_burn_rate, currency)} / month",
        f"Runway:       {_runway(summary)}",
    ]

    progress = [p for p in summary.target_progress if p.month == key]
    if progress:
        lines.append("")
        lines.append("Targets:")
        for item in progress:
            line = (
                f"  {item.category}: {_money(item.spent, currency)}"
                f" of {_money(item.budget, currency)}"
            )
            if item.over_budget:
                line += " (over budget)"
            lines.append(line)

    return "\n".join(lines) + "\n"
