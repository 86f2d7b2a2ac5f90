"""
Budget Ledger - Source Package

A personal finance ledger: income, expenses, recurring bills and monthly
targets per user, with derived totals, burn rate, runway and tax reserve.

DESIGN PRINCIPLES:
1. Every access prunes, ticks and saves, in that order
2. Time comes from an injected clock, never from the engines themselves
3. Invalid input is dropped, never raised, and always audited
4. Every change must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Budget Ledger Team"
