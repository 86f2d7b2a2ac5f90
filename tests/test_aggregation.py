"""Tests for the aggregation engine."""

import math

import pytest
from datetime import datetime, timedelta, timezone

from src.ledger.aggregation import (
    month_key,
    recent_entries,
    runway,
    summarize,
    target_progress,
    totals_by_category,
)
from src.models.ledger import Entry, EntrySource, Ledger


UTC = timezone.utc
T0 = datetime(2024, 5, 10, 9, 0, tzinfo=UTC)


def entry(amount, category, day=T0, source=EntrySource.MANUAL):
    return Entry(amount=amount, category=category, date=day, source=source)


class TestSummarize:
    """Tests for summarize."""

    def test_basic_totals(self):
        """Test totals, net and category breakdown."""
        ledger = Ledger(
            income=[entry(1000, "Salary")],
            expenses=[entry(400, "Rent"), entry(100, "Rent")],
        )

        summary = summarize(ledger, T0)

        assert summary.income_total == 1000
        assert summary.expense_total == 500
        assert summary.net == 500
        assert summary.expense_by_category == {"Rent": 500}
        assert summary.income_by_category == {"Salary": 1000}

    def test_tax_reserve_is_thirty_percent_of_monthly_income(self):
        """Test the fixed tax reserve rate."""
        ledger = Ledger(income=[entry(1500, "Salary"), entry(500, "Freelance")])
        summary = summarize(ledger, T0)
        assert summary.monthly_income == 2000
        assert summary.tax_reserve == pytest.approx(600.00)

    def test_monthly_figures_only_count_current_month(self):
        """Test the month filter."""
        ledger = Ledger(
            income=[entry(100, "Salary"), entry(999, "Salary", datetime(2024, 4, 30, tzinfo=UTC))],
            expenses=[entry(40, "Food"), entry(60, "Food", datetime(2024, 6, 1, tzinfo=UTC))],
        )
        summary = summarize(ledger, T0)
        assert summary.month == "2024-05"
        assert summary.monthly_income == 100
        assert summary.monthly_expenses == 40
        assert summary.tax_reserve == pytest.approx(30.0)

    def test_runway_infinite_without_burn(self):
        """Test that no spending in the burn window gives infinite runway."""
        ledger = Ledger(
            income=[entry(1000, "Salary")],
            expenses=[entry(300, "Old", T0 - timedelta(days=91))],
        )
        summary = summarize(ledger, T0)
        assert summary.monthly_burn_rate == 0
        assert summary.runway_months == float("inf")
        assert summary.has_infinite_runway is True

    def test_burn_rate_and_runway(self):
        """Test the 90-day window and the runway division."""
        ledger = Ledger(
            income=[entry(2100, "Salary")],
            expenses=[
                entry(300, "Rent", T0 - timedelta(days=90)),
                entry(600, "Rent", T0 - timedelta(days=10)),
                entry(1000, "Old", T0 - timedelta(days=90, seconds=1)),
            ],
        )
        summary = summarize(ledger, T0)

        assert summary.rolling_90_day_expenses == 900
        assert summary.monthly_burn_rate == pytest.approx(300)
        # net = 2100 - 1900
        assert summary.runway_months == pytest.approx(200 / 300)

    def test_empty_ledger(self):
        """Test that an empty ledger summarizes to zeros."""
        summary = summarize(Ledger(), T0)
        assert summary.net == 0
        assert summary.income_by_category == {}
        assert summary.target_progress == []
        assert math.isinf(summary.runway_months)

    def test_summarize_does_not_mutate(self):
        """Test that aggregation is read-only."""
        ledger = Ledger(expenses=[entry(10, "Food")])
        before = ledger.model_dump()
        summarize(ledger, T0)
        assert ledger.model_dump() == before


class TestCategoryTotals:
    """Tests for totals_by_category."""

    def test_insertion_order_of_first_occurrence(self):
        """Test that keys keep the order categories first appear in."""
        totals = totals_by_category([
            entry(1, "Rent"), entry(2, "Food"), entry(3, "Rent"), entry(4, "Fun"),
        ])
        assert list(totals) == ["Rent", "Food", "Fun"]
        assert totals["Rent"] == 4

    def test_categories_are_case_sensitive(self):
        """Test that free-text categories are not folded."""
        totals = totals_by_category([entry(1, "food"), entry(2, "Food")])
        assert totals == {"food": 1, "Food": 2}

    def test_split_recurring(self):
        """Test the optional recurring split."""
        entries = [
            entry(10, "Internet"),
            entry(50, "Internet", source=EntrySource.RECURRING),
        ]
        assert totals_by_category(entries) == {"Internet": 60}
        assert totals_by_category(entries, split_recurring=True) == {
            "Internet": 10,
            "Internet (Recurring)": 50,
        }


class TestHelpers:
    """Tests for the smaller aggregation helpers."""

    def test_runway_zero_burn(self):
        """Test runway is +inf, not 0 and not an error."""
        assert runway(500, 0) == float("inf")
        assert runway(-500, 0) == float("inf")

    def test_month_key_uses_utc(self):
        """Test that offsets are converted before taking the month."""
        minus_five = timezone(timedelta(hours=-5))
        assert month_key(datetime(2024, 5, 31, 22, 0, tzinfo=minus_five)) == "2024-06"

    def test_recent_entries_window(self):
        """Test the 14-day recent list."""
        now = T0
        entries = [
            entry(1, "a", now - timedelta(days=14)),
            entry(2, "b", now - timedelta(days=14, seconds=1)),
            entry(3, "c", now - timedelta(hours=1)),
        ]
        assert [e.category for e in recent_entries(entries, now)] == ["a", "c"]

    def test_target_progress_current_month_only(self):
        """Test spend-vs-budget for this month's targets."""
        ledger = Ledger(expenses=[
            entry(80, "Groceries"),
            entry(40, "Groceries"),
            entry(500, "Groceries", datetime(2024, 4, 2, tzinfo=UTC)),
        ])
        ledger.set_target("Groceries", "2024-05", 100)
        ledger.set_target("Fun", "2024-05", 50)
        ledger.set_target("Groceries", "2024-04", 100)

        progress = target_progress(ledger, T0)

        assert [(p.category, p.spent) for p in progress] == [("Groceries", 120), ("Fun", 0)]
        assert progress[0].over_budget is True
        assert progress[1].remaining == 50


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
