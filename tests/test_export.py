"""Tests for CSV export and the monthly report."""

import csv
import io

import pytest
from datetime import datetime, timezone

from src.export import CSV_COLUMNS, export_csv, format_amount, monthly_report
from src.ledger.aggregation import summarize
from src.models.ledger import Entry, Ledger, LedgerSummary, RecurringBill, TargetProgress


UTC = timezone.utc
NOW = datetime(2024, 5, 20, 12, 0, tzinfo=UTC)


class TestCsvExport:
    """Tests for export_csv."""

    def test_row_order_and_columns(self):
        """Test income, then expense, then recurring rows under a fixed header."""
        ledger = Ledger(
            income=[Entry(amount=1000, category="Salary", date=NOW)],
            expenses=[Entry(amount=12.5, category="Food, takeaway", date=NOW)],
            recurring_bills=[RecurringBill(
                amount=50, category="Internet", frequency="monthly",
                date=datetime(2024, 1, 1, tzinfo=UTC), last_paid=NOW,
            )],
        )

        rows = list(csv.reader(io.StringIO(export_csv(ledger))))

        assert rows[0] == CSV_COLUMNS
        assert rows[0] == ["type", "category", "amount", "date", "frequency", "lastPaid"]
        assert [r[0] for r in rows[1:]] == ["income", "expense", "recurring"]
        assert rows[1] == ["income", "Salary", "1000", NOW.isoformat(), "", ""]
        assert rows[2][1] == "Food, takeaway"
        assert rows[2][2] == "12.5"
        assert rows[3][4:] == ["monthly", NOW.isoformat()]

    def test_never_paid_bill_has_blank_last_paid(self):
        """Test the blank lastPaid cell."""
        ledger = Ledger(recurring_bills=[
            RecurringBill(amount=5, category="Gym", frequency="weekly", date=NOW),
        ])
        rows = list(csv.reader(io.StringIO(export_csv(ledger))))
        assert rows[1][5] == ""

    def test_empty_ledger_is_header_only(self):
        """Test exporting nothing."""
        assert export_csv(Ledger()) == "type,category,amount,date,frequency,lastPaid\n"

    @pytest.mark.parametrize("amount,text", [(5.0, "5"), (0.1, "0.1"), (-3.0, "-3")])
    def test_format_amount(self, amount, text):
        """Test whole amounts drop the trailing .0."""
        assert format_amount(amount) == text


class TestMonthlyReport:
    """Tests for monthly_report."""

    def test_lists_monthly_figures(self):
        """Test the figures in the report."""
        ledger = Ledger(
            income=[Entry(amount=3000, category="Salary", date=NOW)],
            expenses=[Entry(amount=900, category="Rent", date=NOW)],
        )
        report = monthly_report(summarize(ledger, NOW), NOW)

        assert "May 2024" in report
        assert "Income:       $3,000.00" in report
        assert "Expenses:     $900.00" in report
        assert "Net:          $2,100.00" in report
        assert "Tax reserve:  $900.00" in report
        assert "Burn rate:    $300.00 / month" in report
        assert "Runway:       7.0 months" in report

    def test_infinite_runway_symbol(self):
        """Test the infinity symbol."""
        summary = LedgerSummary(as_of=NOW, month="2024-05")
        assert "∞" in monthly_report(summary, NOW)

    def test_only_current_month_targets(self):
        """Test that targets for other months are left out."""
        summary = LedgerSummary(
            as_of=NOW,
            month="2024-05",
            target_progress=[
                TargetProgress(category="Food", month="2024-05", budget=100, spent=150),
                TargetProgress(category="Fun", month="2024-04", budget=50, spent=0),
            ],
        )
        report = monthly_report(summary, NOW, currency="€")

        assert "Food: €150.00 of €100.00 (over budget)" in report
        assert "Fun" not in report

    def test_no_targets_section_without_targets(self):
        """Test that the targets heading only appears with targets."""
        summary = LedgerSummary(as_of=NOW, month="2024-05")
        assert "Targets:" not in monthly_report(summary, NOW)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
