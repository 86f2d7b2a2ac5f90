"""Export package: CSV and monthly text report."""

from src.export.csv_export import CSV_COLUMNS, export_csv, format_amount
from src.export.report import monthly_report

__all__ = ["CSV_COLUMNS", "export_csv", "format_amount", "monthly_report"]
