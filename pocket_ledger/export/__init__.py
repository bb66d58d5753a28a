"""Export package."""

from pocket_ledger.export.csv_export import export_filename, transactions_to_csv, write_csv

__all__ = ["export_filename", "transactions_to_csv", "write_csv"]
