"""Report export package."""

from src.reports.export import (
    STAFF_HEADERS,
    TRANSACTION_HEADERS,
    staff_filename,
    staff_to_csv,
    transactions_filename,
    transactions_to_csv,
)

__all__ = [
    "STAFF_HEADERS",
    "TRANSACTION_HEADERS",
    "staff_filename",
    "staff_to_csv",
    "transactions_filename",
    "transactions_to_csv",
]
