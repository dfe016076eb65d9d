"""
Tests for CSV export.
"""

import csv
import io
from datetime import date, datetime, timezone
from decimal import Decimal

from src.models.ledger import StaffMember, Transaction
from src.reports import (
    STAFF_HEADERS,
    TRANSACTION_HEADERS,
    staff_filename,
    staff_to_csv,
    transactions_filename,
    transactions_to_csv,
)


def read_rows(text: str) -> list[list[str]]:
    return list(csv.reader(io.StringIO(text)))


class TestTransactionExport:
    """Tests for transactions_to_csv."""

    def test_header_only_when_empty(self):
        assert read_rows(transactions_to_csv([])) == [TRANSACTION_HEADERS]

    def test_one_row_per_transaction(self):
        transaction = Transaction(
            amount=Decimal("45.00"),
            category="Snacks",
            type="INCOME",
            payment_method="GPAY",
            notes='Samosa, "large"',
            date=datetime(2024, 3, 10, 9, 15, tzinfo=timezone.utc),
        )
        rows = read_rows(transactions_to_csv([transaction]))

        assert rows[1] == [
            "2024-03-10T09:15:00+00:00",
            "INCOME",
            "45.00",
            "Snacks",
            "GPAY",
            'Samosa, "large"',
        ]

    def test_missing_notes_are_blank(self):
        transaction = Transaction(amount=10, category="Milk", type="EXPENSE")
        rows = read_rows(transactions_to_csv([transaction]))
        assert rows[1][5] == ""

    def test_filename(self):
        assert transactions_filename() == "TeaStall_Records.csv"


class TestStaffExport:
    """Tests for staff_to_csv."""

    def test_staff_row(self):
        member = StaffMember(
            name="Ravi",
            phone="9876543210",
            address="Near bus stand",
            aadhaar="1234 5678 9012",
            weekly_base_pay=Decimal("1000"),
            total_held_balance=Decimal("600.00"),
            joined_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        rows = read_rows(staff_to_csv([member]))

        assert rows[0] == STAFF_HEADERS
        assert rows[1] == [
            "Ravi",
            "9876543210",
            "1234 5678 9012",
            "Near bus stand",
            "1000",
            "600.00",
            "2024-01-01T00:00:00+00:00",
        ]

    def test_filename_has_date(self):
        assert staff_filename(date(2024, 3, 10)) == "Staff_List_2024-03-10.csv"
