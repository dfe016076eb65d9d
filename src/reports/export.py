"""
CSV Export

Serializes already-validated ledger data for download. One row per
record, fixed column order, standard CSV quoting.
"""

import csv
import io
from datetime import date
from typing import Iterable, Optional

from src.models.ledger import StaffMember, Transaction


TRANSACTION_HEADERS = ["Date", "Type", "Amount", "Category", "PaymentMethod", "Notes"]
STAFF_HEADERS = [
    "Name",
    "Phone",
    "Aadhaar",
    "Address",
    "Weekly Pay",
    "Held Balance",
    "Joined Date",
]


def _write_csv(headers: list[str], rows: Iterable[list[str]]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return buffer.getvalue()


def transactions_to_csv(transactions: Iterable[Transaction]) -> str:
    """Transactions in the order given (the ledger lists newest first)."""
    return _write_csv(
        TRANSACTION_HEADERS,
        (
            [
                t.date.isoformat(),
                t.type.value,
                str(t.amount),
                t.category,
                t.payment_method.value,
                t.notes or "",
            ]
            for t in transactions
        ),
    )


def staff_to_csv(staff: Iterable[StaffMember]) -> str:
    return _write_csv(
        STAFF_HEADERS,
        (
            [
                s.name,
                s.phone,
                s.aadhaar,
                s.address,
                str(s.weekly_base_pay),
                str(s.total_held_balance),
                s.joined_date.isoformat(),
            ]
            for s in staff
        ),
    )


def transactions_filename() -> str:
    return "TeaStall_Records.csv"


def staff_filename(day: Optional[date] = None) -> str:
    day = day or date.today()
    return f"Staff_List_{day.isoformat()}.csv"
