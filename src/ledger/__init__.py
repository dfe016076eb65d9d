"""
Ledger core: transactions, aggregation, staff payroll and the shop session.
"""

from src.ledger.aggregation import (
    compute_daily_trend,
    compute_payment_breakdown,
    compute_totals,
    recent_transactions,
    total_escrow_liability,
)
from src.ledger.errors import (
    LedgerError,
    LedgerIntegrityError,
    NotFoundError,
    ValidationError,
)
from src.ledger.payroll import StaffPayrollLedger
from src.ledger.session import SessionManager, View
from src.ledger.store import LedgerStore, new_transaction, parse_amount

__all__ = [
    # Aggregation
    "compute_daily_trend",
    "compute_payment_breakdown",
    "compute_totals",
    "recent_transactions",
    "total_escrow_liability",
    # Errors
    "LedgerError",
    "LedgerIntegrityError",
    "NotFoundError",
    "ValidationError",
    # Collections
    "LedgerStore",
    "SessionManager",
    "StaffPayrollLedger",
    "View",
    "new_transaction",
    "parse_amount",
]
