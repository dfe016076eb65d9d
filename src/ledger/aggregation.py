"""
Aggregation Engine

Pure functions over a snapshot of the ledger. Nothing is cached: every call
recomputes from the transactions it is given, so a result can never be
stale after a store mutation.

Days are UTC calendar days.
"""

from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, Optional

import structlog

from src.ledger.errors import LedgerIntegrityError
from src.models.ledger import (
    LedgerTotals,
    PaymentMethod,
    StaffMember,
    Transaction,
    TransactionType,
    TrendPoint,
)


logger = structlog.get_logger(__name__)

ZERO = Decimal("0")


def _checked(transactions: Iterable[Transaction]) -> list[Transaction]:
    """Materialise the snapshot, refusing negative amounts."""
    snapshot = list(transactions)
    for transaction in snapshot:
        if transaction.amount < 0:
            logger.error(
                "negative_amount_in_snapshot",
                transaction_id=transaction.id,
                amount=str(transaction.amount),
            )
            raise LedgerIntegrityError(
                f"Transaction {transaction.id} has a negative amount"
            )
    return snapshot


def compute_totals(transactions: Iterable[Transaction]) -> LedgerTotals:
    """All-time income and expenses; profit is income minus expenses."""
    income = ZERO
    expenses = ZERO
    for transaction in _checked(transactions):
        if transaction.type == TransactionType.INCOME:
            income += transaction.amount
        else:
            expenses += transaction.amount
    return LedgerTotals(income=income, expenses=expenses)


def compute_payment_breakdown(
    transactions: Iterable[Transaction],
) -> dict[PaymentMethod, Decimal]:
    """
    Income per payment method.

    Expenses are ignored. Methods without income are left out.
    """
    breakdown: dict[PaymentMethod, Decimal] = defaultdict(lambda: ZERO)
    for transaction in _checked(transactions):
        if transaction.type == TransactionType.INCOME:
            breakdown[transaction.payment_method] += transaction.amount

    return {
        method: amount
        for method, amount in breakdown.items()
        if amount > 0
    }


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


def compute_daily_trend(
    transactions: Iterable[Transaction],
    today: Optional[date] = None,
    days: int = 7,
) -> list[TrendPoint]:
    """
    Income and expense per day for the `days` days ending `today`.

    Always returns exactly `days` points, oldest first. Days without
    entries are zero, not skipped.
    """
    if days < 1:
        raise ValueError("days must be at least 1")

    today = today or today_utc()
    window = [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]
    points = {day: TrendPoint(day=day) for day in window}

    for transaction in _checked(transactions):
        point = points.get(transaction.day)
        if point is None:
            continue
        if transaction.type == TransactionType.INCOME:
            point.income += transaction.amount
        else:
            point.expense += transaction.amount

    return [points[day] for day in window]


def total_escrow_liability(staff: Iterable[StaffMember]) -> Decimal:
    """Pay held back across all staff, owed at month end."""
    return sum((member.total_held_balance for member in staff), ZERO)


def recent_transactions(
    transactions: Iterable[Transaction],
    limit: int = 5,
) -> list[Transaction]:
    """The `limit` newest entries of a most-recent-first snapshot."""
    return list(transactions)[:limit]
