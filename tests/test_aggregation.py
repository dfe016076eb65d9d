"""
Tests for totals, payment breakdown and the daily trend.
"""

import pytest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from src.ledger import (
    compute_daily_trend,
    compute_payment_breakdown,
    compute_totals,
    recent_transactions,
    total_escrow_liability,
)
from src.models.ledger import PaymentMethod, StaffMember, Transaction, TransactionType


TODAY = date(2024, 3, 10)


def entry(amount, transaction_type, category, method=PaymentMethod.CASH, day=TODAY, hour=12):
    return Transaction(
        amount=Decimal(amount),
        type=transaction_type,
        category=category,
        payment_method=method,
        date=datetime(day.year, day.month, day.day, hour, tzinfo=timezone.utc),
    )


def sale(amount, method=PaymentMethod.CASH, day=TODAY, hour=12):
    return entry(amount, TransactionType.INCOME, "Tea Sales", method, day, hour)


def cost(amount, method=PaymentMethod.CASH, day=TODAY, hour=12):
    return entry(amount, TransactionType.EXPENSE, "Milk", method, day, hour)


class TestTotals:
    """Tests for compute_totals."""

    def test_empty_ledger(self):
        totals = compute_totals([])
        assert totals.income == 0
        assert totals.expenses == 0
        assert totals.profit == 0

    def test_income_and_expenses(self):
        totals = compute_totals([sale("500"), sale("120.50"), cost("300")])
        assert totals.income == Decimal("620.50")
        assert totals.expenses == Decimal("300")
        assert totals.profit == Decimal("320.50")

    def test_loss_is_negative_profit(self):
        totals = compute_totals([sale("100"), cost("250")])
        assert totals.profit == Decimal("-150")


class TestPaymentBreakdown:
    """Tests for compute_payment_breakdown."""

    def test_groups_income_by_method(self):
        breakdown = compute_payment_breakdown([
            sale("100", PaymentMethod.CASH),
            sale("50", PaymentMethod.GPAY),
            sale("25", PaymentMethod.GPAY),
        ])
        assert breakdown == {
            PaymentMethod.CASH: Decimal("100"),
            PaymentMethod.GPAY: Decimal("75"),
        }

    def test_expenses_are_ignored(self):
        breakdown = compute_payment_breakdown([
            sale("100", PaymentMethod.CASH),
            cost("80", PaymentMethod.PHONEPE),
        ])
        assert PaymentMethod.PHONEPE not in breakdown

    def test_zero_income_methods_are_left_out(self):
        breakdown = compute_payment_breakdown([sale("0", PaymentMethod.OTHER)])
        assert breakdown == {}


class TestDailyTrend:
    """Tests for compute_daily_trend."""

    def test_empty_ledger_gives_seven_zero_days(self):
        trend = compute_daily_trend([], today=TODAY)
        assert len(trend) == 7
        assert all(point.income == 0 and point.expense == 0 for point in trend)

    def test_oldest_first_ending_today(self):
        trend = compute_daily_trend([], today=TODAY)
        assert trend[0].day == TODAY - timedelta(days=6)
        assert trend[-1].day == TODAY
        assert trend[-1].label == "03/10"

    def test_todays_income_lands_on_last_point(self):
        trend = compute_daily_trend([sale("500")], today=TODAY)
        assert trend[-1].income == Decimal("500")
        assert sum(point.income for point in trend[:-1]) == 0

    def test_same_day_entries_are_summed(self):
        trend = compute_daily_trend(
            [sale("100", hour=8), sale("40", hour=20), cost("30", hour=9)],
            today=TODAY,
        )
        assert trend[-1].income == Decimal("140")
        assert trend[-1].expense == Decimal("30")

    def test_entries_outside_window_are_ignored(self):
        old = TODAY - timedelta(days=7)
        trend = compute_daily_trend([sale("999", day=old)], today=TODAY)
        assert sum(point.income for point in trend) == 0

    def test_days_are_utc_calendar_days(self):
        late = Transaction(
            amount=Decimal("10"),
            type=TransactionType.INCOME,
            category="Snacks",
            date=datetime(2024, 3, 9, 23, 30, tzinfo=timezone(timedelta(hours=-5))),
        )
        trend = compute_daily_trend([late], today=TODAY)
        # 23:30 at UTC-5 is 04:30 UTC on the 10th
        assert trend[-1].income == Decimal("10")

    def test_custom_window(self):
        assert len(compute_daily_trend([], today=TODAY, days=3)) == 3

    def test_window_must_be_positive(self):
        with pytest.raises(ValueError):
            compute_daily_trend([], today=TODAY, days=0)


class TestEscrowAndRecent:
    """Tests for escrow liability and recent entries."""

    def test_no_staff_means_no_liability(self):
        assert total_escrow_liability([]) == 0

    def test_liability_sums_held_balances(self):
        staff = [
            StaffMember(name="A", phone="1", weekly_base_pay=1000, total_held_balance=600),
            StaffMember(name="B", phone="2", weekly_base_pay=500, total_held_balance=0),
            StaffMember(name="C", phone="3", weekly_base_pay=800, total_held_balance=480),
        ]
        assert total_escrow_liability(staff) == Decimal("1080")

    def test_recent_takes_newest(self):
        entries = [sale(str(n)) for n in range(1, 9)]
        recent = recent_transactions(entries, limit=5)
        assert [t.amount for t in recent] == [Decimal(n) for n in range(1, 6)]
