"""
Staff Payroll Ledger

Owns the staff collection and turns payroll actions into ledger entries.

PAY POLICY:
- Weekly payout: 40% of the fixed weekly base pay is paid in cash now,
  60% is held back and added to the staff member's held balance.
- Month-end settlement: the whole held balance is paid out and the
  balance drops to zero. With nothing held it does nothing (NO_OP).

Each payroll step writes one transaction to the ledger store AND changes
one staff balance. Both happen under the store's lock; if the balance
change cannot be applied the transaction is taken back out.

KNOWN GAP: nothing stops a weekly payout from being run twice in the same
week. Doing so pays and holds twice. There is no cooldown on purpose until
the shop owner asks for one.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable, Optional

import structlog
from pydantic import ValidationError as PydanticValidationError

from src.ledger.aggregation import total_escrow_liability
from src.ledger.errors import NotFoundError, ValidationError
from src.ledger.store import AmountInput, LedgerStore, new_transaction, parse_amount
from src.models.ledger import (
    MONTH_END_CATEGORY,
    PAISE,
    WEEKLY_PAY_CATEGORY,
    EscrowState,
    PaymentMethod,
    PayrollOutcome,
    PayrollResult,
    StaffMember,
    Transaction,
    TransactionType,
)


logger = structlog.get_logger(__name__)

EDITABLE_STAFF_FIELDS = frozenset({"name", "phone", "address", "aadhaar", "weekly_base_pay"})


class StaffPayrollLedger:
    """
    Staff records plus the weekly-pay / month-end state machine.

    A staff member is in NO_ESCROW while nothing is held and in HAS_ESCROW
    otherwise. Weekly pay works from either state; settlement moves
    HAS_ESCROW back to NO_ESCROW.
    """

    def __init__(
        self,
        ledger: LedgerStore,
        staff: Optional[Iterable[StaffMember]] = None,
        paid_now_fraction: Decimal = Decimal("0.40"),
        held_fraction: Decimal = Decimal("0.60"),
        currency_symbol: str = "₹",
    ):
        if paid_now_fraction + held_fraction != 1:
            raise ValueError("Paid-now and held fractions must sum to 1")

        self._ledger = ledger
        self._staff: list[StaffMember] = []
        self._paid_now_fraction = Decimal(paid_now_fraction)
        self._held_fraction = Decimal(held_fraction)
        self._currency = currency_symbol
        if staff is not None:
            self.load(staff)

    # -------------------------------------------------------------------------
    # Lookup helpers
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._staff)

    def _index_of(self, staff_id: str) -> Optional[int]:
        for index, member in enumerate(self._staff):
            if member.id == staff_id:
                return index
        return None

    def get(self, staff_id: str) -> StaffMember:
        with self._ledger.lock:
            index = self._index_of(staff_id)
            if index is None:
                raise NotFoundError("staff", staff_id)
            return self._staff[index]

    def escrow_state(self, staff_id: str) -> EscrowState:
        return self.get(staff_id).escrow_state

    def total_escrow_liability(self) -> Decimal:
        """Everything currently held back, across all staff."""
        with self._ledger.lock:
            return total_escrow_liability(self._staff)

    def _percent(self, fraction: Decimal) -> str:
        return f"{(fraction * 100).normalize():f}%"

    def split_weekly_pay(self, weekly_base_pay: Decimal) -> tuple[Decimal, Decimal]:
        """
        (paid_now, held) for one week.

        paid_now is rounded to paise and held is the remainder, so the
        two always add up to the base pay exactly.
        """
        paid_now = (weekly_base_pay * self._paid_now_fraction).quantize(
            PAISE, rounding=ROUND_HALF_UP
        )
        return paid_now, weekly_base_pay - paid_now

    # -------------------------------------------------------------------------
    # Registration and profile correction
    # -------------------------------------------------------------------------

    @staticmethod
    def _require_text(value: Optional[str], field: str, label: str) -> str:
        if value is None or not str(value).strip():
            raise ValidationError(f"{label} is required", field=field)
        return str(value).strip()

    @staticmethod
    def _positive_pay(value: Optional[AmountInput]) -> Decimal:
        pay = parse_amount(value, field="weekly_base_pay")
        if pay <= 0:
            raise ValidationError(
                "Weekly base pay must be greater than zero",
                field="weekly_base_pay",
            )
        return pay

    def register(
        self,
        name: Optional[str],
        phone: Optional[str],
        address: Optional[str] = "",
        aadhaar: Optional[str] = "",
        weekly_base_pay: Optional[AmountInput] = None,
    ) -> StaffMember:
        """
        Register a new staff member with nothing held.

        Raises:
            ValidationError: name, phone or a positive weekly pay is missing
        """
        fields = {
            "name": self._require_text(name, "name", "Name"),
            "phone": self._require_text(phone, "phone", "Phone"),
            "address": address or "",
            "aadhaar": aadhaar or "",
            "weekly_base_pay": self._positive_pay(weekly_base_pay),
        }
        try:
            member = StaffMember.model_validate(fields)
        except PydanticValidationError as e:
            raise ValidationError.from_pydantic(e)

        with self._ledger.lock:
            self._staff.append(member)

        logger.info("staff_registered", staff_id=member.id)
        return member

    def update_profile(self, staff_id: str, **changes: Any) -> StaffMember:
        """
        Correct identity details or base pay.

        The held balance is not editable here; only payroll moves it.
        """
        unknown = set(changes) - EDITABLE_STAFF_FIELDS
        if unknown:
            field = sorted(unknown)[0]
            raise ValidationError(f"Field cannot be edited: {field}", field=field)

        if "name" in changes:
            changes["name"] = self._require_text(changes["name"], "name", "Name")
        if "phone" in changes:
            changes["phone"] = self._require_text(changes["phone"], "phone", "Phone")
        if "weekly_base_pay" in changes:
            changes["weekly_base_pay"] = self._positive_pay(changes["weekly_base_pay"])

        with self._ledger.lock:
            index = self._index_of(staff_id)
            if index is None:
                raise NotFoundError("staff", staff_id)
            current = self._staff[index]
            try:
                updated = StaffMember.model_validate(
                    {**current.model_dump(), **changes}
                )
            except PydanticValidationError as e:
                raise ValidationError.from_pydantic(e)
            self._staff[index] = updated

        return updated

    # -------------------------------------------------------------------------
    # Payroll transitions
    # -------------------------------------------------------------------------

    def _commit(self, transaction: Transaction, updated: StaffMember) -> None:
        """Add the transaction and swap the staff record, or do neither."""
        self._ledger.add(transaction)
        try:
            index = self._index_of(updated.id)
            if index is None:
                raise NotFoundError("staff", updated.id)
            self._staff[index] = updated
        except Exception:
            self._ledger.remove(transaction.id)
            logger.error(
                "payroll_rolled_back",
                staff_id=updated.id,
                transaction_id=transaction.id,
            )
            raise

    def process_weekly_pay(self, staff_id: str) -> PayrollResult:
        """
        Pay 40% of the weekly base pay now and hold 60%.

        Raises:
            NotFoundError: unknown staff id
        """
        with self._ledger.lock:
            member = self.get(staff_id)
            paid_now, held = self.split_weekly_pay(member.weekly_base_pay)

            transaction = new_transaction(
                amount=paid_now,
                category=WEEKLY_PAY_CATEGORY,
                transaction_type=TransactionType.EXPENSE,
                payment_method=PaymentMethod.CASH,
                notes=(
                    f"Weekly {self._percent(self._paid_now_fraction)} pay for "
                    f"{member.name}. Held: {self._currency}{held}"
                ),
                staff_id=member.id,
            )
            updated = member.model_copy(
                update={"total_held_balance": member.total_held_balance + held}
            )
            self._commit(transaction, updated)

        logger.info(
            "weekly_pay_processed",
            staff_id=member.id,
            paid_now=str(paid_now),
            held=str(held),
        )
        return PayrollResult(
            outcome=PayrollOutcome.APPLIED,
            transaction=transaction,
            staff=updated,
        )

    def settle_monthly_hold(self, staff_id: str) -> PayrollResult:
        """
        Pay out everything held and reset the balance to zero.

        Nothing held: returns a NO_OP result and writes nothing.

        Raises:
            NotFoundError: unknown staff id
        """
        with self._ledger.lock:
            member = self.get(staff_id)
            amount = member.total_held_balance
            if amount <= 0:
                logger.info("settlement_skipped", staff_id=member.id)
                return PayrollResult(outcome=PayrollOutcome.NO_OP, staff=member)

            transaction = new_transaction(
                amount=amount,
                category=MONTH_END_CATEGORY,
                transaction_type=TransactionType.EXPENSE,
                payment_method=PaymentMethod.CASH,
                notes=(
                    f"Month-end settlement (held {self._percent(self._held_fraction)}) "
                    f"for {member.name}"
                ),
                staff_id=member.id,
            )
            updated = member.model_copy(update={"total_held_balance": Decimal("0")})
            self._commit(transaction, updated)

        logger.info("monthly_hold_settled", staff_id=member.id, amount=str(amount))
        return PayrollResult(
            outcome=PayrollOutcome.APPLIED,
            transaction=transaction,
            staff=updated,
        )

    def revert(self, transaction: Transaction, previous: StaffMember) -> None:
        """
        Undo an applied payroll step: drop its transaction and put the
        staff record back as it was before.
        """
        with self._ledger.lock:
            self._ledger.remove(transaction.id)
            index = self._index_of(previous.id)
            if index is None:
                raise NotFoundError("staff", previous.id)
            self._staff[index] = previous

        logger.warning(
            "payroll_reverted",
            staff_id=previous.id,
            transaction_id=transaction.id,
        )

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    def load(self, staff: Iterable[StaffMember]) -> None:
        """Replace the staff collection with a persisted snapshot."""
        loaded = list(staff)
        ids = [member.id for member in loaded]
        if len(ids) != len(set(ids)):
            raise ValidationError("Duplicate staff id in snapshot", field="id")
        with self._ledger.lock:
            self._staff = loaded

    def list(self) -> list[StaffMember]:
        """Staff in registration order (a copy)."""
        with self._ledger.lock:
            return list(self._staff)
