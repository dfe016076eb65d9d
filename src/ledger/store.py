"""
Ledger Store

Owns the shop's transactions and is the single source of truth for every
figure derived from them.

GUARANTEES:
- Newest entries come first
- Amounts are non-negative, finite Decimals
- An id is never handed out twice, even after the entry is deleted
- Callers only ever get copies of the list; records themselves are frozen
- Each mutation happens under one re-entrant lock, which the payroll
  ledger also takes so its transaction + balance change lands together
"""

import threading
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional, Union

import structlog
from pydantic import ValidationError as PydanticValidationError

from src.ledger.errors import NotFoundError, ValidationError
from src.models.ledger import (
    PaymentMethod,
    Transaction,
    TransactionType,
    category_conflicts,
)


logger = structlog.get_logger(__name__)

AmountInput = Union[str, int, float, Decimal]


def parse_amount(
    value: Optional[AmountInput],
    field: str = "amount",
    max_amount: Optional[Decimal] = None,
) -> Decimal:
    """
    Turn form input into a money Decimal.

    Raises ValidationError for blank, non-numeric, non-finite or
    negative input. Floats go through str() so 0.1 stays 0.1.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field.replace('_', ' ').capitalize()} is required", field=field)
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {field}: {value!r}", field=field)

    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid {field}: {value!r} is not a number", field=field)

    check_amount(amount, field=field, max_amount=max_amount)
    return amount


def check_amount(
    amount: Decimal,
    field: str = "amount",
    max_amount: Optional[Decimal] = None,
) -> None:
    """Reject amounts that are not finite, non-negative numbers."""
    if not isinstance(amount, Decimal) or not amount.is_finite():
        raise ValidationError(f"Invalid {field}: must be a finite number", field=field)
    if amount < 0:
        raise ValidationError(f"Invalid {field}: cannot be negative", field=field)
    if max_amount is not None and amount > max_amount:
        raise ValidationError(
            f"Invalid {field}: {amount} is above the limit of {max_amount}",
            field=field,
        )


def new_transaction(
    amount: Optional[AmountInput],
    category: str,
    transaction_type: Union[TransactionType, str],
    payment_method: Union[PaymentMethod, str] = PaymentMethod.CASH,
    notes: Optional[str] = None,
    staff_id: Optional[str] = None,
    transaction_id: Optional[str] = None,
    date: Optional[datetime] = None,
    max_amount: Optional[Decimal] = None,
) -> Transaction:
    """
    Build a Transaction from raw entry-form input.

    A fresh id and the current time are assigned unless given, so an edit
    passes the original `transaction_id` and `date` to keep them.
    """
    fields = {
        "amount": parse_amount(amount, max_amount=max_amount),
        "category": category,
        "type": transaction_type,
        "payment_method": payment_method,
        "notes": notes,
        "staff_id": staff_id,
    }
    if transaction_id is not None:
        fields["id"] = transaction_id
    if date is not None:
        fields["date"] = date

    try:
        return Transaction.model_validate(fields)
    except PydanticValidationError as e:
        raise ValidationError.from_pydantic(e)


class LedgerStore:
    """
    In-memory, ordered collection of transactions.

    Persistence is not done here; the service saves a snapshot after
    every mutation.
    """

    def __init__(
        self,
        transactions: Optional[Iterable[Transaction]] = None,
        max_amount: Optional[Decimal] = None,
    ):
        self._transactions: list[Transaction] = []
        self._used_ids: set[str] = set()
        self._max_amount = max_amount
        self._lock = threading.RLock()
        if transactions is not None:
            self.load(transactions)

    @property
    def lock(self) -> threading.RLock:
        """Lock shared with operations that must mutate atomically with the store."""
        return self._lock

    def __len__(self) -> int:
        return len(self._transactions)

    def __contains__(self, transaction_id: object) -> bool:
        with self._lock:
            return any(t.id == transaction_id for t in self._transactions)

    def _validate(self, transaction: Transaction) -> None:
        if not isinstance(transaction, Transaction):
            raise ValidationError(
                f"Expected a Transaction, got {type(transaction).__name__}"
            )
        check_amount(transaction.amount, max_amount=self._max_amount)
        if category_conflicts(transaction.category, transaction.type):
            raise ValidationError(
                f"Category '{transaction.category}' cannot be used for "
                f"{transaction.type.value} transactions",
                field="category",
            )

    def _index_of(self, transaction_id: str) -> Optional[int]:
        for index, existing in enumerate(self._transactions):
            if existing.id == transaction_id:
                return index
        return None

    def add(self, transaction: Transaction) -> Transaction:
        """
        Insert a new transaction at the front.

        Raises:
            ValidationError: bad amount or category, or the id was used before
        """
        with self._lock:
            self._validate(transaction)
            if transaction.id in self._used_ids:
                raise ValidationError(
                    f"Transaction id already used: {transaction.id}",
                    field="id",
                )
            self._transactions.insert(0, transaction)
            self._used_ids.add(transaction.id)

        logger.debug(
            "transaction_added",
            transaction_id=transaction.id,
            type=transaction.type.value,
            amount=str(transaction.amount),
        )
        return transaction

    def update(self, transaction: Transaction) -> None:
        """
        Replace the transaction with the same id, keeping its position.

        The date is stored exactly as given.

        Raises:
            NotFoundError: no transaction has this id
            ValidationError: bad amount or category
        """
        with self._lock:
            index = self._index_of(transaction.id)
            if index is None:
                raise NotFoundError("transaction", transaction.id)
            self._validate(transaction)
            self._transactions[index] = transaction

        logger.debug("transaction_updated", transaction_id=transaction.id)

    def remove(self, transaction_id: str) -> bool:
        """
        Delete a transaction. Unknown ids are ignored.

        Returns True if something was deleted.
        """
        with self._lock:
            index = self._index_of(transaction_id)
            if index is None:
                return False
            del self._transactions[index]

        logger.debug("transaction_removed", transaction_id=transaction_id)
        return True

    def get(self, transaction_id: str) -> Transaction:
        with self._lock:
            index = self._index_of(transaction_id)
            if index is None:
                raise NotFoundError("transaction", transaction_id)
            return self._transactions[index]

    def load(self, transactions: Iterable[Transaction]) -> None:
        """Replace the contents with a persisted snapshot, newest first."""
        loaded = list(transactions)
        seen: set[str] = set()
        for transaction in loaded:
            self._validate(transaction)
            if transaction.id in seen:
                raise ValidationError(
                    f"Duplicate transaction id in snapshot: {transaction.id}",
                    field="id",
                )
            seen.add(transaction.id)

        with self._lock:
            self._transactions = loaded
            self._used_ids |= seen

    def list(self) -> list[Transaction]:
        """Most-recent-first copy of all transactions."""
        with self._lock:
            return list(self._transactions)
