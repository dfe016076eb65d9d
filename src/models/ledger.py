"""
Core Data Models for Shop Ledger

These models define the strict schemas for everything the ledger records:
transactions, staff members and the shop profile, plus the small report
models the aggregation engine hands back.

Money is always Decimal. Amounts are never negative and never carry
more than two decimal places (paise).

Stored records use camelCase keys (paymentMethod, staffId, weeklyBasePay...)
so a saved blob matches the ledger's data model field for field. Models
accept either camelCase or snake_case on input.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Direction of money for a ledger entry."""
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class PaymentMethod(str, Enum):
    """How the money changed hands."""
    CASH = "CASH"
    GPAY = "GPAY"
    PHONEPE = "PHONEPE"
    OTHER = "OTHER"


class EscrowState(str, Enum):
    """
    Payroll state of a staff member.

    Derived from the held balance, which stays the source of truth.
    """
    NO_ESCROW = "NO_ESCROW"    # total_held_balance == 0
    HAS_ESCROW = "HAS_ESCROW"  # total_held_balance > 0


class PayrollOutcome(str, Enum):
    """Whether a payroll step changed anything."""
    APPLIED = "applied"
    NO_OP = "no_op"


# =============================================================================
# CATEGORIES
# =============================================================================

WEEKLY_PAY_CATEGORY = "Staff - Weekly"
MONTH_END_CATEGORY = "Staff - Month End"

INCOME_CATEGORIES: tuple[str, ...] = (
    "Tea Sales",
    "Snacks",
    "Cigarettes",
    "Other Income",
)

EXPENSE_CATEGORIES: tuple[str, ...] = (
    "Milk",
    "Tea Powder",
    "Sugar",
    "Gas Cylinder",
    "Rent",
    "Electricity",
    "Snack Stock",
    WEEKLY_PAY_CATEGORY,
    MONTH_END_CATEGORY,
    "Other Expense",
)

CATEGORIES: dict[TransactionType, tuple[str, ...]] = {
    TransactionType.INCOME: INCOME_CATEGORIES,
    TransactionType.EXPENSE: EXPENSE_CATEGORIES,
}


def categories_for(transaction_type: TransactionType) -> tuple[str, ...]:
    """Known categories offered for a transaction type."""
    return CATEGORIES[TransactionType(transaction_type)]


def category_conflicts(category: str, transaction_type: TransactionType) -> bool:
    """True when `category` is a known label of the *other* transaction type."""
    transaction_type = TransactionType(transaction_type)
    opposite = (
        TransactionType.EXPENSE
        if transaction_type == TransactionType.INCOME
        else TransactionType.INCOME
    )
    wanted = category.strip().lower()
    return any(wanted == known.lower() for known in CATEGORIES[opposite])


PAISE = Decimal("0.01")


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_record_id() -> str:
    """Fresh identifier for a ledger record. Never reused."""
    return uuid4().hex


# =============================================================================
# BASE MODEL
# =============================================================================

class LedgerModel(BaseModel):
    """
    Base for every persisted ledger record.

    Records are frozen: a list handed out by the store cannot be used to
    change what the store holds.
    """
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        frozen=True,
    )

    def to_record(self) -> dict[str, Any]:
        """JSON-compatible dict with camelCase keys, as stored."""
        return self.model_dump(mode="json", by_alias=True)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# =============================================================================
# TRANSACTION
# =============================================================================

class Transaction(LedgerModel):
    """
    A single income or expense entry.

    Created by the entry form or by payroll (then `staff_id` is set).
    Edits replace the whole record but keep `id`; the caller decides
    whether `date` changes.
    """

    id: str = Field(
        default_factory=new_record_id,
        min_length=1,
        description="Unique transaction ID"
    )
    date: datetime = Field(
        default_factory=utc_now,
        description="When the money moved (UTC)"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
        description="Amount in INR"
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Category label"
    )
    type: TransactionType
    payment_method: PaymentMethod = PaymentMethod.CASH
    notes: Optional[str] = Field(
        default=None,
        max_length=1000,
        description="Free text notes"
    )
    staff_id: Optional[str] = Field(
        default=None,
        description="Staff member this payroll entry belongs to"
    )

    @field_validator('date')
    @classmethod
    def normalise_date(cls, v: datetime) -> datetime:
        """Naive timestamps are taken as UTC."""
        return _as_utc(v)

    @field_validator('notes')
    @classmethod
    def empty_notes_to_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @model_validator(mode='after')
    def validate_category_side(self) -> 'Transaction':
        """Income and expense categories are disjoint."""
        if category_conflicts(self.category, self.type):
            raise ValueError(
                f"Category '{self.category}' cannot be used for "
                f"{self.type.value} transactions"
            )
        return self

    # string annotation: the `date` field shadows the type in this class
    @property
    def day(self) -> "date":
        """UTC calendar day of the transaction."""
        return self.date.date()


# =============================================================================
# STAFF
# =============================================================================

class StaffMember(LedgerModel):
    """
    A registered staff member with the payroll escrow balance.

    `total_held_balance` only ever changes through payroll operations.
    """

    id: str = Field(default_factory=new_record_id, min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    phone: str = Field(..., min_length=1, max_length=30)
    address: str = Field(default="", max_length=500)
    aadhaar: str = Field(default="", max_length=20)
    weekly_base_pay: Decimal = Field(
        ...,
        ge=0,
        decimal_places=2,
        description="Weekly base salary in INR"
    )
    total_held_balance: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        decimal_places=2,
        description="Pay held back until month-end settlement"
    )
    joined_date: datetime = Field(default_factory=utc_now)

    @field_validator('joined_date')
    @classmethod
    def normalise_joined_date(cls, v: datetime) -> datetime:
        return _as_utc(v)

    @property
    def escrow_state(self) -> EscrowState:
        if self.total_held_balance > 0:
            return EscrowState.HAS_ESCROW
        return EscrowState.NO_ESCROW


# =============================================================================
# SHOP PROFILE
# =============================================================================

class GeoLocation(LedgerModel):
    """Shop coordinates captured during onboarding."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class ShopProfile(LedgerModel):
    """Owner and shop details plus the onboarding flag."""

    name: str = ""
    email: str = ""
    business_name: str = Field(default="", max_length=200)
    business_address: str = Field(default="", max_length=500)
    location: Optional[GeoLocation] = None
    shop_image: Optional[str] = Field(
        default=None,
        description="Base64 data URL of the shop photo"
    )
    is_authenticated: bool = False
    is_configured: bool = False


# =============================================================================
# REPORT MODELS
# =============================================================================

class LedgerTotals(BaseModel):
    """All-time income, expenses and profit."""

    income: Decimal = Decimal("0")
    expenses: Decimal = Decimal("0")

    @property
    def profit(self) -> Decimal:
        return self.income - self.expenses


class TrendPoint(BaseModel):
    """Income and expense for one calendar day."""

    day: date
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")

    @property
    def label(self) -> str:
        """Short chart label, e.g. 10/16."""
        return self.day.strftime("%m/%d")


class PayrollResult(BaseModel):
    """
    Outcome of a payroll step.

    NO_OP results carry no transaction and the unchanged staff record.
    """

    outcome: PayrollOutcome
    transaction: Optional[Transaction] = None
    staff: StaffMember

    @property
    def applied(self) -> bool:
        return self.outcome == PayrollOutcome.APPLIED
