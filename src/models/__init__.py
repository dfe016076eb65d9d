"""
Data Models Package

This package contains all Pydantic models used in the Shop Ledger system.
All data flowing through the system must conform to these schemas.
"""

from src.models.ledger import (
    CATEGORIES,
    EXPENSE_CATEGORIES,
    INCOME_CATEGORIES,
    MONTH_END_CATEGORY,
    WEEKLY_PAY_CATEGORY,
    EscrowState,
    GeoLocation,
    LedgerTotals,
    PaymentMethod,
    PayrollOutcome,
    PayrollResult,
    ShopProfile,
    StaffMember,
    Transaction,
    TransactionType,
    TrendPoint,
    categories_for,
)
from src.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "CATEGORIES",
    "EXPENSE_CATEGORIES",
    "INCOME_CATEGORIES",
    "MONTH_END_CATEGORY",
    "WEEKLY_PAY_CATEGORY",
    "EscrowState",
    "GeoLocation",
    "LedgerTotals",
    "PaymentMethod",
    "PayrollOutcome",
    "PayrollResult",
    "ShopProfile",
    "StaffMember",
    "Transaction",
    "TransactionType",
    "TrendPoint",
    "categories_for",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
