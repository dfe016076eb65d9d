"""
Shop Ledger - Source Package

Bookkeeping for a small tea stall: daily income and expenses, staff
weekly pay with month-end held balances, and simple reports.

DESIGN PRINCIPLES:
1. The ledger store is the single source of truth
2. Every figure is recomputed, never cached
3. Money is Decimal, never negative
4. Every change is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Shop Ledger Team"
