"""API routers package."""

from finance_ledger.routers import reconciliation, transactions

__all__ = [
    "reconciliation",
    "transactions",
]
