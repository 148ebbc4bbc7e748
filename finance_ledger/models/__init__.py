"""SQLAlchemy models package."""

from finance_ledger.models.account import AccountRow, AccountType
from finance_ledger.models.transaction import (
    OPEN_STATUSES,
    SETTLED_STATUSES,
    PaymentMethod,
    TransactionRow,
    TransactionStatus,
    TransactionType,
)

__all__ = [
    "OPEN_STATUSES",
    "SETTLED_STATUSES",
    "AccountRow",
    "AccountType",
    "PaymentMethod",
    "TransactionRow",
    "TransactionStatus",
    "TransactionType",
]
