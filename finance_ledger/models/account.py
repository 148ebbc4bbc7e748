"""Account model - the balance holder debited/credited by settled transactions."""

from __future__ import annotations

import enum
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import DECIMAL, Boolean, Enum, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from finance_ledger.config import settings
from finance_ledger.database import Base
from finance_ledger.models.base import TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from finance_ledger.models.transaction import TransactionRow


class AccountType(str, enum.Enum):
    """Kind of account holding a balance."""

    CHECKING = "checking"
    SAVINGS = "savings"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    CASH = "cash"
    INVESTMENT = "investment"
    OTHER = "other"


class AccountRow(Base, UUIDMixin, TimestampMixin):
    """
    Persisted account.

    The balance column is only written through validated credit/debit
    operations performed by the ledger services.
    """

    __tablename__ = "accounts"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[AccountType] = mapped_column(
        Enum(
            AccountType,
            name="account_type_enum",
            values_callable=lambda obj: [e.value for e in obj],
        ),
        nullable=False,
    )
    bank: Mapped[str | None] = mapped_column(String(100), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default=lambda: settings.base_currency)
    balance: Mapped[Decimal] = mapped_column(DECIMAL(18, 2), nullable=False, default=Decimal("0.00"))
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    transactions: Mapped[list[TransactionRow]] = relationship("TransactionRow", back_populates="account")

    def __repr__(self) -> str:
        return f"<AccountRow {self.name} ({self.type.value})>"
