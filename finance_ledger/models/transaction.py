"""Ledger transaction model."""

from __future__ import annotations

import enum
from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import (
    DECIMAL,
    CheckConstraint,
    Date,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from finance_ledger.database import Base
from finance_ledger.models.base import TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from finance_ledger.models.account import AccountRow


class TransactionType(str, enum.Enum):
    """Revenue (money in) or expense (money out)."""

    REVENUE = "revenue"
    EXPENSE = "expense"


class TransactionStatus(str, enum.Enum):
    """Lifecycle status of a ledger transaction."""

    PENDING = "pending"
    RECEIVED = "received"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class PaymentMethod(str, enum.Enum):
    """How a settled transaction was paid."""

    CASH = "cash"
    PIX = "pix"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    BANK_TRANSFER = "bank_transfer"
    BOLETO = "boleto"


SETTLED_STATUSES = frozenset({TransactionStatus.RECEIVED, TransactionStatus.PAID})
OPEN_STATUSES = frozenset({TransactionStatus.PENDING, TransactionStatus.OVERDUE})


class TransactionRow(Base, UUIDMixin, TimestampMixin):
    """
    Persisted revenue or expense record tied to an account.

    Amount must always be positive; the direction of the balance effect is
    given by ``type``.
    """

    __tablename__ = "ledger_transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="positive_amount"),
        CheckConstraint("installment_count BETWEEN 1 AND 12", name="installment_range"),
        CheckConstraint("due_date IS NULL OR due_date >= transaction_date", name="due_after_transaction"),
    )

    description: Mapped[str] = mapped_column(String(255), nullable=False)
    amount: Mapped[Decimal] = mapped_column(DECIMAL(18, 2), nullable=False)
    type: Mapped[TransactionType] = mapped_column(
        Enum(
            TransactionType,
            name="transaction_type_enum",
            values_callable=lambda obj: [e.value for e in obj],
        ),
        nullable=False,
    )
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[TransactionStatus] = mapped_column(
        Enum(
            TransactionStatus,
            name="transaction_status_enum",
            values_callable=lambda obj: [e.value for e in obj],
        ),
        nullable=False,
        default=TransactionStatus.PENDING,
        index=True,
    )
    account_id: Mapped[UUID] = mapped_column(
        PGUUID(as_uuid=True), ForeignKey("accounts.id"), nullable=False, index=True
    )
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    payment_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    client_id: Mapped[UUID | None] = mapped_column(PGUUID(as_uuid=True), nullable=True)
    supplier_id: Mapped[UUID | None] = mapped_column(PGUUID(as_uuid=True), nullable=True)
    cost_center: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reference_code: Mapped[str | None] = mapped_column(String(100), nullable=True)
    payment_method: Mapped[PaymentMethod | None] = mapped_column(
        Enum(
            PaymentMethod,
            name="payment_method_enum",
            values_callable=lambda obj: [e.value for e in obj],
        ),
        nullable=True,
    )
    installment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    attachments: Mapped[list[str]] = mapped_column(JSONB, nullable=False, default=list)
    bank_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    account: Mapped[AccountRow] = relationship("AccountRow", back_populates="transactions")

    def __repr__(self) -> str:
        return f"<TransactionRow {self.description} {self.amount} ({self.status.value})>"
