"""Pydantic schemas for ledger transactions and accounts.

Business rules (positive amounts, category tags, installment range) are
checked by the creation service so every violation is reported together;
these schemas only enforce shape.
"""

import enum
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from finance_ledger.models import AccountType, PaymentMethod, TransactionStatus, TransactionType
from finance_ledger.schemas.base import BaseResponse


class RecurrenceFrequency(str, enum.Enum):
    """Calendar cadence of a recurring series."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMIANNUAL = "semiannual"
    ANNUAL = "annual"


class RecurrenceSpec(BaseModel):
    frequency: RecurrenceFrequency
    repeat_count: int


class TransactionCreate(BaseModel):
    """Schema for creating one transaction, an installment plan, or a recurring series."""

    description: str = ""
    amount: Decimal
    type: TransactionType
    category: str = ""
    account_id: UUID | None = None
    transaction_date: date | None = None
    due_date: date | None = None
    client_id: UUID | None = None
    supplier_id: UUID | None = None
    cost_center: str | None = None
    reference_code: str | None = None
    payment_method: PaymentMethod | None = None
    installment_count: int = 1
    recurrence: RecurrenceSpec | None = None
    is_paid: bool = False
    payment_date: date | None = None
    notes: str | None = None
    attachments: list[str] = Field(default_factory=list)


class TransactionResponse(BaseResponse):
    id: UUID
    description: str
    amount: Decimal = Field(gt=0)
    type: TransactionType
    category: str
    status: TransactionStatus
    account_id: UUID
    transaction_date: date
    due_date: date | None = None
    payment_date: date | None = None
    client_id: UUID | None = None
    supplier_id: UUID | None = None
    cost_center: str | None = None
    reference_code: str | None = None
    payment_method: PaymentMethod | None = None
    installment_count: int
    notes: str | None = None
    attachments: list[str] = Field(default_factory=list)
    bank_reference: str | None = None
    created_at: datetime
    updated_at: datetime


class AccountResponse(BaseResponse):
    id: UUID
    name: str
    type: AccountType
    bank: str | None = None
    currency: str
    balance: Decimal
    is_active: bool


class TransactionCreateResponse(BaseModel):
    success: bool
    transactions: list[TransactionResponse]
    account: AccountResponse | None = None
    errors: list[str] = Field(default_factory=list)


class BulkUpdateRequest(BaseModel):
    """Status and/or field changes applied to a batch of transactions."""

    ids: list[UUID]
    # Kept as a plain string so an unknown value is reported as a violation.
    status: str | None = None
    category: str | None = None
    cost_center: str | None = None
    notes: str | None = None
    payment_date: date | None = None


class BulkUpdateResponse(BaseModel):
    success: bool
    updated_count: int
    failed_ids: list[UUID] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
