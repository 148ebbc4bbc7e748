"""Ledger entities - immutable Transaction and Account values.

Every transition returns a fresh value; the receiver is never mutated, so
a transaction held by several callers cannot change under any of them.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID, uuid4

from finance_ledger.config import settings
from finance_ledger.models import (
    OPEN_STATUSES,
    SETTLED_STATUSES,
    AccountType,
    PaymentMethod,
    TransactionStatus,
    TransactionType,
)

CENT = Decimal("0.01")


class LedgerError(Exception):
    """Base exception for ledger errors."""

    pass


class NotFoundError(LedgerError):
    """A referenced ledger record does not exist."""

    pass


class AccountNotFoundError(NotFoundError):
    """Account not found error."""

    pass


class TransactionNotFoundError(NotFoundError):
    """Transaction not found error."""

    pass


class InsufficientFundsError(LedgerError):
    """Debit exceeds the available balance."""

    def __init__(self, account_id: UUID, balance: Decimal, amount: Decimal) -> None:
        super().__init__(f"Insufficient funds in account {account_id}: balance={balance}, requested={amount}")
        self.account_id = account_id
        self.balance = balance
        self.amount = amount


class InvalidStateError(LedgerError):
    """Illegal status transition."""

    pass


@dataclass(frozen=True)
class Violation:
    """A single field-level problem."""

    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


class ValidationError(LedgerError):
    """One or more violations, reported together."""

    def __init__(self, violations: list[Violation]) -> None:
        self.violations = list(violations)
        super().__init__("; ".join(str(v) for v in self.violations) or "Validation failed")


def to_money(value: Decimal | int | str) -> Decimal:
    """Quantize a value to cents."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(amount: Decimal, currency: str) -> str:
    """Render an amount as ``"<CCY> 1,234.56"``."""
    return f"{currency} {to_money(amount):,.2f}"


def _now() -> datetime:
    return datetime.now(UTC)


# Allowed status moves. Settled -> pending is the only backward edge.
_TRANSITIONS: dict[TransactionStatus, frozenset[TransactionStatus]] = {
    TransactionStatus.PENDING: frozenset(
        {
            TransactionStatus.RECEIVED,
            TransactionStatus.PAID,
            TransactionStatus.OVERDUE,
            TransactionStatus.CANCELLED,
        }
    ),
    TransactionStatus.OVERDUE: frozenset(
        {TransactionStatus.RECEIVED, TransactionStatus.PAID, TransactionStatus.CANCELLED}
    ),
    TransactionStatus.RECEIVED: frozenset({TransactionStatus.PENDING}),
    TransactionStatus.PAID: frozenset({TransactionStatus.PENDING}),
    TransactionStatus.CANCELLED: frozenset(),
}


def can_transition(current: TransactionStatus, target: TransactionStatus) -> bool:
    """Return True if the status state machine allows ``current -> target``."""
    return target in _TRANSITIONS[current]


@dataclass(frozen=True)
class Transaction:
    """A revenue or expense entry tied to an account."""

    description: str
    amount: Decimal
    type: TransactionType
    category: str
    account_id: UUID
    transaction_date: date
    status: TransactionStatus = TransactionStatus.PENDING
    due_date: date | None = None
    payment_date: date | None = None
    client_id: UUID | None = None
    supplier_id: UUID | None = None
    cost_center: str | None = None
    reference_code: str | None = None
    payment_method: PaymentMethod | None = None
    installment_count: int = 1
    notes: str | None = None
    attachments: tuple[str, ...] = ()
    bank_reference: str | None = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValidationError([Violation("amount", f"Transaction amount must be positive, got {self.amount}")])
        if self.due_date is not None and self.due_date < self.transaction_date:
            raise ValidationError([Violation("due_date", "Due date must not precede the transaction date")])

    # Read accessors

    @property
    def is_paid(self) -> bool:
        return self.status in SETTLED_STATUSES

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES

    @property
    def is_cancelled(self) -> bool:
        return self.status == TransactionStatus.CANCELLED

    @property
    def is_revenue(self) -> bool:
        return self.type == TransactionType.REVENUE

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE

    @property
    def settled_status(self) -> TransactionStatus:
        """Status this transaction takes once settled."""
        return TransactionStatus.RECEIVED if self.is_revenue else TransactionStatus.PAID

    def is_overdue(self, today: date | None = None) -> bool:
        if self.due_date is None:
            return False
        return self.due_date < (today or date.today()) and self.status == TransactionStatus.PENDING

    def formatted_amount(self, currency: str | None = None) -> str:
        return format_money(self.amount, currency or settings.base_currency)

    # Transitions

    def _touch(self, **changes: object) -> Transaction:
        return replace(self, updated_at=_now(), **changes)

    def _require_not_cancelled(self, action: str) -> None:
        if self.is_cancelled:
            raise InvalidStateError(f"Cannot {action} cancelled transaction {self.id}")

    def _require_transition(self, target: TransactionStatus) -> None:
        if not can_transition(self.status, target):
            raise InvalidStateError(
                f"Transaction {self.id} cannot move from {self.status.value} to {target.value}"
            )

    def mark_as_paid(self, payment_date: date | None = None) -> Transaction:
        """Settle: received for revenue, paid for expense."""
        self._require_not_cancelled("settle")
        return self._touch(status=self.settled_status, payment_date=payment_date or date.today())

    def mark_as_overdue(self) -> Transaction:
        self._require_not_cancelled("mark overdue")
        self._require_transition(TransactionStatus.OVERDUE)
        return self._touch(status=TransactionStatus.OVERDUE)

    def mark_as_pending(self) -> Transaction:
        """Revert a settlement."""
        self._require_not_cancelled("revert")
        self._require_transition(TransactionStatus.PENDING)
        return self._touch(status=TransactionStatus.PENDING, payment_date=None)

    def cancel(self) -> Transaction:
        self._require_not_cancelled("cancel")
        self._require_transition(TransactionStatus.CANCELLED)
        return self._touch(status=TransactionStatus.CANCELLED)

    def update_notes(self, notes: str | None) -> Transaction:
        self._require_not_cancelled("update notes of")
        return self._touch(notes=notes)

    def add_attachment(self, attachment: str) -> Transaction:
        self._require_not_cancelled("attach to")
        return self._touch(attachments=(*self.attachments, attachment))

    def with_fields(
        self,
        *,
        category: str | None = None,
        cost_center: str | None = None,
        notes: str | None = None,
    ) -> Transaction:
        """Apply bulk-editable field changes; None leaves a field untouched."""
        self._require_not_cancelled("edit")
        changes: dict[str, object] = {}
        if category is not None:
            changes["category"] = category
        if cost_center is not None:
            changes["cost_center"] = cost_center
        if notes is not None:
            changes["notes"] = notes
        return self._touch(**changes) if changes else self

    def with_bank_reference(self, reference: str | None) -> Transaction:
        self._require_not_cancelled("reconcile")
        return self._touch(bank_reference=reference)

    def transition_to(self, status: TransactionStatus, *, payment_date: date | None = None) -> Transaction:
        """Dispatch to the transition named by ``status``."""
        if status in SETTLED_STATUSES:
            if status != self.settled_status:
                raise InvalidStateError(
                    f"Transaction {self.id} of type {self.type.value} cannot be marked {status.value}"
                )
            return self.mark_as_paid(payment_date)
        if status == TransactionStatus.PENDING:
            return self.mark_as_pending()
        if status == TransactionStatus.OVERDUE:
            return self.mark_as_overdue()
        return self.cancel()


@dataclass(frozen=True)
class Account:
    """A balance-holding account."""

    name: str
    type: AccountType
    balance: Decimal = Decimal("0.00")
    is_active: bool = True
    bank: str | None = None
    currency: str = field(default_factory=lambda: settings.base_currency)
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    @property
    def formatted_balance(self) -> str:
        return format_money(self.balance, self.currency)

    def can_debit(self, amount: Decimal) -> bool:
        return self.balance >= amount

    def credit(self, amount: Decimal) -> Account:
        if amount <= 0:
            raise LedgerError(f"Credit amount must be positive, got {amount}")
        return replace(self, balance=to_money(self.balance + amount), updated_at=_now())

    def debit(self, amount: Decimal, *, allow_overdraft: bool = False) -> Account:
        if amount <= 0:
            raise LedgerError(f"Debit amount must be positive, got {amount}")
        if not allow_overdraft and not self.can_debit(amount):
            raise InsufficientFundsError(self.id, self.balance, amount)
        return replace(self, balance=to_money(self.balance - amount), updated_at=_now())

    def apply_settlement(self, transaction: Transaction) -> Account:
        """Credit revenue, debit expense."""
        if transaction.is_revenue:
            return self.credit(transaction.amount)
        return self.debit(transaction.amount)

    def reverse_settlement(self, transaction: Transaction) -> Account:
        """Undo :meth:`apply_settlement` for a reverted transaction."""
        if transaction.is_revenue:
            return self.debit(transaction.amount)
        return self.credit(transaction.amount)

    def deactivate(self) -> Account:
        return replace(self, is_active=False, updated_at=_now())


# =============================================================================
# Category registry
# =============================================================================

DEFAULT_CATEGORIES: dict[TransactionType, dict[str, str]] = {
    TransactionType.REVENUE: {
        "revenue_services": "Service revenue",
        "revenue_products": "Product revenue",
        "revenue_other": "Other revenue",
    },
    TransactionType.EXPENSE: {
        "expense_operational": "Operational expenses",
        "expense_administrative": "Administrative expenses",
        "expense_payroll": "Payroll expenses",
        "expense_marketing": "Marketing expenses",
        "expense_technology": "Technology expenses",
        "expense_other": "Other expenses",
    },
}


class CategoryRegistry:
    """Categories keyed by transaction type.

    Custom categories are accepted as long as they carry the type tag
    (``revenue_`` / ``expense_``).
    """

    def __init__(self, categories: Mapping[TransactionType, Mapping[str, str]] | None = None) -> None:
        source = categories if categories is not None else DEFAULT_CATEGORIES
        self._categories: dict[TransactionType, dict[str, str]] = {
            txn_type: dict(source.get(txn_type, {})) for txn_type in TransactionType
        }

    @staticmethod
    def tag_for(txn_type: TransactionType) -> str:
        return f"{txn_type.value}_"

    def register(self, txn_type: TransactionType, key: str, label: str | None = None) -> None:
        if not self.is_compatible(key, txn_type):
            raise LedgerError(f"Category {key!r} must start with {self.tag_for(txn_type)!r}")
        self._categories[txn_type][key] = label or key

    def is_compatible(self, category: str, txn_type: TransactionType) -> bool:
        return category.startswith(self.tag_for(txn_type)) and len(category) > len(self.tag_for(txn_type))

    def categories_for(self, txn_type: TransactionType) -> dict[str, str]:
        return dict(self._categories[txn_type])

    def label(self, category: str) -> str:
        for entries in self._categories.values():
            if category in entries:
                return entries[category]
        return category

    def __iter__(self) -> Iterator[str]:
        for entries in self._categories.values():
            yield from entries


default_registry = CategoryRegistry()
