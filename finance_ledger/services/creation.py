"""Transaction creation: validation, installment/recurrence expansion, settlement."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from dateutil.relativedelta import relativedelta

from finance_ledger.config import settings
from finance_ledger.logger import get_logger
from finance_ledger.models import TransactionStatus, TransactionType
from finance_ledger.schemas.transaction import RecurrenceFrequency, TransactionCreate
from finance_ledger.services.ledger import (
    CENT,
    Account,
    AccountNotFoundError,
    CategoryRegistry,
    InsufficientFundsError,
    Transaction,
    default_registry,
    to_money,
)
from finance_ledger.services.repository import LedgerRepository
from finance_ledger.services.validation import ValidationResult

logger = get_logger(__name__)

MAX_DESCRIPTION_LENGTH = 255

FREQUENCY_MONTHS: dict[RecurrenceFrequency, int] = {
    RecurrenceFrequency.MONTHLY: 1,
    RecurrenceFrequency.QUARTERLY: 3,
    RecurrenceFrequency.SEMIANNUAL: 6,
    RecurrenceFrequency.ANNUAL: 12,
}


@dataclass(frozen=True)
class CreationResult:
    transactions: list[Transaction]
    account: Account

    @property
    def total_amount(self) -> Decimal:
        return sum((txn.amount for txn in self.transactions), Decimal("0.00"))


def _has_at_most_cents(amount: Decimal) -> bool:
    # Exponent check instead of quantize: quantize overflows the context on huge values.
    return amount.normalize().as_tuple().exponent >= -2


def validate_transaction_request(
    data: TransactionCreate, registry: CategoryRegistry = default_registry
) -> ValidationResult:
    """Collect every rule violation of a creation request."""
    result = ValidationResult()

    description = data.description.strip()
    if result.check(bool(description), "description", "Description is required"):
        result.check(
            len(description) <= MAX_DESCRIPTION_LENGTH,
            "description",
            f"Description must be at most {MAX_DESCRIPTION_LENGTH} characters",
        )

    amount_in_range = False
    if result.check(data.amount > 0, "amount", "Amount must be greater than zero"):
        amount_in_range = result.check(
            data.amount <= settings.max_transaction_amount,
            "amount",
            f"Amount must not exceed {settings.max_transaction_amount}",
        )
        result.check(_has_at_most_cents(data.amount), "amount", "Amount must have at most 2 decimal places")

    category = data.category.strip()
    if result.check(bool(category), "category", "Category is required"):
        result.check(
            registry.is_compatible(category, data.type),
            "category",
            f"Category must be a {data.type.value} category ({registry.tag_for(data.type)}*)",
        )

    result.check(data.account_id is not None, "account_id", "Account is required")
    if result.check(data.transaction_date is not None, "transaction_date", "Transaction date is required"):
        if data.due_date is not None:
            result.check(
                data.due_date >= data.transaction_date,
                "due_date",
                "Due date must not be before the transaction date",
            )

    if data.client_id is not None:
        result.check(data.type == TransactionType.REVENUE, "client_id", "Client only applies to revenue")
    if data.supplier_id is not None:
        result.check(data.type == TransactionType.EXPENSE, "supplier_id", "Supplier only applies to expenses")

    if result.check(
        1 <= data.installment_count <= settings.max_installments,
        "installment_count",
        f"Installment count must be between 1 and {settings.max_installments}",
    ):
        if data.installment_count > 1 and amount_in_range:
            result.check(
                to_money(data.amount) >= CENT * data.installment_count,
                "installment_count",
                "Amount is too small to split into that many installments",
            )

    if data.recurrence is not None:
        result.check(
            1 <= data.recurrence.repeat_count <= settings.max_recurrences,
            "recurrence.repeat_count",
            f"Repeat count must be between 1 and {settings.max_recurrences}",
        )

    if data.is_paid:
        result.check(
            data.payment_method is not None,
            "payment_method",
            "Payment method is required for paid transactions",
        )

    return result


def split_installments(amount: Decimal, count: int) -> list[Decimal]:
    """Split ``amount`` into ``count`` parts; remainder cents go to the first part.

    >>> split_installments(Decimal("100.00"), 3)
    [Decimal('33.34'), Decimal('33.33'), Decimal('33.33')]
    """
    if count < 1:
        raise ValueError("count must be at least 1")
    cents = int(to_money(amount) * 100)
    base, remainder = divmod(cents, count)
    parts = [base] * count
    parts[0] += remainder
    return [(Decimal(part) / 100).quantize(CENT) for part in parts]


def _with_suffix(description: str, index: int, total: int) -> str:
    suffix = f" ({index}/{total})"
    return description[: MAX_DESCRIPTION_LENGTH - len(suffix)].rstrip() + suffix


def expand_request(data: TransactionCreate, *, today: date | None = None) -> list[Transaction]:
    """Build the ledger records described by a validated request.

    A recurrence takes precedence over installments. All dates are stepped
    from the base date, so month-end days are clamped without drifting.
    """
    required = ValidationResult()
    required.check(data.account_id is not None, "account_id", "Account is required")
    required.check(data.transaction_date is not None, "transaction_date", "Transaction date is required")
    required.raise_if_invalid()

    description = data.description.strip()
    status = TransactionStatus.PENDING
    payment_date = None
    if data.is_paid:
        status = TransactionStatus.RECEIVED if data.type == TransactionType.REVENUE else TransactionStatus.PAID
        payment_date = data.payment_date or today or date.today()

    common = {
        "type": data.type,
        "category": data.category.strip(),
        "account_id": data.account_id,
        "status": status,
        "payment_date": payment_date,
        "client_id": data.client_id,
        "supplier_id": data.supplier_id,
        "cost_center": data.cost_center,
        "reference_code": data.reference_code,
        "payment_method": data.payment_method,
        "notes": data.notes,
        "attachments": tuple(data.attachments),
    }

    if data.recurrence is not None:
        months = FREQUENCY_MONTHS[data.recurrence.frequency]
        total = data.recurrence.repeat_count
        records = []
        for index in range(total):
            step = relativedelta(months=months * index)
            records.append(
                Transaction(
                    description=_with_suffix(description, index + 1, total) if total > 1 else description,
                    amount=to_money(data.amount),
                    transaction_date=data.transaction_date + step,
                    due_date=data.due_date + step if data.due_date else None,
                    installment_count=1,
                    **common,
                )
            )
        return records

    count = data.installment_count
    if count == 1:
        return [
            Transaction(
                description=description,
                amount=to_money(data.amount),
                transaction_date=data.transaction_date,
                due_date=data.due_date,
                installment_count=1,
                **common,
            )
        ]

    first_due = data.due_date or data.transaction_date
    return [
        Transaction(
            description=_with_suffix(description, index + 1, count),
            amount=part,
            transaction_date=data.transaction_date,
            due_date=first_due + relativedelta(months=index),
            installment_count=1,
            **common,
        )
        for index, part in enumerate(split_installments(data.amount, count))
    ]


async def create_transaction(
    repo: LedgerRepository,
    data: TransactionCreate,
    *,
    registry: CategoryRegistry = default_registry,
    today: date | None = None,
) -> CreationResult:
    """Validate, expand, persist, and settle a creation request.

    Raises:
        ValidationError: one or more request violations (all collected).
        AccountNotFoundError: the account does not exist.
        InsufficientFundsError: a paid expense exceeds the account balance.
    """
    validation = validate_transaction_request(data, registry)

    async with repo.atomic():
        account = None
        if data.account_id is not None:
            account = await repo.get_account(data.account_id, for_update=True)
            if account is not None and not account.is_active:
                validation.add("account_id", "Account is not active")
        validation.raise_if_invalid()
        if account is None:
            raise AccountNotFoundError(f"Account {data.account_id} not found")

        transactions = expand_request(data, today=today)
        total = sum((txn.amount for txn in transactions), Decimal("0.00"))

        if data.is_paid:
            if data.type == TransactionType.EXPENSE:
                if not account.can_debit(total):
                    logger.warning(
                        "Insufficient funds for paid expense",
                        account_id=str(account.id),
                        balance=str(account.balance),
                        amount=str(total),
                    )
                    raise InsufficientFundsError(account.id, account.balance, total)
                account = account.debit(total)
            else:
                account = account.credit(total)

        await repo.add_transactions(transactions)
        if data.is_paid:
            await repo.update_account(account)

    logger.info(
        "Transactions created",
        account_id=str(account.id),
        count=len(transactions),
        total=str(total),
        is_paid=data.is_paid,
    )
    return CreationResult(transactions=transactions, account=account)
