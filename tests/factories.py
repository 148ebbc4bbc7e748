"""Test data factories using factory_boy pattern.

Usage:
    account = AccountFactory.build(balance=Decimal("1000.00"))
    txn = TransactionFactory.build(account_id=account.id, amount=Decimal("50.00"))
    request = TransactionCreateFactory.build(account_id=account.id, is_paid=True)
"""

from datetime import UTC, date, datetime
from decimal import Decimal
from uuid import uuid4

import factory

from finance_ledger.models import AccountType, PaymentMethod, TransactionStatus, TransactionType
from finance_ledger.schemas.transaction import TransactionCreate
from finance_ledger.services.ledger import Account, Transaction
from finance_ledger.services.statement import StatementLine


class AccountFactory(factory.Factory):
    class Meta:
        model = Account

    id = factory.LazyFunction(uuid4)
    name = factory.Sequence(lambda n: f"Account {n}")
    type = AccountType.CHECKING
    balance = Decimal("1000.00")
    is_active = True
    currency = "BRL"
    created_at = factory.LazyFunction(lambda: datetime.now(UTC))
    updated_at = factory.LazyFunction(lambda: datetime.now(UTC))


class TransactionFactory(factory.Factory):
    class Meta:
        model = Transaction

    id = factory.LazyFunction(uuid4)
    description = factory.Sequence(lambda n: f"Transaction {n}")
    amount = Decimal("100.00")
    type = TransactionType.EXPENSE
    category = factory.LazyAttribute(
        lambda o: "revenue_services" if o.type == TransactionType.REVENUE else "expense_operational"
    )
    status = TransactionStatus.PENDING
    account_id = factory.LazyFunction(uuid4)
    transaction_date = date(2025, 3, 1)
    created_at = factory.LazyFunction(lambda: datetime.now(UTC))
    updated_at = factory.LazyFunction(lambda: datetime.now(UTC))


class TransactionCreateFactory(factory.Factory):
    class Meta:
        model = TransactionCreate

    description = factory.Sequence(lambda n: f"Invoice {n}")
    amount = Decimal("500.00")
    type = TransactionType.EXPENSE
    category = factory.LazyAttribute(
        lambda o: "revenue_services" if o.type == TransactionType.REVENUE else "expense_operational"
    )
    account_id = factory.LazyFunction(uuid4)
    transaction_date = date(2025, 1, 15)
    payment_method = PaymentMethod.PIX
    is_paid = False


class StatementLineFactory(factory.Factory):
    class Meta:
        model = StatementLine

    line_number = factory.Sequence(lambda n: n + 1)
    date = date(2025, 3, 1)
    description = factory.Sequence(lambda n: f"Statement entry {n}")
    amount = Decimal("-100.00")
    balance = Decimal("900.00")
    reference = None
