"""Persistence collaborator used by the ledger services."""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterable, Sequence
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from datetime import date
from typing import Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from finance_ledger.models import AccountRow, TransactionRow, TransactionStatus
from finance_ledger.services.ledger import Account, Transaction


class LedgerRepository(Protocol):
    """Storage contract for transactions and accounts.

    Lookups return ``None`` when the record is absent. ``atomic()`` groups
    writes so they commit or roll back together.
    """

    async def get_transaction(self, transaction_id: UUID) -> Transaction | None: ...

    async def list_transactions(
        self,
        account_id: UUID | None = None,
        statuses: Iterable[TransactionStatus] | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[Transaction]: ...

    async def add_transactions(self, transactions: Sequence[Transaction]) -> None: ...

    async def update_transaction(self, transaction: Transaction) -> None: ...

    async def update_transactions(self, transactions: Sequence[Transaction]) -> None: ...

    async def get_account(self, account_id: UUID, *, for_update: bool = False) -> Account | None: ...

    async def update_account(self, account: Account) -> None: ...

    def atomic(self) -> AbstractAsyncContextManager[None]: ...

    async def commit(self) -> None: ...


def transaction_from_row(row: TransactionRow) -> Transaction:
    return Transaction(
        id=row.id,
        description=row.description,
        amount=row.amount,
        type=row.type,
        category=row.category,
        status=row.status,
        account_id=row.account_id,
        transaction_date=row.transaction_date,
        due_date=row.due_date,
        payment_date=row.payment_date,
        client_id=row.client_id,
        supplier_id=row.supplier_id,
        cost_center=row.cost_center,
        reference_code=row.reference_code,
        payment_method=row.payment_method,
        installment_count=row.installment_count,
        notes=row.notes,
        attachments=tuple(row.attachments or ()),
        bank_reference=row.bank_reference,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def account_from_row(row: AccountRow) -> Account:
    return Account(
        id=row.id,
        name=row.name,
        type=row.type,
        balance=row.balance,
        is_active=row.is_active,
        bank=row.bank,
        currency=row.currency,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


# Columns copied from the entity on update. Identity and created_at never change.
_TRANSACTION_FIELDS = (
    "description",
    "amount",
    "type",
    "category",
    "status",
    "account_id",
    "transaction_date",
    "due_date",
    "payment_date",
    "client_id",
    "supplier_id",
    "cost_center",
    "reference_code",
    "payment_method",
    "installment_count",
    "notes",
    "bank_reference",
    "updated_at",
)


def _apply_transaction(row: TransactionRow, transaction: Transaction) -> None:
    for name in _TRANSACTION_FIELDS:
        setattr(row, name, getattr(transaction, name))
    row.attachments = list(transaction.attachments)


class SqlLedgerRepository:
    """:class:`LedgerRepository` backed by an ``AsyncSession``.

    The repository flushes but never commits; the caller owns the session
    lifecycle.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_transaction(self, transaction_id: UUID) -> Transaction | None:
        row = await self.db.get(TransactionRow, transaction_id)
        return transaction_from_row(row) if row else None

    async def list_transactions(
        self,
        account_id: UUID | None = None,
        statuses: Iterable[TransactionStatus] | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[Transaction]:
        query = select(TransactionRow)
        if account_id is not None:
            query = query.where(TransactionRow.account_id == account_id)
        if statuses is not None:
            query = query.where(TransactionRow.status.in_(list(statuses)))
        if start_date is not None:
            query = query.where(TransactionRow.transaction_date >= start_date)
        if end_date is not None:
            query = query.where(TransactionRow.transaction_date <= end_date)
        query = query.order_by(TransactionRow.transaction_date, TransactionRow.created_at)

        result = await self.db.execute(query)
        return [transaction_from_row(row) for row in result.scalars().all()]

    async def add_transactions(self, transactions: Sequence[Transaction]) -> None:
        for transaction in transactions:
            row = TransactionRow(id=transaction.id, created_at=transaction.created_at)
            _apply_transaction(row, transaction)
            self.db.add(row)
        await self.db.flush()

    async def _get_transaction_row(self, transaction_id: UUID) -> TransactionRow:
        row = await self.db.get(TransactionRow, transaction_id)
        if row is None:
            raise LookupError(f"Transaction {transaction_id} is not persisted")
        return row

    async def update_transaction(self, transaction: Transaction) -> None:
        row = await self._get_transaction_row(transaction.id)
        _apply_transaction(row, transaction)
        await self.db.flush()

    async def update_transactions(self, transactions: Sequence[Transaction]) -> None:
        if not transactions:
            return
        ids = [txn.id for txn in transactions]
        result = await self.db.execute(select(TransactionRow).where(TransactionRow.id.in_(ids)))
        rows = {row.id: row for row in result.scalars().all()}
        for transaction in transactions:
            row = rows.get(transaction.id)
            if row is None:
                raise LookupError(f"Transaction {transaction.id} is not persisted")
            _apply_transaction(row, transaction)
        await self.db.flush()

    async def get_account(self, account_id: UUID, *, for_update: bool = False) -> Account | None:
        query = select(AccountRow).where(AccountRow.id == account_id)
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        row = result.scalar_one_or_none()
        return account_from_row(row) if row else None

    async def update_account(self, account: Account) -> None:
        row = await self.db.get(AccountRow, account.id)
        if row is None:
            raise LookupError(f"Account {account.id} is not persisted")
        row.name = account.name
        row.type = account.type
        row.bank = account.bank
        row.currency = account.currency
        row.balance = account.balance
        row.is_active = account.is_active
        row.updated_at = account.updated_at
        await self.db.flush()

    @asynccontextmanager
    async def atomic(self) -> AsyncIterator[None]:
        """Run the block inside a SAVEPOINT."""
        async with self.db.begin_nested():
            yield

    async def commit(self) -> None:
        await self.db.commit()
