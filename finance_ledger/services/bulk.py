"""Bulk status/field transitions with per-record failure reporting.

Settling and reverting touch account balances, so each record runs in its
own unit of work: a failure rolls back that record only and the batch
continues. Field-only edits and non-settling transitions carry no balance
effect and are written as one batch.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from uuid import UUID

from finance_ledger.config import settings
from finance_ledger.logger import get_logger, log_exception
from finance_ledger.models import SETTLED_STATUSES, TransactionStatus
from finance_ledger.schemas.transaction import BulkUpdateRequest
from finance_ledger.services.ledger import (
    AccountNotFoundError,
    LedgerError,
    Transaction,
    TransactionNotFoundError,
)
from finance_ledger.services.repository import LedgerRepository
from finance_ledger.services.validation import ValidationResult

logger = get_logger(__name__)


@dataclass
class BulkUpdateResult:
    """Outcome of a bulk update. Partial failure is a normal result, not an error."""

    updated_count: int = 0
    failed_ids: list[UUID] = field(default_factory=list)
    skipped_ids: list[UUID] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed_ids and not self.errors


@dataclass(frozen=True)
class _FieldChanges:
    category: str | None = None
    cost_center: str | None = None
    notes: str | None = None

    def apply(self, transaction: Transaction) -> Transaction:
        return transaction.with_fields(category=self.category, cost_center=self.cost_center, notes=self.notes)


def validate_bulk_request(request: BulkUpdateRequest) -> TransactionStatus | None:
    """Check batch size and payload; return the parsed target status."""
    result = ValidationResult()
    if result.check(bool(request.ids), "ids", "At least one transaction id is required"):
        result.check(
            len(request.ids) <= settings.max_bulk_size,
            "ids",
            f"At most {settings.max_bulk_size} transactions can be updated at once",
        )

    has_fields = any(v is not None for v in (request.category, request.cost_center, request.notes))
    result.check(request.status is not None or has_fields, "payload", "Nothing to update")
    if request.category is not None:
        result.check(bool(request.category.strip()), "category", "Category must not be empty")

    status = None
    if request.status is not None:
        try:
            status = TransactionStatus(request.status)
        except ValueError:
            result.add("status", f"Unknown status: {request.status}")

    result.raise_if_invalid()
    return status


async def _settle_one(
    repo: LedgerRepository,
    transaction_id: UUID,
    changes: _FieldChanges,
    payment_date: date,
) -> bool:
    transaction = await repo.get_transaction(transaction_id)
    if transaction is None:
        raise TransactionNotFoundError(f"Transaction {transaction_id} not found")
    if transaction.is_paid:
        return False

    account = await repo.get_account(transaction.account_id, for_update=True)
    if account is None:
        raise AccountNotFoundError(f"Account {transaction.account_id} not found")

    settled = changes.apply(transaction).mark_as_paid(payment_date)
    account = account.apply_settlement(settled)
    await repo.update_account(account)
    await repo.update_transaction(settled)
    return True


async def _revert_one(repo: LedgerRepository, transaction_id: UUID, changes: _FieldChanges) -> bool:
    transaction = await repo.get_transaction(transaction_id)
    if transaction is None:
        raise TransactionNotFoundError(f"Transaction {transaction_id} not found")
    if transaction.status == TransactionStatus.PENDING:
        return False

    reverted = changes.apply(transaction).mark_as_pending()
    account = await repo.get_account(transaction.account_id, for_update=True)
    if account is None:
        raise AccountNotFoundError(f"Account {transaction.account_id} not found")

    account = account.reverse_settlement(transaction)
    await repo.update_account(account)
    await repo.update_transaction(reverted)
    return True


async def _run_per_record(
    repo: LedgerRepository,
    ids: list[UUID],
    status: TransactionStatus,
    changes: _FieldChanges,
    payment_date: date,
) -> BulkUpdateResult:
    result = BulkUpdateResult()
    for transaction_id in ids:
        try:
            async with repo.atomic():
                if status == TransactionStatus.PENDING:
                    updated = await _revert_one(repo, transaction_id, changes)
                else:
                    updated = await _settle_one(repo, transaction_id, changes, payment_date)
        except LedgerError as e:
            logger.warning(
                "Bulk update skipped transaction",
                transaction_id=str(transaction_id),
                status=status.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            result.failed_ids.append(transaction_id)
            continue
        except Exception as e:
            log_exception(
                logger,
                e,
                "Unexpected error updating transaction",
                transaction_id=str(transaction_id),
                status=status.value,
            )
            result.failed_ids.append(transaction_id)
            continue

        if updated:
            result.updated_count += 1
        else:
            result.skipped_ids.append(transaction_id)
    return result


async def _run_batch(
    repo: LedgerRepository,
    ids: list[UUID],
    status: TransactionStatus | None,
    changes: _FieldChanges,
) -> BulkUpdateResult:
    result = BulkUpdateResult()
    pending_writes: list[Transaction] = []

    for transaction_id in ids:
        transaction = await repo.get_transaction(transaction_id)
        if transaction is None:
            result.failed_ids.append(transaction_id)
            continue
        try:
            updated = changes.apply(transaction)
            if status is not None and updated.status != status:
                updated = updated.transition_to(status)
        except LedgerError as e:
            logger.warning(
                "Bulk update rejected transition",
                transaction_id=str(transaction_id),
                current_status=transaction.status.value,
                target_status=status.value if status else None,
                error=str(e),
            )
            result.failed_ids.append(transaction_id)
            continue

        if updated is transaction:
            result.skipped_ids.append(transaction_id)
        else:
            pending_writes.append(updated)

    if pending_writes:
        async with repo.atomic():
            await repo.update_transactions(pending_writes)
    result.updated_count = len(pending_writes)
    return result


async def bulk_update(
    repo: LedgerRepository,
    request: BulkUpdateRequest,
    *,
    today: date | None = None,
) -> BulkUpdateResult:
    """Apply a status and/or field change to a batch of transactions.

    Raises:
        ValidationError: the request itself is malformed (empty, too large,
            nothing to update, unknown status).
    """
    status = validate_bulk_request(request)
    ids = list(dict.fromkeys(request.ids))
    changes = _FieldChanges(category=request.category, cost_center=request.cost_center, notes=request.notes)
    payment_date = request.payment_date or today or date.today()

    try:
        if status in SETTLED_STATUSES or status == TransactionStatus.PENDING:
            result = await _run_per_record(repo, ids, status, changes, payment_date)
        else:
            result = await _run_batch(repo, ids, status, changes)
    except Exception as e:
        log_exception(logger, e, "Bulk update failed", requested=len(ids))
        return BulkUpdateResult(failed_ids=ids, errors=["Internal error"])

    if result.failed_ids:
        result.errors.append(f"{len(result.failed_ids)} transactions failed")

    logger.info(
        "Bulk update completed",
        requested=len(ids),
        status=status.value if status else None,
        updated=result.updated_count,
        skipped=len(result.skipped_ids),
        failed=len(result.failed_ids),
    )
    return result
