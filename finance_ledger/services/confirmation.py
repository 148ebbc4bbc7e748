"""Confirm or reject proposed reconciliation matches."""

from __future__ import annotations

from dataclasses import dataclass, replace

from finance_ledger.logger import get_logger
from finance_ledger.services.ledger import InvalidStateError, Transaction, TransactionNotFoundError
from finance_ledger.services.reconciliation import MatchCandidate, MatchStatus
from finance_ledger.services.repository import LedgerRepository

logger = get_logger(__name__)


@dataclass(frozen=True)
class ConfirmationResult:
    candidate: MatchCandidate
    transaction: Transaction


async def confirm_match(repo: LedgerRepository, candidate: MatchCandidate) -> ConfirmationResult:
    """Settle the matched transaction using the statement line's date and reference.

    The account balance is left untouched: the bank statement already
    reflects the movement.

    Raises:
        InvalidStateError: the candidate is not a live match, was already
            confirmed, or its transaction is no longer open.
        TransactionNotFoundError: the matched transaction no longer exists.
    """
    if candidate.confirmed:
        raise InvalidStateError(f"Match for {candidate.statement_line.id} is already confirmed")
    if candidate.status != MatchStatus.MATCHED or candidate.transaction is None:
        raise InvalidStateError(f"Statement line {candidate.statement_line.id} has no match to confirm")

    line = candidate.statement_line
    async with repo.atomic():
        current = await repo.get_transaction(candidate.transaction.id)
        if current is None:
            raise TransactionNotFoundError(f"Transaction {candidate.transaction.id} not found")
        if not current.is_open:
            raise InvalidStateError(
                f"Transaction {current.id} is {current.status.value} and cannot be reconciled"
            )

        updated = current.mark_as_paid(line.date).with_bank_reference(line.reference)
        await repo.update_transaction(updated)

    logger.info(
        "Reconciliation match confirmed",
        transaction_id=str(updated.id),
        statement_line=line.id,
        confidence=candidate.confidence,
        bank_reference=line.reference,
    )
    return ConfirmationResult(
        candidate=replace(candidate, transaction=updated, confirmed=True),
        transaction=updated,
    )


def reject_match(candidate: MatchCandidate) -> MatchCandidate:
    """Drop the proposed pairing so the line can be matched by hand."""
    if candidate.confirmed:
        raise InvalidStateError(f"Match for {candidate.statement_line.id} is already confirmed")
    return replace(candidate, transaction=None, status=MatchStatus.UNMATCHED)
