"""Reconciliation API router."""

from fastapi import APIRouter

from finance_ledger.deps import Repo
from finance_ledger.logger import get_logger
from finance_ledger.schemas import (
    ConflictSchema,
    MatchCandidateSchema,
    MatchRequest,
    MatchResponse,
    SkippedLineSchema,
    StatementLineSchema,
    TransactionResponse,
)
from finance_ledger.services import (
    LedgerError,
    MatchCandidate,
    StatementLine,
    Transaction,
    confirm_match,
    reconcile_statement,
    reject_match,
)
from finance_ledger.utils import raise_for_ledger_error

router = APIRouter(prefix="/reconciliation", tags=["reconciliation"])
logger = get_logger(__name__)


def _candidate_response(candidate: MatchCandidate) -> MatchCandidateSchema:
    line = candidate.statement_line
    return MatchCandidateSchema(
        statement_line=StatementLineSchema(
            line_number=line.line_number,
            date=line.date,
            description=line.description,
            amount=line.amount,
            balance=line.balance,
            reference=line.reference,
            id=line.id,
            direction=line.direction,
        ),
        transaction=TransactionResponse.model_validate(candidate.transaction) if candidate.transaction else None,
        confidence=candidate.confidence,
        status=candidate.status,
        breakdown=candidate.breakdown,
        confirmed=candidate.confirmed,
    )


def _candidate_from_schema(schema: MatchCandidateSchema) -> MatchCandidate:
    line = schema.statement_line
    transaction = None
    if schema.transaction is not None:
        fields = schema.transaction.model_dump()
        fields["attachments"] = tuple(fields["attachments"])
        transaction = Transaction(**fields)
    return MatchCandidate(
        statement_line=StatementLine(
            line_number=line.line_number,
            date=line.date,
            description=line.description,
            amount=line.amount,
            balance=line.balance,
            reference=line.reference,
        ),
        transaction=transaction,
        confidence=schema.confidence,
        status=schema.status,
        breakdown=dict(schema.breakdown),
        confirmed=schema.confirmed,
    )


@router.post("/match", response_model=MatchResponse)
async def match(request: MatchRequest, repo: Repo) -> MatchResponse:
    """Parse a bank statement and propose matches against open transactions."""
    report = await reconcile_statement(
        repo,
        request.account_id,
        request.statement,
        start_date=request.start_date,
        end_date=request.end_date,
        strategy=request.strategy,
        flag_conflicts=request.flag_conflicts,
    )
    return MatchResponse(
        candidates=[_candidate_response(c) for c in report.candidates],
        matched=report.matched_count,
        unmatched=report.unmatched_count,
        conflicts=[
            ConflictSchema(transaction_id=txn_id, statement_line_ids=line_ids)
            for txn_id, line_ids in report.conflicts.items()
        ],
        skipped_lines=[SkippedLineSchema.model_validate(s) for s in report.statement.skipped],
    )


@router.post("/confirm", response_model=MatchCandidateSchema)
async def confirm(candidate: MatchCandidateSchema, repo: Repo) -> MatchCandidateSchema:
    """Settle the matched transaction from its statement line."""
    try:
        result = await confirm_match(repo, _candidate_from_schema(candidate))
    except LedgerError as e:
        logger.info(
            "Reconciliation confirm rejected",
            statement_line=candidate.statement_line.line_number,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise_for_ledger_error(e)
    await repo.commit()
    return _candidate_response(result.candidate)


@router.post("/reject", response_model=MatchCandidateSchema)
async def reject(candidate: MatchCandidateSchema) -> MatchCandidateSchema:
    """Drop a proposed match so the line can be paired by hand."""
    try:
        rejected = reject_match(_candidate_from_schema(candidate))
    except LedgerError as e:
        raise_for_ledger_error(e)
    return _candidate_response(rejected)
