"""Pydantic schemas for reconciliation API."""

from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from finance_ledger.schemas.base import BaseResponse
from finance_ledger.schemas.transaction import TransactionResponse
from finance_ledger.services.reconciliation import MatchStatus, MatchStrategy
from finance_ledger.services.statement import Direction


class StatementLineSchema(BaseResponse):
    """One parsed statement line. ``id`` and ``direction`` are derived on output."""

    line_number: int
    date: date
    description: str
    amount: Decimal
    balance: Decimal | None = None
    reference: str | None = None
    id: str | None = None
    direction: Direction | None = None


class MatchCandidateSchema(BaseModel):
    statement_line: StatementLineSchema
    transaction: TransactionResponse | None = None
    confidence: float = Field(ge=0, le=1)
    status: MatchStatus
    # Score components are fractions of the total confidence, not money.
    breakdown: dict[str, float] = Field(default_factory=dict)
    confirmed: bool = False


class MatchRequest(BaseModel):
    account_id: UUID
    statement: str = Field(min_length=1)
    start_date: date | None = None
    end_date: date | None = None
    strategy: MatchStrategy = MatchStrategy.GREEDY
    flag_conflicts: bool = False


class ConflictSchema(BaseModel):
    transaction_id: UUID
    statement_line_ids: list[str]


class SkippedLineSchema(BaseResponse):
    line_number: int
    reason: str


class MatchResponse(BaseModel):
    candidates: list[MatchCandidateSchema]
    matched: int
    unmatched: int
    conflicts: list[ConflictSchema] = Field(default_factory=list)
    skipped_lines: list[SkippedLineSchema] = Field(default_factory=list)
