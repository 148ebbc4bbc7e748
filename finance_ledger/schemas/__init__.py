from finance_ledger.schemas.reconciliation import (
    ConflictSchema,
    MatchCandidateSchema,
    MatchRequest,
    MatchResponse,
    SkippedLineSchema,
    StatementLineSchema,
)
from finance_ledger.schemas.transaction import (
    AccountResponse,
    BulkUpdateRequest,
    BulkUpdateResponse,
    RecurrenceFrequency,
    RecurrenceSpec,
    TransactionCreate,
    TransactionCreateResponse,
    TransactionResponse,
)

__all__ = [
    "AccountResponse",
    "BulkUpdateRequest",
    "BulkUpdateResponse",
    "ConflictSchema",
    "MatchCandidateSchema",
    "MatchRequest",
    "MatchResponse",
    "RecurrenceFrequency",
    "RecurrenceSpec",
    "SkippedLineSchema",
    "StatementLineSchema",
    "TransactionCreate",
    "TransactionCreateResponse",
    "TransactionResponse",
]
