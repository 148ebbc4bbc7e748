"""Services package."""

from finance_ledger.services.bulk import BulkUpdateResult, bulk_update, validate_bulk_request
from finance_ledger.services.confirmation import ConfirmationResult, confirm_match, reject_match
from finance_ledger.services.creation import (
    CreationResult,
    create_transaction,
    expand_request,
    split_installments,
    validate_transaction_request,
)
from finance_ledger.services.ledger import (
    Account,
    AccountNotFoundError,
    CategoryRegistry,
    InsufficientFundsError,
    InvalidStateError,
    LedgerError,
    NotFoundError,
    Transaction,
    TransactionNotFoundError,
    default_registry,
)
from finance_ledger.services.reconciliation import (
    MatchCandidate,
    MatchStatus,
    MatchStrategy,
    ReconciliationReport,
    find_conflicts,
    load_open_transactions,
    load_reconciliation_config,
    mark_conflicts,
    match_statement,
    reconcile_statement,
)
from finance_ledger.services.repository import LedgerRepository, SqlLedgerRepository
from finance_ledger.services.statement import ParsedStatement, StatementLine, parse_statement
from finance_ledger.services.validation import ValidationError, ValidationResult, Violation

__all__ = [
    "Account",
    "AccountNotFoundError",
    "BulkUpdateResult",
    "CategoryRegistry",
    "ConfirmationResult",
    "CreationResult",
    "InsufficientFundsError",
    "InvalidStateError",
    "LedgerError",
    "LedgerRepository",
    "MatchCandidate",
    "MatchStatus",
    "MatchStrategy",
    "NotFoundError",
    "ParsedStatement",
    "ReconciliationReport",
    "SqlLedgerRepository",
    "StatementLine",
    "Transaction",
    "TransactionNotFoundError",
    "ValidationError",
    "ValidationResult",
    "Violation",
    "bulk_update",
    "confirm_match",
    "create_transaction",
    "default_registry",
    "expand_request",
    "find_conflicts",
    "load_open_transactions",
    "load_reconciliation_config",
    "mark_conflicts",
    "match_statement",
    "parse_statement",
    "reconcile_statement",
    "reject_match",
    "split_installments",
    "validate_bulk_request",
    "validate_transaction_request",
]
