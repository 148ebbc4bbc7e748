"""Common exception utilities for FastAPI routers."""

from typing import NoReturn

from fastapi import HTTPException, status

from finance_ledger.services.ledger import (
    InsufficientFundsError,
    InvalidStateError,
    LedgerError,
    NotFoundError,
)
from finance_ledger.services.validation import ValidationError


def raise_not_found(detail: str, *, cause: Exception | None = None) -> NoReturn:
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=detail,
    ) from cause


def raise_conflict(detail: str, *, cause: Exception | None = None) -> NoReturn:
    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=detail,
    ) from cause


def raise_unprocessable(error: ValidationError) -> NoReturn:
    raise HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
        detail={
            "message": "Validation failed",
            "violations": [{"field": v.field, "message": v.message} for v in error.violations],
        },
    ) from error


def raise_internal_error(detail: str, *, cause: Exception | None = None) -> NoReturn:
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=detail,
    ) from cause


def raise_for_ledger_error(error: LedgerError) -> NoReturn:
    """Translate a ledger error into the matching HTTP response."""
    if isinstance(error, ValidationError):
        raise_unprocessable(error)
    if isinstance(error, NotFoundError):
        raise_not_found(str(error), cause=error)
    if isinstance(error, InsufficientFundsError | InvalidStateError):
        raise_conflict(str(error), cause=error)
    raise_internal_error("Ledger operation failed", cause=error)
