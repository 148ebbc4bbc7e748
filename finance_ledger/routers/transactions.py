"""Ledger transaction API router."""

from fastapi import APIRouter, status

from finance_ledger.deps import Repo
from finance_ledger.logger import get_logger
from finance_ledger.schemas import (
    AccountResponse,
    BulkUpdateRequest,
    BulkUpdateResponse,
    TransactionCreate,
    TransactionCreateResponse,
    TransactionResponse,
)
from finance_ledger.services import LedgerError, bulk_update, create_transaction
from finance_ledger.utils import raise_for_ledger_error

router = APIRouter(prefix="/transactions", tags=["transactions"])
logger = get_logger(__name__)


@router.post("", response_model=TransactionCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_transactions(data: TransactionCreate, repo: Repo) -> TransactionCreateResponse:
    """Create a transaction, an installment plan, or a recurring series."""
    try:
        result = await create_transaction(repo, data)
    except LedgerError as e:
        logger.info(
            "Transaction creation rejected",
            account_id=str(data.account_id) if data.account_id else None,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise_for_ledger_error(e)
    await repo.commit()

    return TransactionCreateResponse(
        success=True,
        transactions=[TransactionResponse.model_validate(txn) for txn in result.transactions],
        account=AccountResponse.model_validate(result.account),
    )


@router.post("/bulk-update", response_model=BulkUpdateResponse)
async def bulk_update_transactions(request: BulkUpdateRequest, repo: Repo) -> BulkUpdateResponse:
    """Apply a status and/or field change to up to ``max_bulk_size`` transactions.

    Partial failure is reported in the body with a 200; only a malformed
    request is an HTTP error.
    """
    try:
        result = await bulk_update(repo, request)
    except LedgerError as e:
        raise_for_ledger_error(e)
    await repo.commit()

    return BulkUpdateResponse(
        success=result.success,
        updated_count=result.updated_count,
        failed_ids=result.failed_ids,
        errors=result.errors,
    )
