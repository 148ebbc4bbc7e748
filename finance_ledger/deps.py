"""Common FastAPI dependencies for consistent type annotations.

Usage:
    from finance_ledger.deps import Repo

    async def my_endpoint(repo: Repo):
        # repo is a LedgerRepository bound to the request's AsyncSession
        ...
"""

from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from finance_ledger.database import get_db
from finance_ledger.services.repository import LedgerRepository, SqlLedgerRepository

DbSession = Annotated[AsyncSession, Depends(get_db)]


async def get_repository(db: DbSession) -> LedgerRepository:
    return SqlLedgerRepository(db)


Repo = Annotated[LedgerRepository, Depends(get_repository)]

__all__ = ["DbSession", "Repo", "get_repository"]
