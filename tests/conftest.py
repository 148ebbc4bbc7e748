"""Test fixtures and configuration."""

import logging
import sys
from collections.abc import AsyncIterator
from decimal import Decimal

import pytest
import pytest_asyncio
import structlog
from httpx import ASGITransport, AsyncClient

from finance_ledger.services import reconciliation as reconciliation_service
from tests.factories import AccountFactory
from tests.fakes import InMemoryLedgerRepository


# --- Structlog Configuration for Tests ---
@pytest.fixture(autouse=True, scope="session")
def configure_structlog_for_tests():
    """Configure structlog for proper capsys capture in tests."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.format_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ]

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.dev.ConsoleRenderer(),
        foreign_pre_chain=processors[:-1],
    )

    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG)

    yield

    structlog.reset_defaults()


# --- Reconciliation config cache isolation ---
@pytest.fixture(autouse=True)
def reset_reconciliation_config(monkeypatch):
    """Drop the cached matching config so env overrides in one test don't leak."""
    monkeypatch.delenv("RECONCILIATION_ACCEPT_THRESHOLD", raising=False)
    monkeypatch.setattr(reconciliation_service, "_config_cache", None)
    yield
    monkeypatch.setattr(reconciliation_service, "_config_cache", None)


@pytest.fixture
def account():
    return AccountFactory.build(balance=Decimal("1000.00"))


@pytest.fixture
def repo(account):
    return InMemoryLedgerRepository(accounts=[account])


@pytest_asyncio.fixture
async def client(repo) -> AsyncIterator[AsyncClient]:
    """HTTP client against the app with the repository swapped for the in-memory fake."""
    from finance_ledger.deps import get_repository
    from finance_ledger.main import app

    async def _override_repository():
        return repo

    app.dependency_overrides[get_repository] = _override_repository
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.pop(get_repository, None)
