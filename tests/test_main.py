"""Tests for app wiring: health, request ids, and the global error handler."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from finance_ledger.database import get_db
from finance_ledger.deps import get_repository
from finance_ledger.main import app


@pytest.fixture
def healthy_db():
    async def _get_db():
        yield AsyncMock(spec=AsyncSession)

    app.dependency_overrides[get_db] = _get_db
    yield
    app.dependency_overrides.pop(get_db, None)


@pytest.mark.asyncio
async def test_health_when_database_reachable(client: AsyncClient, healthy_db) -> None:
    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["checks"] == {"database": True}
    assert "timestamp" in data


@pytest.mark.asyncio
async def test_health_returns_503_on_database_failure(client: AsyncClient) -> None:
    async def mock_get_db():
        mock_session = MagicMock()
        mock_session.execute.side_effect = Exception("DB Down")
        yield mock_session

    app.dependency_overrides[get_db] = mock_get_db
    try:
        response = await client.get("/health")
        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "unhealthy"
        assert data["checks"]["database"] is False
    finally:
        app.dependency_overrides.pop(get_db, None)


@pytest.mark.asyncio
async def test_request_id_is_echoed(client: AsyncClient, healthy_db) -> None:
    response = await client.get("/health", headers={"X-Request-ID": "req-42"})

    assert response.headers["X-Request-ID"] == "req-42"


@pytest.mark.asyncio
async def test_request_id_is_generated(client: AsyncClient, healthy_db) -> None:
    response = await client.get("/health")

    assert response.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_unhandled_error_returns_generic_500(repo, account, monkeypatch) -> None:
    monkeypatch.setattr("finance_ledger.main.settings.debug", False)
    repo.list_transactions = AsyncMock(side_effect=RuntimeError("database exploded"))

    async def _override_repository():
        return repo

    app.dependency_overrides[get_repository] = _override_repository
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.post(
                "/reconciliation/match",
                json={"account_id": str(account.id), "statement": "h\n2025-03-01,x,1.00,1.00\n"},
            )
    finally:
        app.dependency_overrides.pop(get_repository, None)

    assert response.status_code == 500
    data = response.json()
    assert "database exploded" not in data["detail"]
    assert data["trace"] is None
    assert "request_id" in data
