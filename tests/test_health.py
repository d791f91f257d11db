"""Tests for health endpoints and the error envelope."""

from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.database import get_db
from app.main import app


@pytest_asyncio.fixture
async def bare_client() -> AsyncGenerator[AsyncClient, None]:
    """Client that never touches the database."""

    async def no_db():
        yield MagicMock()

    app.dependency_overrides[get_db] = no_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_health_check(bare_client: AsyncClient) -> None:
    """Test health check endpoint."""
    response = await bare_client.get("/api/v1/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "version" in data


@pytest.mark.asyncio
async def test_ping_and_root(bare_client: AsyncClient) -> None:
    assert (await bare_client.get("/api/v1/ping")).json() == {"message": "pong"}
    assert "docs" in (await bare_client.get("/")).json()


@pytest.mark.asyncio
async def test_detailed_health_reports_outbox_backlog(bare_client: AsyncClient) -> None:
    mock_redis = MagicMock()
    mock_redis.llen.return_value = 7

    with (
        patch(
            "app.api.v1.endpoints.health.check_database_connection",
            AsyncMock(return_value=True),
        ),
        patch(
            "app.api.v1.endpoints.health.check_redis_connection",
            AsyncMock(return_value=True),
        ),
        patch("app.api.v1.endpoints.health.get_redis_client", return_value=mock_redis),
    ):
        response = await bare_client.get("/api/v1/health/detailed")

    data = response.json()
    assert data["status"] == "healthy"
    assert data["notification_backlog"] == 7


@pytest.mark.asyncio
async def test_detailed_health_degraded_without_redis(bare_client: AsyncClient) -> None:
    with (
        patch(
            "app.api.v1.endpoints.health.check_database_connection",
            AsyncMock(return_value=True),
        ),
        patch(
            "app.api.v1.endpoints.health.check_redis_connection",
            AsyncMock(return_value=False),
        ),
    ):
        response = await bare_client.get("/api/v1/health/detailed")

    data = response.json()
    assert data["status"] == "degraded"
    assert data["redis"] == "unhealthy"
    assert data["notification_backlog"] is None


@pytest.mark.asyncio
async def test_unknown_route_uses_error_envelope(bare_client: AsyncClient) -> None:
    response = await bare_client.get("/api/v1/does-not-exist")

    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "error": "HTTPException",
        "message": "Not Found",
    }


@pytest.mark.asyncio
async def test_missing_token_is_unauthorized(bare_client: AsyncClient) -> None:
    response = await bare_client.get("/api/v1/appointments/")

    assert response.status_code == 401
    assert response.json()["success"] is False


@pytest.mark.asyncio
async def test_invalid_token_is_unauthorized(bare_client: AsyncClient) -> None:
    response = await bare_client.get(
        "/api/v1/appointments/",
        headers={"Authorization": "Bearer not-a-jwt"},
    )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_query_validation_errors_are_listed(bare_client: AsyncClient) -> None:
    response = await bare_client.get("/api/v1/appointments/availability?date=2026-11-02")

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Validation errors"
    assert body["errors"][0]["field"] == "practitioner_id"
