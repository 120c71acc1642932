"""Tests for /health: session store and HR API reachability."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import AsyncMock

import httpx
from conftest import HR_BASE_URL
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from hr_portal.db import get_session
from hr_portal.main import app
from hr_portal.services.hr_api import HttpxHrApi, set_hr_api

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from conftest import FakeHrBackend


def _unreachable_hr_api() -> HttpxHrApi:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    return HttpxHrApi(HR_BASE_URL, transport=httpx.MockTransport(handler))


async def test_health_ok_when_everything_answers(async_client: AsyncClient) -> None:
    response = await async_client.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "version": "0.1.0",
        "environment": "development",
        "session_store": True,
        "hr_api": True,
    }


async def test_health_needs_no_session_header(async_client: AsyncClient, fake_hr: FakeHrBackend) -> None:
    await async_client.get("/health")
    assert fake_hr.calls == [("GET", "/health")]


async def test_health_degraded_when_hr_api_errors(async_client: AsyncClient, fake_hr: FakeHrBackend) -> None:
    fake_hr.fail_next("GET", "/health", 503)

    data = (await async_client.get("/health")).json()

    assert data["status"] == "degraded"
    assert data["hr_api"] is False
    assert data["session_store"] is True


async def test_health_degraded_when_hr_api_unreachable(async_client: AsyncClient) -> None:
    unreachable = _unreachable_hr_api()
    set_hr_api(unreachable)
    try:
        data = (await async_client.get("/health")).json()
    finally:
        await unreachable.aclose()

    assert data["status"] == "degraded"
    assert data["hr_api"] is False


async def test_hr_api_answering_4xx_counts_as_reachable(async_client: AsyncClient, fake_hr: FakeHrBackend) -> None:
    fake_hr.fail_next("GET", "/health", 404)

    data = (await async_client.get("/health")).json()

    assert data["status"] == "ok"


async def test_health_error_when_both_fail() -> None:
    """The session store raising and the HR API refusing connections is a full outage."""
    mock_session = AsyncMock(spec=AsyncSession)
    mock_session.execute.side_effect = ConnectionError("DB unreachable")

    async def _broken_session() -> AsyncIterator[AsyncSession]:
        yield mock_session

    unreachable = _unreachable_hr_api()
    set_hr_api(unreachable)
    app.dependency_overrides[get_session] = _broken_session
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/health")
        data = response.json()
        assert response.status_code == 200
        assert data["status"] == "error"
        assert data["session_store"] is False
    finally:
        app.dependency_overrides.clear()
        set_hr_api(None)
        await unreachable.aclose()
