from __future__ import annotations

import json
import re
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING, Any

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

from hr_portal.db import get_session
from hr_portal.main import app
from hr_portal.models import SQLModel
from hr_portal.services.hr_api import HttpxHrApi, set_hr_api
from hr_portal.services.view_store import InMemoryViewStore, set_view_store

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine

HR_BASE_URL = "http://hr.test/api"
THIS_YEAR = date.today().year

EMPLOYEE_EMAIL = "jane@example.com"
HR_EMAIL = "hr@example.com"
PASSWORD = "secret"

_PART = re.compile(
    rb'name="(?P<name>[^"]+)"(?:; filename="(?P<filename>[^"]*)")?\r\n'
    rb"(?:Content-Type: [^\r\n]+\r\n)?\r\n(?P<value>.*?)\r\n--",
    re.S,
)


def _json(status_code: int, body: dict[str, Any]) -> httpx.Response:
    return httpx.Response(status_code, json=body)


class FakeHrBackend:
    """In-process stand-in for the HR REST API.

    Enforces the approval state machine and balance accounting the way the
    real server does, so tests can observe the portal re-reading state.
    """

    def __init__(self) -> None:
        self.users_by_token: dict[str, dict[str, Any]] = {}
        self.logins: dict[str, tuple[str, str]] = {}
        self.leave_types: list[dict[str, Any]] = []
        self.balances: list[dict[str, Any]] = []
        self.requests: list[dict[str, Any]] = []
        self.calls: list[tuple[str, str]] = []
        self.created_forms: list[dict[str, Any]] = []
        self.queued_failures: dict[str, httpx.Response] = {}
        self._next_id = 100

    # -- seeding -------------------------------------------------------------

    def add_user(self, user_id: int, role: str, email: str, password: str = PASSWORD) -> str:
        token = f"token-{user_id}"
        self.users_by_token[token] = {
            "id": user_id,
            "employee_id": f"EMP{user_id:03d}",
            "email": email,
            "first_name": email.split("@")[0].capitalize(),
            "last_name": "Doe",
            "role": role,
            "department": "Engineering",
            "position": "Staff",
            "hire_date": "2022-01-10",
            "created_at": "2022-01-10T09:00:00.000Z",
        }
        self.logins[email] = (password, token)
        return token

    def add_leave_type(self, type_id: int, name: str, is_active: bool = True, max_days: int = 20) -> None:
        self.leave_types.append(
            {"id": type_id, "name": name, "description": f"{name} leave", "max_days": max_days, "is_active": is_active}
        )

    def set_balance(self, user_id: int, leave_type_id: int, total: float, used: float, year: int = THIS_YEAR) -> None:
        self.balances.append(
            {
                "id": len(self.balances) + 1,
                "user_id": user_id,
                "leave_type_id": leave_type_id,
                "total_days": total,
                "used_days": used,
                "remaining_days": total - used,
                "year": year,
            }
        )

    def add_request(
        self,
        user_id: int,
        leave_type_id: int,
        start: str,
        end: str,
        total_days: float,
        status: str = "pending",
        is_half_day: bool = False,
        half_day_period: str | None = None,
    ) -> dict[str, Any]:
        self._next_id += 1
        request = {
            "id": self._next_id,
            "user_id": user_id,
            "leave_type_id": leave_type_id,
            "start_date": start,
            "end_date": end,
            "total_days": total_days,
            "is_half_day": is_half_day,
            "half_day_period": half_day_period,
            "reason": "Family trip",
            "status": status,
            "created_at": datetime.now(UTC).isoformat(),
        }
        self.requests.append(request)
        return request

    def fail_next(self, method: str, path: str, status_code: int, message: str | None = None) -> None:
        body = {"success": False, "message": message} if message else {}
        self.queued_failures[f"{method} {path}"] = _json(status_code, body)

    def balance(self, user_id: int, leave_type_id: int) -> dict[str, Any]:
        return next(b for b in self.balances if b["user_id"] == user_id and b["leave_type_id"] == leave_type_id)

    def request_by_id(self, request_id: int) -> dict[str, Any]:
        return next(r for r in self.requests if r["id"] == request_id)

    # -- serving -------------------------------------------------------------

    def _embed(self, record: dict[str, Any]) -> dict[str, Any]:
        out = dict(record)
        out["leave_type"] = next((t for t in self.leave_types if t["id"] == record["leave_type_id"]), None)
        return out

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/api")
        self.calls.append((request.method, path))
        queued = self.queued_failures.pop(f"{request.method} {path}", None)
        if queued is not None:
            return queued

        if request.method == "POST" and path == "/auth/login":
            return self._login(json.loads(request.content))
        if request.method == "GET" and path == "/health":
            return _json(200, {"status": "ok"})

        auth = request.headers.get("Authorization", "")
        user = self.users_by_token.get(auth.removeprefix("Bearer "))
        if user is None:
            return _json(401, {"success": False, "message": "Invalid token"})

        if request.method == "GET" and path == "/auth/me":
            return _json(200, {"success": True, "user": user})
        if request.method == "GET" and path == "/leaves/types":
            return _json(200, {"success": True, "types": self.leave_types})
        if request.method == "GET" and path == "/leaves/balance":
            mine = [self._embed(b) for b in self.balances if b["user_id"] == user["id"]]
            return _json(200, {"success": True, "balances": mine})
        if request.method == "GET" and path == "/leaves":
            return self._list(user, request.url.params.get("status"))
        if request.method == "POST" and path == "/leaves":
            return self._create(user, request)

        match = re.fullmatch(r"/leaves/(\d+)/(approve|reject)", path)
        if request.method == "PUT" and match:
            return self._decide(user, int(match.group(1)), match.group(2), json.loads(request.content))
        return _json(404, {"success": False, "message": "Not found"})

    def _login(self, body: dict[str, Any]) -> httpx.Response:
        entry = self.logins.get(body.get("email", ""))
        if entry is None or entry[0] != body.get("password"):
            return _json(401, {"success": False, "message": "Invalid email or password"})
        token = entry[1]
        return _json(200, {"token": token, "user": self.users_by_token[token], "mustChangePassword": False})

    def _list(self, user: dict[str, Any], status: str | None) -> httpx.Response:
        visible = self.requests
        if user["role"] == "employee":
            visible = [r for r in visible if r["user_id"] == user["id"]]
        if status:
            visible = [r for r in visible if r["status"] == status]
        return _json(200, {"success": True, "requests": [self._embed(r) for r in visible]})

    def _create(self, user: dict[str, Any], request: httpx.Request) -> httpx.Response:
        form: dict[str, Any] = {}
        for part in _PART.finditer(request.content):
            name = part.group("name").decode()
            if part.group("filename") is not None:
                form[name] = (part.group("filename").decode(), part.group("value"))
            else:
                form[name] = part.group("value").decode()
        self.created_forms.append(form)

        leave_type_id = int(form["leave_type_id"])
        is_half_day = form.get("is_half_day") == "true"
        start = date.fromisoformat(form["start_date"])
        end = date.fromisoformat(form["end_date"])
        total = 0.5 if is_half_day else float((end - start).days + 1)
        balance = self.balance(user["id"], leave_type_id)
        if total > balance["remaining_days"]:
            return _json(400, {"success": False, "message": "Insufficient leave balance"})

        created = self.add_request(
            user["id"],
            leave_type_id,
            form["start_date"],
            form["end_date"],
            total,
            is_half_day=is_half_day,
            half_day_period=form.get("half_day_period"),
        )
        created["reason"] = form["reason"]
        return _json(201, {"success": True, "message": "Leave request submitted", "request": self._embed(created)})

    def _decide(self, user: dict[str, Any], request_id: int, action: str, body: dict[str, Any]) -> httpx.Response:
        if user["role"] not in ("hr_manager", "hr_executive"):
            return _json(403, {"success": False, "message": "Access denied"})
        record = next((r for r in self.requests if r["id"] == request_id), None)
        if record is None:
            return _json(404, {"success": False, "message": "Leave request not found"})
        if record["status"] not in ("pending", "team_leader_approved"):
            return _json(400, {"success": False, "message": "Leave request has already been processed"})

        now = datetime.now(UTC).isoformat()
        if action == "reject":
            record["status"] = "rejected"
            record["rejection_reason"] = body["rejectionReason"]
            return _json(200, {"success": True, "message": "Leave request rejected", "request": record})

        if record["status"] == "pending" and body.get("approvedBy") == "team_leader":
            record["status"] = "team_leader_approved"
            record["team_leader_approval_date"] = now
        else:
            record["status"] = "hr_approved"
            record["hr_approval_date"] = now
            balance = self.balance(record["user_id"], record["leave_type_id"])
            balance["used_days"] += record["total_days"]
            balance["remaining_days"] -= record["total_days"]
        return _json(200, {"success": True, "message": "Leave request approved", "request": record})


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_hr() -> FakeHrBackend:
    """HR API fake seeded with one employee, one HR manager and three leave types."""
    backend = FakeHrBackend()
    backend.add_user(1, "employee", EMPLOYEE_EMAIL)
    backend.add_user(2, "hr_manager", HR_EMAIL)
    backend.add_leave_type(1, "Annual")
    backend.add_leave_type(2, "Sick")
    backend.add_leave_type(3, "Sabbatical", is_active=False)
    backend.set_balance(1, 1, total=10, used=8)
    backend.set_balance(1, 2, total=5, used=0)
    backend.set_balance(1, 3, total=1, used=0)
    return backend


@pytest.fixture
async def hr_api(fake_hr: FakeHrBackend) -> AsyncIterator[HttpxHrApi]:
    """HR API client wired to the fake backend."""
    client = HttpxHrApi(HR_BASE_URL, transport=httpx.MockTransport(fake_hr.handler))
    set_hr_api(client)
    yield client
    set_hr_api(None)
    await client.aclose()


@pytest.fixture
async def engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    """A fresh SQLite session store per test."""
    _engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'portal.db'}")
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield _engine
    await _engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    async with AsyncSession(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
async def async_client(db_session: AsyncSession, hr_api: HttpxHrApi) -> AsyncIterator[AsyncClient]:
    """Async HTTP client with the database session dependency overridden."""

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_session] = _override_get_session
    set_view_store(InMemoryViewStore())
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


async def login(client: AsyncClient, email: str = EMPLOYEE_EMAIL) -> dict[str, str]:
    """Open a portal session and return the headers that carry it."""
    resp = await client.post("/session", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 201
    return {"X-Session-Id": resp.json()["session_id"]}
