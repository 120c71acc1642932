"""Client for the authoritative HR REST API.

Every business rule (balance accounting, approval transitions, payroll)
lives behind this interface. The portal only reads state and asks for
transitions; it never predicts their outcome.
"""

# ruff: noqa: TC003
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import httpx
from pydantic import TypeAdapter, ValidationError

from hr_portal.config import get_settings
from hr_portal.exceptions import (
    AppError,
    AuthorizationError,
    NotAuthenticatedError,
    StateConflictError,
    UpstreamError,
)
from hr_portal.models.enums import ApproverRole, LeaveStatus
from hr_portal.schemas.auth import LoginResult, UserInfo
from hr_portal.schemas.leave import Attachment, LeaveBalance, LeaveRequest, LeaveType, MutationResult

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)

FETCH_FAILED = "Failed to fetch data"
LOGIN_FAILED = "Login failed"
SUBMIT_FAILED = "Failed to submit leave request"
APPROVE_FAILED = "Failed to approve leave request"
REJECT_FAILED = "Failed to reject leave request"

_types_adapter: TypeAdapter[list[LeaveType]] = TypeAdapter(list[LeaveType])
_balances_adapter: TypeAdapter[list[LeaveBalance]] = TypeAdapter(list[LeaveBalance])
_requests_adapter: TypeAdapter[list[LeaveRequest]] = TypeAdapter(list[LeaveRequest])


@runtime_checkable
class HrApi(Protocol):
    """Interface for the HR REST API."""

    async def login(self, email: str, password: str) -> LoginResult:
        """Exchange credentials for a bearer token."""
        ...

    async def get_current_user(self, token: str) -> UserInfo:
        """Verify a token and return the user it belongs to."""
        ...

    async def list_leave_types(self, token: str) -> list[LeaveType]:
        """All configured leave types, active or not."""
        ...

    async def list_leave_balances(self, token: str) -> list[LeaveBalance]:
        """The caller's balances for the active year."""
        ...

    async def list_leave_requests(self, token: str, status: LeaveStatus | None = None) -> list[LeaveRequest]:
        """Requests visible to the caller, optionally filtered by status."""
        ...

    async def create_leave_request(
        self, token: str, fields: Mapping[str, str], attachment: Attachment | None = None
    ) -> MutationResult:
        """Submit a new request as a multipart form."""
        ...

    async def approve_leave_request(self, token: str, request_id: int, approved_by: ApproverRole) -> MutationResult:
        """Ask the server to advance a request's approval."""
        ...

    async def reject_leave_request(self, token: str, request_id: int, rejection_reason: str) -> MutationResult:
        """Ask the server to reject a request."""
        ...

    async def ping(self) -> bool:
        """Whether the HR API is reachable."""
        ...


def _error_message(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        if isinstance(message, str) and message:
            return message
    return None


def _map_error(response: httpx.Response, fallback: str) -> AppError:
    """Translate an upstream error response into the portal's error taxonomy."""
    message = _error_message(response) or fallback
    code = response.status_code
    if code == 401:
        return NotAuthenticatedError(message)
    if code == 403:
        return AuthorizationError(message)
    if code >= 500:
        return UpstreamError(message, upstream_status=code)
    return StateConflictError(message, upstream_status=code)


def _parse_list(adapter: TypeAdapter[Any], body: dict[str, Any], key: str) -> Any:
    try:
        return adapter.validate_python(body.get(key) or [])
    except ValidationError as exc:
        logger.warning("HR API returned malformed %s: %s", key, exc.error_count())
        raise UpstreamError(FETCH_FAILED) from exc


def _parse_mutation(body: dict[str, Any]) -> MutationResult:
    request: LeaveRequest | None = None
    raw_request = body.get("request") or body.get("leaveRequest")
    if isinstance(raw_request, dict):
        try:
            request = LeaveRequest.model_validate(raw_request)
        except ValidationError:
            logger.debug("Ignoring unparseable request echo in mutation response")
    status: LeaveStatus | None = request.status if request else None
    raw_status = body.get("status")
    if isinstance(raw_status, str):
        try:
            status = LeaveStatus(raw_status)
        except ValueError:
            logger.debug("Ignoring unknown status %r in mutation response", raw_status)
    message = body.get("message")
    return MutationResult(message=message if isinstance(message, str) else None, request=request, status=status)


class HttpxHrApi:
    """HR API client over a shared httpx.AsyncClient."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/",
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def ping(self) -> bool:
        # Any answer short of a 5xx means the service is up.
        try:
            response = await self._client.get("health")
        except httpx.HTTPError as exc:
            logger.warning("HR API health check failed: %s", type(exc).__name__)
            return False
        return response.status_code < 500

    async def _request(
        self,
        method: str,
        path: str,
        *,
        fallback: str,
        token: str | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {token}"} if token else None
        try:
            response = await self._client.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning("HR API %s %s failed: %s", method, path, type(exc).__name__)
            raise UpstreamError(fallback) from exc

        if response.is_error:
            logger.warning("HR API %s %s returned %d", method, path, response.status_code)
            raise _map_error(response, fallback)

        try:
            body = response.json()
        except ValueError as exc:
            raise UpstreamError(fallback, upstream_status=response.status_code) from exc
        if not isinstance(body, dict):
            raise UpstreamError(fallback, upstream_status=response.status_code)
        return body

    async def login(self, email: str, password: str) -> LoginResult:
        body = await self._request(
            "POST", "auth/login", fallback=LOGIN_FAILED, json={"email": email, "password": password}
        )
        try:
            return LoginResult(
                token=body["token"],
                user=UserInfo.model_validate(body["user"]),
                must_change_password=bool(body.get("mustChangePassword", False)),
            )
        except (KeyError, ValidationError) as exc:
            raise UpstreamError(LOGIN_FAILED) from exc

    async def get_current_user(self, token: str) -> UserInfo:
        body = await self._request("GET", "auth/me", fallback=FETCH_FAILED, token=token)
        raw_user = body.get("user")
        if not isinstance(raw_user, dict):
            raise NotAuthenticatedError("No user data received")
        try:
            return UserInfo.model_validate(raw_user)
        except ValidationError as exc:
            raise NotAuthenticatedError("No user data received") from exc

    async def list_leave_types(self, token: str) -> list[LeaveType]:
        body = await self._request("GET", "leaves/types", fallback=FETCH_FAILED, token=token)
        result: list[LeaveType] = _parse_list(_types_adapter, body, "types")
        return result

    async def list_leave_balances(self, token: str) -> list[LeaveBalance]:
        body = await self._request("GET", "leaves/balance", fallback=FETCH_FAILED, token=token)
        result: list[LeaveBalance] = _parse_list(_balances_adapter, body, "balances")
        return result

    async def list_leave_requests(self, token: str, status: LeaveStatus | None = None) -> list[LeaveRequest]:
        params = {"status": status.value} if status is not None else None
        body = await self._request("GET", "leaves", fallback=FETCH_FAILED, token=token, params=params)
        result: list[LeaveRequest] = _parse_list(_requests_adapter, body, "requests")
        return result

    async def create_leave_request(
        self, token: str, fields: Mapping[str, str], attachment: Attachment | None = None
    ) -> MutationResult:
        # Plain fields go in as filename-less parts so the body is multipart
        # even without an attachment.
        parts: list[tuple[str, tuple[str | None, str | bytes, str | None]]] = [
            (name, (None, value, None)) for name, value in fields.items()
        ]
        if attachment is not None:
            parts.append(("attachment", (attachment.filename, attachment.content, attachment.content_type)))
        body = await self._request("POST", "leaves", fallback=SUBMIT_FAILED, token=token, files=parts)
        return _parse_mutation(body)

    async def approve_leave_request(self, token: str, request_id: int, approved_by: ApproverRole) -> MutationResult:
        body = await self._request(
            "PUT",
            f"leaves/{request_id}/approve",
            fallback=APPROVE_FAILED,
            token=token,
            json={"approvedBy": approved_by.value},
        )
        return _parse_mutation(body)

    async def reject_leave_request(self, token: str, request_id: int, rejection_reason: str) -> MutationResult:
        body = await self._request(
            "PUT",
            f"leaves/{request_id}/reject",
            fallback=REJECT_FAILED,
            token=token,
            json={"rejectionReason": rejection_reason},
        )
        return _parse_mutation(body)


_hr_api: HrApi | None = None


def get_hr_api() -> HrApi:
    """FastAPI dependency for the HR API client."""
    global _hr_api
    if _hr_api is None:
        settings = get_settings()
        _hr_api = HttpxHrApi(settings.hr_api_base_url, timeout=settings.hr_api_timeout_seconds)
    return _hr_api


def set_hr_api(api: HrApi | None) -> None:
    """Override the client (for testing or production wiring)."""
    global _hr_api
    _hr_api = api


async def close_hr_api() -> None:
    """Close the default client's connection pool. Call on app shutdown."""
    global _hr_api
    if isinstance(_hr_api, HttpxHrApi):
        await _hr_api.aclose()
    _hr_api = None
