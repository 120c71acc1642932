from __future__ import annotations

from fastapi import APIRouter, Response, status

from hr_portal.api.deps import ContextDep, HrApiDep, IdleTimeoutDep, SessionIdDep, ViewStoreDep
from hr_portal.config import get_settings
from hr_portal.db import SessionDep
from hr_portal.schemas.auth import LoginPayload, SessionResponse
from hr_portal.services import session as session_service

router = APIRouter(prefix="/session", tags=["session"])


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def login(
    payload: LoginPayload,
    response: Response,
    session: SessionDep,
    api: HrApiDep,
    store: ViewStoreDep,
    idle_timeout: IdleTimeoutDep,
) -> SessionResponse:
    """Log in and open a portal session."""
    context = await session_service.open_session(
        session, api, payload, view_store=store, idle_timeout=idle_timeout
    )
    response.headers[get_settings().session_header] = str(context.session_id)
    return session_service.build_session_response(context)


@router.get("", response_model=SessionResponse)
async def verify_session(
    session_id: SessionIdDep,
    session: SessionDep,
    api: HrApiDep,
    store: ViewStoreDep,
    idle_timeout: IdleTimeoutDep,
) -> SessionResponse:
    """Verify the session against the HR API and return the current user."""
    context = await session_service.hydrate_session(session, api, store, session_id, idle_timeout=idle_timeout)
    return session_service.build_session_response(context)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    context: ContextDep,
    session: SessionDep,
    store: ViewStoreDep,
) -> Response:
    """End the portal session."""
    await session_service.close_session(session, store, context)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
