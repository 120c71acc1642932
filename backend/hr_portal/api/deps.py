# ruff: noqa: B008
from __future__ import annotations

import uuid
from datetime import timedelta
from typing import Annotated

from fastapi import Depends, Request

from hr_portal.config import get_settings
from hr_portal.db import SessionDep
from hr_portal.exceptions import NotAuthenticatedError
from hr_portal.models.enums import HR_ROLES
from hr_portal.schemas.auth import SessionContext
from hr_portal.schemas.view import LeaveView
from hr_portal.services import session as session_service
from hr_portal.services.hr_api import HrApi, get_hr_api
from hr_portal.services.view_store import ViewStore, get_view_store


def get_session_id(request: Request) -> uuid.UUID:
    """Read the portal session id from the configured header."""
    header = get_settings().session_header
    raw = request.headers.get(header)
    if not raw:
        raise NotAuthenticatedError(f"Missing {header} header")
    try:
        return uuid.UUID(raw)
    except ValueError:
        raise NotAuthenticatedError("Invalid session id") from None


SessionIdDep = Annotated[uuid.UUID, Depends(get_session_id)]
HrApiDep = Annotated[HrApi, Depends(get_hr_api)]
ViewStoreDep = Annotated[ViewStore, Depends(get_view_store)]


def get_idle_timeout() -> timedelta:
    """How long a session may go unused before it expires."""
    return timedelta(minutes=get_settings().session_idle_minutes)


IdleTimeoutDep = Annotated[timedelta, Depends(get_idle_timeout)]


async def get_session_context(
    session_id: SessionIdDep,
    session: SessionDep,
    store: ViewStoreDep,
    idle_timeout: IdleTimeoutDep,
) -> SessionContext:
    """Resolve the signed-in actor from the stored session."""
    return await session_service.load_session(session, session_id, view_store=store, idle_timeout=idle_timeout)


ContextDep = Annotated[SessionContext, Depends(get_session_context)]


async def require_hr(context: ContextDep) -> SessionContext:
    """Require an HR manager or HR executive."""
    return session_service.require_roles(context, HR_ROLES, "HR access required")


HrContextDep = Annotated[SessionContext, Depends(require_hr)]


def get_leave_view(context: ContextDep, store: ViewStoreDep) -> LeaveView:
    """The current session's leave view."""
    return store.get(context.session_id)


LeaveViewDep = Annotated[LeaveView, Depends(get_leave_view)]
