# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from hr_portal.exceptions import AppError, AuthorizationError, NotAuthenticatedError, StateConflictError
from hr_portal.models.base import utcnow
from hr_portal.models.enums import PortalAction
from hr_portal.models.session import PortalSession
from hr_portal.schemas.auth import SessionContext, SessionResponse, UserInfo
from hr_portal.services.action_log import write_action_log
from hr_portal.services.hr_api import LOGIN_FAILED

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

    from hr_portal.models.enums import UserRole
    from hr_portal.schemas.auth import LoginPayload
    from hr_portal.services.hr_api import HrApi
    from hr_portal.services.view_store import ViewStore

logger = logging.getLogger(__name__)

SESSION_EXPIRED = "Session expired, please log in again"

# last_seen_at is rewritten at most this often, not on every request.
_TOUCH_INTERVAL = timedelta(minutes=1)


def _as_utc(moment: datetime) -> datetime:
    # SQLite returns stored timestamps without a zone.
    return moment if moment.tzinfo is not None else moment.replace(tzinfo=UTC)


def _build_context(row: PortalSession) -> SessionContext:
    return SessionContext(
        session_id=row.id,
        token=row.token,
        user=UserInfo.model_validate(row.user_json),
        must_change_password=row.must_change_password,
    )


def build_session_response(context: SessionContext) -> SessionResponse:
    return SessionResponse(
        session_id=context.session_id,
        user=context.user,
        must_change_password=context.must_change_password,
        is_hr=context.is_hr,
    )


async def purge_idle_sessions(
    session: AsyncSession,
    view_store: ViewStore | None,
    idle_timeout: timedelta,
) -> int:
    """Delete sessions unused for longer than ``idle_timeout``, with their views."""
    cutoff = utcnow() - idle_timeout
    result = await session.execute(select(PortalSession).where(col(PortalSession.last_seen_at) < cutoff))
    rows = list(result.scalars().all())
    for row in rows:
        if view_store is not None:
            view_store.discard(row.id)
        await session.delete(row)
    if rows:
        logger.info("Purged %d idle sessions", len(rows))
    return len(rows)


async def open_session(
    session: AsyncSession,
    api: HrApi,
    payload: LoginPayload,
    *,
    view_store: ViewStore | None = None,
    idle_timeout: timedelta | None = None,
) -> SessionContext:
    """Log in against the HR API and persist the resulting token.

    Sessions abandoned without logging out are purged here when
    ``idle_timeout`` is given.
    """
    try:
        result = await api.login(payload.email, payload.password)
    except (NotAuthenticatedError, AuthorizationError, StateConflictError) as exc:
        raise NotAuthenticatedError(exc.message or LOGIN_FAILED) from exc

    if idle_timeout is not None:
        await purge_idle_sessions(session, view_store, idle_timeout)

    now = utcnow()
    row = PortalSession(
        token=result.token,
        user_json=result.user.model_dump(mode="json"),
        must_change_password=result.must_change_password or result.user.must_change_password,
        last_verified_at=now,
        last_seen_at=now,
    )
    session.add(row)
    write_action_log(
        session,
        session_id=row.id,
        actor_id=result.user.id,
        action=PortalAction.LOGIN,
        succeeded=True,
    )
    await session.commit()
    logger.info("Session opened for user %d", result.user.id)
    return _build_context(row)


async def _live_row(
    session: AsyncSession,
    view_store: ViewStore | None,
    session_id: uuid.UUID,
    idle_timeout: timedelta | None,
) -> PortalSession:
    row = await session.get(PortalSession, session_id)
    if row is None:
        raise NotAuthenticatedError("Session not found")
    if idle_timeout is None:
        return row

    now = utcnow()
    idle_for = now - _as_utc(row.last_seen_at)
    if idle_for > idle_timeout:
        logger.info("Session %s expired after %s idle", session_id, idle_for)
        await _teardown(session, view_store, row)
        raise NotAuthenticatedError(SESSION_EXPIRED)
    if idle_for > _TOUCH_INTERVAL:
        row.last_seen_at = now
        await session.commit()
    return row


async def load_session(
    session: AsyncSession,
    session_id: uuid.UUID,
    *,
    view_store: ViewStore | None = None,
    idle_timeout: timedelta | None = None,
) -> SessionContext:
    """Rebuild the context from the stored session without contacting the HR API."""
    row = await _live_row(session, view_store, session_id, idle_timeout)
    return _build_context(row)


async def hydrate_session(
    session: AsyncSession,
    api: HrApi,
    view_store: ViewStore,
    session_id: uuid.UUID,
    *,
    idle_timeout: timedelta | None = None,
) -> SessionContext:
    """Verify the stored token with the HR API and refresh the cached user.

    Any verification failure ends the session.
    """
    row = await _live_row(session, view_store, session_id, idle_timeout)

    try:
        user = await api.get_current_user(row.token)
    except AppError as exc:
        logger.info("Session %s failed verification: %s", session_id, type(exc).__name__)
        await _teardown(session, view_store, row)
        raise NotAuthenticatedError(SESSION_EXPIRED) from exc

    now = utcnow()
    row.user_json = user.model_dump(mode="json")
    row.last_verified_at = now
    row.last_seen_at = now
    await session.commit()
    return _build_context(row)


async def close_session(
    session: AsyncSession,
    view_store: ViewStore,
    context: SessionContext,
) -> None:
    """Log out: forget the token, the cached user and the view state."""
    row = await session.get(PortalSession, context.session_id)
    write_action_log(
        session,
        session_id=context.session_id,
        actor_id=context.user.id,
        action=PortalAction.LOGOUT,
        succeeded=True,
    )
    if row is None:
        view_store.discard(context.session_id)
        await session.commit()
        return
    await _teardown(session, view_store, row)


async def _teardown(session: AsyncSession, view_store: ViewStore | None, row: PortalSession) -> None:
    if view_store is not None:
        view_store.discard(row.id)
    await session.delete(row)
    await session.commit()


def require_roles(
    context: SessionContext,
    roles: Iterable[UserRole],
    message: str = "You do not have permission to perform this action",
) -> SessionContext:
    """Raise AuthorizationError unless the actor holds one of ``roles``."""
    if context.user.role not in set(roles):
        raise AuthorizationError(message)
    return context
