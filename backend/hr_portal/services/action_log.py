from __future__ import annotations

from typing import TYPE_CHECKING

from hr_portal.models.action_log import PortalActionLog

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from hr_portal.models.enums import PortalAction


def write_action_log(
    session: AsyncSession,
    *,
    session_id: uuid.UUID | None,
    actor_id: int | None,
    action: PortalAction,
    succeeded: bool,
    request_id: int | None = None,
    message: str | None = None,
) -> PortalActionLog:
    """Record a portal action within the caller's transaction."""
    entry = PortalActionLog(
        session_id=session_id,
        actor_id=actor_id,
        action=action.value,
        request_id=request_id,
        succeeded=succeeded,
        message=message,
    )
    session.add(entry)
    return entry
