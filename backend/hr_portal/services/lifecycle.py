"""Approval state machine for leave requests.

The server owns every transition; this module only knows which
transitions are legal so the portal can refuse obviously stale actions
and offer the right buttons.

    pending --approve--> team_leader_approved --approve--> hr_approved
    pending --approve--> hr_approved
    pending --reject---> rejected <--reject-- team_leader_approved
    pending --cancel---> cancelled
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from hr_portal.exceptions import AppError, AuthorizationError, DraftValidationError, StateConflictError
from hr_portal.models.enums import ApproverRole, LeaveAction, LeaveStatus, PortalAction
from hr_portal.schemas.view import RequestActionOption
from hr_portal.services.action_log import write_action_log
from hr_portal.services.hr_api import APPROVE_FAILED, REJECT_FAILED
from hr_portal.services.reconciler import refresh_view

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from sqlalchemy.ext.asyncio import AsyncSession

    from hr_portal.schemas.auth import SessionContext
    from hr_portal.schemas.leave import MutationResult
    from hr_portal.schemas.view import LeaveView
    from hr_portal.services.hr_api import HrApi

logger = logging.getLogger(__name__)

APPROVED = "Leave request approved successfully"
REJECTED = "Leave request rejected"

TRANSITIONS: dict[tuple[LeaveStatus, LeaveAction], frozenset[LeaveStatus]] = {
    # The server decides whether an approval from pending is intermediate or final.
    (LeaveStatus.PENDING, LeaveAction.APPROVE): frozenset(
        {LeaveStatus.TEAM_LEADER_APPROVED, LeaveStatus.HR_APPROVED}
    ),
    (LeaveStatus.PENDING, LeaveAction.REJECT): frozenset({LeaveStatus.REJECTED}),
    (LeaveStatus.PENDING, LeaveAction.CANCEL): frozenset({LeaveStatus.CANCELLED}),
    (LeaveStatus.TEAM_LEADER_APPROVED, LeaveAction.APPROVE): frozenset({LeaveStatus.HR_APPROVED}),
    (LeaveStatus.TEAM_LEADER_APPROVED, LeaveAction.REJECT): frozenset({LeaveStatus.REJECTED}),
}


def allowed_targets(status: LeaveStatus, action: LeaveAction) -> frozenset[LeaveStatus]:
    """States reachable from ``status`` via ``action``; empty when illegal."""
    return TRANSITIONS.get((status, action), frozenset())


def ensure_transition(status: LeaveStatus, action: LeaveAction) -> frozenset[LeaveStatus]:
    """Return the allowed targets or raise StateConflictError."""
    targets = allowed_targets(status, action)
    if not targets:
        raise StateConflictError(f"Cannot {action.value} a leave request that is {status.label.lower()}")
    return targets


def hr_actions(status: LeaveStatus) -> list[RequestActionOption]:
    """Buttons offered to an HR actor for a request in ``status``."""
    if status == LeaveStatus.PENDING:
        return [
            RequestActionOption(action=LeaveAction.APPROVE, label="Approve"),
            RequestActionOption(action=LeaveAction.REJECT, label="Reject"),
        ]
    if status == LeaveStatus.TEAM_LEADER_APPROVED:
        return [
            RequestActionOption(action=LeaveAction.APPROVE, label="Final Approve"),
            RequestActionOption(action=LeaveAction.REJECT, label="Reject"),
        ]
    return []


def _known_status(view: LeaveView, request_id: int) -> LeaveStatus | None:
    for request in view.requests:
        if request.id == request_id:
            return request.status
    return None


async def _run_transition(
    session: AsyncSession,
    api: HrApi,
    context: SessionContext,
    view: LeaveView,
    request_id: int,
    action: LeaveAction,
    call: Callable[[], Awaitable[MutationResult]],
    success_message: str,
    failure_message: str,
) -> MutationResult:
    """Issue one transition, then unconditionally re-read server state.

    Nothing is changed locally before or after the call, so a failure needs
    no rollback: the refresh shows whatever the server now holds.
    """
    portal_action = PortalAction.APPROVE if action == LeaveAction.APPROVE else PortalAction.REJECT
    view.error = None
    view.success = None

    try:
        known = _known_status(view, request_id)
        targets = ensure_transition(known, action) if known is not None else None
        result = await call()
    except AppError as exc:
        await _settle(session, api, context, view, request_id, portal_action, exc)
        view.error = exc.message or failure_message
        raise

    if targets is not None and result.status is not None and result.status not in targets:
        logger.warning(
            "HR API moved request %d from %s to %s on %s",
            request_id,
            known,
            result.status,
            action.value,
        )
    await _settle(session, api, context, view, request_id, portal_action, None)
    logger.info("Request %d %s by user %d", request_id, action.value, context.user.id)
    view.success = result.message or success_message
    return result


async def _settle(
    session: AsyncSession,
    api: HrApi,
    context: SessionContext,
    view: LeaveView,
    request_id: int,
    portal_action: PortalAction,
    failure: AppError | None,
) -> None:
    """Log the attempt and re-read server state, whatever the outcome."""
    write_action_log(
        session,
        session_id=context.session_id,
        actor_id=context.user.id,
        action=portal_action,
        request_id=request_id,
        succeeded=failure is None,
        message=failure.message if failure is not None else None,
    )
    await session.commit()
    await refresh_view(api, context, view)


async def approve_request(
    session: AsyncSession,
    api: HrApi,
    context: SessionContext,
    view: LeaveView,
    request_id: int,
    approved_by: ApproverRole = ApproverRole.HR,
) -> MutationResult:
    """Ask the server to approve a request on behalf of an HR actor."""
    if not context.is_hr:
        view.error = "Only HR can approve leave requests"
        raise AuthorizationError(view.error)

    return await _run_transition(
        session,
        api,
        context,
        view,
        request_id,
        LeaveAction.APPROVE,
        lambda: api.approve_leave_request(context.token, request_id, approved_by),
        APPROVED,
        APPROVE_FAILED,
    )


async def reject_request(
    session: AsyncSession,
    api: HrApi,
    context: SessionContext,
    view: LeaveView,
    request_id: int,
    rejection_reason: str,
) -> MutationResult:
    """Ask the server to reject a request. A blank reason never leaves the portal."""
    if not context.is_hr:
        view.error = "Only HR can reject leave requests"
        raise AuthorizationError(view.error)
    reason = rejection_reason.strip()
    if not reason:
        view.error = "A rejection reason is required"
        raise DraftValidationError(view.error, missing=["rejection_reason"])

    return await _run_transition(
        session,
        api,
        context,
        view,
        request_id,
        LeaveAction.REJECT,
        lambda: api.reject_leave_request(context.token, request_id, reason),
        REJECTED,
        REJECT_FAILED,
    )
