"""Re-reads authoritative state after every mutation and tab change.

Balances and statuses are never derived locally: the server deducts
balances on approval, and concurrent approvals by other HR staff would
otherwise leave the portal showing numbers that no longer exist.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from hr_portal.exceptions import AppError
from hr_portal.models.enums import LeaveStatus, LeaveTab
from hr_portal.services.catalog import fetch_catalog
from hr_portal.services.hr_api import FETCH_FAILED

if TYPE_CHECKING:
    from hr_portal.schemas.auth import SessionContext
    from hr_portal.schemas.leave import LeaveRequest
    from hr_portal.schemas.view import LeaveView
    from hr_portal.services.hr_api import HrApi

logger = logging.getLogger(__name__)


def _request_filter(tab: LeaveTab) -> tuple[bool, LeaveStatus | None]:
    """Whether the tab lists requests, and with which status filter."""
    if tab == LeaveTab.APPROVALS:
        return True, LeaveStatus.PENDING
    if tab == LeaveTab.HISTORY:
        return True, None
    return False, None


async def refresh_view(api: HrApi, context: SessionContext, view: LeaveView) -> bool:
    """Reload types, balances and (for list tabs) requests into the view.

    Returns True when the results were applied. A refresh overtaken by a
    newer one is discarded whether it succeeded or failed. Failures never
    propagate: the message goes to the view's error banner and the
    previously loaded data stays in place.
    """
    seq = view.begin_refresh()
    view.error = None
    wants_requests, status_filter = _request_filter(view.active_tab)

    try:
        catalog = await fetch_catalog(api, context.token)
        requests: list[LeaveRequest] | None = None
        if wants_requests:
            requests = await api.list_leave_requests(context.token, status=status_filter)
    except AppError as exc:
        if seq != view.refresh_seq:
            logger.debug("Discarding failed refresh %d; refresh %d supersedes it", seq, view.refresh_seq)
            return False
        view.error = exc.message or FETCH_FAILED
        view.loading = False
        return False

    if view.is_stale(seq):
        logger.debug("Discarding out-of-order refresh %d (applied=%d)", seq, view.applied_seq)
        return False

    view.applied_seq = seq
    view.leave_types = catalog.leave_types
    view.balances = catalog.balances
    if requests is not None:
        view.requests = requests
    if seq == view.refresh_seq:
        view.loading = False
    return True
