from __future__ import annotations

from typing import TYPE_CHECKING

from hr_portal.exceptions import AuthorizationError
from hr_portal.models.enums import LeaveTab
from hr_portal.schemas.leave import LeaveDraft
from hr_portal.schemas.view import BalanceCard, LeaveTypeOption, LeaveViewResponse, RequestRow
from hr_portal.services.catalog import active_leave_types, balance_for, leave_type_label, option_label
from hr_portal.services.composer import apply_draft_update, duration_label, evaluate_draft
from hr_portal.services.lifecycle import hr_actions
from hr_portal.services.reconciler import refresh_view

if TYPE_CHECKING:
    from hr_portal.schemas.auth import SessionContext
    from hr_portal.schemas.leave import DraftEvaluation, DraftUpdate, LeaveRequest
    from hr_portal.schemas.view import LeaveView
    from hr_portal.services.hr_api import HrApi


def visible_tabs(context: SessionContext) -> list[LeaveTab]:
    tabs = [LeaveTab.BALANCE, LeaveTab.REQUEST, LeaveTab.HISTORY]
    if context.is_hr:
        tabs.append(LeaveTab.APPROVALS)
    return tabs


async def switch_tab(api: HrApi, context: SessionContext, view: LeaveView, tab: LeaveTab) -> LeaveView:
    """Enter a tab and reload what it shows."""
    if tab not in visible_tabs(context):
        view.error = "Only HR can review pending approvals"
        raise AuthorizationError(view.error)
    view.active_tab = tab
    await refresh_view(api, context, view)
    return view


def update_draft(view: LeaveView, update: DraftUpdate) -> DraftEvaluation:
    view.draft = apply_draft_update(view.draft, update)
    return evaluate_draft(view.draft, view.balances)


def clear_draft(view: LeaveView) -> DraftEvaluation:
    view.draft = LeaveDraft()
    return evaluate_draft(view.draft, view.balances)


def _request_row(context: SessionContext, view: LeaveView, request: LeaveRequest) -> RequestRow:
    actions = hr_actions(request.status) if context.is_hr and view.active_tab == LeaveTab.APPROVALS else []
    return RequestRow(
        request=request,
        leave_type_label=leave_type_label(request.leave_type_id, view.leave_types, request.leave_type),
        status_label=request.status.label,
        duration_label=duration_label(request.total_days, request.half_day_period if request.is_half_day else None),
        actions=actions,
    )


def build_view_response(context: SessionContext, view: LeaveView) -> LeaveViewResponse:
    """Render the view state with every label the screen needs."""
    options = [
        LeaveTypeOption(id=t.id, label=option_label(t, balance_for(view.balances, t.id)))
        for t in active_leave_types(view.leave_types)
    ]
    cards = [
        BalanceCard(
            id=b.id,
            leave_type_id=b.leave_type_id,
            label=leave_type_label(b.leave_type_id, view.leave_types, b.leave_type),
            total_days=b.total_days,
            used_days=b.used_days,
            remaining_days=b.remaining_days,
            year=b.year,
        )
        for b in view.balances
    ]
    return LeaveViewResponse(
        active_tab=view.active_tab,
        tabs=visible_tabs(context),
        loading=view.loading,
        submitting=view.submitting,
        error=view.error,
        success=view.success,
        leave_type_options=options,
        balances=cards,
        requests=[_request_row(context, view, r) for r in view.requests],
        draft=evaluate_draft(view.draft, view.balances),
    )
