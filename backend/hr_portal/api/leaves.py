# ruff: noqa: B008
from __future__ import annotations

from fastapi import APIRouter, File, UploadFile

from hr_portal.api.deps import ContextDep, HrApiDep, HrContextDep, LeaveViewDep
from hr_portal.config import get_settings
from hr_portal.db import SessionDep
from hr_portal.schemas.leave import ApprovePayload, DraftEvaluation, DraftUpdate, RejectPayload
from hr_portal.schemas.view import LeaveViewResponse, TabPayload
from hr_portal.services import composer as composer_service
from hr_portal.services import lifecycle as lifecycle_service
from hr_portal.services import view as view_service
from hr_portal.services.reconciler import refresh_view

router = APIRouter(prefix="/leaves", tags=["leaves"])


@router.get("/view", response_model=LeaveViewResponse)
async def get_view(context: ContextDep, view: LeaveViewDep) -> LeaveViewResponse:
    """Current leave screen without contacting the HR API."""
    return view_service.build_view_response(context, view)


@router.post("/view/tab", response_model=LeaveViewResponse)
async def switch_tab(
    payload: TabPayload,
    context: ContextDep,
    view: LeaveViewDep,
    api: HrApiDep,
) -> LeaveViewResponse:
    """Enter a tab and reload its data."""
    await view_service.switch_tab(api, context, view, payload.tab)
    return view_service.build_view_response(context, view)


@router.post("/view/refresh", response_model=LeaveViewResponse)
async def refresh(context: ContextDep, view: LeaveViewDep, api: HrApiDep) -> LeaveViewResponse:
    """Reload the current tab from the HR API."""
    await refresh_view(api, context, view)
    return view_service.build_view_response(context, view)


@router.patch("/draft", response_model=DraftEvaluation)
async def update_draft(payload: DraftUpdate, view: LeaveViewDep) -> DraftEvaluation:
    """Apply a partial edit to the request form."""
    return view_service.update_draft(view, payload)


@router.delete("/draft", response_model=DraftEvaluation)
async def clear_draft(view: LeaveViewDep) -> DraftEvaluation:
    """Reset the request form."""
    return view_service.clear_draft(view)


@router.post("/draft/submit", response_model=LeaveViewResponse)
async def submit_draft(
    context: ContextDep,
    view: LeaveViewDep,
    session: SessionDep,
    api: HrApiDep,
    attachment: UploadFile | None = File(default=None),
) -> LeaveViewResponse:
    """Submit the request form, with an optional supporting document."""
    max_bytes = get_settings().attachment_max_bytes
    upload = None
    if attachment is not None and attachment.filename:
        upload = await composer_service.read_attachment(view, attachment, max_bytes)
    await composer_service.submit_draft(session, api, context, view, upload, max_attachment_bytes=max_bytes)
    return view_service.build_view_response(context, view)


@router.post("/requests/{request_id}/approve", response_model=LeaveViewResponse)
async def approve_request(
    request_id: int,
    context: HrContextDep,
    view: LeaveViewDep,
    session: SessionDep,
    api: HrApiDep,
    payload: ApprovePayload | None = None,
) -> LeaveViewResponse:
    """Approve a pending or team-leader-approved request (HR only)."""
    approved_by = payload.approved_by if payload else ApprovePayload().approved_by
    await lifecycle_service.approve_request(session, api, context, view, request_id, approved_by)
    return view_service.build_view_response(context, view)


@router.post("/requests/{request_id}/reject", response_model=LeaveViewResponse)
async def reject_request(
    request_id: int,
    payload: RejectPayload,
    context: HrContextDep,
    view: LeaveViewDep,
    session: SessionDep,
    api: HrApiDep,
) -> LeaveViewResponse:
    """Reject a pending or team-leader-approved request (HR only)."""
    await lifecycle_service.reject_request(session, api, context, view, request_id, payload.rejection_reason)
    return view_service.build_view_response(context, view)
