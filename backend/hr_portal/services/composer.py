from __future__ import annotations

import logging
from decimal import Decimal
from pathlib import PurePath
from typing import TYPE_CHECKING

from pydantic import ValidationError

from hr_portal.exceptions import AppError, DraftValidationError, StateConflictError
from hr_portal.models.enums import LeaveTab, PortalAction
from hr_portal.schemas.leave import HALF_DAY, Attachment, DraftEvaluation, LeaveDraft, LeaveSubmission
from hr_portal.services.action_log import write_action_log
from hr_portal.services.catalog import balance_for, format_days
from hr_portal.services.hr_api import SUBMIT_FAILED
from hr_portal.services.reconciler import refresh_view

if TYPE_CHECKING:
    from collections.abc import Iterable

    from fastapi import UploadFile
    from sqlalchemy.ext.asyncio import AsyncSession

    from hr_portal.models.enums import HalfDayPeriod
    from hr_portal.schemas.auth import SessionContext
    from hr_portal.schemas.leave import DraftUpdate, LeaveBalance, MutationResult
    from hr_portal.schemas.view import LeaveView
    from hr_portal.services.hr_api import HrApi

logger = logging.getLogger(__name__)

ALLOWED_ATTACHMENT_EXTENSIONS = frozenset({"pdf", "doc", "docx", "jpg", "jpeg", "png"})
SUBMITTED = "Leave request submitted successfully"


# ---------------------------------------------------------------------------
# Draft arithmetic
# ---------------------------------------------------------------------------


def requested_days(draft: LeaveDraft) -> Decimal:
    """Days the draft would consume: 0.5 for a half-day, else the inclusive span.

    An inverted span counts as zero.
    """
    if draft.start_date is None:
        return Decimal(0)
    if draft.is_half_day:
        return HALF_DAY
    if draft.end_date is None:
        return Decimal(0)
    span = (draft.end_date - draft.start_date).days
    return Decimal(max(0, span + 1))


def duration_label(days: Decimal, period: HalfDayPeriod | None = None) -> str:
    if days == HALF_DAY:
        label = "0.5 day"
    elif days == 1:
        label = "1 day"
    else:
        label = f"{format_days(days)} days"
    if period is not None:
        label += f" ({period.label})"
    return label


def apply_draft_update(draft: LeaveDraft, update: DraftUpdate) -> LeaveDraft:
    """Apply the fields present in ``update`` and re-establish half-day rules."""
    changes = update.model_dump(include=update.model_fields_set)
    data = draft.model_dump()

    if "is_half_day" in changes and changes["is_half_day"] is not None:
        data["is_half_day"] = changes["is_half_day"]
        if not data["is_half_day"]:
            data["half_day_period"] = None
    for field in ("leave_type_id", "start_date", "end_date", "half_day_period"):
        if field in changes:
            data[field] = changes[field]
    if "reason" in changes:
        data["reason"] = changes["reason"] or ""

    if data["is_half_day"]:
        # End date follows the start date and cannot be edited independently.
        data["end_date"] = data["start_date"]
    else:
        data["half_day_period"] = None
    return LeaveDraft.model_validate(data)


def _missing_fields(draft: LeaveDraft) -> list[str]:
    missing = []
    if draft.leave_type_id is None:
        missing.append("leave_type_id")
    if draft.start_date is None:
        missing.append("start_date")
    if draft.end_date is None and not draft.is_half_day:
        missing.append("end_date")
    if not draft.reason.strip():
        missing.append("reason")
    if draft.is_half_day and draft.half_day_period is None:
        missing.append("half_day_period")
    return missing


def evaluate_draft(draft: LeaveDraft, balances: Iterable[LeaveBalance]) -> DraftEvaluation:
    """Derive the request form's gate, warning and confirmation.

    Exceeding the balance disables submission but is not an error; the
    server re-validates on create regardless.
    """
    days = requested_days(draft)
    selected = balance_for(balances, draft.leave_type_id) if draft.leave_type_id is not None else None
    insufficient = selected is not None and days > selected.remaining_days
    missing = _missing_fields(draft)

    # An inverted span yields zero days and can never be submitted.
    can_submit = not missing and not insufficient and days > 0

    warning = None
    confirmation = None
    if selected is not None and insufficient:
        warning = (
            f"You are requesting {format_days(days)} days, "
            f"but only {format_days(selected.remaining_days)} days are available."
        )
    elif selected is not None and days > 0:
        confirmation = f"{format_days(selected.remaining_days - days)} days will remain after this request."

    label = None
    if draft.start_date is not None and (draft.end_date is not None or draft.is_half_day):
        label = duration_label(days, draft.half_day_period if draft.is_half_day else None)

    return DraftEvaluation(
        draft=draft,
        requested_days=days,
        duration_label=label,
        selected_balance=selected,
        has_insufficient_balance=insufficient,
        can_submit=can_submit,
        missing=missing,
        warning=warning,
        confirmation=confirmation,
    )


def build_submission(draft: LeaveDraft, balances: Iterable[LeaveBalance]) -> LeaveSubmission:
    """Turn a draft into a submission or raise DraftValidationError."""
    evaluation = evaluate_draft(draft, balances)
    if evaluation.missing:
        raise DraftValidationError(
            "Please complete all required fields: " + ", ".join(evaluation.missing),
            missing=evaluation.missing,
        )
    if evaluation.has_insufficient_balance:
        raise DraftValidationError(evaluation.warning or "Insufficient leave balance")
    if evaluation.requested_days <= 0:
        raise DraftValidationError("End date must not be before start date")

    try:
        return LeaveSubmission(
            leave_type_id=draft.leave_type_id,  # ty: ignore[invalid-argument-type]
            start_date=draft.start_date,  # ty: ignore[invalid-argument-type]
            end_date=draft.start_date if draft.is_half_day else draft.end_date,  # ty: ignore[invalid-argument-type]
            reason=draft.reason.strip(),
            is_half_day=draft.is_half_day,
            half_day_period=draft.half_day_period,
            total_days=evaluation.requested_days,
        )
    except ValidationError as exc:
        raise DraftValidationError(exc.errors()[0]["msg"]) from exc


def _size_label(num_bytes: int) -> str:
    for unit, scale in (("MB", 1024 * 1024), ("KB", 1024)):
        if num_bytes >= scale:
            return f"{num_bytes / scale:.3g} {unit}"
    return f"{num_bytes} bytes"


def check_attachment_type(filename: str) -> None:
    extension = PurePath(filename).suffix.lstrip(".").lower()
    if extension not in ALLOWED_ATTACHMENT_EXTENSIONS:
        allowed = ", ".join(sorted(ALLOWED_ATTACHMENT_EXTENSIONS))
        raise DraftValidationError(f"Attachment must be one of: {allowed}")


def validate_attachment(attachment: Attachment, max_bytes: int) -> None:
    check_attachment_type(attachment.filename)
    if len(attachment.content) > max_bytes:
        raise DraftValidationError(f"Attachment exceeds the {_size_label(max_bytes)} limit")


async def read_attachment(view: LeaveView, upload: UploadFile, max_bytes: int) -> Attachment:
    """Read an uploaded file into memory, at most one byte past the limit.

    The type is checked from the filename before the body is touched.
    """
    filename = upload.filename or ""
    try:
        check_attachment_type(filename)
        attachment = Attachment(
            filename=filename,
            content=await upload.read(max_bytes + 1),
            content_type=upload.content_type or "application/octet-stream",
        )
        validate_attachment(attachment, max_bytes)
    except DraftValidationError as exc:
        view.error = exc.message
        raise
    return attachment


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------


async def submit_draft(
    session: AsyncSession,
    api: HrApi,
    context: SessionContext,
    view: LeaveView,
    attachment: Attachment | None = None,
    max_attachment_bytes: int = 5 * 1024 * 1024,
) -> MutationResult:
    """Submit the view's draft to the HR API.

    On success the draft is cleared, the view switches to the history tab
    and everything is re-read from the server. Balances are not touched
    locally. On failure the server's message is shown and the draft kept.
    """
    if view.submitting:
        view.error = "A leave request is already being submitted"
        raise StateConflictError(view.error)

    view.error = None
    view.success = None
    try:
        submission = build_submission(view.draft, view.balances)
        if attachment is not None:
            validate_attachment(attachment, max_attachment_bytes)
    except DraftValidationError as exc:
        view.error = exc.message
        raise

    view.submitting = True
    try:
        result = await api.create_leave_request(context.token, submission.to_form_fields(), attachment)
    except AppError as exc:
        view.error = exc.message or SUBMIT_FAILED
        write_action_log(
            session,
            session_id=context.session_id,
            actor_id=context.user.id,
            action=PortalAction.SUBMIT,
            succeeded=False,
            message=view.error,
        )
        await session.commit()
        raise
    finally:
        view.submitting = False

    logger.info("Leave request submitted by user %d (%s days)", context.user.id, submission.total_days)
    view.success = result.message or SUBMITTED
    view.draft = LeaveDraft()
    view.active_tab = LeaveTab.HISTORY
    write_action_log(
        session,
        session_id=context.session_id,
        actor_id=context.user.id,
        action=PortalAction.SUBMIT,
        succeeded=True,
        request_id=result.request.id if result.request else None,
        message=view.success,
    )
    await session.commit()
    await refresh_view(api, context, view)
    return result
