# ruff: noqa: TC003
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, Any, Self

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator

from hr_portal.models.enums import ApproverRole, HalfDayPeriod, LeaveStatus

HALF_DAY = Decimal("0.5")


def _date_only(value: Any) -> Any:
    # The HR API serialises DATEONLY columns either as "YYYY-MM-DD" or as a
    # midnight timestamp.
    if isinstance(value, str) and len(value) > 10:
        return value[:10]
    return value


ApiDate = Annotated[date, BeforeValidator(_date_only)]


# ---------------------------------------------------------------------------
# Upstream records
# ---------------------------------------------------------------------------


class LeaveType(BaseModel):
    """A configured category of leave."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: int
    name: str
    description: str | None = None
    max_days: Decimal | None = None
    is_active: bool = True


class LeaveBalance(BaseModel):
    """Per-user, per-type, per-year allotment. Read-only to the portal."""

    model_config = ConfigDict(extra="ignore")

    id: int
    leave_type_id: int
    user_id: int | None = None
    total_days: Decimal
    used_days: Decimal
    remaining_days: Decimal
    year: int
    leave_type: LeaveType | None = None


class RequestOwner(BaseModel):
    """Requester summary embedded in a leave request."""

    model_config = ConfigDict(extra="ignore")

    id: int
    first_name: str
    last_name: str
    email: str | None = None
    employee_id: str | None = None


class LeaveRequest(BaseModel):
    """A submitted leave request as reported by the HR API."""

    model_config = ConfigDict(extra="ignore")

    id: int
    user_id: int | None = None
    leave_type_id: int
    start_date: ApiDate
    end_date: ApiDate
    total_days: Decimal
    is_half_day: bool = False
    half_day_period: HalfDayPeriod | None = None
    reason: str | None = None
    attachment_url: str | None = None
    status: LeaveStatus
    team_leader_approval_date: datetime | None = None
    hr_approval_date: datetime | None = None
    rejection_reason: str | None = None
    created_at: datetime
    user: RequestOwner | None = None
    leave_type: LeaveType | None = None


class MutationResult(BaseModel):
    """Outcome of a create/approve/reject call."""

    message: str | None = None
    request: LeaveRequest | None = None
    status: LeaveStatus | None = None


# ---------------------------------------------------------------------------
# Draft (portal-side form state)
# ---------------------------------------------------------------------------


class LeaveDraft(BaseModel):
    """The request form as currently filled in."""

    leave_type_id: int | None = None
    start_date: date | None = None
    end_date: date | None = None
    reason: str = ""
    is_half_day: bool = False
    half_day_period: HalfDayPeriod | None = None


class DraftUpdate(BaseModel):
    """Partial draft edit. Only fields present in the body are applied."""

    leave_type_id: int | None = None
    start_date: date | None = None
    end_date: date | None = None
    reason: str | None = None
    is_half_day: bool | None = None
    half_day_period: HalfDayPeriod | None = None


class DraftEvaluation(BaseModel):
    """Derived state of a draft against the actor's balances."""

    draft: LeaveDraft
    requested_days: Decimal
    duration_label: str | None = None
    selected_balance: LeaveBalance | None = None
    has_insufficient_balance: bool = False
    can_submit: bool = False
    missing: list[str] = Field(default_factory=list)
    warning: str | None = None
    confirmation: str | None = None


class LeaveSubmission(BaseModel):
    """A complete request ready to be sent upstream.

    Constructing one enforces the request shape: a half-day covers exactly
    one date with a period set, a full-day span is inclusive and never
    inverted.
    """

    leave_type_id: int
    start_date: date
    end_date: date
    reason: str = Field(min_length=1)
    is_half_day: bool = False
    half_day_period: HalfDayPeriod | None = None
    total_days: Decimal

    @model_validator(mode="after")
    def _validate_shape(self) -> Self:
        if self.is_half_day:
            if self.end_date != self.start_date:
                msg = "A half-day request must start and end on the same date"
                raise ValueError(msg)
            if self.half_day_period is None:
                msg = "A half-day request needs a period"
                raise ValueError(msg)
            if self.total_days != HALF_DAY:
                msg = "A half-day request covers exactly 0.5 days"
                raise ValueError(msg)
        else:
            if self.end_date < self.start_date:
                msg = "end_date must not be before start_date"
                raise ValueError(msg)
            if self.total_days != (self.end_date - self.start_date).days + 1:
                msg = "total_days does not match the requested span"
                raise ValueError(msg)
        return self

    def to_form_fields(self) -> dict[str, str]:
        """Multipart form fields in the shape the HR API expects."""
        fields = {
            "leave_type_id": str(self.leave_type_id),
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "reason": self.reason,
            "is_half_day": "true" if self.is_half_day else "false",
        }
        if self.is_half_day and self.half_day_period is not None:
            fields["half_day_period"] = self.half_day_period.value
        return fields


class Attachment(BaseModel):
    """Supporting document uploaded with a request."""

    filename: str
    content: bytes = Field(repr=False)
    content_type: str = "application/octet-stream"


# ---------------------------------------------------------------------------
# Decision payloads
# ---------------------------------------------------------------------------


class ApprovePayload(BaseModel):
    """Request body for approving a leave request."""

    approved_by: ApproverRole = ApproverRole.HR


class RejectPayload(BaseModel):
    """Request body for rejecting a leave request."""

    rejection_reason: str = Field(default="", max_length=1000)
