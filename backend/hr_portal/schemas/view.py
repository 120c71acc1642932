# ruff: noqa: TC001
from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

from hr_portal.models.enums import LeaveAction, LeaveTab
from hr_portal.schemas.leave import DraftEvaluation, LeaveBalance, LeaveDraft, LeaveRequest, LeaveType

# ---------------------------------------------------------------------------
# Per-session view state
# ---------------------------------------------------------------------------


class LeaveView(BaseModel):
    """What one signed-in user currently sees on the leave screen.

    ``refresh_seq`` is handed out to every refresh as it starts and
    ``applied_seq`` records the newest refresh whose results were applied,
    so a slow response can never overwrite a newer one.
    """

    active_tab: LeaveTab = LeaveTab.BALANCE
    leave_types: list[LeaveType] = Field(default_factory=list)
    balances: list[LeaveBalance] = Field(default_factory=list)
    requests: list[LeaveRequest] = Field(default_factory=list)
    draft: LeaveDraft = Field(default_factory=LeaveDraft)
    loading: bool = False
    submitting: bool = False
    error: str | None = None
    success: str | None = None
    refresh_seq: int = 0
    applied_seq: int = 0

    def begin_refresh(self) -> int:
        self.refresh_seq += 1
        self.loading = True
        return self.refresh_seq

    def is_stale(self, seq: int) -> bool:
        return seq <= self.applied_seq


class TabPayload(BaseModel):
    """Request body for switching tabs."""

    tab: LeaveTab


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class LeaveTypeOption(BaseModel):
    """Selectable leave type on the request form."""

    id: int
    label: str


class BalanceCard(BaseModel):
    """One balance as shown on the balance tab."""

    id: int
    leave_type_id: int
    label: str
    total_days: Decimal
    used_days: Decimal
    remaining_days: Decimal
    year: int


class RequestActionOption(BaseModel):
    """A transition the current actor may request."""

    action: LeaveAction
    label: str


class RequestRow(BaseModel):
    """A leave request with its display labels."""

    request: LeaveRequest
    leave_type_label: str
    status_label: str
    duration_label: str
    actions: list[RequestActionOption] = Field(default_factory=list)


class LeaveViewResponse(BaseModel):
    """Full leave screen for the current session."""

    active_tab: LeaveTab
    tabs: list[LeaveTab]
    loading: bool
    submitting: bool
    error: str | None
    success: str | None
    leave_type_options: list[LeaveTypeOption]
    balances: list[BalanceCard]
    requests: list[RequestRow]
    draft: DraftEvaluation
